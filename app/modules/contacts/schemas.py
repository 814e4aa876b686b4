"""
Esquemas Pydantic para el módulo de Contactos
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from app.modules.contacts.models import ContactType


class ContactBase(BaseModel):
    nombre: str = Field(..., min_length=1, max_length=200, description="Nombre o razón social")
    tipo: ContactType = Field(..., description="cliente o proveedor")
    documento: Optional[str] = Field(None, max_length=50, description="Cédula o cédula jurídica")
    email: Optional[str] = Field(None, max_length=100)
    telefono: Optional[str] = Field(None, max_length=50)
    direccion: Optional[str] = None

    @field_validator('nombre')
    @classmethod
    def strip_nombre(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('El nombre es requerido')
        return v

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        if v and '@' not in v:
            raise ValueError('Email inválido')
        return v


class ContactCreate(ContactBase):
    pass


class ContactOut(ContactBase):
    id: UUID
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ContactList(BaseModel):
    items: List[ContactOut]
    total: int
    limit: int
    offset: int
