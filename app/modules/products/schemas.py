from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional
from uuid import UUID

from app.common.validators import MONEY_QUANT, MAX_MONEY, quantize_input


class ProductCreate(BaseModel):
    nombre: str = Field(..., min_length=1, max_length=100)
    codigo: str = Field(..., min_length=1, max_length=50)
    categoria: Optional[str] = Field(None, max_length=100)
    unidad_medida: str = Field("unidad", max_length=20)
    precio_venta: Decimal = Field(Decimal("0"), ge=0, lt=MAX_MONEY)

    @field_validator('precio_venta')
    @classmethod
    def validate_price(cls, v):
        return quantize_input(v, MONEY_QUANT)


class ProductOut(BaseModel):
    id: UUID
    nombre: str
    codigo: str
    categoria: Optional[str] = None
    unidad_medida: str
    precio_venta: Decimal
    is_active: bool

    class Config:
        from_attributes = True
