"""
Router para el módulo de Contactos

Clientes y proveedores referenciados por facturas y compras.
"""

from fastapi import APIRouter, Query, status
from typing import Optional
from uuid import UUID

from app.core.config import settings
from app.common.schemas import ERROR_RESPONSES
from app.dependencies.dbDependecies import db_dependency
from app.modules.contacts.service import ContactService
from app.modules.contacts.schemas import ContactCreate, ContactOut, ContactList
from app.modules.contacts.models import ContactType

router = APIRouter(
    prefix="/contacts",
    tags=["Contacts"],
    responses=ERROR_RESPONSES,
)


@router.post("/", response_model=ContactOut, status_code=status.HTTP_201_CREATED)
def create_contact(contact_data: ContactCreate, db: db_dependency):
    """
    Crear un nuevo contacto

    - **nombre**: Nombre del contacto (requerido)
    - **tipo**: cliente o proveedor
    - **documento**: único por tipo entre contactos activos
    """
    return ContactService(db).create_contact(contact_data)


@router.get("/", response_model=ContactList)
def get_contacts(
    db: db_dependency,
    limit: int = Query(
        settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE,
        description="Número máximo de contactos a retornar",
    ),
    offset: int = Query(0, ge=0, description="Número de contactos a omitir"),
    tipo: Optional[ContactType] = Query(None, description="Filtrar por tipo: cliente, proveedor"),
    search: Optional[str] = Query(None, description="Búsqueda por nombre"),
):
    """Listar contactos activos"""
    return ContactService(db).get_contacts(limit=limit, offset=offset, tipo=tipo, search=search)


@router.get("/{contact_id}", response_model=ContactOut)
def get_contact(contact_id: UUID, db: db_dependency):
    return ContactService(db).get_contact_by_id(contact_id)
