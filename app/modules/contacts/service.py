"""
Servicio de negocio para el módulo de Contactos
"""

from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
import logging

from app.common.exceptions import NotFoundError, ConflictError
from app.common.transactions import transaction
from app.modules.contacts.models import Contact, ContactType
from app.modules.contacts.schemas import ContactCreate, ContactOut, ContactList

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGES = {
    ContactType.CLIENTE: "Cliente no encontrado",
    ContactType.PROVEEDOR: "Proveedor no encontrado",
}


class ContactService:
    """Servicio principal para gestión de contactos"""

    def __init__(self, db: Session):
        self.db = db

    def create_contact(self, contact_data: ContactCreate) -> Contact:
        """Crear un nuevo contacto"""
        with transaction(self.db, "Contacto"):
            if contact_data.documento:
                existing = self.db.query(Contact).filter(
                    Contact.documento == contact_data.documento,
                    Contact.tipo == contact_data.tipo,
                    Contact.is_active == True
                ).first()
                if existing:
                    raise ConflictError(
                        f"Ya existe un {contact_data.tipo.value} con el documento {contact_data.documento}"
                    )

            contact = Contact(
                nombre=contact_data.nombre,
                tipo=contact_data.tipo,
                documento=contact_data.documento,
                email=contact_data.email,
                telefono=contact_data.telefono,
                direccion=contact_data.direccion,
            )
            self.db.add(contact)

        self.db.refresh(contact)
        logger.info(f"Contacto {contact.tipo.value} creado: {contact.nombre} ({contact.id})")
        return contact

    def get_contacts(
        self,
        limit: int = 100,
        offset: int = 0,
        tipo: Optional[ContactType] = None,
        search: Optional[str] = None
    ) -> ContactList:
        """Listar contactos con filtros"""
        query = self.db.query(Contact).filter(Contact.is_active == True)
        if tipo:
            query = query.filter(Contact.tipo == tipo)
        if search:
            query = query.filter(Contact.nombre.ilike(f"%{search}%"))

        total = query.count()
        contacts = query.order_by(Contact.nombre.asc()).offset(offset).limit(limit).all()
        return ContactList(items=[ContactOut.model_validate(c) for c in contacts], total=total, limit=limit, offset=offset)

    def get_contact_by_id(self, contact_id: UUID) -> Contact:
        contact = self.db.query(Contact).filter(Contact.id == contact_id).first()
        if not contact:
            raise NotFoundError("Contacto no encontrado", contact_id=contact_id)
        return contact

    def require_counterparty(self, contact_id: UUID, tipo: ContactType) -> Contact:
        """Valida que el contacto exista, esté activo y sea del tipo esperado"""
        contact = self.db.query(Contact).filter(
            Contact.id == contact_id,
            Contact.tipo == tipo,
            Contact.is_active == True
        ).first()
        if not contact:
            raise NotFoundError(NOT_FOUND_MESSAGES[tipo], contact_id=contact_id)
        return contact
