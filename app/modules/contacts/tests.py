"""
Tests para el módulo de Contactos

- Creación y validaciones de esquema
- Duplicados por documento y tipo
- Validación de contraparte usada por facturas y compras
"""

import sys
import pytest
from uuid import uuid4
from sqlalchemy.orm import Session

from app.common.exceptions import ConflictError, NotFoundError
from app.modules.contacts.models import Contact, ContactType
from app.modules.contacts.schemas import ContactCreate
from app.modules.contacts.service import ContactService


@pytest.fixture
def sample_contact_data():
    return {
        "nombre": "Verdulería Don Chepe",
        "tipo": ContactType.PROVEEDOR.value,
        "documento": "1-0456-0789",
        "email": "chepe@correo.cr",
        "telefono": "8888-1234",
    }


# ===== TESTS DE SERVICIOS =====

class TestContactService:

    def test_create_contact_success(self, db_session: Session, sample_contact_data):
        contact = ContactService(db_session).create_contact(ContactCreate(**sample_contact_data))

        assert contact.id is not None
        assert contact.nombre == "Verdulería Don Chepe"
        assert contact.tipo == ContactType.PROVEEDOR
        assert contact.is_active is True

    def test_duplicate_document_same_type(self, db_session: Session, sample_contact_data):
        service = ContactService(db_session)
        service.create_contact(ContactCreate(**sample_contact_data))

        with pytest.raises(ConflictError):
            service.create_contact(ContactCreate(**sample_contact_data))

    def test_same_document_different_type_allowed(self, db_session: Session, sample_contact_data):
        service = ContactService(db_session)
        service.create_contact(ContactCreate(**sample_contact_data))

        sample_contact_data["tipo"] = ContactType.CLIENTE.value
        contact = service.create_contact(ContactCreate(**sample_contact_data))
        assert contact.tipo == ContactType.CLIENTE

    def test_require_counterparty_wrong_type(self, db_session: Session, cliente: Contact):
        with pytest.raises(NotFoundError) as exc:
            ContactService(db_session).require_counterparty(cliente.id, ContactType.PROVEEDOR)
        assert exc.value.message == "Proveedor no encontrado"

    def test_require_counterparty_inactive(self, db_session: Session, proveedor: Contact):
        proveedor.is_active = False
        db_session.commit()

        with pytest.raises(NotFoundError):
            ContactService(db_session).require_counterparty(proveedor.id, ContactType.PROVEEDOR)

    def test_get_contacts_filters(self, db_session: Session, cliente: Contact, proveedor: Contact):
        service = ContactService(db_session)
        assert service.get_contacts().total == 2
        assert service.get_contacts(tipo=ContactType.CLIENTE).items[0].id == cliente.id
        assert service.get_contacts(search="roble").items[0].id == proveedor.id


# ===== TESTS DE API =====

class TestContactAPI:

    def test_create_and_get(self, client, sample_contact_data):
        response = client.post("/contacts/", json=sample_contact_data)
        assert response.status_code == 201
        contact_id = response.json()["id"]

        response = client.get(f"/contacts/{contact_id}")
        assert response.status_code == 200
        assert response.json()["nombre"] == sample_contact_data["nombre"]

    def test_invalid_email_rejected(self, client, sample_contact_data):
        sample_contact_data["email"] = "sin-arroba"
        response = client.post("/contacts/", json=sample_contact_data)
        assert response.status_code == 422

    def test_blank_name_rejected(self, client, sample_contact_data):
        sample_contact_data["nombre"] = "   "
        response = client.post("/contacts/", json=sample_contact_data)
        assert response.status_code == 422

    def test_not_found(self, client):
        response = client.get(f"/contacts/{uuid4()}")
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    def test_list_by_type(self, client, cliente, proveedor):
        response = client.get("/contacts/", params={"tipo": "proveedor"})
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["nombre"] == "Finca El Roble"


def test_module_loaded_under_app_package():
    assert __name__ == "app.modules.contacts.tests"
    assert "contacts" not in sys.modules
