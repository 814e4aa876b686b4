"""
Fixtures compartidas para los tests de los módulos

Base SQLite en memoria (una sola conexión vía StaticPool); las tablas se
crean y se eliminan en cada test.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("DEBUG", "false")

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

from app.database.database import Base, SessionLocal, engine, get_db
from app.main import app
from app.common.schemas import ActingUser
from app.modules.contacts.models import Contact, ContactType
from app.modules.products.models import Product


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def acting_user():
    return ActingUser(id="u-001", nombre="Ana Mora")


@pytest.fixture
def cliente(db_session):
    contact = Contact(nombre="Soda La Esquina", tipo=ContactType.CLIENTE, documento="3-101-000001")
    db_session.add(contact)
    db_session.commit()
    db_session.refresh(contact)
    return contact


@pytest.fixture
def proveedor(db_session):
    contact = Contact(nombre="Finca El Roble", tipo=ContactType.PROVEEDOR, documento="3-102-000002")
    db_session.add(contact)
    db_session.commit()
    db_session.refresh(contact)
    return contact


@pytest.fixture
def producto(db_session):
    product = Product(
        nombre="Papaya",
        codigo="FR-001",
        categoria="Frutas",
        unidad_medida="kg",
        precio_venta=Decimal("1200.00"),
    )
    db_session.add(product)
    db_session.commit()
    db_session.refresh(product)
    return product
