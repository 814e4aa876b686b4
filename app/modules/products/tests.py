import pytest
from decimal import Decimal

from app.common.exceptions import ConflictError, ValidationError
from app.modules.products import service
from app.modules.products.models import Product
from app.modules.products.schemas import ProductCreate


def test_create_product_rounds_price(db_session):
    product = service.create_product(
        db_session, ProductCreate(nombre="Mango", codigo="FR-002", precio_venta=Decimal("850.555"))
    )
    assert product.precio_venta == Decimal("850.56")
    assert product.unidad_medida == "unidad"


def test_duplicate_code_conflict(db_session, producto: Product):
    with pytest.raises(ConflictError):
        service.create_product(db_session, ProductCreate(nombre="Otra papaya", codigo=producto.codigo))


def test_inactive_product_rejected(db_session, producto: Product):
    producto.is_active = False
    db_session.commit()

    with pytest.raises(ValidationError):
        service.require_active_product(db_session, producto.id)


def test_active_products_endpoint(client, db_session, producto: Product):
    client.post("/products/", json={"nombre": "Chayote", "codigo": "VE-001", "unidad_medida": "kg"})
    db_session.add(Product(nombre="Zanahoria", codigo="VE-002", is_active=False))
    db_session.commit()

    response = client.get("/products/active")
    assert response.status_code == 200
    nombres = [p["nombre"] for p in response.json()]
    assert nombres == ["Chayote", "Papaya"]


def test_negative_price_rejected(client):
    response = client.post("/products/", json={"nombre": "Piña", "codigo": "FR-003", "precio_venta": -1})
    assert response.status_code == 422
