import pytest
from datetime import date
from decimal import Decimal

from app.common.exceptions import NotFoundError, ValidationError
from app.modules.inventory.models import InventoryRecord, StockMovement, MovementType
from app.modules.purchases.models import Purchase
from app.modules.purchases.schemas import PurchaseCreate
from app.modules.purchases.service import PurchaseService


def buy(db, proveedor, producto, acting_user, cantidad, precio):
    return PurchaseService(db).create_purchase(
        PurchaseCreate(
            proveedor_id=proveedor.id,
            producto_id=producto.id,
            fecha=date(2024, 3, 4),
            cantidad=Decimal(str(cantidad)),
            precio=Decimal(str(precio)),
        ),
        acting_user,
    )


class TestPurchaseService:

    def test_first_purchase_creates_record(self, db_session, proveedor, producto, acting_user):
        result = buy(db_session, proveedor, producto, acting_user, 25, 300)

        assert result.purchase.total == Decimal("7500.00")
        assert result.inventory.stock_actual == Decimal("25.000")
        assert result.inventory.stock_minimo == Decimal("10.000")
        assert result.inventory.precio_unitario == Decimal("300.00")
        assert result.inventory.estado == "Disponible"

    def test_purchase_adds_stock_and_replaces_price(self, db_session, proveedor, producto, acting_user):
        """Stock 10 + compra de 20 a 50 -> stock 30, precio 50"""
        buy(db_session, proveedor, producto, acting_user, 10, 40)
        result = buy(db_session, proveedor, producto, acting_user, 20, 50)

        assert result.inventory.stock_actual == Decimal("30.000")
        assert result.inventory.precio_unitario == Decimal("50.00")
        assert db_session.query(InventoryRecord).count() == 1

        entradas = db_session.query(StockMovement).filter(StockMovement.tipo == MovementType.ENTRADA).all()
        assert sorted(m.cantidad for m in entradas) == [Decimal("10.000"), Decimal("20.000")]

    def test_purchase_requires_supplier(self, db_session, cliente, producto, acting_user):
        with pytest.raises(NotFoundError):
            buy(db_session, cliente, producto, acting_user, 5, 10)
        assert db_session.query(Purchase).count() == 0

    @pytest.mark.parametrize("cantidad,precio", [(0, 10), (-2, 10), (5, -1)])
    def test_invalid_purchase_leaves_nothing_behind(self, db_session, proveedor, producto, acting_user, cantidad, precio):
        with pytest.raises(ValidationError):
            buy(db_session, proveedor, producto, acting_user, cantidad, precio)
        assert db_session.query(Purchase).count() == 0
        assert db_session.query(InventoryRecord).count() == 0

    def test_total_beyond_column_range_rejected(self, db_session, proveedor, producto, acting_user):
        with pytest.raises(ValidationError):
            buy(db_session, proveedor, producto, acting_user, 10, "9999999999999")
        assert db_session.query(Purchase).count() == 0
        assert db_session.query(InventoryRecord).count() == 0


class TestPurchaseAPI:

    def test_create_and_list(self, client, proveedor, producto):
        response = client.post("/purchases/", json={
            "proveedor_id": str(proveedor.id),
            "producto_id": str(producto.id),
            "cantidad": "12.5",
            "precio": "820",
            "referencia": "FP-2201",
        }, headers={"X-User-Name": "Marta"})
        assert response.status_code == 201, response.text
        body = response.json()
        assert body["purchase"]["total"] == "10250.00"
        assert body["purchase"]["usuario_registro"] == "Marta"
        assert body["inventory"]["stock_actual"] == "12.500"

        response = client.get("/purchases/", params={"proveedor_id": str(proveedor.id)})
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["nombre_producto"] == "Papaya"

    def test_zero_quantity_rejected(self, client, proveedor, producto):
        response = client.post("/purchases/", json={
            "proveedor_id": str(proveedor.id),
            "producto_id": str(producto.id),
            "cantidad": "0",
            "precio": "820",
        })
        assert response.status_code == 400
        assert response.json()["detail"] == "La cantidad debe ser mayor a 0"

    def test_out_of_range_quantity_rejected(self, client, proveedor, producto):
        response = client.post("/purchases/", json={
            "proveedor_id": str(proveedor.id),
            "producto_id": str(producto.id),
            "cantidad": "1e30",
            "precio": "820",
        })
        assert response.status_code == 422
