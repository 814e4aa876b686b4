import pytest
from decimal import Decimal
from uuid import uuid4
from sqlalchemy import event, update
from sqlalchemy.exc import OperationalError

from app.common.exceptions import ValidationError, ConflictError, NotFoundError, ConcurrencyConflictError
from app.common.transactions import transaction
from app.modules.ledger import ReconciliationCoordinator, derive_status
from app.modules.inventory.models import InventoryRecord, StockMovement, MovementType
from app.modules.inventory.schemas import InventoryCreate, InventoryUpdate, WithdrawalCreate
from app.modules.inventory.service import InventoryService


def make_record(db, producto, acting_user, stock="5", minimo="10", precio="400"):
    return InventoryService(db).create_record(
        InventoryCreate(
            producto_id=producto.id,
            stock_actual=Decimal(stock),
            stock_minimo=Decimal(minimo),
            precio_unitario=Decimal(precio),
        ),
        acting_user,
    )


def movement_sum(db, record):
    return sum(m.cantidad for m in db.query(StockMovement).filter(StockMovement.inventory_id == record.id))


class TestInventoryService:

    def test_create_record_logs_initial_stock(self, db_session, producto, acting_user):
        record = make_record(db_session, producto, acting_user)

        assert record.stock_actual == Decimal("5.000")
        assert record.estado == "Stock Bajo"
        assert record.nombre_producto == "Papaya"
        movements = InventoryService(db_session).list_movements(record.id)
        assert len(movements) == 1
        assert movements[0].tipo == MovementType.ENTRADA
        assert movements[0].usuario_registro == "Ana Mora"

    def test_create_record_default_minimum(self, db_session, producto, acting_user):
        record = InventoryService(db_session).create_record(
            InventoryCreate(producto_id=producto.id, stock_actual=Decimal("30")), acting_user
        )
        assert record.stock_minimo == Decimal("10.000")
        assert record.estado == "Disponible"

    def test_one_record_per_product(self, db_session, producto, acting_user):
        make_record(db_session, producto, acting_user)
        with pytest.raises(ConflictError):
            make_record(db_session, producto, acting_user)

    def test_withdrawal_sequence(self, db_session, producto, acting_user):
        """Stock 5 / mínimo 10 -> retiro 5 -> Agotado; retiro 1 rechazado"""
        record = make_record(db_session, producto, acting_user)
        service = InventoryService(db_session)

        result = service.withdraw(record.id, WithdrawalCreate(cantidad=Decimal("5"), motivo="Venta"), acting_user)
        assert result.inventory.stock_actual == Decimal("0.000")
        assert result.inventory.estado == "Agotado"
        assert result.movement.cantidad == Decimal("-5.000")
        assert result.movement.stock_resultante == Decimal("0.000")

        with pytest.raises(ValidationError) as exc:
            service.withdraw(record.id, WithdrawalCreate(cantidad=Decimal("1")), acting_user)
        assert exc.value.message.startswith("Stock insuficiente")
        db_session.refresh(record)
        assert record.stock_actual == Decimal("0.000")

    def test_withdrawal_must_be_positive(self, db_session, producto, acting_user):
        record = make_record(db_session, producto, acting_user)
        with pytest.raises(ValidationError):
            InventoryService(db_session).withdraw(record.id, WithdrawalCreate(cantidad=Decimal("0")), acting_user)

    def test_withdrawal_unknown_record(self, db_session, acting_user):
        with pytest.raises(NotFoundError):
            InventoryService(db_session).withdraw(uuid4(), WithdrawalCreate(cantidad=Decimal("1")), acting_user)

    def test_edit_logs_adjustment_delta(self, db_session, producto, acting_user):
        record = make_record(db_session, producto, acting_user, stock="20")
        service = InventoryService(db_session)

        record = service.update_record(
            record.id, InventoryUpdate(stock_actual=Decimal("12.5"), motivo="Conteo físico"), acting_user
        )
        assert record.stock_actual == Decimal("12.500")

        movements = service.list_movements(record.id)
        ajustes = [m for m in movements if m.tipo == MovementType.AJUSTE]
        assert len(ajustes) == 1
        assert ajustes[0].cantidad == Decimal("-7.500")
        assert movement_sum(db_session, record) == record.stock_actual

    def test_edit_rejects_negative_values(self, db_session, producto, acting_user):
        record = make_record(db_session, producto, acting_user)
        with pytest.raises(ValidationError):
            InventoryService(db_session).update_record(
                record.id, InventoryUpdate(stock_actual=Decimal("-1")), acting_user
            )
        with pytest.raises(ValidationError):
            InventoryService(db_session).update_record(
                record.id, InventoryUpdate(stock_minimo=Decimal("-1")), acting_user
            )

    def test_manual_status_note_never_overrides_derived_status(self, db_session, producto, acting_user):
        record = make_record(db_session, producto, acting_user, stock="0")
        service = InventoryService(db_session)

        record = service.update_record(record.id, InventoryUpdate(estado="Disponible"), acting_user)
        assert record.estado_manual == "Disponible"
        assert record.estado == "Agotado"

        record = service.update_record(record.id, InventoryUpdate(stock_actual=Decimal("3")), acting_user)
        assert record.estado_manual is None
        assert record.estado == "Stock Bajo"

    def test_manual_status_note_rejected_after_movements(self, db_session, producto, acting_user):
        """Stock 5 -> retiro 5 -> Agotado; la nota 'Disponible' se rechaza"""
        record = make_record(db_session, producto, acting_user)
        service = InventoryService(db_session)
        service.withdraw(record.id, WithdrawalCreate(cantidad=Decimal("5")), acting_user)

        with pytest.raises(ValidationError):
            service.update_record(record.id, InventoryUpdate(estado="Disponible"), acting_user)

        db_session.refresh(record)
        assert record.estado_manual is None
        assert record.estado == "Agotado"

    def test_status_matches_thresholds_after_every_operation(self, db_session, producto, acting_user):
        record = make_record(db_session, producto, acting_user, stock="0")
        service = InventoryService(db_session)
        record = service.update_record(record.id, InventoryUpdate(estado="Reservado"), acting_user)

        steps = [
            lambda: service.update_record(record.id, InventoryUpdate(stock_actual=Decimal("25")), acting_user),
            lambda: service.withdraw(record.id, WithdrawalCreate(cantidad=Decimal("18")), acting_user),
            lambda: service.receive_purchase(producto.id, Decimal("1"), Decimal("400"), acting_user),
            lambda: service.withdraw(record.id, WithdrawalCreate(cantidad=Decimal("8")), acting_user),
        ]
        for step in steps:
            step()
            db_session.commit()
            db_session.refresh(record)
            assert record.estado == derive_status(record.stock_actual, record.stock_minimo).value
        assert record.estado == "Agotado"

    def test_reconcile_reports_and_applies(self, db_session, producto, acting_user):
        record = make_record(db_session, producto, acting_user, stock="20")
        service = InventoryService(db_session)
        service.withdraw(record.id, WithdrawalCreate(cantidad=Decimal("4")), acting_user)

        report = service.reconcile(record.id, apply=False, acting_user=acting_user)
        assert report.consistente is True
        assert report.stock_reconstruido == Decimal("16.000")

        # Sobrescritura por fuera del registro de movimientos
        db_session.execute(
            update(InventoryRecord)
            .where(InventoryRecord.id == record.id)
            .values(stock_actual=Decimal("99"))
            .execution_options(synchronize_session=False)
        )
        db_session.commit()

        report = service.reconcile(record.id, apply=False, acting_user=acting_user)
        assert report.consistente is False
        assert report.aplicado is False

        report = service.reconcile(record.id, apply=True, acting_user=acting_user)
        assert report.aplicado is True
        db_session.refresh(record)
        assert record.stock_actual == Decimal("16.000")

    def test_reconcile_degraded_keeps_stock(self, db_session, producto, acting_user, monkeypatch):
        record = make_record(db_session, producto, acting_user, stock="20")

        original = ReconciliationCoordinator.recompute_stock

        def failing(self, current_stock, fetch, record_ref=None):
            def broken():
                raise OperationalError("SELECT", {}, Exception("timeout"))
            return original(self, current_stock, broken, record_ref)

        monkeypatch.setattr(ReconciliationCoordinator, "recompute_stock", failing)
        report = InventoryService(db_session).reconcile(record.id, apply=True, acting_user=acting_user)
        assert report.aplicado is False
        assert report.warning_code == "MOVEMENTS_UNAVAILABLE"
        assert report.stock_reconstruido == Decimal("20.000")

    def test_stale_version_is_concurrency_conflict(self, db_session, producto, acting_user):
        record = make_record(db_session, producto, acting_user, stock="20")
        assert record.version == 1

        db_session.execute(
            update(InventoryRecord)
            .where(InventoryRecord.id == record.id)
            .values(version=InventoryRecord.version + 1)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(ConcurrencyConflictError):
            InventoryService(db_session).withdraw(record.id, WithdrawalCreate(cantidad=Decimal("1")), acting_user)

    def test_summary(self, db_session, producto, acting_user):
        make_record(db_session, producto, acting_user, stock="5", precio="400")

        summary = InventoryService(db_session).get_summary()
        assert summary.total_registros == 1
        assert summary.por_estado == {"Disponible": 0, "Stock Bajo": 1, "Agotado": 0}
        assert summary.valor_total == Decimal("2000.00")
        assert len(summary.productos_stock_bajo) == 1

    def test_reconcile_apply_clears_manual_note(self, db_session, producto, acting_user):
        record = make_record(db_session, producto, acting_user, stock="0")
        service = InventoryService(db_session)
        service.update_record(record.id, InventoryUpdate(estado="Reservado"), acting_user)

        db_session.execute(
            update(InventoryRecord)
            .where(InventoryRecord.id == record.id)
            .values(stock_actual=Decimal("7"))
            .execution_options(synchronize_session=False)
        )
        db_session.commit()

        report = service.reconcile(record.id, apply=True, acting_user=acting_user)
        assert report.aplicado is True
        db_session.refresh(record)
        assert record.stock_actual == Decimal("0.000")
        assert record.estado_manual is None

    def test_failed_movement_read_is_isolated_in_savepoint(self, db_session, producto, acting_user):
        record = make_record(db_session, producto, acting_user, stock="20")
        bind = db_session.get_bind()
        nested = []

        def fail_movement_read(conn, cursor, statement, parameters, context, executemany):
            if statement.lstrip().startswith("SELECT stock_movements.cantidad"):
                nested.append(conn.in_nested_transaction())
                raise OperationalError(statement, parameters, Exception("timeout"))

        event.listen(bind, "before_cursor_execute", fail_movement_read)
        try:
            report = InventoryService(db_session).reconcile(record.id, apply=True, acting_user=acting_user)
        finally:
            event.remove(bind, "before_cursor_execute", fail_movement_read)

        assert nested == [True]
        assert report.warning_code == "MOVEMENTS_UNAVAILABLE"
        assert report.aplicado is False

    def test_duplicate_record_insert_is_concurrency_conflict(self, db_session, producto):
        """Dos altas simultáneas del mismo producto chocan contra la restricción única"""
        with pytest.raises(ConcurrencyConflictError):
            with transaction(db_session, "Inventario", producto.id):
                db_session.add(InventoryRecord(producto_id=producto.id))
                db_session.add(InventoryRecord(producto_id=producto.id))
        assert db_session.query(InventoryRecord).count() == 0


class TestInventoryAPI:

    def test_record_lifecycle(self, client, producto):
        response = client.post("/inventory/", json={
            "producto_id": str(producto.id), "stock_actual": "5", "stock_minimo": "10", "precio_unitario": "400",
        })
        assert response.status_code == 201, response.text
        record = response.json()
        assert record["estado"] == "Stock Bajo"

        response = client.post(f"/inventory/{record['id']}/withdrawals", json={"cantidad": "5"})
        assert response.status_code == 201
        assert response.json()["inventory"]["estado"] == "Agotado"

        response = client.post(f"/inventory/{record['id']}/withdrawals", json={"cantidad": "1"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Stock insuficiente. Stock disponible: 0.000, solicitado: 1.000"

        response = client.put(f"/inventory/{record['id']}", json={"stock_actual": "8"})
        assert response.status_code == 200
        assert response.json()["stock_actual"] == "8.000"

        response = client.get(f"/inventory/{record['id']}/movements")
        assert sorted(m["tipo"] for m in response.json()) == ["ajuste", "entrada", "salida"]

        response = client.post(f"/inventory/{record['id']}/reconcile")
        assert response.status_code == 200
        assert response.json()["consistente"] is True

    def test_summary_endpoint(self, client):
        response = client.get("/inventory/summary")
        assert response.status_code == 200
        assert response.json()["total_registros"] == 0

    def test_unknown_record(self, client):
        response = client.get(f"/inventory/{uuid4()}")
        assert response.status_code == 404

    def test_manual_status_cannot_contradict_stock(self, client, producto):
        response = client.post("/inventory/", json={"producto_id": str(producto.id), "stock_actual": "5"})
        record = response.json()
        client.post(f"/inventory/{record['id']}/withdrawals", json={"cantidad": "5"})

        response = client.put(f"/inventory/{record['id']}", json={"estado": "Disponible"})
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

        response = client.get(f"/inventory/{record['id']}")
        assert response.json()["stock_actual"] == "0.000"
        assert response.json()["estado"] == "Agotado"
        assert response.json()["estado_manual"] is None

    @pytest.mark.parametrize("cantidad", ["1e30", "-1e30", "1000000000000"])
    def test_out_of_range_withdrawal_rejected(self, client, producto, cantidad):
        response = client.post("/inventory/", json={"producto_id": str(producto.id), "stock_actual": "5"})
        record = response.json()

        response = client.post(f"/inventory/{record['id']}/withdrawals", json={"cantidad": cantidad})
        assert response.status_code == 422
        response = client.put(f"/inventory/{record['id']}", json={"stock_actual": cantidad})
        assert response.status_code == 422
        assert client.get(f"/inventory/{record['id']}").json()["stock_actual"] == "5.000"

    def test_openapi_route_descriptions(self, client):
        paths = client.get("/openapi.json").json()["paths"]
        assert paths["/inventory/summary"]["get"]["description"] == "Conteo por estado y valorización total."
        reconcile = paths["/inventory/{inventory_id}/reconcile"]["post"]
        apply = next(p for p in reconcile["parameters"] if p["name"] == "apply")
        assert apply["description"] == "Reemplazar el stock guardado por el reconstruido"
