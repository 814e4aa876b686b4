"""
Tests para cuentas por cobrar y por pagar

- Registro de facturas y validación de contraparte
- Abonos: límites, saldo, usuario que registra
- Edición de monto con recálculo de saldo (exacto y degradado)
- Política de borrado
- Resumen por contraparte y auditoría
- Conflicto de versión en escrituras concurrentes
"""

import sys
import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4
from sqlalchemy import event, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.common.exceptions import (
    ValidationError, NotFoundError, ConflictError, ConcurrencyConflictError,
)
from app.modules.contacts.models import Contact
from app.modules.invoices.models import Invoice, Payment, InvoiceType
from app.modules.invoices.schemas import InvoiceCreate, InvoiceUpdate, PaymentCreate
from app.modules.invoices.service import InvoiceService, PaymentService


def make_invoice(db: Session, contact: Contact, acting_user, monto="1000", tipo=InvoiceType.POR_COBRAR, numero="F-001"):
    return InvoiceService(db).create_invoice(
        InvoiceCreate(
            tipo=tipo,
            contact_id=contact.id,
            numero_factura=numero,
            fecha_emision=date(2024, 3, 1),
            monto=Decimal(monto),
        ),
        acting_user,
    )


def pay(db: Session, invoice: Invoice, acting_user, monto):
    return PaymentService(db).create_payment(
        PaymentCreate(invoice_id=invoice.id, monto=Decimal(str(monto))), acting_user
    )


# ===== TESTS DE SERVICIOS =====

class TestInvoiceService:

    def test_register_invoice(self, db_session, cliente, acting_user):
        invoice = make_invoice(db_session, cliente, acting_user)

        assert invoice.saldo == Decimal("1000.00")
        assert invoice.monto == Decimal("1000.00")
        assert invoice.estado == "pendiente"
        assert invoice.usuario_registro == "Ana Mora"
        assert invoice.usuario_id == "u-001"
        assert invoice.version == 1

    def test_receivable_requires_client(self, db_session, proveedor, acting_user):
        with pytest.raises(NotFoundError) as exc:
            make_invoice(db_session, proveedor, acting_user)
        assert exc.value.message == "Cliente no encontrado"

    def test_payable_requires_supplier(self, db_session, cliente, acting_user):
        with pytest.raises(NotFoundError) as exc:
            make_invoice(db_session, cliente, acting_user, tipo=InvoiceType.POR_PAGAR)
        assert exc.value.message == "Proveedor no encontrado"

    def test_payment_sequence(self, db_session, cliente, acting_user):
        """1000 -> abono 400 -> 600; abono 700 rechazado; abono 600 -> pagada"""
        invoice = make_invoice(db_session, cliente, acting_user)

        result = pay(db_session, invoice, acting_user, 400)
        assert result.invoice.saldo == Decimal("600.00")
        assert result.invoice.estado == "parcial"
        assert result.payment.usuario_registro == "Ana Mora"

        with pytest.raises(ValidationError):
            pay(db_session, invoice, acting_user, 700)
        db_session.refresh(invoice)
        assert invoice.saldo == Decimal("600.00")
        assert db_session.query(Payment).count() == 1

        result = pay(db_session, invoice, acting_user, 600)
        assert result.invoice.saldo == Decimal("0.00")
        assert result.invoice.estado == "pagada"

    @pytest.mark.parametrize("monto", [0, -10])
    def test_non_positive_payment_rejected(self, db_session, cliente, acting_user, monto):
        invoice = make_invoice(db_session, cliente, acting_user)
        with pytest.raises(ValidationError) as exc:
            pay(db_session, invoice, acting_user, monto)
        assert exc.value.message == "El abono debe ser mayor a 0"

    def test_payment_clears_manual_label(self, db_session, cliente, acting_user):
        invoice = InvoiceService(db_session).create_invoice(
            InvoiceCreate(
                tipo=InvoiceType.POR_COBRAR,
                contact_id=cliente.id,
                numero_factura="F-010",
                fecha_emision=date(2024, 3, 1),
                monto=Decimal("500"),
                estado="confirmada",
            ),
            acting_user,
        )
        assert invoice.estado == "confirmada"

        result = pay(db_session, invoice, acting_user, 100)
        assert result.invoice.estado == "parcial"

    def test_edit_amount_recomputes_balance(self, db_session, cliente, acting_user):
        """1000 con abono 300, editada a 1500 -> saldo 1200"""
        invoice = make_invoice(db_session, cliente, acting_user)
        pay(db_session, invoice, acting_user, 300)

        result = InvoiceService(db_session).update_invoice(
            invoice.id, InvoiceUpdate(monto=Decimal("1500")), acting_user
        )
        assert result.invoice.monto == Decimal("1500.00")
        assert result.invoice.saldo == Decimal("1200.00")
        assert result.saldo_recalculado is True
        assert result.warning is None

    def test_edit_amount_below_payments_floors_at_zero(self, db_session, cliente, acting_user):
        invoice = make_invoice(db_session, cliente, acting_user)
        pay(db_session, invoice, acting_user, 800)

        result = InvoiceService(db_session).update_invoice(
            invoice.id, InvoiceUpdate(monto=Decimal("500")), acting_user
        )
        assert result.invoice.saldo == Decimal("0.00")
        assert result.invoice.estado == "pagada"

    def test_edit_amount_degraded_when_payments_unreadable(self, db_session, cliente, acting_user, monkeypatch):
        invoice = make_invoice(db_session, cliente, acting_user)
        pay(db_session, invoice, acting_user, 300)

        def unavailable(self, invoice_id):
            raise OperationalError("SELECT", {}, Exception("timeout"))

        monkeypatch.setattr(InvoiceService, "_payment_amounts", unavailable)
        result = InvoiceService(db_session).update_invoice(
            invoice.id, InvoiceUpdate(monto=Decimal("1500")), acting_user
        )
        assert result.invoice.saldo == Decimal("1500.00")
        assert result.warning is not None
        assert result.warning.code == "PAYMENTS_UNAVAILABLE"

    def test_failed_payment_read_is_isolated_in_savepoint(self, db_session, cliente, acting_user):
        """La lectura fallida de abonos no invalida la transacción de la edición"""
        invoice = make_invoice(db_session, cliente, acting_user)
        pay(db_session, invoice, acting_user, 300)
        bind = db_session.get_bind()
        nested = []

        def fail_payment_read(conn, cursor, statement, parameters, context, executemany):
            if statement.lstrip().startswith("SELECT payments.monto"):
                nested.append(conn.in_nested_transaction())
                raise OperationalError(statement, parameters, Exception("timeout"))

        event.listen(bind, "before_cursor_execute", fail_payment_read)
        try:
            result = InvoiceService(db_session).update_invoice(
                invoice.id, InvoiceUpdate(monto=Decimal("1500"), descripcion="Pedido ampliado"), acting_user
            )
        finally:
            event.remove(bind, "before_cursor_execute", fail_payment_read)

        assert nested == [True]
        assert result.warning.code == "PAYMENTS_UNAVAILABLE"

        db_session.expire_all()
        stored = db_session.get(Invoice, invoice.id)
        assert stored.monto == Decimal("1500.00")
        assert stored.saldo == Decimal("1500.00")
        assert stored.descripcion == "Pedido ampliado"

    def test_edit_without_amount_keeps_balance(self, db_session, cliente, acting_user):
        invoice = make_invoice(db_session, cliente, acting_user)
        pay(db_session, invoice, acting_user, 250)

        result = InvoiceService(db_session).update_invoice(
            invoice.id, InvoiceUpdate(descripcion="Entrega del lunes"), acting_user
        )
        assert result.invoice.saldo == Decimal("750.00")
        assert result.saldo_recalculado is False

    def test_delete_blocked_with_payments(self, db_session, cliente, acting_user):
        invoice = make_invoice(db_session, cliente, acting_user)
        pay(db_session, invoice, acting_user, 100)

        with pytest.raises(ConflictError):
            InvoiceService(db_session, delete_policy="block").delete_invoice(invoice.id, acting_user)
        assert db_session.query(Invoice).count() == 1

    def test_delete_without_payments(self, db_session, cliente, acting_user):
        invoice = make_invoice(db_session, cliente, acting_user)
        InvoiceService(db_session, delete_policy="block").delete_invoice(invoice.id, acting_user)
        assert db_session.query(Invoice).count() == 0

    def test_delete_cascade_removes_payments(self, db_session, cliente, acting_user):
        invoice = make_invoice(db_session, cliente, acting_user)
        pay(db_session, invoice, acting_user, 100)

        InvoiceService(db_session, delete_policy="cascade").delete_invoice(invoice.id, acting_user)
        assert db_session.query(Invoice).count() == 0
        assert db_session.query(Payment).count() == 0

    def test_stale_version_is_concurrency_conflict(self, db_session, cliente, acting_user):
        invoice = make_invoice(db_session, cliente, acting_user)
        invoice_id = invoice.id
        assert invoice.version == 1

        # Otra operación confirma un cambio después de nuestra lectura
        db_session.execute(
            update(Invoice)
            .where(Invoice.id == invoice_id)
            .values(version=Invoice.version + 1)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(ConcurrencyConflictError):
            pay(db_session, invoice, acting_user, 100)

        assert db_session.query(Payment).count() == 0
        assert db_session.get(Invoice, invoice_id).saldo == Decimal("1000.00")

    def test_summary_per_counterparty(self, db_session, cliente, acting_user):
        otro = Contact(nombre="Hotel Playa", tipo=cliente.tipo)
        db_session.add(otro)
        db_session.commit()

        a = make_invoice(db_session, cliente, acting_user, monto="1000", numero="F-1")
        make_invoice(db_session, cliente, acting_user, monto="500", numero="F-2")
        b = make_invoice(db_session, otro, acting_user, monto="300", numero="F-3")
        pay(db_session, a, acting_user, 400)
        pay(db_session, b, acting_user, 300)

        summary = InvoiceService(db_session).get_summary(InvoiceType.POR_COBRAR)
        assert summary.total_facturas == 3
        assert summary.facturas_pagadas == 1
        assert summary.facturas_con_saldo == 2
        assert summary.monto_total == Decimal("1800.00")
        assert summary.saldo_total == Decimal("1100.00")
        assert len(summary.por_contraparte) == 1
        assert summary.por_contraparte[0].nombre_contacto == "Soda La Esquina"
        assert summary.por_contraparte[0].saldo_total == Decimal("1100.00")
        assert summary.por_contraparte[0].facturas_pendientes == 2

    def test_audit_detects_inconsistent_balance(self, db_session, cliente, acting_user):
        ok = make_invoice(db_session, cliente, acting_user, numero="F-OK")
        bad = make_invoice(db_session, cliente, acting_user, numero="F-BAD")
        pay(db_session, ok, acting_user, 200)
        pay(db_session, bad, acting_user, 200)

        db_session.execute(
            update(Invoice)
            .where(Invoice.id == bad.id)
            .values(saldo=Decimal("1000.00"))
            .execution_options(synchronize_session=False)
        )
        db_session.commit()

        audit = InvoiceService(db_session).audit_balances()
        assert audit.revisadas == 2
        assert [i.numero_factura for i in audit.inconsistentes] == ["F-BAD"]
        assert audit.inconsistentes[0].saldo_esperado == Decimal("800.00")


# ===== TESTS DE API =====

class TestInvoiceAPI:

    def _create(self, client, contact, monto="1000", tipo="por_cobrar"):
        response = client.post("/invoices/", json={
            "tipo": tipo,
            "contact_id": str(contact.id),
            "numero_factura": "F-100",
            "fecha_emision": "2024-03-01",
            "monto": monto,
        }, headers={"X-User-Id": "u-7", "X-User-Name": "Luis"})
        assert response.status_code == 201, response.text
        return response.json()

    def test_create_invoice_records_acting_user(self, client, cliente):
        data = self._create(client, cliente)
        assert data["saldo"] == "1000.00"
        assert data["estado"] == "pendiente"
        assert data["usuario_registro"] == "Luis"
        assert data["nombre_contacto"] == "Soda La Esquina"

    def test_zero_amount_rejected(self, client, cliente):
        response = client.post("/invoices/", json={
            "tipo": "por_cobrar",
            "contact_id": str(cliente.id),
            "numero_factura": "F-0",
            "fecha_emision": "2024-03-01",
            "monto": "0",
        })
        assert response.status_code == 422

    def test_payment_flow(self, client, cliente):
        invoice = self._create(client, cliente)

        response = client.post("/payments/", json={"invoice_id": invoice["id"], "monto": "400"})
        assert response.status_code == 201
        assert response.json()["invoice"]["saldo"] == "600.00"

        response = client.post("/payments/", json={"invoice_id": invoice["id"], "monto": "700"})
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

        response = client.post("/payments/", json={"invoice_id": invoice["id"], "monto": "0"})
        assert response.status_code == 400
        assert response.json()["detail"] == "El abono debe ser mayor a 0"

        response = client.get("/payments/", params={"invoice_id": invoice["id"]})
        assert response.status_code == 200
        assert [p["monto"] for p in response.json()] == ["400.00"]

    def test_payment_unknown_invoice(self, client):
        response = client.post("/payments/", json={"invoice_id": str(uuid4()), "monto": "10"})
        assert response.status_code == 404

    def test_edit_returns_recomputed_balance(self, client, cliente):
        invoice = self._create(client, cliente)
        client.post("/payments/", json={"invoice_id": invoice["id"], "monto": "300"})

        response = client.put(f"/invoices/{invoice['id']}", json={"monto": "1500"})
        assert response.status_code == 200
        body = response.json()
        assert body["invoice"]["saldo"] == "1200.00"
        assert body["warning"] is None

    def test_delete_blocked_returns_conflict(self, client, cliente):
        invoice = self._create(client, cliente)
        client.post("/payments/", json={"invoice_id": invoice["id"], "monto": "300"})

        response = client.delete(f"/invoices/{invoice['id']}")
        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    def test_list_filters_and_summary(self, client, cliente, proveedor):
        self._create(client, cliente)
        self._create(client, proveedor, monto="250", tipo="por_pagar")

        response = client.get("/invoices/", params={"tipo": "por_pagar"})
        assert response.json()["total"] == 1

        response = client.get("/invoices/", params={"contact_id": str(cliente.id)})
        assert response.json()["total"] == 1

        response = client.get("/invoices/summary", params={"tipo": "por_pagar"})
        assert response.status_code == 200
        assert response.json()["saldo_total"] == "250.00"

    def test_audit_endpoint(self, client, cliente):
        self._create(client, cliente)
        response = client.get("/invoices/audit")
        assert response.status_code == 200
        assert response.json() == {"revisadas": 1, "inconsistentes": []}

    @pytest.mark.parametrize("monto", ["1e30", "-1e30", "10000000000000"])
    def test_out_of_range_amounts_rejected(self, client, cliente, monto):
        invoice = self._create(client, cliente)

        response = client.post("/payments/", json={"invoice_id": invoice["id"], "monto": monto})
        assert response.status_code == 422
        response = client.put(f"/invoices/{invoice['id']}", json={"monto": monto})
        assert response.status_code == 422
        assert client.get(f"/invoices/{invoice['id']}").json()["saldo"] == "1000.00"

    def test_out_of_range_invoice_rejected(self, client, cliente):
        response = client.post("/invoices/", json={
            "tipo": "por_cobrar",
            "contact_id": str(cliente.id),
            "numero_factura": "F-1",
            "fecha_emision": "2024-03-01",
            "monto": "1e30",
        })
        assert response.status_code == 422

    def test_page_size_limits(self, client):
        response = client.get("/invoices/", params={"limit": settings.MAX_PAGE_SIZE + 1})
        assert response.status_code == 422

        response = client.get("/invoices/")
        assert response.json()["limit"] == settings.DEFAULT_PAGE_SIZE

    def test_openapi_documents_error_body(self, client):
        schema = client.get("/openapi.json").json()
        assert "ErrorOut" in schema["components"]["schemas"]
        responses = schema["paths"]["/payments/"]["post"]["responses"]
        assert responses["409"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorOut")


def test_module_loaded_under_app_package():
    assert __name__ == "app.modules.invoices.tests"
    assert "invoices" not in sys.modules
