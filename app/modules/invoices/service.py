"""
Servicio de negocio para cuentas por cobrar y por pagar

Las mismas reglas aplican a ambos libros:
- InvoiceService: registro, edición (con recálculo de saldo), borrado,
  resumen por contraparte y auditoría de consistencia
- PaymentService: abonos serializados por factura (bloqueo de fila + versión)
"""

from sqlalchemy.orm import Session, selectinload
from typing import Optional, List, Dict
from uuid import UUID
from decimal import Decimal
import logging

from app.core.config import settings
from app.common.exceptions import NotFoundError, ConflictError, ValidationError
from app.common.schemas import ActingUser
from app.common.transactions import transaction
from app.common.validators import ZERO, round_money
from app.modules.contacts.models import ContactType
from app.modules.contacts.service import ContactService
from app.modules.ledger import (
    register_invoice, apply_payment, expected_balance, is_consistent, sum_payments,
    ReconciliationCoordinator,
)
from app.modules.invoices.models import Invoice, Payment, InvoiceType
from app.modules.invoices.schemas import (
    InvoiceCreate, InvoiceUpdate, InvoiceList, InvoiceUpdateResult, InvoiceOut,
    ReconciliationWarningOut, PaymentCreate, PaymentResult, PaymentOut,
    InvoiceSummary, CounterpartyDebt, InvoiceAudit, InconsistentInvoice,
)

logger = logging.getLogger(__name__)

COUNTERPARTY_TYPE = {
    InvoiceType.POR_COBRAR: ContactType.CLIENTE,
    InvoiceType.POR_PAGAR: ContactType.PROVEEDOR,
}


class InvoiceService:
    """Servicio principal para gestión de facturas"""

    def __init__(self, db: Session, delete_policy: Optional[str] = None):
        self.db = db
        self.delete_policy = delete_policy or settings.INVOICE_DELETE_POLICY
        self.coordinator = ReconciliationCoordinator()

    def _get_invoice(self, invoice_id: UUID, lock: bool = False) -> Invoice:
        query = self.db.query(Invoice).filter(Invoice.id == invoice_id)
        if lock:
            query = query.with_for_update()
        invoice = query.first()
        if not invoice:
            raise NotFoundError("Factura no encontrada", invoice_id=invoice_id)
        return invoice

    def _payment_amounts(self, invoice_id: UUID) -> List[Decimal]:
        # Savepoint: si la lectura falla, la edición se confirma igual con
        # la advertencia en lugar de abortar toda la transacción
        with self.db.begin_nested():
            rows = self.db.query(Payment.monto).filter(Payment.invoice_id == invoice_id).all()
        return [row.monto for row in rows]

    def create_invoice(self, invoice_data: InvoiceCreate, acting_user: ActingUser) -> Invoice:
        """
        Registrar una factura por cobrar o por pagar.

        El saldo inicial es igual al monto.
        """
        monto = register_invoice(invoice_data.monto)

        with transaction(self.db, "Factura"):
            ContactService(self.db).require_counterparty(
                invoice_data.contact_id, COUNTERPARTY_TYPE[invoice_data.tipo]
            )
            invoice = Invoice(
                tipo=invoice_data.tipo,
                contact_id=invoice_data.contact_id,
                numero_factura=invoice_data.numero_factura,
                fecha_emision=invoice_data.fecha_emision,
                descripcion=invoice_data.descripcion,
                monto=monto,
                saldo=monto,
                estado_manual=invoice_data.estado,
            )
            invoice.stamp(acting_user)
            self.db.add(invoice)

        self.db.refresh(invoice)
        logger.info(
            f"Factura {invoice.tipo.value} {invoice.numero_factura} registrada por "
            f"{invoice.usuario_registro}: monto {invoice.monto}"
        )
        return invoice

    def get_invoices(
        self,
        limit: int = 100,
        offset: int = 0,
        contact_id: Optional[UUID] = None,
        tipo: Optional[InvoiceType] = None,
    ) -> InvoiceList:
        query = self.db.query(Invoice).options(selectinload(Invoice.contact))
        if contact_id:
            query = query.filter(Invoice.contact_id == contact_id)
        if tipo:
            query = query.filter(Invoice.tipo == tipo)

        total = query.count()
        invoices = query.order_by(
            Invoice.fecha_emision.desc(), Invoice.created_at.desc()
        ).offset(offset).limit(limit).all()
        return InvoiceList(items=[InvoiceOut.model_validate(i) for i in invoices], total=total, limit=limit, offset=offset)

    def get_invoice_by_id(self, invoice_id: UUID) -> Invoice:
        return self._get_invoice(invoice_id)

    def update_invoice(
        self, invoice_id: UUID, invoice_update: InvoiceUpdate, acting_user: ActingUser
    ) -> InvoiceUpdateResult:
        """
        Editar una factura.

        Si cambia el monto, el saldo se recalcula desde los abonos existentes.
        Cuando los abonos no se pueden leer el saldo queda igual al nuevo
        monto y la respuesta lleva la advertencia.
        """
        update_data = invoice_update.model_dump(exclude_unset=True)
        result = None

        with transaction(self.db, "Factura", invoice_id):
            invoice = self._get_invoice(invoice_id, lock=True)

            if update_data.get("contact_id") and update_data["contact_id"] != invoice.contact_id:
                ContactService(self.db).require_counterparty(
                    update_data["contact_id"], COUNTERPARTY_TYPE[invoice.tipo]
                )

            new_monto = update_data.pop("monto", None)
            monto = register_invoice(new_monto) if new_monto is not None else None
            if monto is not None and monto != invoice.monto:
                result = self.coordinator.recompute_balance(
                    monto,
                    lambda: self._payment_amounts(invoice.id),
                    invoice_ref=str(invoice.id),
                )

            if "estado" in update_data:
                invoice.estado_manual = update_data.pop("estado")
            for field, value in update_data.items():
                if value is not None:
                    setattr(invoice, field, value)

            if result is not None:
                invoice.monto = monto
                invoice.saldo = result.value

        self.db.refresh(invoice)
        logger.info(f"Factura {invoice.numero_factura} editada por {acting_user.nombre}")

        warning = None
        if result is not None and result.warning is not None:
            warning = ReconciliationWarningOut(code=result.warning.code, message=result.warning.message)
        return InvoiceUpdateResult(
            invoice=InvoiceOut.model_validate(invoice),
            saldo_recalculado=result is not None,
            warning=warning,
        )

    def delete_invoice(self, invoice_id: UUID, acting_user: ActingUser) -> None:
        """
        Eliminar una factura según INVOICE_DELETE_POLICY:
        - block: no se permite si tiene abonos
        - cascade: los abonos se eliminan con la factura
        """
        with transaction(self.db, "Factura", invoice_id):
            invoice = self._get_invoice(invoice_id, lock=True)
            payment_count = len(invoice.payments)

            if payment_count and self.delete_policy == "block":
                logger.warning(
                    f"Borrado rechazado: factura {invoice.numero_factura} tiene {payment_count} abonos"
                )
                raise ConflictError(
                    f"La factura {invoice.numero_factura} tiene {payment_count} abonos registrados "
                    "y no se puede eliminar",
                    invoice_id=invoice_id,
                )

            numero = invoice.numero_factura
            self.db.delete(invoice)

        logger.info(
            f"Factura {numero} eliminada por {acting_user.nombre} ({payment_count} abonos eliminados)"
        )

    def get_summary(self, tipo: InvoiceType) -> InvoiceSummary:
        """Deuda pendiente por contraparte, totales e indicadores del libro."""
        invoices = self.db.query(Invoice).options(
            selectinload(Invoice.contact)
        ).filter(Invoice.tipo == tipo).all()

        monto_total = ZERO
        saldo_total = ZERO
        pagadas = 0
        by_contact: Dict[UUID, CounterpartyDebt] = {}

        for invoice in invoices:
            monto_total += invoice.monto
            saldo_total += invoice.saldo
            if invoice.saldo <= ZERO:
                pagadas += 1
                continue

            debt = by_contact.get(invoice.contact_id)
            if debt is None:
                debt = CounterpartyDebt(
                    contact_id=invoice.contact_id,
                    nombre_contacto=invoice.nombre_contacto or "",
                    facturas_pendientes=0,
                    saldo_total=ZERO,
                )
                by_contact[invoice.contact_id] = debt
            debt.facturas_pendientes += 1
            debt.saldo_total = round_money(debt.saldo_total + invoice.saldo)

        return InvoiceSummary(
            tipo=tipo,
            total_facturas=len(invoices),
            facturas_pagadas=pagadas,
            facturas_con_saldo=len(invoices) - pagadas,
            monto_total=round_money(monto_total),
            saldo_total=round_money(saldo_total),
            por_contraparte=sorted(by_contact.values(), key=lambda d: d.saldo_total, reverse=True),
        )

    def audit_balances(self) -> InvoiceAudit:
        """Facturas cuyo saldo guardado no coincide con max(0, monto - abonos)."""
        invoices = self.db.query(Invoice).options(selectinload(Invoice.payments)).all()
        inconsistentes = []

        for invoice in invoices:
            amounts = [p.monto for p in invoice.payments]
            if is_consistent(invoice.monto, invoice.saldo, amounts):
                continue

            esperado = expected_balance(invoice.monto, amounts)
            logger.error(
                f"Saldo inconsistente en factura {invoice.numero_factura} ({invoice.id}): "
                f"guardado {invoice.saldo}, esperado {esperado}"
            )
            inconsistentes.append(InconsistentInvoice(
                invoice_id=invoice.id,
                numero_factura=invoice.numero_factura,
                monto=invoice.monto,
                saldo_guardado=invoice.saldo,
                saldo_esperado=esperado,
                total_abonos=sum_payments(amounts),
            ))

        return InvoiceAudit(revisadas=len(invoices), inconsistentes=inconsistentes)


class PaymentService:
    """Abonos a facturas por cobrar y pagos a facturas por pagar"""

    def __init__(self, db: Session):
        self.db = db

    def create_payment(self, payment_data: PaymentCreate, acting_user: ActingUser) -> PaymentResult:
        """
        Registrar un abono.

        La factura se bloquea durante la operación; abono y saldo se
        confirman juntos. Una escritura con versión vieja termina en
        ConcurrencyConflictError.
        """
        with transaction(self.db, "Factura", payment_data.invoice_id):
            invoice = self.db.query(Invoice).filter(
                Invoice.id == payment_data.invoice_id
            ).with_for_update().first()
            if not invoice:
                raise NotFoundError("Factura no encontrada", invoice_id=payment_data.invoice_id)

            try:
                nuevo_saldo = apply_payment(invoice.saldo, payment_data.monto)
            except ValidationError:
                logger.warning(
                    f"Abono rechazado en factura {invoice.numero_factura}: "
                    f"monto {payment_data.monto}, saldo {invoice.saldo}"
                )
                raise

            payment = Payment(
                invoice_id=invoice.id,
                monto=round_money(payment_data.monto),
                fecha=payment_data.fecha,
                metodo_pago=payment_data.metodo_pago,
                referencia=payment_data.referencia,
            )
            payment.stamp(acting_user)
            self.db.add(payment)

            invoice.saldo = nuevo_saldo
            invoice.estado_manual = None

        self.db.refresh(payment)
        self.db.refresh(invoice)
        logger.info(
            f"Abono de {payment.monto} a factura {invoice.numero_factura} por "
            f"{payment.usuario_registro}; saldo {invoice.saldo}"
        )
        return PaymentResult(
            payment=PaymentOut.model_validate(payment),
            invoice=InvoiceOut.model_validate(invoice),
        )

    def list_payments(self, invoice_id: Optional[UUID] = None) -> List[Payment]:
        query = self.db.query(Payment)
        if invoice_id:
            if not self.db.query(Invoice.id).filter(Invoice.id == invoice_id).first():
                raise NotFoundError("Factura no encontrada", invoice_id=invoice_id)
            query = query.filter(Payment.invoice_id == invoice_id)
        return query.order_by(Payment.fecha.asc(), Payment.created_at.asc()).all()
