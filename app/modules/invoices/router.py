from fastapi import APIRouter, Query, status
from typing import List, Optional
from uuid import UUID

from app.core.config import settings
from app.common.schemas import ERROR_RESPONSES
from app.dependencies.dbDependecies import db_dependency
from app.dependencies.userDependencies import acting_user_dependency
from app.modules.invoices.service import InvoiceService, PaymentService
from app.modules.invoices.models import InvoiceType
from app.modules.invoices.schemas import (
    InvoiceCreate, InvoiceUpdate, InvoiceOut, InvoiceList, InvoiceUpdateResult,
    InvoiceSummary, InvoiceAudit, PaymentCreate, PaymentOut, PaymentResult,
)

# Router principal del módulo de facturas
router = APIRouter(prefix="/invoices", tags=["Invoices"], responses=ERROR_RESPONSES)

# Abonos y pagos
payment_router = APIRouter(prefix="/payments", tags=["Payments"], responses=ERROR_RESPONSES)


@router.post("/", response_model=InvoiceOut, status_code=status.HTTP_201_CREATED)
def create_invoice(invoice_data: InvoiceCreate, db: db_dependency, acting_user: acting_user_dependency):
    """
    Registrar una factura por cobrar (cliente) o por pagar (proveedor)

    El saldo inicial es igual al monto.
    """
    return InvoiceService(db).create_invoice(invoice_data, acting_user)


@router.get("/", response_model=InvoiceList)
def list_invoices(
    db: db_dependency,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    contact_id: Optional[UUID] = Query(None, description="Filtrar por cliente o proveedor"),
    tipo: Optional[InvoiceType] = Query(None, description="por_cobrar o por_pagar"),
):
    return InvoiceService(db).get_invoices(limit=limit, offset=offset, contact_id=contact_id, tipo=tipo)


@router.get("/summary", response_model=InvoiceSummary)
def get_invoice_summary(
    db: db_dependency,
    tipo: InvoiceType = Query(..., description="Libro a resumir"),
):
    """Deuda pendiente por contraparte, totales e indicadores (total, pagadas, con saldo)."""
    return InvoiceService(db).get_summary(tipo)


@router.get("/audit", response_model=InvoiceAudit)
def audit_invoice_balances(db: db_dependency):
    """Facturas cuyo saldo no coincide con sus abonos."""
    return InvoiceService(db).audit_balances()


@router.get("/{invoice_id}", response_model=InvoiceOut)
def get_invoice(invoice_id: UUID, db: db_dependency):
    return InvoiceService(db).get_invoice_by_id(invoice_id)


@router.put("/{invoice_id}", response_model=InvoiceUpdateResult)
def update_invoice(
    invoice_id: UUID,
    invoice_update: InvoiceUpdate,
    db: db_dependency,
    acting_user: acting_user_dependency,
):
    """
    Editar una factura

    Si cambia el monto el saldo se recalcula como monto - abonos. Si los
    abonos no se pudieron leer, ``warning`` indica que el saldo es aproximado.
    """
    return InvoiceService(db).update_invoice(invoice_id, invoice_update, acting_user)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_invoice(invoice_id: UUID, db: db_dependency, acting_user: acting_user_dependency):
    InvoiceService(db).delete_invoice(invoice_id, acting_user)


@payment_router.post("/", response_model=PaymentResult, status_code=status.HTTP_201_CREATED)
def create_payment(payment_data: PaymentCreate, db: db_dependency, acting_user: acting_user_dependency):
    """
    Registrar un abono

    El monto debe ser mayor a 0 y no exceder el saldo pendiente.
    """
    return PaymentService(db).create_payment(payment_data, acting_user)


@payment_router.get("/", response_model=List[PaymentOut])
def list_payments(
    db: db_dependency,
    invoice_id: Optional[UUID] = Query(None, description="Abonos de una factura"),
):
    return PaymentService(db).list_payments(invoice_id)
