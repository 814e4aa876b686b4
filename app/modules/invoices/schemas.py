"""
Esquemas Pydantic para cuentas por cobrar y por pagar
"""

from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime

from app.common.validators import MONEY_QUANT, MAX_MONEY, quantize_input
from app.modules.invoices.models import InvoiceType, PaymentMethod


def _quantize(v):
    return quantize_input(v, MONEY_QUANT)


# ===== INVOICE SCHEMAS =====

class InvoiceBase(BaseModel):
    numero_factura: str = Field(..., min_length=1, max_length=100, description="Número de factura")
    fecha_emision: date = Field(..., description="Fecha de emisión")
    descripcion: Optional[str] = Field(None, description="Descripción o notas")
    estado: Optional[str] = Field(None, max_length=30, description="Etiqueta libre: pendiente, confirmada...")


class InvoiceCreate(InvoiceBase):
    tipo: InvoiceType = Field(..., description="por_cobrar o por_pagar")
    contact_id: UUID = Field(..., description="Cliente o proveedor")
    monto: Decimal = Field(..., gt=0, lt=MAX_MONEY, description="Monto original de la factura")

    @field_validator('monto')
    @classmethod
    def validate_monto(cls, v):
        return _quantize(v)


class InvoiceUpdate(BaseModel):
    contact_id: Optional[UUID] = None
    numero_factura: Optional[str] = Field(None, min_length=1, max_length=100)
    fecha_emision: Optional[date] = None
    descripcion: Optional[str] = None
    estado: Optional[str] = Field(None, max_length=30)
    monto: Optional[Decimal] = Field(None, gt=0, lt=MAX_MONEY, description="Nuevo monto; el saldo se recalcula")

    @field_validator('monto')
    @classmethod
    def validate_monto(cls, v):
        return _quantize(v)


class InvoiceOut(BaseModel):
    id: UUID
    tipo: InvoiceType
    contact_id: UUID
    nombre_contacto: Optional[str] = None
    numero_factura: str
    fecha_emision: date
    descripcion: Optional[str] = None
    monto: Decimal
    saldo: Decimal
    estado: str
    usuario_registro: str
    usuario_id: Optional[str] = None
    version: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InvoiceList(BaseModel):
    items: List[InvoiceOut]
    total: int
    limit: int
    offset: int


class ReconciliationWarningOut(BaseModel):
    code: str
    message: str


class InvoiceUpdateResult(BaseModel):
    """Factura editada; ``warning`` presente si el saldo se calculó en modo degradado"""
    invoice: InvoiceOut
    saldo_recalculado: bool = False
    warning: Optional[ReconciliationWarningOut] = None


# ===== PAYMENT SCHEMAS =====

class PaymentCreate(BaseModel):
    invoice_id: UUID = Field(..., description="Factura a la que se aplica")
    monto: Decimal = Field(..., lt=MAX_MONEY, description="Monto del abono; > 0 y <= saldo")
    fecha: date = Field(default_factory=date.today, description="Fecha del abono")
    metodo_pago: PaymentMethod = Field(PaymentMethod.EFECTIVO, description="Método de pago")
    referencia: Optional[str] = Field(None, max_length=100, description="Referencia del pago")

    @field_validator('monto')
    @classmethod
    def validate_monto(cls, v):
        return _quantize(v)


class PaymentOut(BaseModel):
    id: UUID
    invoice_id: UUID
    monto: Decimal
    fecha: date
    metodo_pago: PaymentMethod
    referencia: Optional[str] = None
    usuario_registro: str
    usuario_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentResult(BaseModel):
    payment: PaymentOut
    invoice: InvoiceOut


# ===== SUMMARY / AUDIT SCHEMAS =====

class CounterpartyDebt(BaseModel):
    contact_id: UUID
    nombre_contacto: str
    facturas_pendientes: int
    saldo_total: Decimal


class InvoiceSummary(BaseModel):
    tipo: InvoiceType
    total_facturas: int
    facturas_pagadas: int
    facturas_con_saldo: int
    monto_total: Decimal
    saldo_total: Decimal
    por_contraparte: List[CounterpartyDebt]


class InconsistentInvoice(BaseModel):
    invoice_id: UUID
    numero_factura: str
    monto: Decimal
    saldo_guardado: Decimal
    saldo_esperado: Decimal
    total_abonos: Decimal


class InvoiceAudit(BaseModel):
    revisadas: int
    inconsistentes: List[InconsistentInvoice]
