"""
Modelos SQLAlchemy para cuentas por cobrar y por pagar

Una sola tabla de facturas para ambos libros, distinguidas por ``tipo``:
- por_cobrar: facturas a clientes (FacturaCliente)
- por_pagar: facturas de proveedores (FacturaProveedor)

Cada factura tiene cero o más abonos inmutables. El saldo se guarda pero
es derivado: saldo = max(0, monto - suma de abonos).
"""

from app.database.database import Base
from sqlalchemy import Column, String, ForeignKey, Numeric, Enum, Date, Text, Integer, Uuid
from sqlalchemy.orm import relationship
from datetime import date
from decimal import Decimal
from uuid import uuid4
from app.common.mixins import TimestampMixin, ActorMixin
import enum


class InvoiceType(str, enum.Enum):
    POR_COBRAR = "por_cobrar"  # Cliente nos debe
    POR_PAGAR = "por_pagar"    # Debemos al proveedor


class PaymentMethod(str, enum.Enum):
    EFECTIVO = "efectivo"
    CHEQUE = "cheque"
    TARJETA = "tarjeta"
    TRANSFERENCIA = "transferencia"
    SINPE = "sinpe"
    OTRO = "otro"


class InvoiceLabel(str, enum.Enum):
    """Etiquetas derivadas; las manuales son texto libre"""
    PENDIENTE = "pendiente"
    PARCIAL = "parcial"
    PAGADA = "pagada"


class Invoice(Base, TimestampMixin, ActorMixin):
    __tablename__ = "invoices"

    id = Column(Uuid, primary_key=True, default=uuid4)
    tipo = Column(Enum(InvoiceType), nullable=False, index=True)
    contact_id = Column(Uuid, ForeignKey("contacts.id"), nullable=False, index=True)

    numero_factura = Column(String(100), nullable=False, index=True)  # Único por contraparte, no global
    fecha_emision = Column(Date, nullable=False, default=date.today)
    descripcion = Column(Text, nullable=True)

    monto = Column(Numeric(15, 2), nullable=False)
    saldo = Column(Numeric(15, 2), nullable=False)

    # Etiqueta manual; se descarta al registrar un abono
    estado_manual = Column(String(30), nullable=True)

    version = Column(Integer, nullable=False)

    contact = relationship("Contact")
    payments = relationship(
        "Payment",
        back_populates="invoice",
        order_by="Payment.created_at",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def estado(self) -> str:
        saldo = Decimal(self.saldo or 0)
        if saldo <= 0:
            return InvoiceLabel.PAGADA.value
        if self.estado_manual:
            return self.estado_manual
        if saldo < Decimal(self.monto or 0):
            return InvoiceLabel.PARCIAL.value
        return InvoiceLabel.PENDIENTE.value

    @property
    def nombre_contacto(self) -> str:
        return self.contact.nombre if self.contact else None


class Payment(Base, TimestampMixin, ActorMixin):
    """
    Abonos (cuentas por cobrar) y pagos (cuentas por pagar).

    Inmutables: no existe operación de edición ni borrado.
    """
    __tablename__ = "payments"

    id = Column(Uuid, primary_key=True, default=uuid4)
    invoice_id = Column(Uuid, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)

    monto = Column(Numeric(15, 2), nullable=False)  # > 0 y <= saldo al registrarse
    fecha = Column(Date, nullable=False, default=date.today)
    metodo_pago = Column(Enum(PaymentMethod), nullable=False, default=PaymentMethod.EFECTIVO)
    referencia = Column(String(100), nullable=True)

    invoice = relationship("Invoice", back_populates="payments")
