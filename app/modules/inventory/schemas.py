from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional, List, Dict
from uuid import UUID
from datetime import date, datetime

from app.common.validators import MONEY_QUANT, QTY_QUANT, MAX_MONEY, MAX_QUANTITY, quantize_input
from app.modules.inventory.models import MovementType


def _quantity(v):
    return quantize_input(v, QTY_QUANT)


def _money(v):
    return quantize_input(v, MONEY_QUANT)


# Inventory record schemas
class InventoryCreate(BaseModel):
    producto_id: UUID
    stock_actual: Decimal = Field(Decimal("0"), ge=0, lt=MAX_QUANTITY, description="Existencias iniciales")
    stock_minimo: Optional[Decimal] = Field(None, ge=0, lt=MAX_QUANTITY, description="Umbral de Stock Bajo; por defecto 10")
    precio_unitario: Decimal = Field(Decimal("0"), ge=0, lt=MAX_MONEY)
    fecha_ingreso: Optional[date] = None
    fecha_vencimiento: Optional[date] = None

    @field_validator('stock_actual', 'stock_minimo')
    @classmethod
    def round_quantities(cls, v):
        return _quantity(v)

    @field_validator('precio_unitario')
    @classmethod
    def round_price(cls, v):
        return _money(v)


class InventoryUpdate(BaseModel):
    """Edición directa; no se reconcilia contra el historial."""
    stock_actual: Optional[Decimal] = Field(None, lt=MAX_QUANTITY)
    stock_minimo: Optional[Decimal] = Field(None, lt=MAX_QUANTITY)
    precio_unitario: Optional[Decimal] = Field(None, lt=MAX_MONEY)
    fecha_ingreso: Optional[date] = None
    fecha_vencimiento: Optional[date] = None
    estado: Optional[str] = Field(
        None, max_length=30, description="Nota manual de estado; solo en registros sin movimientos"
    )
    motivo: Optional[str] = Field(None, max_length=255, description="Motivo del ajuste")

    @field_validator('stock_actual', 'stock_minimo')
    @classmethod
    def round_quantities(cls, v):
        return _quantity(v)

    @field_validator('precio_unitario')
    @classmethod
    def round_price(cls, v):
        return _money(v)


class InventoryOut(BaseModel):
    id: UUID
    producto_id: UUID
    nombre_producto: Optional[str] = None
    stock_actual: Decimal
    stock_minimo: Decimal
    precio_unitario: Decimal
    fecha_ingreso: date
    fecha_vencimiento: Optional[date] = None
    estado: str
    estado_manual: Optional[str] = None
    version: int
    updated_at: datetime

    class Config:
        from_attributes = True


# Movement schemas
class WithdrawalCreate(BaseModel):
    cantidad: Decimal = Field(..., lt=MAX_QUANTITY, description="Cantidad a retirar; > 0 y <= stock actual")
    motivo: Optional[str] = Field(None, max_length=255, description="Venta, merma, consumo...")
    referencia: Optional[str] = Field(None, max_length=100)

    @field_validator('cantidad')
    @classmethod
    def round_cantidad(cls, v):
        return _quantity(v)


class StockMovementOut(BaseModel):
    id: UUID
    inventory_id: UUID
    tipo: MovementType
    cantidad: Decimal
    stock_resultante: Decimal
    motivo: Optional[str] = None
    referencia: Optional[str] = None
    fecha: date
    usuario_registro: str
    created_at: datetime

    class Config:
        from_attributes = True


class WithdrawalResult(BaseModel):
    movement: StockMovementOut
    inventory: InventoryOut


# Reconciliation / summary schemas
class StockReconciliation(BaseModel):
    inventory_id: UUID
    stock_actual: Decimal
    stock_reconstruido: Decimal
    historial_total: Optional[Decimal] = None
    consistente: bool
    aplicado: bool
    warning_code: Optional[str] = None
    warning_message: Optional[str] = None


class InventorySummary(BaseModel):
    total_registros: int
    por_estado: Dict[str, int]
    valor_total: Decimal
    productos_stock_bajo: List[InventoryOut]
