from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime

from app.common.validators import MONEY_QUANT, QTY_QUANT, MAX_MONEY, MAX_QUANTITY, quantize_input
from app.modules.inventory.schemas import InventoryOut


class PurchaseCreate(BaseModel):
    proveedor_id: UUID
    producto_id: UUID
    fecha: date = Field(default_factory=date.today)
    precio: Decimal = Field(..., lt=MAX_MONEY, description="Precio unitario; >= 0")
    cantidad: Decimal = Field(..., lt=MAX_QUANTITY, description="Cantidad comprada; > 0")
    referencia: Optional[str] = Field(None, max_length=100, description="Número de factura del proveedor")

    @field_validator('precio')
    @classmethod
    def round_precio(cls, v):
        return quantize_input(v, MONEY_QUANT)

    @field_validator('cantidad')
    @classmethod
    def round_cantidad(cls, v):
        return quantize_input(v, QTY_QUANT)


class PurchaseOut(BaseModel):
    id: UUID
    proveedor_id: UUID
    nombre_proveedor: Optional[str] = None
    producto_id: UUID
    nombre_producto: Optional[str] = None
    fecha: date
    precio: Decimal
    cantidad: Decimal
    total: Decimal
    referencia: Optional[str] = None
    usuario_registro: str
    created_at: datetime

    class Config:
        from_attributes = True


class PurchaseResult(BaseModel):
    purchase: PurchaseOut
    inventory: InventoryOut


class PurchaseList(BaseModel):
    items: List[PurchaseOut]
    total: int
    limit: int
    offset: int
