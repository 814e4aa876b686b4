"""
Libro de existencias

Estado derivado de (stock_actual, stock_minimo):

    stock == 0              -> Agotado
    0 < stock <= minimo     -> Stock Bajo
    stock > minimo          -> Disponible
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

from app.common.exceptions import ValidationError
from app.common.validators import (
    MAX_QUANTITY, Number, ZERO, require_non_negative, require_positive, round_money, round_quantity,
    to_decimal,
)


class StockStatus(str, Enum):
    DISPONIBLE = "Disponible"
    STOCK_BAJO = "Stock Bajo"
    AGOTADO = "Agotado"


def derive_status(stock_actual: Number, stock_minimo: Number) -> StockStatus:
    stock = to_decimal(stock_actual, "stock_actual")
    minimo = to_decimal(stock_minimo, "stock_minimo")
    if stock <= ZERO:
        return StockStatus.AGOTADO
    if stock <= minimo:
        return StockStatus.STOCK_BAJO
    return StockStatus.DISPONIBLE


@dataclass(frozen=True)
class StockLevel:
    """Fotografía de un registro de inventario tras un movimiento."""
    stock_actual: Decimal
    stock_minimo: Decimal
    precio_unitario: Decimal

    @property
    def estado(self) -> StockStatus:
        return derive_status(self.stock_actual, self.stock_minimo)


def apply_purchase(
    current: Optional[StockLevel],
    quantity: Number,
    unit_price: Number,
    default_minimo: Number = 10,
) -> StockLevel:
    """
    Entrada por compra.

    Sin registro previo se crea uno con stock = cantidad y el mínimo por
    defecto. Con registro previo se suma la cantidad y el precio unitario
    se reemplaza por el de la compra (último precio, no promedio ponderado).
    """
    cantidad = round_quantity(require_positive(quantity, "La cantidad debe ser mayor a 0"))
    precio = round_money(require_non_negative(unit_price, "El precio unitario no puede ser negativo"))

    if current is None:
        return StockLevel(
            stock_actual=cantidad,
            stock_minimo=round_quantity(default_minimo),
            precio_unitario=precio,
        )

    nuevo_stock = round_quantity(current.stock_actual + cantidad)
    if nuevo_stock >= MAX_QUANTITY:
        raise ValidationError(
            f"La existencia resultante ({nuevo_stock}) excede el máximo permitido", value=quantity
        )
    return StockLevel(
        stock_actual=nuevo_stock,
        stock_minimo=current.stock_minimo,
        precio_unitario=precio,
    )


def apply_withdrawal(stock_actual: Number, quantity: Number) -> Decimal:
    """Salida de inventario; devuelve el nuevo stock."""
    stock = round_quantity(stock_actual)
    cantidad = round_quantity(require_positive(quantity, "La cantidad debe ser mayor a 0"))
    if cantidad <= ZERO:
        raise ValidationError("La cantidad debe ser mayor a 0", value=quantity)
    if cantidad > stock:
        raise ValidationError(
            f"Stock insuficiente. Stock disponible: {stock}, solicitado: {cantidad}",
            disponible=stock,
            solicitado=cantidad,
        )
    return round_quantity(stock - cantidad)


def validate_record_fields(stock_actual: Number, stock_minimo: Number) -> None:
    """Reglas de una edición directa: nada negativo."""
    require_non_negative(stock_actual, "El stock actual no puede ser negativo")
    require_non_negative(stock_minimo, "El stock mínimo no puede ser negativo")


def replay_movements(deltas: Iterable[Number]) -> Decimal:
    """Stock resultante de aplicar en orden los movimientos del registro."""
    stock = ZERO
    for delta in deltas:
        stock += to_decimal(delta, "cantidad")
    return round_quantity(stock)
