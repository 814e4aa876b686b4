"""
Validadores y redondeo para montos y cantidades
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

from app.common.exceptions import ValidationError

Number = Union[Decimal, int, float, str]

MONEY_QUANT = Decimal("0.01")
QTY_QUANT = Decimal("0.001")
ZERO = Decimal("0")

# Límites de las columnas Numeric(15, 2) y Numeric(15, 3)
MAX_MONEY = 10 ** 13
MAX_QUANTITY = 10 ** 12


def to_decimal(value: Number, field: str = "valor") -> Decimal:
    """
    Convierte a Decimal sin pasar por la representación binaria de float.
    Rechaza NaN e infinito.
    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            raise ValidationError(f"{field} no es un número válido", value=value)

    if not result.is_finite():
        raise ValidationError(f"{field} debe ser un número finito", value=value)
    return result


def _quantize(value: Number, quant: Decimal, field: str) -> Decimal:
    try:
        return to_decimal(value, field).quantize(quant, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"{field} fuera de rango", value=value)


def round_money(value: Number) -> Decimal:
    """Redondea a centavos (half-up)."""
    return _quantize(value, MONEY_QUANT, "monto")


def round_quantity(value: Number) -> Decimal:
    """Redondea cantidades a milésimas (productos vendidos por peso)."""
    return _quantize(value, QTY_QUANT, "cantidad")


def quantize_input(value: Optional[Decimal], quant: Decimal) -> Optional[Decimal]:
    """
    Redondeo half-up para los validadores de pydantic.

    Un valor que no se puede redondear lanza ValueError, que pydantic
    reporta como error de validación (422).
    """
    if value is None:
        return value
    try:
        return value.quantize(quant, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError("Valor fuera de rango")


def clamp_non_negative(value: Decimal) -> Decimal:
    return value if value > ZERO else ZERO


def require_positive(value: Number, message: str) -> Decimal:
    """Devuelve el valor como Decimal o lanza ValidationError si es <= 0."""
    result = to_decimal(value)
    if result <= ZERO:
        raise ValidationError(message, value=value)
    return result


def require_non_negative(value: Number, message: str) -> Decimal:
    result = to_decimal(value)
    if result < ZERO:
        raise ValidationError(message, value=value)
    return result
