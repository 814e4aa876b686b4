"""
Libro de saldos de facturas (por cobrar y por pagar)

Funciones puras sobre Decimal; los servicios de facturas las usan tanto
para cuentas por cobrar como por pagar. Invariante que todas preservan:

    0 <= saldo <= monto
"""

from decimal import Decimal
from typing import Iterable

from app.common.exceptions import ValidationError
from app.common.validators import (
    Number, ZERO, clamp_non_negative, require_positive, round_money, to_decimal
)


def register_invoice(amount: Number) -> Decimal:
    """Valida el monto de una factura nueva y devuelve el saldo inicial (= monto)."""
    monto = round_money(require_positive(amount, "El monto de la factura debe ser mayor a 0"))
    if monto <= ZERO:
        raise ValidationError("El monto de la factura debe ser mayor a 0", value=amount)
    return monto


def apply_payment(saldo: Number, amount: Number) -> Decimal:
    """
    Aplica un abono y devuelve el nuevo saldo.

    Rechaza abonos <= 0 y abonos mayores al saldo actual. El piso en cero
    se aplica de todas formas sobre el resultado.
    """
    current = to_decimal(saldo, "saldo")
    abono = round_money(require_positive(amount, "El abono debe ser mayor a 0"))
    if abono <= ZERO:
        raise ValidationError("El abono debe ser mayor a 0", value=amount)
    if abono > current:
        raise ValidationError(
            f"El abono ({abono}) excede el saldo pendiente ({current})",
            saldo=current,
            monto=abono,
        )
    return round_money(clamp_non_negative(current - abono))


def sum_payments(amounts: Iterable[Number]) -> Decimal:
    total = ZERO
    for amount in amounts:
        total += to_decimal(amount or ZERO, "abono")
    return round_money(total)


def expected_balance(monto: Number, payment_amounts: Iterable[Number]) -> Decimal:
    """saldo = max(0, monto - suma de abonos)"""
    return round_money(clamp_non_negative(to_decimal(monto, "monto") - sum_payments(payment_amounts)))


def is_consistent(monto: Number, saldo: Number, payment_amounts: Iterable[Number]) -> bool:
    """True si el saldo guardado coincide con el derivado de los abonos y respeta 0 <= saldo <= monto."""
    stored = to_decimal(saldo, "saldo")
    total = to_decimal(monto, "monto")
    if stored < ZERO or stored > total:
        return False
    return round_money(stored) == expected_balance(total, payment_amounts)
