"""
Coordinador de reconciliación

Re-deriva valores calculados (saldo de factura, stock de inventario) a
partir de su historial cuando el registro padre cambia por fuera del
flujo de movimientos.

Si el historial no se puede leer, el valor se calcula en modo degradado
y el resultado lleva un ReconciliationWarning: el llamador debe
reconocerlo, nunca se acepta en silencio.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError

from app.common.validators import Number, round_money, round_quantity, to_decimal
from app.modules.ledger.balance import expected_balance, sum_payments
from app.modules.ledger.stock import replay_movements

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconciliationWarning:
    code: str
    message: str


@dataclass(frozen=True)
class ReconciliationResult:
    """Valor reconciliado y, si aplica, la advertencia de precisión degradada."""

    value: Decimal
    history_total: Optional[Decimal] = None
    warning: Optional[ReconciliationWarning] = None

    @classmethod
    def exact(cls, value: Decimal, history_total: Decimal) -> "ReconciliationResult":
        return cls(value=value, history_total=history_total)

    @classmethod
    def degraded(cls, value: Decimal, warning: ReconciliationWarning) -> "ReconciliationResult":
        return cls(value=value, warning=warning)

    @property
    def is_degraded(self) -> bool:
        return self.warning is not None


class ReconciliationCoordinator:
    """Recalcula saldos y existencias desde el historial de movimientos."""

    HISTORY_ERRORS = (SQLAlchemyError, OSError)

    def recompute_balance(
        self,
        new_amount: Number,
        fetch_payment_amounts: Callable[[], Iterable[Number]],
        invoice_ref: Optional[str] = None,
    ) -> ReconciliationResult:
        """
        saldo = max(0, nuevo_monto - suma de abonos existentes)

        Si los abonos no se pueden obtener, saldo = nuevo_monto y se
        devuelve la advertencia PAYMENTS_UNAVAILABLE.
        """
        monto = round_money(new_amount)
        try:
            amounts = list(fetch_payment_amounts())
        except self.HISTORY_ERRORS as e:
            warning = ReconciliationWarning(
                code="PAYMENTS_UNAVAILABLE",
                message=(
                    "No se pudieron obtener los abonos existentes; el saldo se "
                    "igualó al nuevo monto sin descontar abonos"
                ),
            )
            logger.warning(f"Reconciliación degradada para factura {invoice_ref}: {e}")
            return ReconciliationResult.degraded(monto, warning)

        total = sum_payments(amounts)
        return ReconciliationResult.exact(expected_balance(monto, amounts), total)

    def recompute_stock(
        self,
        current_stock: Number,
        fetch_movement_deltas: Callable[[], Iterable[Number]],
        record_ref: Optional[str] = None,
    ) -> ReconciliationResult:
        """
        Stock reconstruido desde el registro de movimientos.

        Si el registro no se puede leer se conserva el stock actual con la
        advertencia MOVEMENTS_UNAVAILABLE.
        """
        stock = round_quantity(current_stock)
        try:
            deltas = list(fetch_movement_deltas())
        except self.HISTORY_ERRORS as e:
            warning = ReconciliationWarning(
                code="MOVEMENTS_UNAVAILABLE",
                message="No se pudo leer el historial de movimientos; se conserva el stock actual",
            )
            logger.warning(f"Reconciliación de stock degradada para {record_ref}: {e}")
            return ReconciliationResult.degraded(stock, warning)

        replayed = replay_movements(deltas)
        if replayed < to_decimal(0):
            warning = ReconciliationWarning(
                code="NEGATIVE_REPLAY",
                message=f"El historial suma {replayed}; el stock no puede ser negativo",
            )
            logger.error(f"Historial inconsistente para inventario {record_ref}: suma {replayed}")
            return ReconciliationResult(value=stock, history_total=replayed, warning=warning)

        return ReconciliationResult.exact(replayed, replayed)
