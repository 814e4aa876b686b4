"""
Lógica pura de saldos y existencias, sin acceso a base de datos.
"""

from app.modules.ledger.balance import (
    register_invoice, apply_payment, expected_balance, is_consistent, sum_payments
)
from app.modules.ledger.stock import (
    StockStatus, StockLevel, derive_status, apply_purchase, apply_withdrawal, replay_movements
)
from app.modules.ledger.reconciliation import (
    ReconciliationCoordinator, ReconciliationResult, ReconciliationWarning
)

__all__ = [
    "register_invoice",
    "apply_payment",
    "expected_balance",
    "is_consistent",
    "sum_payments",
    "StockStatus",
    "StockLevel",
    "derive_status",
    "apply_purchase",
    "apply_withdrawal",
    "replay_movements",
    "ReconciliationCoordinator",
    "ReconciliationResult",
    "ReconciliationWarning",
]
