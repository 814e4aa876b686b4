"""
Tests para la lógica pura de saldos, existencias y reconciliación

No usan base de datos.
"""

import pytest
from decimal import Decimal
from sqlalchemy.exc import OperationalError

from app.common.exceptions import ValidationError
from app.common.validators import round_money, round_quantity
from app.modules.ledger import (
    register_invoice, apply_payment, expected_balance, is_consistent, sum_payments,
    StockStatus, StockLevel, derive_status, apply_purchase, apply_withdrawal, replay_movements,
    ReconciliationCoordinator,
)
from app.modules.ledger.stock import validate_record_fields


# ===== TESTS DE SALDOS =====

class TestBalanceLedger:

    def test_register_invoice_sets_balance_to_amount(self):
        assert register_invoice(1000) == Decimal("1000.00")
        assert register_invoice("249.995") == Decimal("250.00")

    @pytest.mark.parametrize("amount", [0, -1, "abc", float("nan"), float("inf")])
    def test_register_invoice_rejects_invalid_amounts(self, amount):
        with pytest.raises(ValidationError):
            register_invoice(amount)

    def test_payment_sequence(self):
        """1000 -> abono 400 -> 600; abono 700 rechazado; abono 600 -> 0"""
        saldo = register_invoice(1000)
        saldo = apply_payment(saldo, 400)
        assert saldo == Decimal("600.00")

        with pytest.raises(ValidationError) as exc:
            apply_payment(saldo, 700)
        assert "excede el saldo pendiente" in exc.value.message

        assert apply_payment(saldo, 600) == Decimal("0.00")

    @pytest.mark.parametrize("amount", [0, Decimal("-50"), "-0.01"])
    def test_payment_must_be_positive(self, amount):
        with pytest.raises(ValidationError) as exc:
            apply_payment(Decimal("500"), amount)
        assert exc.value.message == "El abono debe ser mayor a 0"

    def test_balance_stays_within_bounds(self):
        monto = register_invoice("1500.50")
        saldo = monto
        for abono in ["100.25", "0.25", "1000", "400"]:
            saldo = apply_payment(saldo, abono)
            assert Decimal("0") <= saldo <= monto
        assert saldo == Decimal("0.00")

    def test_expected_balance_floors_at_zero(self):
        assert expected_balance(1000, [300, 300]) == Decimal("400.00")
        assert expected_balance(500, [300, 300]) == Decimal("0.00")
        assert expected_balance(1000, []) == Decimal("1000.00")

    def test_sum_payments_uses_decimal_arithmetic(self):
        assert sum_payments(["0.10", "0.20"]) == Decimal("0.30")

    def test_is_consistent(self):
        assert is_consistent(1000, 700, [300])
        assert not is_consistent(1000, 800, [300])
        assert not is_consistent(1000, -1, [])
        assert not is_consistent(1000, 1200, [])

    @pytest.mark.parametrize("value", ["1e30", "-1e40"])
    def test_out_of_range_values_raise_validation_error(self, value):
        with pytest.raises(ValidationError):
            round_money(value)
        with pytest.raises(ValidationError):
            round_quantity(value)
        with pytest.raises(ValidationError):
            apply_payment(1000, value)


# ===== TESTS DE EXISTENCIAS =====

class TestStockLedger:

    @pytest.mark.parametrize("stock,minimo,expected", [
        (0, 10, StockStatus.AGOTADO),
        (1, 10, StockStatus.STOCK_BAJO),
        (10, 10, StockStatus.STOCK_BAJO),
        (11, 10, StockStatus.DISPONIBLE),
        ("0.5", 0, StockStatus.DISPONIBLE),
    ])
    def test_derive_status(self, stock, minimo, expected):
        assert derive_status(stock, minimo) == expected

    def test_purchase_on_new_product(self):
        level = apply_purchase(None, 25, 300)
        assert level.stock_actual == Decimal("25.000")
        assert level.stock_minimo == Decimal("10.000")
        assert level.precio_unitario == Decimal("300.00")
        assert level.estado == StockStatus.DISPONIBLE

    def test_purchase_adds_quantity_and_replaces_price(self):
        current = StockLevel(Decimal("10"), Decimal("10"), Decimal("40"))
        level = apply_purchase(current, 20, 50)
        assert level.stock_actual == Decimal("30.000")
        assert level.precio_unitario == Decimal("50.00")
        assert level.stock_minimo == Decimal("10")

    @pytest.mark.parametrize("quantity,price", [(0, 10), (-5, 10), (5, -1)])
    def test_purchase_rejects_invalid_input(self, quantity, price):
        with pytest.raises(ValidationError):
            apply_purchase(None, quantity, price)

    def test_purchase_rejects_stock_beyond_column_range(self):
        current = StockLevel(Decimal("999999999999"), Decimal("10"), Decimal("1"))
        with pytest.raises(ValidationError):
            apply_purchase(current, 5, 1)

    def test_withdrawal_sequence(self):
        """Stock 5 / mínimo 10 -> Stock Bajo; retiro 5 -> Agotado; retiro 1 rechazado"""
        assert derive_status(5, 10) == StockStatus.STOCK_BAJO
        stock = apply_withdrawal(5, 5)
        assert stock == Decimal("0.000")
        assert derive_status(stock, 10) == StockStatus.AGOTADO

        with pytest.raises(ValidationError) as exc:
            apply_withdrawal(stock, 1)
        assert exc.value.message == "Stock insuficiente. Stock disponible: 0.000, solicitado: 1.000"

    def test_withdrawal_must_be_positive(self):
        with pytest.raises(ValidationError) as exc:
            apply_withdrawal(5, 0)
        assert exc.value.message == "La cantidad debe ser mayor a 0"

    def test_validate_record_fields_rejects_negatives(self):
        validate_record_fields(0, 0)
        with pytest.raises(ValidationError):
            validate_record_fields(-1, 10)
        with pytest.raises(ValidationError):
            validate_record_fields(5, -1)

    def test_replay_movements(self):
        assert replay_movements([10, "-2.5", 20]) == Decimal("27.500")
        assert replay_movements([]) == Decimal("0.000")


# ===== TESTS DE RECONCILIACION =====

class TestReconciliationCoordinator:

    def setup_method(self):
        self.coordinator = ReconciliationCoordinator()

    def test_recompute_balance_after_amount_edit(self):
        """Factura 1000 con abono 300 editada a 1500 -> saldo 1200"""
        result = self.coordinator.recompute_balance(1500, lambda: [Decimal("300")])
        assert result.value == Decimal("1200.00")
        assert result.history_total == Decimal("300.00")
        assert not result.is_degraded

    def test_recompute_balance_below_payments_floors_at_zero(self):
        result = self.coordinator.recompute_balance(200, lambda: [300])
        assert result.value == Decimal("0.00")

    def test_recompute_balance_degrades_with_warning(self):
        def failing_fetch():
            raise OperationalError("SELECT", {}, Exception("connection refused"))

        result = self.coordinator.recompute_balance(1500, failing_fetch, invoice_ref="F-1")
        assert result.value == Decimal("1500.00")
        assert result.is_degraded
        assert result.warning.code == "PAYMENTS_UNAVAILABLE"

    def test_recompute_stock_from_movements(self):
        result = self.coordinator.recompute_stock(Decimal("12"), lambda: [10, 5, -3])
        assert result.value == Decimal("12.000")
        assert not result.is_degraded

    def test_recompute_stock_degrades_when_log_unreadable(self):
        def failing_fetch():
            raise OSError("disk")

        result = self.coordinator.recompute_stock(Decimal("7"), failing_fetch)
        assert result.value == Decimal("7.000")
        assert result.warning.code == "MOVEMENTS_UNAVAILABLE"

    def test_recompute_stock_flags_negative_history(self):
        result = self.coordinator.recompute_stock(Decimal("4"), lambda: [5, -10])
        assert result.value == Decimal("4.000")
        assert result.history_total == Decimal("-5.000")
        assert result.warning.code == "NEGATIVE_REPLAY"
