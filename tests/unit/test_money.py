"""
Unit tests for monetary computation.
"""

from decimal import Decimal, InvalidOperation
from types import SimpleNamespace

import pytest

from expense_claims.services.money import (
    MAX_SGD_AMOUNT,
    compute_claim_total,
    compute_forex_rate,
    compute_sgd_amount,
    to_decimal,
)
from expense_claims.utils.errors import ValidationError


@pytest.mark.unit
class TestToDecimal:
    def test_float_goes_through_string_form(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_string_is_stripped(self):
        assert to_decimal(" 12.50 ") == Decimal("12.50")

    def test_bool_rejected(self):
        with pytest.raises(TypeError):
            to_decimal(True)

    def test_malformed_string_rejected(self):
        with pytest.raises(InvalidOperation):
            to_decimal("12,50")


@pytest.mark.unit
class TestComputeSgdAmount:
    def test_rounds_half_up_to_cents(self):
        assert compute_sgd_amount(Decimal("10.00"), Decimal("0.0125")) == Decimal("0.13")
        assert compute_sgd_amount(Decimal("1.00"), Decimal("0.005")) == Decimal("0.01")

    def test_foreign_currency(self):
        assert compute_sgd_amount(Decimal("1000.00"), Decimal("0.0270")) == Decimal("27.00")

    def test_zero_amount_or_rate(self):
        assert compute_sgd_amount(Decimal("0"), Decimal("1.34")) == Decimal("0.00")
        assert compute_sgd_amount(Decimal("50.00"), Decimal("0")) == Decimal("0.00")

    def test_non_finite_inputs(self):
        assert compute_sgd_amount(Decimal("NaN"), Decimal("1")) == Decimal("0.00")
        assert compute_sgd_amount(Decimal("10"), Decimal("Infinity")) == Decimal("0.00")

    def test_result_has_two_places(self):
        assert compute_sgd_amount(Decimal("25"), Decimal("1")).as_tuple().exponent == -2

    def test_largest_storable_value(self):
        assert compute_sgd_amount(MAX_SGD_AMOUNT, Decimal("1")) == MAX_SGD_AMOUNT

    def test_oversized_result_rejected(self):
        with pytest.raises(ValidationError):
            compute_sgd_amount(Decimal("99999999999.99"), Decimal("1"))

    def test_beyond_decimal_precision_rejected(self):
        with pytest.raises(ValidationError):
            compute_sgd_amount("1e30", "1")


@pytest.mark.unit
class TestComputeForexRate:
    def test_four_places(self):
        assert compute_forex_rate(Decimal("13.40"), Decimal("10.00")) == Decimal("1.3400")
        assert compute_forex_rate(Decimal("1.00"), Decimal("3.00")) == Decimal("0.3333")

    def test_zero_amount(self):
        assert compute_forex_rate(Decimal("10.00"), Decimal("0")) == Decimal("0.0000")

    def test_unusable_sgd_amount(self):
        assert compute_forex_rate("abc", Decimal("10")) == Decimal("0.0000")


@pytest.mark.unit
class TestComputeClaimTotal:
    def test_exact_sum_over_many_items(self):
        items = [{"sgd_amount": Decimal("0.10")} for _ in range(1000)]
        assert compute_claim_total(items) == Decimal("100.00")

    def test_attribute_access(self):
        items = [SimpleNamespace(sgd_amount=Decimal("25.00")), SimpleNamespace(sgd_amount=Decimal("4.35"))]
        assert compute_claim_total(items) == Decimal("29.35")

    def test_empty(self):
        assert compute_claim_total([]) == Decimal("0.00")

    def test_total_must_fit(self):
        items = [{"sgd_amount": MAX_SGD_AMOUNT}, {"sgd_amount": Decimal("0.01")}]
        with pytest.raises(ValidationError):
            compute_claim_total(items)
