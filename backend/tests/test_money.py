# Overview: Pytest coverage for money and quantity parsing bounds.

from decimal import Decimal

import pytest
from salepilot.errors import InvalidAmountError
from salepilot.money import MAX_MONEY, MAX_QUANTITY, money, quantity


class TestMoney:

    def test_rounds_half_up_to_cents(self):
        assert money("2.345") == Decimal("2.35")
        assert money(0.1) == Decimal("0.10")

    def test_maximum_is_accepted(self):
        assert money("9999999999.99") == MAX_MONEY

    def test_just_above_maximum_rejected(self):
        with pytest.raises(InvalidAmountError):
            money("10000000000.00")

    @pytest.mark.parametrize("value", ["1e30", Decimal("1e30"), 1e30, "-1e30"])
    def test_huge_values_raise_invalid_amount(self, value):
        with pytest.raises(InvalidAmountError) as exc:
            money(value, "tax", allow_negative=True)
        assert "tax" in exc.value.message


class TestQuantity:

    def test_rounds_to_three_places(self):
        assert quantity("1.0005") == Decimal("1.001")

    def test_maximum_is_accepted(self):
        assert quantity("999999999.999") == MAX_QUANTITY

    def test_just_above_maximum_rejected(self):
        with pytest.raises(InvalidAmountError):
            quantity("1000000000")

    @pytest.mark.parametrize("value", ["1e30", 1e30])
    def test_huge_values_raise_invalid_amount(self, value):
        with pytest.raises(InvalidAmountError):
            quantity(value)

    def test_zero_only_with_allow_zero(self):
        assert quantity("0", allow_zero=True) == 0
        with pytest.raises(InvalidAmountError):
            quantity("0")
