"""Unit tests for sale total calculation."""

from decimal import Decimal

import pytest

from pharmacy_pos.core.exceptions import ValidationError
from pharmacy_pos.domain.pricing import (
    MAX_AMOUNT,
    MAX_UNIT_PRICE,
    compute_totals,
    to_money,
)


def test_two_units_with_ten_percent_discount():
    totals = compute_totals(2, Decimal("10.00"), 10)

    assert totals.subtotal == Decimal("20.00")
    assert totals.discount_amount == Decimal("2.00")
    assert totals.total_amount == Decimal("18.00")


def test_no_discount_by_default():
    totals = compute_totals(3, "4.50")

    assert totals.subtotal == Decimal("13.50")
    assert totals.discount_amount == Decimal("0.00")
    assert totals.total_amount == Decimal("13.50")


def test_full_discount_makes_sale_free():
    totals = compute_totals(1, "99.99", 100)

    assert totals.discount_amount == Decimal("99.99")
    assert totals.total_amount == Decimal("0.00")


def test_discount_amount_rounds_half_up_to_cents():
    # 1.05 * 50% = 0.525 -> 0.53
    totals = compute_totals(1, "1.05", 50)

    assert totals.discount_amount == Decimal("0.53")
    assert totals.total_amount == Decimal("0.52")


def test_float_price_does_not_leak_binary_error():
    totals = compute_totals(3, 0.1)

    assert totals.subtotal == Decimal("0.30")


def test_total_is_subtotal_minus_discount_across_inputs():
    for quantity in (1, 2, 7, 13):
        for price in ("0.01", "0.99", "10.00", "123.45"):
            for discount in ("0", "2.5", "12.5", "33.33", "100"):
                totals = compute_totals(quantity, price, discount)
                assert totals.total_amount == totals.subtotal - totals.discount_amount
                assert Decimal("0") <= totals.total_amount <= totals.subtotal
                assert totals.subtotal == to_money(Decimal(price) * quantity)


def test_to_dict_uses_string_amounts():
    assert compute_totals(2, "10", 10).to_dict() == {
        "subtotal": "20.00",
        "discountAmount": "2.00",
        "totalAmount": "18.00",
    }


@pytest.mark.parametrize(
    "quantity, price, discount, field",
    [
        (0, "10", 0, "quantity"),
        (-1, "10", 0, "quantity"),
        (1.5, "10", 0, "quantity"),
        (True, "10", 0, "quantity"),
        (1, "-0.01", 0, "unitPrice"),
        (1, "abc", 0, "unitPrice"),
        (1, "NaN", 0, "unitPrice"),
        (2, "1e30", 0, "unitPrice"),
        (1, "100000000.00", 0, "unitPrice"),
        (10**9, "99.99", 0, "subtotal"),
        (1, "10", -1, "discount"),
        (1, "10", "100.01", "discount"),
        (1, "10", None, "discount"),
    ],
)
def test_invalid_inputs_raise_validation_error(quantity, price, discount, field):
    with pytest.raises(ValidationError) as exc_info:
        compute_totals(quantity, price, discount)

    assert exc_info.value.field == field


def test_largest_price_fits_the_total_columns():
    totals = compute_totals(100, MAX_UNIT_PRICE, "12.5")

    assert totals.subtotal == Decimal("9999999999.00")
    assert totals.subtotal <= MAX_AMOUNT


def test_to_money_rejects_values_too_large_for_cents():
    with pytest.raises(ValidationError) as exc_info:
        to_money(Decimal("1e30"), "unitPrice")

    assert exc_info.value.field == "unitPrice"
    assert exc_info.value.status_code == 422
