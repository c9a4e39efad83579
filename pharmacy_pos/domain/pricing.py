"""Sale totals in currency arithmetic."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Union

from pharmacy_pos.core.exceptions import ValidationError

CENT = Decimal("0.01")
HUNDRED = Decimal("100")

# Largest values the Numeric(10, 2) price and Numeric(12, 2) total columns hold
MAX_UNIT_PRICE = Decimal("99999999.99")
MAX_AMOUNT = Decimal("9999999999.99")

Number = Union[int, str, float, Decimal]


@dataclass(frozen=True)
class SaleTotals:
    subtotal: Decimal
    discount_amount: Decimal
    total_amount: Decimal

    def to_dict(self) -> Dict[str, str]:
        return {
            "subtotal": str(self.subtotal),
            "discountAmount": str(self.discount_amount),
            "totalAmount": str(self.total_amount),
        }


def to_money(value: Decimal, field: str = "amount") -> Decimal:
    """Round to cents, half up.

    Raises:
        ValidationError: if the value has too many digits to carry cents
    """
    try:
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"{field} is too large", field)


def to_decimal(value: Any, field: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number", field)
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            # str() keeps floats like 10.1 from turning into 10.0999...
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{field} must be a number", field)
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number", field)
    return result


def compute_totals(
    quantity: int, unit_price: Number, discount_percent: Number = 0
) -> SaleTotals:
    """Compute subtotal, discount amount and total for one sale line.

    Args:
        quantity: positive whole number of units
        unit_price: non-negative price per unit, at most MAX_UNIT_PRICE
        discount_percent: percentage between 0 and 100 inclusive

    Returns:
        SaleTotals where ``total_amount == subtotal - discount_amount`` and
        no amount exceeds MAX_AMOUNT

    Raises:
        ValidationError: if any argument is out of range or not numeric

    Example:
        >>> compute_totals(2, Decimal("10.00"), 10)
        SaleTotals(subtotal=Decimal('20.00'), discount_amount=Decimal('2.00'), total_amount=Decimal('18.00'))
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be an integer", "quantity")
    if quantity <= 0:
        raise ValidationError("quantity must be greater than 0", "quantity")

    price = to_decimal(unit_price, "unitPrice")
    if price < 0:
        raise ValidationError("unitPrice cannot be negative", "unitPrice")
    if price > MAX_UNIT_PRICE:
        raise ValidationError(
            f"unitPrice cannot be greater than {MAX_UNIT_PRICE}", "unitPrice"
        )

    discount = to_decimal(discount_percent, "discount")
    if discount < 0 or discount > HUNDRED:
        raise ValidationError("discount must be between 0 and 100", "discount")

    subtotal = to_money(price * quantity, "subtotal")
    if subtotal > MAX_AMOUNT:
        raise ValidationError(
            f"subtotal cannot be greater than {MAX_AMOUNT}", "subtotal"
        )
    discount_amount = to_money(subtotal * discount / HUNDRED)
    return SaleTotals(
        subtotal=subtotal,
        discount_amount=discount_amount,
        total_amount=subtotal - discount_amount,
    )
