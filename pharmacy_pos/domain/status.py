"""
Derived statuses for inventory rows and prescriptions.

Both values are recomputed from stored fields every time they are read and are
never persisted, so they can not go stale.
"""

from datetime import date, datetime, timezone
from typing import Optional, Union

from pharmacy_pos.core.exceptions import ValidationError
from pharmacy_pos.domain.enums import InventoryStatus, PrescriptionStatus

DEFAULT_LOW_STOCK_THRESHOLD = 10

_TERMINAL_PRESCRIPTION_STATUSES = (
    PrescriptionStatus.COMPLETED.value,
    PrescriptionStatus.CANCELLED.value,
)


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching what the database returns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Union[datetime, date]) -> datetime:
    if not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day)
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def inventory_status(
    quantity: int, low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD
) -> InventoryStatus:
    """Classify a stock level.

    ``0`` is out of stock, anything up to and including the threshold is low
    stock, everything above is in stock.

    Raises:
        ValidationError: for negative or non-integer quantities.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("Quantity must be an integer", "quantity")
    if quantity < 0:
        raise ValidationError("Quantity cannot be negative", "quantity")
    if quantity == 0:
        return InventoryStatus.OUT_OF_STOCK
    if quantity <= low_stock_threshold:
        return InventoryStatus.LOW_STOCK
    return InventoryStatus.IN_STOCK


def prescription_status(
    expiry_date: Union[datetime, date],
    current_status: str,
    now: Optional[datetime] = None,
) -> str:
    """Effective status of a prescription at ``now``.

    Completed and cancelled are terminal and returned unchanged. Any other
    status becomes ``expired`` once ``now`` is past the expiry date.
    """
    status = getattr(current_status, "value", current_status)
    if status in _TERMINAL_PRESCRIPTION_STATUSES:
        return status
    moment = as_naive_utc(now) if now is not None else utcnow()
    if moment > as_naive_utc(expiry_date):
        return PrescriptionStatus.EXPIRED.value
    return status
