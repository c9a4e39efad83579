"""Closed vocabularies shared by entities, services and request schemas."""

from enum import Enum
from typing import List


class _ValuesMixin:
    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]  # type: ignore[attr-defined]


class PaymentMethod(_ValuesMixin, str, Enum):
    CASH = "cash"
    CARD = "card"
    MOBILE_MONEY = "mobile_money"
    INSURANCE = "insurance"


class SaleStatus(_ValuesMixin, str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class InventoryStatus(_ValuesMixin, str, Enum):
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


class PrescriptionStatus(_ValuesMixin, str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


# Statuses a prescription row may hold in the database; EXPIRED is only ever derived.
STORED_PRESCRIPTION_STATUSES = (
    PrescriptionStatus.ACTIVE.value,
    PrescriptionStatus.COMPLETED.value,
    PrescriptionStatus.CANCELLED.value,
)


class UserRole(_ValuesMixin, str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    PHARMACIST = "pharmacist"
    CASHIER = "cashier"
