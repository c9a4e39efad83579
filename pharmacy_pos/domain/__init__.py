"""Pure business types and rules, free of Flask and SQLAlchemy."""

from .entities import (
    Customer,
    Drug,
    InventoryItem,
    Prescription,
    PrescriptionItem,
    Sale,
    Store,
    User,
)
from .enums import (
    InventoryStatus,
    PaymentMethod,
    PrescriptionStatus,
    SaleStatus,
    UserRole,
)
from .pricing import SaleTotals, compute_totals
from .status import inventory_status, prescription_status

__all__ = [
    "Customer",
    "Drug",
    "InventoryItem",
    "Prescription",
    "PrescriptionItem",
    "Sale",
    "Store",
    "User",
    "InventoryStatus",
    "PaymentMethod",
    "PrescriptionStatus",
    "SaleStatus",
    "UserRole",
    "SaleTotals",
    "compute_totals",
    "inventory_status",
    "prescription_status",
]
