"""
Domain entities - Pure business logic, no framework dependencies.

Entities validate their own invariants in ``__post_init__`` and expose derived
values (status, age, full address) as properties or methods that are
recomputed on every read.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from pharmacy_pos.core.exceptions import ValidationError
from pharmacy_pos.domain.enums import (
    STORED_PRESCRIPTION_STATUSES,
    InventoryStatus,
    PaymentMethod,
    PrescriptionStatus,
    SaleStatus,
    UserRole,
)
from pharmacy_pos.domain.status import (
    DEFAULT_LOW_STOCK_THRESHOLD,
    as_naive_utc,
    inventory_status,
    prescription_status,
    utcnow,
)

EXPIRING_SOON_DAYS = 7


@dataclass
class User:
    """Staff member who can log in. Customers are not users."""

    id: Optional[int] = None
    email: str = ""
    name: str = ""
    role: str = UserRole.CASHIER.value
    is_active: bool = True
    password_hash: Optional[str] = field(default=None, repr=False)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        """Validate domain rules."""
        if not self.name:
            raise ValidationError("Name is required", "name")
        if not self.email or "@" not in self.email:
            raise ValidationError("Invalid email format", "email")
        if self.role not in UserRole.values():
            raise ValidationError(f"Unknown role '{self.role}'", "role")


@dataclass
class Drug:
    """Reference data describing one product."""

    id: Optional[int] = None
    name: str = ""
    generic_name: str = ""
    category: str = ""
    strength: str = ""
    dosage_form: str = ""
    brand_name: Optional[str] = None
    manufacturer: Optional[str] = None
    description: Optional[str] = None
    prescription_required: bool = False
    is_controlled: bool = False
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        for attr, label in (
            ("name", "name"),
            ("generic_name", "genericName"),
            ("category", "category"),
            ("strength", "strength"),
            ("dosage_form", "dosageForm"),
        ):
            if not getattr(self, attr):
                raise ValidationError(f"{label} is required", label)
        if self.is_controlled and not self.prescription_required:
            raise ValidationError(
                "Controlled drugs must require a prescription", "prescriptionRequired"
            )

    @property
    def full_name(self) -> str:
        brand = f" ({self.brand_name})" if self.brand_name else ""
        return f"{self.name}{brand} - {self.strength} {self.dosage_form}"


@dataclass
class Store:
    id: Optional[int] = None
    name: str = ""
    location: str = ""
    address: Optional[str] = None
    city: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.name:
            raise ValidationError("name is required", "name")
        if not self.location:
            raise ValidationError("location is required", "location")


@dataclass
class InventoryItem:
    """Stock of one drug at one store.

    ``version`` is bumped on every quantity change.
    """

    id: Optional[int] = None
    drug_id: int = 0
    store_id: int = 0
    quantity: int = 0
    selling_price: Decimal = Decimal("0.00")
    reorder_point: int = DEFAULT_LOW_STOCK_THRESHOLD
    notes: Optional[str] = None
    version: int = 0
    last_restocked: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.drug_id <= 0:
            raise ValidationError("Valid drugId is required", "drugId")
        if self.store_id <= 0:
            raise ValidationError("Valid storeId is required", "storeId")
        if self.quantity < 0:
            raise ValidationError("Quantity cannot be negative", "quantity")
        if self.selling_price < 0:
            raise ValidationError("Selling price cannot be negative", "sellingPrice")
        if self.reorder_point < 0:
            raise ValidationError("Reorder point cannot be negative", "reorderPoint")

    @property
    def status(self) -> InventoryStatus:
        return inventory_status(self.quantity, self.reorder_point)

    @property
    def needs_reorder(self) -> bool:
        return self.status != InventoryStatus.IN_STOCK


@dataclass
class Customer:
    id: Optional[int] = None
    name: str = ""
    phone: str = ""
    email: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    date_of_birth: Optional[date] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.name:
            raise ValidationError("name is required", "name")
        if not self.phone:
            raise ValidationError("phone is required", "phone")
        if self.date_of_birth and self.date_of_birth > date.today():
            raise ValidationError(
                "Date of birth cannot be in the future", "dateOfBirth"
            )

    def age(self, today: Optional[date] = None) -> Optional[int]:
        """Whole years since birth, or None when the birth date is unknown."""
        if not self.date_of_birth:
            return None
        today = today or date.today()
        dob = self.date_of_birth
        years = today.year - dob.year
        if (today.month, today.day) < (dob.month, dob.day):
            years -= 1
        return years

    @property
    def full_address(self) -> Optional[str]:
        parts = [p for p in (self.address, self.city) if p]
        return ", ".join(parts) if parts else None


@dataclass
class Sale:
    """A completed (or later refunded/cancelled) sale of one drug line."""

    id: Optional[int] = None
    drug_id: int = 0
    store_id: int = 0
    customer_id: int = 0
    cashier_id: int = 0
    quantity: int = 0
    unit_price: Decimal = Decimal("0.00")
    discount: Decimal = Decimal("0")
    subtotal: Decimal = Decimal("0.00")
    discount_amount: Decimal = Decimal("0.00")
    total_amount: Decimal = Decimal("0.00")
    payment_method: str = PaymentMethod.CASH.value
    status: str = SaleStatus.COMPLETED.value
    customer_notes: Optional[str] = None
    refund_reason: Optional[str] = None
    idempotency_key: Optional[str] = None
    updated_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValidationError("quantity must be greater than 0", "quantity")
        if self.discount < 0 or self.discount > 100:
            raise ValidationError("discount must be between 0 and 100", "discount")
        if self.payment_method not in PaymentMethod.values():
            raise ValidationError(
                f"Unknown payment method '{self.payment_method}'", "paymentMethod"
            )
        if self.status not in SaleStatus.values():
            raise ValidationError(f"Unknown sale status '{self.status}'", "status")


@dataclass
class PrescriptionItem:
    drug_id: int = 0
    dosage: str = ""
    frequency: str = ""
    duration: str = ""
    quantity: int = 1
    instructions: Optional[str] = None
    id: Optional[int] = None

    def __post_init__(self):
        if self.drug_id <= 0:
            raise ValidationError("Valid drugId is required", "items.drugId")
        for attr in ("dosage", "frequency", "duration"):
            if not getattr(self, attr):
                raise ValidationError(f"{attr} is required", f"items.{attr}")
        if self.quantity < 1:
            raise ValidationError("quantity must be at least 1", "items.quantity")


@dataclass
class Prescription:
    """A doctor's prescription. ``status`` holds the stored value only.

    Use ``effective_status`` for what clients should see: it reports
    ``expired`` once the expiry date has passed.
    """

    id: Optional[int] = None
    patient_id: int = 0
    doctor_id: int = 0
    store_id: int = 0
    items: List[PrescriptionItem] = field(default_factory=list)
    diagnosis: str = ""
    instructions: str = ""
    prescribed_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    refills: int = 0
    status: str = PrescriptionStatus.ACTIVE.value
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.items:
            raise ValidationError("At least one drug is required", "items")
        if not self.diagnosis:
            raise ValidationError("diagnosis is required", "diagnosis")
        if not self.instructions:
            raise ValidationError("instructions is required", "instructions")
        if self.expiry_date is None:
            raise ValidationError("expiryDate is required", "expiryDate")
        if self.prescribed_date is None:
            self.prescribed_date = utcnow()
        if as_naive_utc(self.expiry_date) <= as_naive_utc(self.prescribed_date):
            raise ValidationError(
                "Expiry date must be after prescribed date", "expiryDate"
            )
        if self.refills < 0:
            raise ValidationError("refills cannot be negative", "refills")
        if self.status not in STORED_PRESCRIPTION_STATUSES:
            raise ValidationError(f"Invalid stored status '{self.status}'", "status")

    def effective_status(self, now: Optional[datetime] = None) -> str:
        return prescription_status(self.expiry_date, self.status, now)

    def days_until_expiry(self, now: Optional[datetime] = None) -> int:
        moment = as_naive_utc(now) if now is not None else utcnow()
        seconds = (as_naive_utc(self.expiry_date) - moment).total_seconds()
        # Partial days round up
        return math.ceil(seconds / 86400)

    def is_expiring_soon(
        self, now: Optional[datetime] = None, days: int = EXPIRING_SOON_DAYS
    ) -> bool:
        moment = as_naive_utc(now) if now is not None else utcnow()
        expiry = as_naive_utc(self.expiry_date)
        return moment < expiry <= moment + timedelta(days=days)

    @property
    def total_drugs(self) -> int:
        return sum(item.quantity for item in self.items)
