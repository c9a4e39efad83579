"""
Request and response schemas for the HTTP boundary.

Requests arrive as camelCase JSON (snake_case keys are accepted too). Each
request schema is a table of ``FieldSpec`` rows; ``parse_fields`` walks it,
collects every problem in one ``ValidationResult`` and returns typed values
keyed by the domain attribute name. Responses are produced by the
``*_to_dict`` functions, which add the derived fields (status, age, expiry
countdown) at serialisation time.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from pharmacy_pos.core.validation import BaseValidator, ValidationResult, pick
from pharmacy_pos.domain.entities import (
    Customer,
    Drug,
    InventoryItem,
    Prescription,
    PrescriptionItem,
    Sale,
    Store,
    User,
)
from pharmacy_pos.domain.enums import PaymentMethod, SaleStatus, UserRole
from pharmacy_pos.domain.pricing import MAX_UNIT_PRICE

Parser = Callable[[Any, str, ValidationResult], Any]


@dataclass(frozen=True)
class FieldSpec:
    attr: str
    key: str
    parser: Parser
    required: bool = False


# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------


def _id(value, field, result):
    return BaseValidator.validate_integer(value, field, result, min_value=1)


def _positive_int(value, field, result):
    return BaseValidator.validate_integer(value, field, result, min_value=1)


def _non_negative_int(value, field, result):
    return BaseValidator.validate_integer(value, field, result, min_value=0)


def _int(value, field, result):
    return BaseValidator.validate_integer(value, field, result)


def _money(value, field, result):
    return BaseValidator.validate_decimal(
        value, field, result, min_value=Decimal("0"), max_value=MAX_UNIT_PRICE
    )


def _percent(value, field, result):
    return BaseValidator.validate_decimal(
        value, field, result, min_value=Decimal("0"), max_value=Decimal("100")
    )


def _text(max_length: int) -> Parser:
    def parse(value, field, result):
        return BaseValidator.validate_string(value, field, result, max_length=max_length)

    return parse


def _choice(values: List[str]) -> Parser:
    def parse(value, field, result):
        return BaseValidator.validate_string(value, field, result, allowed_values=values)

    return parse


def _bool(value, field, result):
    return BaseValidator.validate_boolean(value, field, result)


def _date(value, field, result):
    return BaseValidator.validate_date(value, field, result)


def _datetime(value, field, result):
    return BaseValidator.validate_datetime(value, field, result)


def _email(value, field, result):
    return BaseValidator.validate_email(value, field, result)


def _items(value, field, result):
    if not isinstance(value, list) or not value:
        result.add_error("must be a non-empty list", field)
        return None
    parsed = []
    for index, raw in enumerate(value):
        if not isinstance(raw, dict):
            result.add_error("must be an object", f"{field}[{index}]")
            continue
        parsed.append(
            parse_fields(raw, PRESCRIPTION_ITEM_FIELDS, result=result, prefix=f"{field}[{index}].")
        )
    return parsed


def parse_fields(
    data: Dict[str, Any],
    specs: Tuple[FieldSpec, ...],
    partial: bool = False,
    result: Optional[ValidationResult] = None,
    prefix: str = "",
) -> Dict[str, Any]:
    """Validate ``data`` against ``specs``.

    With ``partial=True`` (PUT/PATCH) missing keys are skipped, but keys that
    are present must still be valid and required ones may not be blank.

    Raises:
        ValidationError: listing every invalid field (only when this call
            owns ``result``)
    """
    owns_result = result is None
    result = result or ValidationResult()
    values: Dict[str, Any] = {}

    for spec in specs:
        field = f"{prefix}{spec.key}"
        present = spec.key in data or spec.attr in data
        if not present:
            if spec.required and not partial:
                result.add_error("is required", field)
            continue
        raw = pick(data, spec.key, spec.attr)
        if spec.required and not BaseValidator.validate_required_field(
            raw, field, result
        ):
            continue
        errors_before = len(result.errors)
        value = spec.parser(raw, field, result)
        if len(result.errors) == errors_before:
            values[spec.attr] = value

    if owns_result:
        result.raise_if_invalid()
    return values


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

SALE_FIELDS = (
    FieldSpec("drug_id", "drugId", _id, required=True),
    FieldSpec("store_id", "storeId", _id, required=True),
    FieldSpec("customer_id", "customerId", _id, required=True),
    FieldSpec("quantity", "quantity", _positive_int, required=True),
    FieldSpec("unit_price", "unitPrice", _money),
    FieldSpec("discount_percent", "discount", _percent),
    FieldSpec(
        "payment_method", "paymentMethod", _choice(PaymentMethod.values()), required=True
    ),
    FieldSpec("customer_notes", "customerNotes", _text(500)),
    FieldSpec("idempotency_key", "idempotencyKey", _text(64)),
)

SALE_ACTION_FIELDS = (FieldSpec("reason", "reason", _text(500)),)

SALE_FILTER_FIELDS = (
    FieldSpec("store_id", "storeId", _id),
    FieldSpec("customer_id", "customerId", _id),
    FieldSpec("drug_id", "drugId", _id),
    FieldSpec("status", "status", _choice(SaleStatus.values())),
    FieldSpec("payment_method", "paymentMethod", _choice(PaymentMethod.values())),
    FieldSpec("start_date", "startDate", _datetime),
    FieldSpec("end_date", "endDate", _datetime),
)

RESTOCK_FIELDS = (
    FieldSpec("drug_id", "drugId", _id, required=True),
    FieldSpec("store_id", "storeId", _id, required=True),
    FieldSpec("quantity", "quantity", _positive_int, required=True),
    FieldSpec("selling_price", "sellingPrice", _money),
    FieldSpec("reorder_point", "reorderPoint", _non_negative_int),
    FieldSpec("notes", "notes", _text(500)),
)

INVENTORY_UPDATE_FIELDS = (
    FieldSpec("selling_price", "sellingPrice", _money),
    FieldSpec("reorder_point", "reorderPoint", _non_negative_int),
    FieldSpec("notes", "notes", _text(500)),
)

QUANTITY_ADJUST_FIELDS = (FieldSpec("delta", "delta", _int, required=True),)

DRUG_FIELDS = (
    FieldSpec("name", "name", _text(100), required=True),
    FieldSpec("generic_name", "genericName", _text(100), required=True),
    FieldSpec("category", "category", _text(50), required=True),
    FieldSpec("strength", "strength", _text(50), required=True),
    FieldSpec("dosage_form", "dosageForm", _text(50), required=True),
    FieldSpec("brand_name", "brandName", _text(100)),
    FieldSpec("manufacturer", "manufacturer", _text(100)),
    FieldSpec("description", "description", _text(1000)),
    FieldSpec("prescription_required", "prescriptionRequired", _bool),
    FieldSpec("is_controlled", "isControlled", _bool),
    FieldSpec("is_active", "isActive", _bool),
)

STORE_FIELDS = (
    FieldSpec("name", "name", _text(100), required=True),
    FieldSpec("location", "location", _text(100), required=True),
    FieldSpec("address", "address", _text(255)),
    FieldSpec("city", "city", _text(100)),
    FieldSpec("phone", "phone", _text(20)),
    FieldSpec("email", "email", _email),
    FieldSpec("is_active", "isActive", _bool),
)

CUSTOMER_FIELDS = (
    FieldSpec("name", "name", _text(100), required=True),
    FieldSpec("phone", "phone", _text(20), required=True),
    FieldSpec("email", "email", _email),
    FieldSpec("address", "address", _text(255)),
    FieldSpec("city", "city", _text(100)),
    FieldSpec("date_of_birth", "dateOfBirth", _date),
)

PRESCRIPTION_ITEM_FIELDS = (
    FieldSpec("drug_id", "drugId", _id, required=True),
    FieldSpec("dosage", "dosage", _text(100), required=True),
    FieldSpec("frequency", "frequency", _text(100), required=True),
    FieldSpec("duration", "duration", _text(100), required=True),
    FieldSpec("quantity", "quantity", _positive_int, required=True),
    FieldSpec("instructions", "instructions", _text(500)),
)

PRESCRIPTION_FIELDS = (
    FieldSpec("patient_id", "patientId", _id, required=True),
    FieldSpec("doctor_id", "doctorId", _id),
    FieldSpec("store_id", "storeId", _id, required=True),
    FieldSpec("items", "items", _items, required=True),
    FieldSpec("diagnosis", "diagnosis", _text(1000), required=True),
    FieldSpec("instructions", "instructions", _text(1000), required=True),
    FieldSpec("prescribed_date", "prescribedDate", _datetime),
    FieldSpec("expiry_date", "expiryDate", _datetime, required=True),
    FieldSpec("refills", "refills", _non_negative_int),
    FieldSpec("notes", "notes", _text(1000)),
)

USER_FIELDS = (
    FieldSpec("email", "email", _email, required=True),
    FieldSpec("name", "name", _text(100), required=True),
    FieldSpec("password", "password", _text(128), required=True),
    FieldSpec("role", "role", _choice(UserRole.values())),
)

USER_UPDATE_FIELDS = USER_FIELDS + (FieldSpec("is_active", "isActive", _bool),)

LOGIN_FIELDS = (
    FieldSpec("email", "email", _text(120), required=True),
    FieldSpec("password", "password", _text(128), required=True),
)


@dataclass
class CreateSaleRequest:
    drug_id: int
    store_id: int
    customer_id: int
    quantity: int
    payment_method: str
    unit_price: Optional[Decimal] = None
    discount_percent: Decimal = Decimal("0")
    customer_notes: Optional[str] = None
    idempotency_key: Optional[str] = None

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], idempotency_key: Optional[str] = None
    ) -> "CreateSaleRequest":
        values = parse_fields(data, SALE_FIELDS)
        if values.get("discount_percent") is None:
            values.pop("discount_percent", None)
        if idempotency_key and not values.get("idempotency_key"):
            values["idempotency_key"] = idempotency_key[:64]
        return cls(**values)


@dataclass
class RestockRequest:
    drug_id: int
    store_id: int
    quantity: int
    selling_price: Optional[Decimal] = None
    reorder_point: Optional[int] = None
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RestockRequest":
        return cls(**parse_fields(data, RESTOCK_FIELDS))


@dataclass
class LoginRequest:
    email: str
    password: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoginRequest":
        return cls(**parse_fields(data, LOGIN_FIELDS))


def _present(values: Dict[str, Any]) -> Dict[str, Any]:
    """Drop explicit nulls so entity defaults apply on create."""
    return {k: v for k, v in values.items() if v is not None}


def drug_from_dict(data: Dict[str, Any]) -> Drug:
    return Drug(**_present(parse_fields(data, DRUG_FIELDS)))


def store_from_dict(data: Dict[str, Any]) -> Store:
    return Store(**_present(parse_fields(data, STORE_FIELDS)))


def customer_from_dict(data: Dict[str, Any]) -> Customer:
    return Customer(**_present(parse_fields(data, CUSTOMER_FIELDS)))


def _build_items(values: Dict[str, Any]) -> Dict[str, Any]:
    if "items" in values:
        values["items"] = [PrescriptionItem(**item) for item in values["items"]]
    return values


def prescription_from_dict(
    data: Dict[str, Any], default_doctor_id: Optional[int] = None
) -> Prescription:
    values = _build_items(parse_fields(data, PRESCRIPTION_FIELDS))
    if values.get("doctor_id") is None:
        values["doctor_id"] = default_doctor_id or 0
    if values.get("refills") is None:
        values.pop("refills", None)
    return Prescription(**values)


def prescription_changes(data: Dict[str, Any]) -> Dict[str, Any]:
    return _build_items(parse_fields(data, PRESCRIPTION_FIELDS, partial=True))


# ---------------------------------------------------------------------------
# Response serialisers
# ---------------------------------------------------------------------------


def _iso(value: Optional[Any]) -> Optional[str]:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return None


def _money_str(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


def sale_to_dict(sale: Sale) -> Dict[str, Any]:
    return {
        "id": sale.id,
        "drugId": sale.drug_id,
        "storeId": sale.store_id,
        "customerId": sale.customer_id,
        "cashierId": sale.cashier_id,
        "quantity": sale.quantity,
        "unitPrice": _money_str(sale.unit_price),
        "discount": _money_str(sale.discount),
        "subtotal": _money_str(sale.subtotal),
        "discountAmount": _money_str(sale.discount_amount),
        "totalAmount": _money_str(sale.total_amount),
        "paymentMethod": sale.payment_method,
        "status": sale.status,
        "customerNotes": sale.customer_notes,
        "refundReason": sale.refund_reason,
        "idempotencyKey": sale.idempotency_key,
        "updatedBy": sale.updated_by,
        "createdAt": _iso(sale.created_at),
        "updatedAt": _iso(sale.updated_at),
    }


def inventory_to_dict(item: InventoryItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "drugId": item.drug_id,
        "storeId": item.store_id,
        "quantity": item.quantity,
        "sellingPrice": _money_str(item.selling_price),
        "reorderPoint": item.reorder_point,
        "status": item.status.value,
        "needsReorder": item.needs_reorder,
        "notes": item.notes,
        "version": item.version,
        "lastRestocked": _iso(item.last_restocked),
        "updatedAt": _iso(item.updated_at),
    }


def drug_to_dict(drug: Drug) -> Dict[str, Any]:
    return {
        "id": drug.id,
        "name": drug.name,
        "genericName": drug.generic_name,
        "brandName": drug.brand_name,
        "manufacturer": drug.manufacturer,
        "category": drug.category,
        "strength": drug.strength,
        "dosageForm": drug.dosage_form,
        "description": drug.description,
        "prescriptionRequired": drug.prescription_required,
        "isControlled": drug.is_controlled,
        "isActive": drug.is_active,
        "fullName": drug.full_name,
        "createdAt": _iso(drug.created_at),
        "updatedAt": _iso(drug.updated_at),
    }


def store_to_dict(store: Store) -> Dict[str, Any]:
    return {
        "id": store.id,
        "name": store.name,
        "location": store.location,
        "address": store.address,
        "city": store.city,
        "phone": store.phone,
        "email": store.email,
        "isActive": store.is_active,
        "createdAt": _iso(store.created_at),
        "updatedAt": _iso(store.updated_at),
    }


def customer_to_dict(customer: Customer) -> Dict[str, Any]:
    return {
        "id": customer.id,
        "name": customer.name,
        "phone": customer.phone,
        "email": customer.email,
        "address": customer.address,
        "city": customer.city,
        "dateOfBirth": _iso(customer.date_of_birth),
        "age": customer.age(),
        "fullAddress": customer.full_address,
        "isActive": customer.is_active,
        "createdAt": _iso(customer.created_at),
        "updatedAt": _iso(customer.updated_at),
    }


def prescription_to_dict(
    prescription: Prescription, now: Optional[datetime] = None
) -> Dict[str, Any]:
    return {
        "id": prescription.id,
        "patientId": prescription.patient_id,
        "doctorId": prescription.doctor_id,
        "storeId": prescription.store_id,
        "items": [
            {
                "drugId": item.drug_id,
                "dosage": item.dosage,
                "frequency": item.frequency,
                "duration": item.duration,
                "quantity": item.quantity,
                "instructions": item.instructions,
            }
            for item in prescription.items
        ],
        "diagnosis": prescription.diagnosis,
        "instructions": prescription.instructions,
        "prescribedDate": _iso(prescription.prescribed_date),
        "expiryDate": _iso(prescription.expiry_date),
        "refills": prescription.refills,
        "status": prescription.effective_status(now),
        "daysUntilExpiry": prescription.days_until_expiry(now),
        "isExpiringSoon": prescription.is_expiring_soon(now),
        "totalDrugs": prescription.total_drugs,
        "notes": prescription.notes,
        "createdAt": _iso(prescription.created_at),
        "updatedAt": _iso(prescription.updated_at),
    }


def user_to_dict(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "isActive": user.is_active,
        "createdAt": _iso(user.created_at),
    }
