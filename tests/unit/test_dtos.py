"""Unit tests for request parsing and response serialisation."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from pharmacy_pos.core.exceptions import ValidationError
from pharmacy_pos.core.validation import BaseValidator, ValidationResult
from pharmacy_pos.schemas.dtos import (
    CUSTOMER_FIELDS,
    CreateSaleRequest,
    RestockRequest,
    customer_from_dict,
    customer_to_dict,
    inventory_to_dict,
    parse_fields,
    prescription_from_dict,
    prescription_to_dict,
    sale_to_dict,
    user_to_dict,
)
from tests.factories.repository_factories import (
    NOW,
    make_item,
    make_prescription,
    make_sale,
    make_user,
)

SALE_BODY = {
    "drugId": 1,
    "storeId": 2,
    "customerId": 3,
    "quantity": 2,
    "unitPrice": "10.00",
    "discount": 10,
    "paymentMethod": "cash",
}


class TestCreateSaleRequest:
    def test_camel_case_body(self):
        request = CreateSaleRequest.from_dict(SALE_BODY)

        assert request.drug_id == 1
        assert request.store_id == 2
        assert request.unit_price == Decimal("10.00")
        assert request.discount_percent == Decimal("10")
        assert request.payment_method == "cash"

    def test_snake_case_keys_are_accepted(self):
        body = {
            "drug_id": 1,
            "store_id": 2,
            "customer_id": 3,
            "quantity": 1,
            "payment_method": "card",
        }

        request = CreateSaleRequest.from_dict(body)

        assert request.unit_price is None
        assert request.discount_percent == Decimal("0")

    def test_header_key_used_when_body_has_none(self):
        request = CreateSaleRequest.from_dict(SALE_BODY, idempotency_key="hdr-1")

        assert request.idempotency_key == "hdr-1"

    def test_all_problems_reported_together(self):
        body = dict(SALE_BODY, quantity=0, discount=120, paymentMethod="barter")
        del body["drugId"]

        with pytest.raises(ValidationError) as exc_info:
            CreateSaleRequest.from_dict(body)

        message = exc_info.value.message
        assert "drugId: is required" in message
        assert "quantity" in message
        assert "discount" in message
        assert "paymentMethod" in message
        assert exc_info.value.status_code == 422

    @pytest.mark.parametrize("quantity", [1.5, True, "two", -2])
    def test_quantity_must_be_positive_integer(self, quantity):
        with pytest.raises(ValidationError):
            CreateSaleRequest.from_dict(dict(SALE_BODY, quantity=quantity))

    @pytest.mark.parametrize("price", ["1e30", "100000000", "-1"])
    def test_unit_price_must_fit_the_price_column(self, price):
        with pytest.raises(ValidationError) as exc_info:
            CreateSaleRequest.from_dict(dict(SALE_BODY, unitPrice=price))

        assert "unitPrice" in exc_info.value.message

    def test_largest_unit_price_is_accepted(self):
        request = CreateSaleRequest.from_dict(dict(SALE_BODY, unitPrice="99999999.99"))

        assert request.unit_price == Decimal("99999999.99")


def test_restock_request_optional_fields():
    request = RestockRequest.from_dict({"drugId": 1, "storeId": 1, "quantity": "12"})

    assert request.quantity == 12
    assert request.selling_price is None


def test_partial_parse_skips_missing_but_checks_present_fields():
    assert parse_fields({"city": "Accra"}, CUSTOMER_FIELDS, partial=True) == {
        "city": "Accra"
    }
    with pytest.raises(ValidationError):
        parse_fields({"name": "  "}, CUSTOMER_FIELDS, partial=True)


def test_customer_from_dict_parses_birth_date():
    customer = customer_from_dict(
        {"name": "Ama", "phone": "0241234567", "dateOfBirth": "1990-01-31", "email": None}
    )

    assert customer.date_of_birth == date(1990, 1, 31)
    assert customer.email is None


def test_prescription_from_dict_defaults_doctor_and_normalises_dates():
    prescription = prescription_from_dict(
        {
            "patientId": 1,
            "storeId": 1,
            "items": [
                {
                    "drugId": 4,
                    "dosage": "1 tab",
                    "frequency": "2x daily",
                    "duration": "7 days",
                    "quantity": 14,
                }
            ],
            "diagnosis": "Hypertension",
            "instructions": "With water",
            "prescribedDate": "2024-06-01T10:00:00Z",
            "expiryDate": "2024-07-01T12:00:00+02:00",
        },
        default_doctor_id=8,
    )

    assert prescription.doctor_id == 8
    assert prescription.refills == 0
    assert prescription.items[0].drug_id == 4
    assert prescription.expiry_date == datetime(2024, 7, 1, 10, 0)
    assert prescription.expiry_date.tzinfo is None


def test_prescription_item_errors_name_the_item():
    with pytest.raises(ValidationError) as exc_info:
        prescription_from_dict(
            {
                "patientId": 1,
                "storeId": 1,
                "items": [{"drugId": 4, "dosage": "1 tab"}],
                "diagnosis": "x",
                "instructions": "y",
                "expiryDate": "2030-01-01",
            }
        )
    assert "items[0].frequency" in exc_info.value.message


class TestSerialisers:
    def test_sale_amounts_are_strings(self):
        data = sale_to_dict(make_sale(discount=Decimal("10"), total_amount=Decimal("18.00")))

        assert data["totalAmount"] == "18.00"
        assert data["paymentMethod"] == "cash"

    def test_inventory_includes_derived_status(self):
        data = inventory_to_dict(make_item(quantity=0))

        assert data["status"] == "out_of_stock"
        assert data["needsReorder"] is True
        assert data["sellingPrice"] == "10.00"

    def test_prescription_reports_effective_status(self):
        prescription = make_prescription()

        fresh = prescription_to_dict(prescription, now=NOW)
        late = prescription_to_dict(prescription, now=datetime(2030, 1, 1))

        assert fresh["status"] == "active"
        assert fresh["daysUntilExpiry"] == 30
        assert fresh["totalDrugs"] == 15
        assert late["status"] == "expired"

    def test_customer_includes_age(self):
        data = customer_to_dict(
            customer_from_dict({"name": "Ama", "phone": "0241234567", "dateOfBirth": "2000-01-01"})
        )
        assert isinstance(data["age"], int)

    def test_user_never_exposes_password_hash(self):
        data = user_to_dict(make_user(password_hash="secret-hash"))

        assert "passwordHash" not in data
        assert "secret-hash" not in str(data)


class TestBaseValidator:
    def test_integer_rejects_fractional_float(self):
        result = ValidationResult()
        assert BaseValidator.validate_integer(2.5, "n", result) is None
        assert not result.is_valid

    def test_integer_accepts_numeric_string(self):
        result = ValidationResult()
        assert BaseValidator.validate_integer("7", "n", result, min_value=1) == 7
        assert result.is_valid

    def test_decimal_bounds(self):
        result = ValidationResult()
        BaseValidator.validate_decimal("100.5", "discount", result, max_value=Decimal("100"))
        assert result.errors == ["discount: must be <= 100"]

    def test_string_allowed_values(self):
        result = ValidationResult()
        assert BaseValidator.validate_string("card", "m", result, allowed_values=["cash"]) is None
        assert result.fields == ["m"]

    def test_email(self):
        result = ValidationResult()
        assert BaseValidator.validate_email("Ama@Example.com", "email", result) is not None
        assert BaseValidator.validate_email("nope", "email", result) is None
        assert result.fields == ["email"]

    def test_raise_if_invalid_reports_first_field(self):
        result = ValidationResult()
        result.add_error("is required", "name")
        result.add_error("is required", "phone")

        with pytest.raises(ValidationError) as exc_info:
            result.raise_if_invalid()
        assert exc_info.value.field == "name"
        assert exc_info.value.message == "name: is required; phone: is required"
