"""Unit tests for domain entity invariants and derived values."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from pharmacy_pos.core.exceptions import ValidationError
from pharmacy_pos.domain.entities import Customer, Drug, PrescriptionItem, Sale, Store
from pharmacy_pos.domain.enums import InventoryStatus
from pharmacy_pos.domain.status import utcnow
from tests.factories.repository_factories import NOW, make_item, make_prescription


class TestDrug:
    def _drug(self, **overrides):
        values = dict(
            name="Amoxicillin",
            generic_name="Amoxicillin",
            category="Antibiotic",
            strength="250mg",
            dosage_form="Capsule",
        )
        values.update(overrides)
        return Drug(**values)

    def test_full_name_includes_brand_when_present(self):
        assert self._drug().full_name == "Amoxicillin - 250mg Capsule"
        assert (
            self._drug(brand_name="Amoxil").full_name
            == "Amoxicillin (Amoxil) - 250mg Capsule"
        )

    def test_required_fields(self):
        with pytest.raises(ValidationError) as exc_info:
            self._drug(generic_name="")
        assert exc_info.value.field == "genericName"

    def test_controlled_drug_must_require_prescription(self):
        with pytest.raises(ValidationError):
            self._drug(is_controlled=True)
        assert self._drug(is_controlled=True, prescription_required=True).is_controlled


def test_store_requires_name_and_location():
    with pytest.raises(ValidationError):
        Store(name="Osu Branch")
    assert Store(name="Osu Branch", location="Osu").is_active


class TestInventoryItem:
    def test_status_uses_reorder_point(self):
        assert make_item(quantity=0).status == InventoryStatus.OUT_OF_STOCK
        assert make_item(quantity=10).status == InventoryStatus.LOW_STOCK
        assert make_item(quantity=11).status == InventoryStatus.IN_STOCK
        assert make_item(quantity=11, reorder_point=20).status == InventoryStatus.LOW_STOCK

    def test_needs_reorder_follows_status(self):
        assert make_item(quantity=3).needs_reorder
        assert not make_item(quantity=50).needs_reorder

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValidationError):
            make_item(quantity=-1)

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            make_item(selling_price=Decimal("-1"))


class TestCustomer:
    def test_age_counts_whole_years(self):
        customer = Customer(name="Kofi", phone="0241234567", date_of_birth=date(1990, 6, 15))

        assert customer.age(today=date(2024, 6, 14)) == 33
        assert customer.age(today=date(2024, 6, 15)) == 34

    def test_age_unknown_without_birth_date(self):
        assert Customer(name="Kofi", phone="0241234567").age() is None

    def test_future_birth_date_rejected(self):
        with pytest.raises(ValidationError):
            Customer(
                name="Kofi",
                phone="0241234567",
                date_of_birth=date.today() + timedelta(days=1),
            )

    def test_full_address(self):
        assert Customer(name="A", phone="1").full_address is None
        assert (
            Customer(name="A", phone="1", address="12 Ring Rd", city="Accra").full_address
            == "12 Ring Rd, Accra"
        )


class TestSale:
    def test_rejects_unknown_payment_method(self):
        with pytest.raises(ValidationError):
            Sale(quantity=1, payment_method="cheque")

    def test_rejects_out_of_range_discount(self):
        with pytest.raises(ValidationError):
            Sale(quantity=1, discount=Decimal("101"))

    def test_rejects_zero_quantity(self):
        with pytest.raises(ValidationError):
            Sale(quantity=0)


class TestPrescription:
    def test_requires_items(self):
        with pytest.raises(ValidationError) as exc_info:
            make_prescription(items=[])
        assert exc_info.value.field == "items"

    def test_expiry_must_follow_prescribed_date(self):
        with pytest.raises(ValidationError):
            make_prescription(prescribed_date=NOW, expiry_date=NOW)

    def test_expired_is_not_a_stored_status(self):
        with pytest.raises(ValidationError):
            make_prescription(status="expired")

    def test_prescribed_date_defaults_to_now(self):
        prescription = make_prescription(
            prescribed_date=None, expiry_date=utcnow() + timedelta(days=3)
        )
        assert prescription.prescribed_date is not None

    def test_effective_status_and_countdown(self):
        prescription = make_prescription(expiry_date=NOW + timedelta(days=2, hours=1))

        assert prescription.effective_status(NOW) == "active"
        assert prescription.days_until_expiry(NOW) == 3
        assert prescription.is_expiring_soon(NOW)
        assert prescription.effective_status(NOW + timedelta(days=3)) == "expired"
        assert not prescription.is_expiring_soon(NOW + timedelta(days=3))

    def test_not_expiring_soon_outside_window(self):
        prescription = make_prescription(expiry_date=NOW + timedelta(days=8))

        assert not prescription.is_expiring_soon(NOW)
        assert prescription.is_expiring_soon(NOW, days=8)

    def test_total_drugs_sums_item_quantities(self):
        prescription = make_prescription()
        prescription.items.append(
            PrescriptionItem(
                drug_id=2, dosage="1 tab", frequency="daily", duration="10 days", quantity=10
            )
        )
        assert prescription.total_drugs == 25

    def test_refills_cannot_be_negative(self):
        with pytest.raises(ValidationError):
            make_prescription(refills=-1)
