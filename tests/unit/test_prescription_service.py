"""Unit tests for PrescriptionService lifecycle rules."""

from datetime import timedelta

import pytest

from pharmacy_pos.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from pharmacy_pos.services.prescription_service import PrescriptionService
from tests.factories.repository_factories import (
    NOW,
    CatalogRepositoryFactory,
    CustomerRepositoryFactory,
    PrescriptionRepositoryFactory,
    UserRepositoryFactory,
    make_customer,
    make_prescription,
    make_store,
    make_user,
)


@pytest.fixture
def repos():
    prescriptions = PrescriptionRepositoryFactory.create_mock_full()
    customers = CustomerRepositoryFactory.create_mock_full()
    customers.get_by_id.return_value = make_customer()
    users = UserRepositoryFactory.create_mock_full()
    users.get_by_id.return_value = make_user()
    stores = CatalogRepositoryFactory.create_store_mock()
    stores.get_by_id.return_value = make_store()
    drugs = CatalogRepositoryFactory.create_drug_mock()
    drugs.get_by_id.return_value = object()
    return prescriptions, customers, users, stores, drugs


@pytest.fixture
def service(repos):
    return PrescriptionService(*repos, clock=lambda: NOW)


def test_create_checks_references_and_forces_active(service, repos):
    prescriptions = repos[0]

    created = service.create_prescription(make_prescription(id=None, status="cancelled"))

    assert created.status == "active"
    prescriptions.add.assert_called_once()


def test_create_with_unknown_patient(service, repos):
    repos[1].get_by_id.return_value = None

    with pytest.raises(NotFoundError) as exc_info:
        service.create_prescription(make_prescription(id=None))
    assert "Patient" in exc_info.value.message


def test_create_with_unknown_drug(service, repos):
    repos[4].get_by_id.return_value = None

    with pytest.raises(NotFoundError):
        service.create_prescription(make_prescription(id=None))


def test_refill_uses_one_refill(service, repos):
    repos[0].get_by_id.return_value = make_prescription(refills=2)

    refilled = service.refill(1)

    assert refilled.refills == 1
    assert refilled.status == "active"


def test_last_refill_completes_prescription(service, repos):
    repos[0].get_by_id.return_value = make_prescription(refills=1)

    refilled = service.refill(1)

    assert refilled.refills == 0
    assert refilled.status == "completed"


def test_refill_without_refills_left(service, repos):
    repos[0].get_by_id.return_value = make_prescription(refills=0)

    with pytest.raises(InvalidStateError):
        service.refill(1)


def test_expired_prescription_cannot_be_refilled(service, repos):
    repos[0].get_by_id.return_value = make_prescription(
        prescribed_date=NOW - timedelta(days=40), expiry_date=NOW - timedelta(days=1)
    )

    with pytest.raises(InvalidStateError) as exc_info:
        service.refill(1)
    assert "expired" in exc_info.value.message
    repos[0].update.assert_not_called()


@pytest.mark.parametrize("status", ["completed", "cancelled"])
def test_terminal_prescriptions_are_read_only(service, repos, status):
    repos[0].get_by_id.return_value = make_prescription(status=status)

    with pytest.raises(InvalidStateError):
        service.cancel(1)
    with pytest.raises(InvalidStateError):
        service.update_prescription(1, {"notes": "x"})


def test_cancel_active_prescription(service, repos):
    repos[0].get_by_id.return_value = make_prescription()

    assert service.cancel(1).status == "cancelled"


def test_update_ignores_status_changes(service, repos):
    repos[0].get_by_id.return_value = make_prescription()

    updated = service.update_prescription(1, {"status": "completed", "notes": "Review"})

    assert updated.status == "active"
    assert updated.notes == "Review"


def test_list_expired_maps_to_active_rows_past_expiry(service, repos):
    service.list_prescriptions(status="expired", page=2, limit=5)

    repos[0].list_prescriptions.assert_called_once_with(
        patient_id=None,
        store_id=None,
        page=2,
        limit=5,
        stored_status="active",
        expired_before=NOW,
    )


def test_list_active_excludes_expired_rows(service, repos):
    service.list_prescriptions(status="active", patient_id=3)

    repos[0].list_prescriptions.assert_called_once_with(
        patient_id=3,
        store_id=None,
        page=1,
        limit=10,
        stored_status="active",
        not_expired_at=NOW,
    )


def test_list_rejects_unknown_status(service):
    with pytest.raises(ValidationError):
        service.list_prescriptions(status="lost")


def test_expiring_soon_window(service, repos):
    service.list_expiring_soon()
    repos[0].list_expiring_between.assert_called_with(NOW, NOW + timedelta(days=7))

    service.list_expiring_soon(days=3)
    repos[0].list_expiring_between.assert_called_with(NOW, NOW + timedelta(days=3))

    with pytest.raises(ValidationError):
        service.list_expiring_soon(days=0)
