"""Unit tests for CustomerService with a mocked repository."""

import pytest

from pharmacy_pos.core.exceptions import DuplicateError, NotFoundError, ValidationError
from pharmacy_pos.domain.entities import Customer
from pharmacy_pos.services.customer_service import CustomerService
from tests.factories.repository_factories import CustomerRepositoryFactory, make_customer


@pytest.fixture
def repo():
    return CustomerRepositoryFactory.create_mock_full()


@pytest.fixture
def service(repo):
    return CustomerService(repo)


@pytest.mark.parametrize("phone", ["0241234567", "+233241234567"])
def test_create_accepts_regional_numbers(service, repo, phone):
    created = service.create_customer(Customer(name="Kofi", phone=phone))

    assert created.id == 1
    repo.add.assert_called_once()


@pytest.mark.parametrize("phone", ["12345", "024123456", "+44241234567", "02412345678"])
def test_create_rejects_malformed_phone(service, repo, phone):
    with pytest.raises(ValidationError) as exc_info:
        service.create_customer(Customer(name="Kofi", phone=phone))

    assert exc_info.value.field == "phone"
    repo.add.assert_not_called()


def test_create_rejects_taken_phone(service, repo):
    repo.get_by_phone.return_value = make_customer(id=9)

    with pytest.raises(DuplicateError) as exc_info:
        service.create_customer(Customer(name="Kofi", phone="0241234567"))

    assert exc_info.value.status_code == 409


def test_custom_phone_pattern(repo):
    service = CustomerService(repo, phone_pattern=r"^\+44\d{10}$")

    assert service.create_customer(Customer(name="Jo", phone="+447700900123")).id == 1


def test_update_keeping_own_phone_skips_duplicate_check(service, repo):
    repo.get_by_id.return_value = make_customer(id=3)

    updated = service.update_customer(3, {"phone": "0241234567", "city": "Tema"})

    assert updated.city == "Tema"
    repo.get_by_phone.assert_not_called()


def test_update_to_phone_of_another_customer_fails(service, repo):
    repo.get_by_id.return_value = make_customer(id=3)
    repo.get_by_phone.return_value = make_customer(id=4, phone="0201111111")

    with pytest.raises(DuplicateError):
        service.update_customer(3, {"phone": "0201111111"})


def test_get_missing_customer(service):
    with pytest.raises(NotFoundError):
        service.get_customer(5)


def test_deactivate_and_reactivate(service, repo):
    repo.get_by_id.return_value = make_customer(id=3)
    assert service.deactivate_customer(3).is_active is False

    repo.get_by_id.return_value = make_customer(id=3, is_active=False)
    assert service.reactivate_customer(3).is_active is True


def test_search_requires_query(service):
    with pytest.raises(ValidationError):
        service.search_customers("   ")


def test_search_only_returns_active_customers(service, repo):
    repo.list_customers.return_value = ([make_customer()], 1)

    result = service.search_customers(" ama ", limit=5)

    assert len(result) == 1
    repo.list_customers.assert_called_once_with(
        search="ama", active=True, page=1, limit=5
    )
