"""
InventoryService tests.

Reads and stock changes run against SQLite through the real repositories so
the atomic UPDATE statements are exercised; reference checks use mocks.
"""

from decimal import Decimal

import pytest

from pharmacy_pos.core.exceptions import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from pharmacy_pos.domain.entities import Store
from pharmacy_pos.domain.enums import InventoryStatus
from pharmacy_pos.repositories.catalog_repo import DrugRepository, StoreRepository
from pharmacy_pos.repositories.inventory_repository import InventoryRepository
from pharmacy_pos.services.inventory_service import InventoryService
from tests.factories.repository_factories import (
    CatalogRepositoryFactory,
    InventoryRepositoryFactory,
)


@pytest.fixture
def service(db_session, pos_data):
    return InventoryService(
        InventoryRepository(db_session),
        DrugRepository(db_session),
        StoreRepository(db_session),
        low_stock_threshold=10,
    )


def test_get_by_drug_and_store(service, pos_data):
    item = service.get_by_drug_and_store(pos_data.drug_id, pos_data.store_id)

    assert item.quantity == 5
    assert item.selling_price == Decimal("10.00")
    assert item.status == InventoryStatus.LOW_STOCK


def test_get_by_drug_and_store_missing(service, pos_data):
    with pytest.raises(NotFoundError):
        service.get_by_drug_and_store(pos_data.drug_id, 999)


def test_restock_existing_row_increments_and_bumps_version(service, pos_data):
    item = service.restock(pos_data.drug_id, pos_data.store_id, 20)

    assert item.quantity == 25
    assert item.version == 1
    assert item.last_restocked is not None
    assert item.status == InventoryStatus.IN_STOCK


def test_restock_can_reprice(service, pos_data):
    item = service.restock(
        pos_data.drug_id, pos_data.store_id, 1, selling_price=Decimal("12.50")
    )

    assert item.quantity == 6
    assert item.selling_price == Decimal("12.50")


def test_restock_new_store_creates_row_with_default_reorder_point(
    service, db_session, pos_data
):
    store = StoreRepository(db_session).add(Store(name="Osu Branch", location="Osu"))

    item = service.restock(
        pos_data.drug_id, store.id, 8, selling_price=Decimal("11.00")
    )

    assert item.id is not None
    assert item.quantity == 8
    assert item.reorder_point == 10
    assert item.version == 0


def test_restock_new_row_requires_price(service, db_session, pos_data):
    store = StoreRepository(db_session).add(Store(name="Osu Branch", location="Osu"))

    with pytest.raises(ValidationError) as exc_info:
        service.restock(pos_data.drug_id, store.id, 8)
    assert exc_info.value.field == "sellingPrice"


def test_restock_rejects_non_positive_quantity(service, pos_data):
    with pytest.raises(ValidationError):
        service.restock(pos_data.drug_id, pos_data.store_id, 0)


def test_adjust_quantity_down_and_up(service, pos_data):
    assert service.adjust_quantity(pos_data.item_id, -5).quantity == 0
    assert service.adjust_quantity(pos_data.item_id, 3).quantity == 3


def test_adjust_below_zero_is_refused(service, pos_data):
    with pytest.raises(InsufficientStockError):
        service.adjust_quantity(pos_data.item_id, -6)

    assert service.get_item(pos_data.item_id).quantity == 5


def test_adjust_by_zero_is_invalid(service, pos_data):
    with pytest.raises(ValidationError):
        service.adjust_quantity(pos_data.item_id, 0)


def test_list_items_filters_by_status(service, db_session, pos_data):
    store = StoreRepository(db_session).add(Store(name="Osu Branch", location="Osu"))
    service.restock(pos_data.drug_id, store.id, 100, selling_price=Decimal("9.00"))

    low, low_total = service.list_items(status="low_stock")
    in_stock, in_total = service.list_items(status="in_stock")
    out, out_total = service.list_items(status="out_of_stock")

    assert (low_total, in_total, out_total) == (1, 1, 0)
    assert low[0].quantity == 5
    assert in_stock[0].quantity == 100
    assert out == []


def test_list_items_rejects_unknown_status(service, pos_data):
    with pytest.raises(ValidationError):
        service.list_items(status="plenty")


def test_list_low_stock(service, pos_data):
    items = service.list_low_stock(store_id=pos_data.store_id)

    assert [i.id for i in items] == [pos_data.item_id]


def test_update_item_keeps_quantity(service, pos_data):
    item = service.update_item(pos_data.item_id, reorder_point=2, notes="Shelf B")

    assert item.quantity == 5
    assert item.reorder_point == 2
    assert item.notes == "Shelf B"
    assert item.status == InventoryStatus.IN_STOCK


def test_restock_unknown_drug_is_not_found():
    service = InventoryService(
        InventoryRepositoryFactory.create_mock_full(),
        CatalogRepositoryFactory.create_drug_mock(),
        CatalogRepositoryFactory.create_store_mock(),
    )

    with pytest.raises(NotFoundError):
        service.restock(1, 1, 5, selling_price=Decimal("1.00"))


def test_delete_missing_item_is_not_found():
    repo = InventoryRepositoryFactory.create_mock_full()
    service = InventoryService(
        repo,
        CatalogRepositoryFactory.create_drug_mock(),
        CatalogRepositoryFactory.create_store_mock(),
    )

    with pytest.raises(NotFoundError):
        service.delete_item(7)
    repo.delete.assert_called_once_with(7)
