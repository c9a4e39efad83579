import logging
from dataclasses import replace
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import exc

from pharmacy_pos.core.exceptions import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from pharmacy_pos.domain.entities import InventoryItem
from pharmacy_pos.domain.interfaces import (
    IDrugRepository,
    IInventoryRepository,
    IStoreRepository,
)
from pharmacy_pos.domain.status import DEFAULT_LOW_STOCK_THRESHOLD, utcnow

logger = logging.getLogger(__name__)


class InventoryService:
    """Stock reads and the stock changes that are not sales.

    Quantity changes are single atomic UPDATE statements that also bump the
    row version, so they interleave safely with the sale coordinator.
    """

    def __init__(
        self,
        repository: IInventoryRepository,
        drugs: IDrugRepository,
        stores: IStoreRepository,
        low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
    ):
        self.repository = repository
        self.drugs = drugs
        self.stores = stores
        self.low_stock_threshold = low_stock_threshold

    def get_item(self, item_id: int) -> InventoryItem:
        item = self.repository.get_by_id(item_id)
        if item is None:
            raise NotFoundError("Inventory item", item_id)
        return item

    def get_by_drug_and_store(self, drug_id: int, store_id: int) -> InventoryItem:
        item = self.repository.get_by_drug_and_store(drug_id, store_id)
        if item is None:
            raise NotFoundError(
                "Inventory item", f"for drug {drug_id} at store {store_id}"
            )
        return item

    def list_items(
        self,
        store_id: Optional[int] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[InventoryItem], int]:
        return self.repository.list_items(store_id, status, page, limit)

    def list_low_stock(self, store_id: Optional[int] = None) -> List[InventoryItem]:
        return self.repository.list_low_stock(store_id)

    def restock(
        self,
        drug_id: int,
        store_id: int,
        quantity: int,
        selling_price: Optional[Decimal] = None,
        reorder_point: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> InventoryItem:
        """Add stock for a (drug, store) pair, creating the row on first delivery."""
        if quantity <= 0:
            raise ValidationError("quantity must be greater than 0", "quantity")
        if self.drugs.get_by_id(drug_id) is None:
            raise NotFoundError("Drug", drug_id)
        if self.stores.get_by_id(store_id) is None:
            raise NotFoundError("Store", store_id)

        now = utcnow()
        existing = self.repository.get_by_drug_and_store(drug_id, store_id)
        if existing is None:
            if selling_price is None:
                raise ValidationError(
                    "sellingPrice is required for a new inventory item", "sellingPrice"
                )
            try:
                item = self.repository.add(
                    InventoryItem(
                        drug_id=drug_id,
                        store_id=store_id,
                        quantity=quantity,
                        selling_price=selling_price,
                        reorder_point=(
                            reorder_point
                            if reorder_point is not None
                            else self.low_stock_threshold
                        ),
                        notes=notes,
                        last_restocked=now,
                    )
                )
            except exc.IntegrityError:
                raise ConflictError(
                    "Inventory for this drug and store was created concurrently. Please retry."
                )
            logger.info(
                "Inventory item created",
                extra={"context": {"item_id": item.id, "quantity": quantity}},
            )
            return item

        self.repository.increment_quantity(existing.id, quantity, restocked_at=now)
        if selling_price is not None or reorder_point is not None or notes is not None:
            self.repository.update_details(
                replace(
                    existing,
                    selling_price=(
                        selling_price
                        if selling_price is not None
                        else existing.selling_price
                    ),
                    reorder_point=(
                        reorder_point
                        if reorder_point is not None
                        else existing.reorder_point
                    ),
                    notes=notes if notes is not None else existing.notes,
                )
            )
        logger.info(
            "Inventory restocked",
            extra={"context": {"item_id": existing.id, "added": quantity}},
        )
        return self.get_item(existing.id)

    def update_item(
        self,
        item_id: int,
        selling_price: Optional[Decimal] = None,
        reorder_point: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> InventoryItem:
        item = self.get_item(item_id)
        updated = replace(
            item,
            selling_price=selling_price if selling_price is not None else item.selling_price,
            reorder_point=reorder_point if reorder_point is not None else item.reorder_point,
            notes=notes if notes is not None else item.notes,
        )
        return self.repository.update_details(updated)

    def adjust_quantity(self, item_id: int, delta: int) -> InventoryItem:
        """Apply a manual stock correction. The result may never go below zero."""
        if delta == 0:
            raise ValidationError("delta must not be 0", "delta")
        item = self.get_item(item_id)
        if not self.repository.increment_quantity(item_id, delta):
            current = self.get_item(item_id)
            raise InsufficientStockError(current.quantity, -delta)
        logger.info(
            "Inventory quantity adjusted",
            extra={
                "context": {"item_id": item_id, "delta": delta, "before": item.quantity}
            },
        )
        return self.get_item(item_id)

    def delete_item(self, item_id: int) -> None:
        if not self.repository.delete(item_id):
            raise NotFoundError("Inventory item", item_id)
