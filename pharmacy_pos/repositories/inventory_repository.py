from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import and_, update
from sqlalchemy.orm import Session

from pharmacy_pos.core.exceptions import ValidationError
from pharmacy_pos.db.base import Inventory
from pharmacy_pos.domain.entities import InventoryItem
from pharmacy_pos.domain.enums import InventoryStatus
from pharmacy_pos.domain.interfaces import IInventoryRepository
from pharmacy_pos.domain.status import utcnow


def _status_clause(status: str):
    if status == InventoryStatus.OUT_OF_STOCK.value:
        return Inventory.quantity == 0
    if status == InventoryStatus.LOW_STOCK.value:
        return and_(Inventory.quantity > 0, Inventory.quantity <= Inventory.reorder_point)
    if status == InventoryStatus.IN_STOCK.value:
        return Inventory.quantity > Inventory.reorder_point
    raise ValidationError(
        f"status must be one of: {', '.join(InventoryStatus.values())}", "status"
    )


class InventoryRepository(IInventoryRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def add(self, item: InventoryItem) -> InventoryItem:
        db_item = Inventory(
            drug_id=item.drug_id,
            store_id=item.store_id,
            quantity=item.quantity,
            selling_price=item.selling_price,
            reorder_point=item.reorder_point,
            notes=item.notes,
            version=0,
            last_restocked=item.last_restocked,
        )
        self.db.add(db_item)
        self.db.flush()
        self.db.refresh(db_item)
        return self._to_domain(db_item)

    def update_details(self, item: InventoryItem) -> InventoryItem:
        db_item = self.db.get(Inventory, item.id)
        if not db_item:
            raise ValueError("Item not found")
        db_item.selling_price = item.selling_price
        db_item.reorder_point = item.reorder_point
        db_item.notes = item.notes
        self.db.flush()
        self.db.refresh(db_item)
        return self._to_domain(db_item)

    def increment_quantity(
        self, item_id: int, delta: int, restocked_at: Optional[datetime] = None
    ) -> bool:
        values = {
            "quantity": Inventory.quantity + delta,
            "version": Inventory.version + 1,
            "updated_at": utcnow(),
        }
        if restocked_at is not None:
            values["last_restocked"] = restocked_at
        result = self.db.execute(
            update(Inventory)
            .where(Inventory.id == item_id, Inventory.quantity + delta >= 0)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def delete(self, item_id: int) -> bool:
        db_item = self.db.get(Inventory, item_id)
        if not db_item:
            return False
        self.db.delete(db_item)
        self.db.flush()
        return True

    def get_by_id(self, item_id: int) -> Optional[InventoryItem]:
        db_item = self.db.query(Inventory).filter_by(id=item_id).populate_existing().first()
        return self._to_domain(db_item) if db_item else None

    def get_by_drug_and_store(
        self, drug_id: int, store_id: int
    ) -> Optional[InventoryItem]:
        db_item = (
            self.db.query(Inventory)
            .filter_by(drug_id=drug_id, store_id=store_id)
            .populate_existing()
            .first()
        )
        return self._to_domain(db_item) if db_item else None

    def list_items(
        self,
        store_id: Optional[int] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[InventoryItem], int]:
        query = self.db.query(Inventory)
        if store_id is not None:
            query = query.filter(Inventory.store_id == store_id)
        if status:
            query = query.filter(_status_clause(status))
        total = query.count()
        rows = (
            query.order_by(Inventory.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return [self._to_domain(r) for r in rows], total

    def list_low_stock(self, store_id: Optional[int] = None) -> List[InventoryItem]:
        query = self.db.query(Inventory).filter(
            Inventory.quantity <= Inventory.reorder_point
        )
        if store_id is not None:
            query = query.filter(Inventory.store_id == store_id)
        rows = query.order_by(Inventory.quantity.asc(), Inventory.id.asc()).all()
        return [self._to_domain(r) for r in rows]

    def _to_domain(self, db_item: Inventory) -> InventoryItem:
        return InventoryItem(
            id=getattr(db_item, "id", None),
            drug_id=getattr(db_item, "drug_id", 0),
            store_id=getattr(db_item, "store_id", 0),
            quantity=getattr(db_item, "quantity", 0) or 0,
            selling_price=Decimal(str(getattr(db_item, "selling_price", None) or "0.00")),
            reorder_point=getattr(db_item, "reorder_point", 0) or 0,
            notes=getattr(db_item, "notes", None),
            version=getattr(db_item, "version", 0) or 0,
            last_restocked=getattr(db_item, "last_restocked", None),
            created_at=getattr(db_item, "created_at", None),
            updated_at=getattr(db_item, "updated_at", None),
        )
