from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from pharmacy_pos.db.base import Sale as SaleModel
from pharmacy_pos.domain.entities import Sale
from pharmacy_pos.domain.interfaces import ISaleRepository
from pharmacy_pos.domain.status import utcnow


class SaleRepository(ISaleRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def add(self, sale: Sale) -> Sale:
        db_sale = SaleModel(
            drug_id=sale.drug_id,
            store_id=sale.store_id,
            customer_id=sale.customer_id,
            cashier_id=sale.cashier_id,
            quantity=sale.quantity,
            unit_price=sale.unit_price,
            discount=sale.discount,
            subtotal=sale.subtotal,
            discount_amount=sale.discount_amount,
            total_amount=sale.total_amount,
            payment_method=sale.payment_method,
            status=sale.status,
            customer_notes=sale.customer_notes,
            idempotency_key=sale.idempotency_key,
        )
        self.db.add(db_sale)
        self.db.flush()
        self.db.refresh(db_sale)
        return self._to_domain(db_sale)

    def get_by_id(self, sale_id: int) -> Optional[Sale]:
        db_sale = (
            self.db.query(SaleModel).filter_by(id=sale_id).populate_existing().first()
        )
        return self._to_domain(db_sale) if db_sale else None

    def get_by_idempotency_key(self, key: str) -> Optional[Sale]:
        db_sale = self.db.query(SaleModel).filter_by(idempotency_key=key).first()
        return self._to_domain(db_sale) if db_sale else None

    def update_status(
        self,
        sale_id: int,
        expected_status: str,
        new_status: str,
        reason: Optional[str] = None,
        updated_by: Optional[int] = None,
    ) -> bool:
        values: Dict[str, Any] = {"status": new_status, "updated_at": utcnow()}
        if reason is not None:
            values["refund_reason"] = reason
        if updated_by is not None:
            values["updated_by"] = updated_by
        result = self.db.execute(
            update(SaleModel)
            .where(SaleModel.id == sale_id, SaleModel.status == expected_status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _filtered(self, filters: Dict[str, Any]):
        query = self.db.query(SaleModel)
        for key in ("store_id", "customer_id", "drug_id", "cashier_id"):
            if filters.get(key) is not None:
                query = query.filter(getattr(SaleModel, key) == filters[key])
        if filters.get("status"):
            query = query.filter(SaleModel.status == filters["status"])
        if filters.get("payment_method"):
            query = query.filter(SaleModel.payment_method == filters["payment_method"])
        if filters.get("start_date") is not None:
            query = query.filter(SaleModel.created_at >= filters["start_date"])
        if filters.get("end_date") is not None:
            query = query.filter(SaleModel.created_at <= filters["end_date"])
        return query

    def list_sales(
        self, filters: Dict[str, Any], page: int = 1, limit: int = 10
    ) -> Tuple[List[Sale], int]:
        query = self._filtered(filters)
        total = query.count()
        rows = (
            query.order_by(SaleModel.created_at.desc(), SaleModel.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return [self._to_domain(r) for r in rows], total

    def list_all(self, filters: Dict[str, Any]) -> List[Sale]:
        rows = (
            self._filtered(filters)
            .order_by(SaleModel.created_at.desc(), SaleModel.id.desc())
            .all()
        )
        return [self._to_domain(r) for r in rows]

    def _to_domain(self, db_sale: SaleModel) -> Sale:
        def money(name: str) -> Decimal:
            value = getattr(db_sale, name, None)
            return Decimal(str(value)) if value is not None else Decimal("0.00")

        return Sale(
            id=getattr(db_sale, "id", None),
            drug_id=getattr(db_sale, "drug_id", 0),
            store_id=getattr(db_sale, "store_id", 0),
            customer_id=getattr(db_sale, "customer_id", 0),
            cashier_id=getattr(db_sale, "cashier_id", 0),
            quantity=getattr(db_sale, "quantity", 0),
            unit_price=money("unit_price"),
            discount=money("discount"),
            subtotal=money("subtotal"),
            discount_amount=money("discount_amount"),
            total_amount=money("total_amount"),
            payment_method=getattr(db_sale, "payment_method", "cash"),
            status=getattr(db_sale, "status", "completed"),
            customer_notes=getattr(db_sale, "customer_notes", None),
            refund_reason=getattr(db_sale, "refund_reason", None),
            idempotency_key=getattr(db_sale, "idempotency_key", None),
            updated_by=getattr(db_sale, "updated_by", None),
            created_at=getattr(db_sale, "created_at", None),
            updated_at=getattr(db_sale, "updated_at", None),
        )
