"""
Sales reporting: summaries, best sellers and CSV exports of sales and stock.

Only completed sales count as revenue; refunded and cancelled sales are
excluded from every aggregate but do appear in the export with their status.
"""

import csv
import io
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from pharmacy_pos.core.exceptions import ValidationError
from pharmacy_pos.db.base import Customer as CustomerModel
from pharmacy_pos.db.base import Drug as DrugModel
from pharmacy_pos.db.base import Inventory as InventoryModel
from pharmacy_pos.db.base import Sale as SaleModel
from pharmacy_pos.db.base import Store as StoreModel
from pharmacy_pos.domain.enums import SaleStatus
from pharmacy_pos.domain.pricing import to_money
from pharmacy_pos.domain.status import inventory_status, utcnow

logger = logging.getLogger(__name__)

CSV_FIELDS = [
    "saleId",
    "date",
    "drug",
    "store",
    "customer",
    "quantity",
    "unitPrice",
    "discount",
    "subtotal",
    "discountAmount",
    "totalAmount",
    "paymentMethod",
    "status",
]

INVENTORY_CSV_FIELDS = [
    "inventoryId",
    "drug",
    "genericName",
    "brandName",
    "category",
    "strength",
    "form",
    "store",
    "location",
    "quantity",
    "reorderPoint",
    "sellingPrice",
    "status",
    "lastRestocked",
    "lastUpdated",
]


def _money(value: Any) -> Decimal:
    return to_money(Decimal(str(value or 0)))


class ReportService:
    def __init__(self, db_session: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db_session
        self._clock = clock

    def _completed(self, store_id: Optional[int], start, end):
        query = self.db.query(SaleModel).filter(
            SaleModel.status == SaleStatus.COMPLETED.value
        )
        if store_id is not None:
            query = query.filter(SaleModel.store_id == store_id)
        if start is not None:
            query = query.filter(SaleModel.created_at >= start)
        if end is not None:
            query = query.filter(SaleModel.created_at <= end)
        return query

    def sales_summary(
        self,
        store_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        if start and end and start > end:
            raise ValidationError("startDate must be before endDate", "startDate")

        base = self._completed(store_id, start, end)
        count, revenue, discounts, quantity = base.with_entities(
            func.count(SaleModel.id),
            func.coalesce(func.sum(SaleModel.total_amount), 0),
            func.coalesce(func.sum(SaleModel.discount_amount), 0),
            func.coalesce(func.sum(SaleModel.quantity), 0),
        ).one()

        by_method = (
            base.with_entities(
                SaleModel.payment_method,
                func.count(SaleModel.id),
                func.coalesce(func.sum(SaleModel.total_amount), 0),
            )
            .group_by(SaleModel.payment_method)
            .order_by(SaleModel.payment_method)
            .all()
        )

        revenue = _money(revenue)
        average = to_money(revenue / count) if count else Decimal("0.00")
        return {
            "totalSales": int(count),
            "totalRevenue": str(revenue),
            "totalDiscounts": str(_money(discounts)),
            "totalQuantity": int(quantity),
            "averageSale": str(average),
            "byPaymentMethod": [
                {"paymentMethod": method, "count": int(n), "revenue": str(_money(total))}
                for method, n, total in by_method
            ],
        }

    def top_selling_drugs(
        self, store_id: Optional[int] = None, limit: int = 10, days: int = 30
    ) -> List[Dict[str, Any]]:
        if limit < 1 or days < 1:
            raise ValidationError("limit and days must be at least 1")
        since = self._clock() - timedelta(days=days)
        quantity_sold = func.sum(SaleModel.quantity).label("quantity_sold")
        rows = (
            self._completed(store_id, since, None)
            .join(DrugModel, DrugModel.id == SaleModel.drug_id)
            .with_entities(
                DrugModel.id,
                DrugModel.name,
                DrugModel.strength,
                quantity_sold,
                func.coalesce(func.sum(SaleModel.total_amount), 0),
                func.count(SaleModel.id),
            )
            .group_by(DrugModel.id, DrugModel.name, DrugModel.strength)
            .order_by(quantity_sold.desc(), DrugModel.id.asc())
            .limit(limit)
            .all()
        )
        return [
            {
                "drugId": drug_id,
                "name": name,
                "strength": strength,
                "quantitySold": int(qty),
                "revenue": str(_money(revenue)),
                "salesCount": int(n),
            }
            for drug_id, name, strength, qty, revenue, n in rows
        ]

    def export_sales_csv(
        self,
        store_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        status: Optional[str] = None,
    ) -> str:
        query = (
            self.db.query(SaleModel, DrugModel.name, StoreModel.name, CustomerModel.name)
            .join(DrugModel, DrugModel.id == SaleModel.drug_id)
            .join(StoreModel, StoreModel.id == SaleModel.store_id)
            .join(CustomerModel, CustomerModel.id == SaleModel.customer_id)
        )
        if store_id is not None:
            query = query.filter(SaleModel.store_id == store_id)
        if start is not None:
            query = query.filter(SaleModel.created_at >= start)
        if end is not None:
            query = query.filter(SaleModel.created_at <= end)
        if status:
            query = query.filter(SaleModel.status == status)

        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=CSV_FIELDS)
        writer.writeheader()
        count = 0
        for sale, drug_name, store_name, customer_name in query.order_by(
            SaleModel.created_at.desc(), SaleModel.id.desc()
        ):
            writer.writerow(
                {
                    "saleId": sale.id,
                    "date": sale.created_at.isoformat() if sale.created_at else "",
                    "drug": drug_name,
                    "store": store_name,
                    "customer": customer_name,
                    "quantity": sale.quantity,
                    "unitPrice": str(_money(sale.unit_price)),
                    "discount": str(sale.discount),
                    "subtotal": str(_money(sale.subtotal)),
                    "discountAmount": str(_money(sale.discount_amount)),
                    "totalAmount": str(_money(sale.total_amount)),
                    "paymentMethod": sale.payment_method,
                    "status": sale.status,
                }
            )
            count += 1
        logger.info("Sales exported to CSV", extra={"context": {"rows": count}})
        return buffer.getvalue()

    def export_inventory_csv(self, store_id: Optional[int] = None) -> str:
        """Current stock, one row per (drug, store), with its derived status."""
        query = (
            self.db.query(InventoryModel, DrugModel, StoreModel)
            .join(DrugModel, DrugModel.id == InventoryModel.drug_id)
            .join(StoreModel, StoreModel.id == InventoryModel.store_id)
        )
        if store_id is not None:
            query = query.filter(InventoryModel.store_id == store_id)

        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=INVENTORY_CSV_FIELDS)
        writer.writeheader()
        count = 0
        for item, drug, store in query.order_by(
            StoreModel.name.asc(), DrugModel.name.asc(), InventoryModel.id.asc()
        ):
            writer.writerow(
                {
                    "inventoryId": item.id,
                    "drug": drug.name,
                    "genericName": drug.generic_name,
                    "brandName": drug.brand_name or "",
                    "category": drug.category,
                    "strength": drug.strength,
                    "form": drug.dosage_form,
                    "store": store.name,
                    "location": store.location,
                    "quantity": item.quantity,
                    "reorderPoint": item.reorder_point,
                    "sellingPrice": str(_money(item.selling_price)),
                    "status": inventory_status(item.quantity, item.reorder_point).value,
                    "lastRestocked": item.last_restocked.isoformat()
                    if item.last_restocked
                    else "",
                    "lastUpdated": item.updated_at.isoformat() if item.updated_at else "",
                }
            )
            count += 1
        logger.info(
            "Inventory exported to CSV",
            extra={"context": {"rows": count, "store_id": store_id}},
        )
        return buffer.getvalue()
