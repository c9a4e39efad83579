"""
Sale transaction coordinator.

A sale decrements one inventory row and inserts one sale row in a single
database transaction. Concurrent sales against the same (drug, store) row are
serialised by the database: the decrement is a single guarded UPDATE
(``quantity - n >= 0``), so sales that stock can cover all go through. When
the guard misses, the row is read again; a shortfall is reported as
insufficient stock, anything else rolls the attempt back and runs the
read-check-write sequence again, up to ``max_retries`` times.

Only lost races and database timeouts are retried. Everything else
(validation, missing entities, insufficient stock, illegal transitions)
propagates on the first occurrence, after the attempt's transaction has been
rolled back, so a failed call never leaves a partial write behind.
"""

import logging
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from sqlalchemy import exc
from sqlalchemy.orm import Session

from pharmacy_pos.core.exceptions import (
    ConflictError,
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    OperationTimeoutError,
    ValidationError,
)
from pharmacy_pos.db.session import Database, is_timeout_error
from pharmacy_pos.domain.entities import Sale
from pharmacy_pos.domain.enums import PaymentMethod, SaleStatus
from pharmacy_pos.domain.interfaces import (
    ICustomerRepository,
    IInventoryRepository,
    ISaleRepository,
)
from pharmacy_pos.domain.pricing import Number, compute_totals, to_decimal
from pharmacy_pos.domain.status import inventory_status
from pharmacy_pos.repositories.customer_repo import CustomerRepository
from pharmacy_pos.repositories.inventory_repository import InventoryRepository
from pharmacy_pos.repositories.sale_repo import SaleRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_OPERATION_TIMEOUT = 5.0


@dataclass
class SaleRepositories:
    """The repositories one coordinator attempt works with, all on one session."""

    sales: ISaleRepository
    inventory: IInventoryRepository
    customers: ICustomerRepository


def default_repositories(session: Session) -> SaleRepositories:
    return SaleRepositories(
        sales=SaleRepository(session),
        inventory=InventoryRepository(session),
        customers=CustomerRepository(session),
    )


class StaleWriteError(Exception):
    """A guarded write matched no row: another writer changed it first."""


class SaleService:
    def __init__(
        self,
        database: Database,
        max_retries: int = DEFAULT_MAX_RETRIES,
        operation_timeout: float = DEFAULT_OPERATION_TIMEOUT,
        repositories: Callable[[Session], SaleRepositories] = default_repositories,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.database = database
        self.max_retries = max_retries
        self.operation_timeout = operation_timeout
        self._repositories = repositories
        self._clock = clock

    # ------------------------------------------------------------------
    # Transaction runner
    # ------------------------------------------------------------------

    def _run(
        self,
        operation: str,
        attempt: Callable[[SaleRepositories], T],
        context: Dict[str, Any],
    ) -> T:
        """Run ``attempt`` in a fresh transaction until it commits.

        The deadline is checked before each attempt, not during one. A slow
        attempt that started inside the budget may still commit after it;
        the driver's lock and statement timeouts bound a single attempt.

        Raises:
            ConflictError: every attempt lost a concurrent write
            OperationTimeoutError: the deadline passed, or the last attempt
                hit a database timeout
        """
        deadline = self._clock() + self.operation_timeout
        last_timeout: Optional[BaseException] = None

        for attempt_no in range(1, self.max_retries + 1):
            if self._clock() > deadline:
                logger.warning(
                    f"{operation} exceeded its time budget",
                    extra={"context": {**context, "attempt": attempt_no}},
                )
                raise OperationTimeoutError(
                    f"{operation} did not complete within {self.operation_timeout}s"
                )

            session = self.database.new_session()
            try:
                result = attempt(self._repositories(session))
                session.commit()
                return result
            except StaleWriteError:
                session.rollback()
                last_timeout = None
                logger.info(
                    f"{operation}: concurrent update detected, retrying",
                    extra={"context": {**context, "attempt": attempt_no}},
                )
            except (exc.OperationalError, exc.TimeoutError) as e:
                session.rollback()
                if not is_timeout_error(e):
                    raise
                last_timeout = e
                logger.warning(
                    f"{operation}: database timeout, retrying",
                    extra={
                        "context": {**context, "attempt": attempt_no, "error": str(e)}
                    },
                )
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

        if last_timeout is not None:
            raise OperationTimeoutError(
                f"{operation} timed out waiting for the database"
            ) from last_timeout
        logger.warning(
            f"{operation}: giving up after {self.max_retries} conflicting attempts",
            extra={"context": context},
        )
        raise ConflictError(
            "The inventory record was modified concurrently. Please retry."
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_sale(
        self,
        drug_id: int,
        store_id: int,
        customer_id: int,
        cashier_id: int,
        quantity: int,
        unit_price: Optional[Number] = None,
        discount_percent: Number = 0,
        payment_method: str = PaymentMethod.CASH.value,
        customer_notes: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Sale:
        """Sell ``quantity`` units of a drug from one store's stock.

        ``unit_price`` defaults to the inventory row's selling price. A repeated
        ``idempotency_key`` returns the sale created by the first call.
        """
        sale, _ = self.submit_sale(
            drug_id=drug_id,
            store_id=store_id,
            customer_id=customer_id,
            cashier_id=cashier_id,
            quantity=quantity,
            unit_price=unit_price,
            discount_percent=discount_percent,
            payment_method=payment_method,
            customer_notes=customer_notes,
            idempotency_key=idempotency_key,
        )
        return sale

    def submit_sale(
        self,
        drug_id: int,
        store_id: int,
        customer_id: int,
        cashier_id: int,
        quantity: int,
        unit_price: Optional[Number] = None,
        discount_percent: Number = 0,
        payment_method: str = PaymentMethod.CASH.value,
        customer_notes: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Tuple[Sale, bool]:
        """Like ``create_sale`` but also reports whether a new sale was made.

        Returns:
            (sale, created) where ``created`` is False for an idempotent replay
        """
        # Validate everything that does not need the database first
        compute_totals(
            quantity,
            unit_price if unit_price is not None else Decimal("0"),
            discount_percent,
        )
        if payment_method not in PaymentMethod.values():
            raise ValidationError(
                f"paymentMethod must be one of: {', '.join(PaymentMethod.values())}",
                "paymentMethod",
            )
        discount = to_decimal(discount_percent, "discount")

        context = {
            "drug_id": drug_id,
            "store_id": store_id,
            "customer_id": customer_id,
            "quantity": quantity,
            "idempotency_key": idempotency_key,
        }

        def attempt(repos: SaleRepositories) -> Tuple[Sale, bool]:
            if idempotency_key:
                existing = repos.sales.get_by_idempotency_key(idempotency_key)
                if existing is not None:
                    return existing, False

            item = repos.inventory.get_by_drug_and_store(drug_id, store_id)
            if item is None:
                raise NotFoundError(
                    "Inventory item", f"for drug {drug_id} at store {store_id}"
                )
            if repos.customers.get_by_id(customer_id) is None:
                raise NotFoundError("Customer", customer_id)
            if quantity > item.quantity:
                raise InsufficientStockError(item.quantity, quantity)

            price = unit_price if unit_price is not None else item.selling_price
            totals = compute_totals(quantity, price, discount)
            remaining = item.quantity - quantity

            if not repos.inventory.increment_quantity(item.id, -quantity):
                current = repos.inventory.get_by_id(item.id)
                if current is None:
                    raise NotFoundError("Inventory item", item.id)
                if current.quantity < quantity:
                    raise InsufficientStockError(current.quantity, quantity)
                raise StaleWriteError()

            sale = repos.sales.add(
                Sale(
                    drug_id=drug_id,
                    store_id=store_id,
                    customer_id=customer_id,
                    cashier_id=cashier_id,
                    quantity=quantity,
                    unit_price=to_decimal(price, "unitPrice"),
                    discount=discount,
                    subtotal=totals.subtotal,
                    discount_amount=totals.discount_amount,
                    total_amount=totals.total_amount,
                    payment_method=payment_method,
                    status=SaleStatus.COMPLETED.value,
                    customer_notes=customer_notes,
                    idempotency_key=idempotency_key,
                )
            )
            logger.info(
                "Sale recorded",
                extra={
                    "context": {
                        **context,
                        "sale_id": sale.id,
                        "total_amount": str(sale.total_amount),
                        "remaining": remaining,
                        "inventory_status": inventory_status(
                            remaining, item.reorder_point
                        ).value,
                    }
                },
            )
            return sale, True

        try:
            return self._run("create_sale", attempt, context)
        except exc.IntegrityError:
            # Two submissions with the same key raced; the loser returns the winner's sale
            if idempotency_key:
                replay = self._find_by_idempotency_key(idempotency_key)
                if replay is not None:
                    logger.info(
                        "Duplicate sale submission resolved to existing sale",
                        extra={"context": {**context, "sale_id": replay.id}},
                    )
                    return replay, False
            raise

    def _find_by_idempotency_key(self, key: str) -> Optional[Sale]:
        with self.database.session_scope() as session:
            return self._repositories(session).sales.get_by_idempotency_key(key)

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def refund_sale(
        self,
        sale_id: int,
        reason: Optional[str] = None,
        updated_by: Optional[int] = None,
    ) -> Sale:
        """Refund a completed sale and put its quantity back into stock."""
        return self._transition(
            sale_id,
            SaleStatus.REFUNDED.value,
            (SaleStatus.COMPLETED.value,),
            reason,
            updated_by,
        )

    def cancel_sale(
        self,
        sale_id: int,
        reason: Optional[str] = None,
        updated_by: Optional[int] = None,
    ) -> Sale:
        """Cancel a pending or completed sale. Completed sales restore stock."""
        return self._transition(
            sale_id,
            SaleStatus.CANCELLED.value,
            (SaleStatus.PENDING.value, SaleStatus.COMPLETED.value),
            reason,
            updated_by,
        )

    def _transition(
        self,
        sale_id: int,
        target: str,
        allowed_from: Tuple[str, ...],
        reason: Optional[str],
        updated_by: Optional[int],
    ) -> Sale:
        context = {"sale_id": sale_id, "target_status": target}

        def attempt(repos: SaleRepositories) -> Sale:
            sale = repos.sales.get_by_id(sale_id)
            if sale is None:
                raise NotFoundError("Sale", sale_id)
            if sale.status not in allowed_from:
                raise InvalidStateError(
                    f"Cannot change sale from '{sale.status}' to '{target}'"
                )

            if sale.status == SaleStatus.COMPLETED.value:
                item = repos.inventory.get_by_drug_and_store(
                    sale.drug_id, sale.store_id
                )
                if item is None:
                    raise NotFoundError(
                        "Inventory item",
                        f"for drug {sale.drug_id} at store {sale.store_id}",
                    )
                if not repos.inventory.increment_quantity(item.id, sale.quantity):
                    raise StaleWriteError()

            if not repos.sales.update_status(
                sale_id, sale.status, target, reason, updated_by
            ):
                raise StaleWriteError()

            updated = repos.sales.get_by_id(sale_id)
            logger.info(
                f"Sale {target}",
                extra={
                    "context": {
                        **context,
                        "previous_status": sale.status,
                        "restocked": sale.quantity
                        if sale.status == SaleStatus.COMPLETED.value
                        else 0,
                    }
                },
            )
            return updated

        operation = "refund_sale" if target == SaleStatus.REFUNDED.value else "cancel_sale"
        return self._run(operation, attempt, context)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_sale(self, sale_id: int) -> Sale:
        with self.database.session_scope() as session:
            sale = self._repositories(session).sales.get_by_id(sale_id)
        if sale is None:
            raise NotFoundError("Sale", sale_id)
        return sale

    def list_sales(
        self, filters: Optional[Dict[str, Any]] = None, page: int = 1, limit: int = 10
    ) -> Tuple[List[Sale], int]:
        with self.database.session_scope() as session:
            return self._repositories(session).sales.list_sales(
                filters or {}, page, limit
            )
