import logging
import re
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from pharmacy_pos.core.config import DEFAULT_PHONE_PATTERN
from pharmacy_pos.core.exceptions import DuplicateError, NotFoundError, ValidationError
from pharmacy_pos.domain.entities import Customer
from pharmacy_pos.domain.interfaces import ICustomerRepository

logger = logging.getLogger(__name__)


class CustomerService:
    def __init__(
        self, repository: ICustomerRepository, phone_pattern: str = DEFAULT_PHONE_PATTERN
    ):
        self.repository = repository
        self._phone_re = re.compile(phone_pattern)

    def _check_phone(self, phone: str, customer_id: Optional[int] = None) -> None:
        if not self._phone_re.match(phone):
            raise ValidationError("Please enter a valid phone number", "phone")
        owner = self.repository.get_by_phone(phone)
        if owner is not None and owner.id != customer_id:
            raise DuplicateError(
                "A customer with this phone number already exists", "phone"
            )

    def create_customer(self, customer: Customer) -> Customer:
        self._check_phone(customer.phone)
        created = self.repository.add(customer)
        logger.info("Customer created", extra={"context": {"customer_id": created.id}})
        return created

    def get_customer(self, customer_id: int) -> Customer:
        customer = self.repository.get_by_id(customer_id)
        if customer is None:
            raise NotFoundError("Customer", customer_id)
        return customer

    def list_customers(
        self,
        search: Optional[str] = None,
        active: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Customer], int]:
        return self.repository.list_customers(search, active, page, limit)

    def search_customers(self, query: str, limit: int = 10) -> List[Customer]:
        """Active customers whose name, phone or email contains ``query``."""
        if not query or not query.strip():
            raise ValidationError("Search query is required", "q")
        customers, _ = self.repository.list_customers(
            search=query.strip(), active=True, page=1, limit=limit
        )
        return customers

    def update_customer(self, customer_id: int, changes: Dict[str, Any]) -> Customer:
        customer = self.get_customer(customer_id)
        if "phone" in changes and changes["phone"] != customer.phone:
            self._check_phone(changes["phone"], customer_id)
        return self.repository.update(replace(customer, **changes))

    def deactivate_customer(self, customer_id: int) -> Customer:
        customer = self.get_customer(customer_id)
        return self.repository.update(replace(customer, is_active=False))

    def reactivate_customer(self, customer_id: int) -> Customer:
        customer = self.get_customer(customer_id)
        return self.repository.update(replace(customer, is_active=True))
