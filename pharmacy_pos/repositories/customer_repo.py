from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from pharmacy_pos.db.base import Customer as CustomerModel
from pharmacy_pos.domain.entities import Customer
from pharmacy_pos.domain.interfaces import ICustomerRepository

_FIELDS = ("name", "phone", "email", "address", "city", "date_of_birth", "is_active")


class CustomerRepository(ICustomerRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def add(self, customer: Customer) -> Customer:
        db_customer = CustomerModel(**{f: getattr(customer, f) for f in _FIELDS})
        self.db.add(db_customer)
        self.db.flush()
        self.db.refresh(db_customer)
        return self._to_domain(db_customer)

    def update(self, customer: Customer) -> Customer:
        db_customer = self.db.get(CustomerModel, customer.id)
        if not db_customer:
            raise ValueError("Customer not found")
        for f in _FIELDS:
            setattr(db_customer, f, getattr(customer, f))
        self.db.flush()
        self.db.refresh(db_customer)
        return self._to_domain(db_customer)

    def get_by_id(self, customer_id: int) -> Optional[Customer]:
        db_customer = self.db.get(CustomerModel, customer_id)
        return self._to_domain(db_customer) if db_customer else None

    def get_by_phone(self, phone: str) -> Optional[Customer]:
        db_customer = self.db.query(CustomerModel).filter_by(phone=phone).first()
        return self._to_domain(db_customer) if db_customer else None

    def list_customers(
        self,
        search: Optional[str] = None,
        active: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Customer], int]:
        query = self.db.query(CustomerModel)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    CustomerModel.name.ilike(pattern),
                    CustomerModel.phone.ilike(pattern),
                    CustomerModel.email.ilike(pattern),
                )
            )
        if active is not None:
            query = query.filter(CustomerModel.is_active == active)
        total = query.count()
        rows = (
            query.order_by(CustomerModel.name.asc(), CustomerModel.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return [self._to_domain(r) for r in rows], total

    def _to_domain(self, db_customer: CustomerModel) -> Customer:
        return Customer(
            id=getattr(db_customer, "id", None),
            created_at=getattr(db_customer, "created_at", None),
            updated_at=getattr(db_customer, "updated_at", None),
            **{f: getattr(db_customer, f) for f in _FIELDS},
        )
