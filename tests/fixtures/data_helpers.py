"""
Helpers that put realistic rows in a test database.

These are plain functions rather than fixtures so tests can seed several
stock levels or a file database without fixture plumbing.
"""

from decimal import Decimal
from types import SimpleNamespace
from typing import Optional

from pharmacy_pos.db.session import Database
from pharmacy_pos.domain.entities import Customer, Drug, InventoryItem, Store, User
from pharmacy_pos.domain.enums import UserRole
from pharmacy_pos.repositories.catalog_repo import DrugRepository, StoreRepository
from pharmacy_pos.repositories.customer_repo import CustomerRepository
from pharmacy_pos.repositories.inventory_repository import InventoryRepository
from pharmacy_pos.repositories.user_repo import UserRepository

# Never verified by tests that use it; login tests hash a real password
PLACEHOLDER_HASH = "not-a-bcrypt-hash"


def add_user(
    database: Database,
    email: str,
    role: str = UserRole.CASHIER.value,
    password_hash: Optional[str] = PLACEHOLDER_HASH,
    is_active: bool = True,
) -> User:
    with database.session_scope() as session:
        return UserRepository(session).add(
            User(
                email=email,
                name=email.split("@")[0].title(),
                role=role,
                is_active=is_active,
                password_hash=password_hash,
            )
        )


def seed_pos_data(
    database: Database,
    quantity: int = 5,
    selling_price: str = "10.00",
    reorder_point: int = 10,
    phone: str = "0241234567",
) -> SimpleNamespace:
    """Create the rows one sale needs and return their ids."""
    with database.session_scope() as session:
        store = StoreRepository(session).add(
            Store(name="Central Pharmacy", location="Accra Central")
        )
        drug = DrugRepository(session).add(
            Drug(
                name="Paracetamol",
                generic_name="Acetaminophen",
                category="Analgesic",
                strength="500mg",
                dosage_form="Tablet",
            )
        )
        customer = CustomerRepository(session).add(
            Customer(name="Ama Mensah", phone=phone)
        )
        item = InventoryRepository(session).add(
            InventoryItem(
                drug_id=drug.id,
                store_id=store.id,
                quantity=quantity,
                selling_price=Decimal(selling_price),
                reorder_point=reorder_point,
            )
        )
        cashier = UserRepository(session).add(
            User(
                email="till@pharmacy.test",
                name="Cashier",
                role=UserRole.CASHIER.value,
                password_hash=PLACEHOLDER_HASH,
            )
        )
    return SimpleNamespace(
        store_id=store.id,
        drug_id=drug.id,
        customer_id=customer.id,
        item_id=item.id,
        cashier_id=cashier.id,
    )


def get_stock(database: Database, item_id: int) -> InventoryItem:
    with database.session_scope() as session:
        return InventoryRepository(session).get_by_id(item_id)


def count_sales(database: Database) -> int:
    from pharmacy_pos.db.base import Sale as SaleModel

    with database.session_scope() as session:
        return session.query(SaleModel).count()
