"""
Abstract interfaces for repositories following Interface Segregation Principle.

These interfaces define contracts without implementation details,
enabling dependency injection and easier testing. Implementations only
``flush``: the caller that opened the session decides when to commit.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from .entities import Customer, Drug, InventoryItem, Prescription, Sale, Store, User


class IInventoryReader(ABC):
    """Interface for inventory read operations - Interface Segregation Principle."""

    @abstractmethod
    def get_by_id(self, item_id: int) -> Optional[InventoryItem]:
        """Get inventory row by ID."""
        pass

    @abstractmethod
    def get_by_drug_and_store(
        self, drug_id: int, store_id: int
    ) -> Optional[InventoryItem]:
        """Get the unique row for a (drug, store) pair."""
        pass

    @abstractmethod
    def list_items(
        self,
        store_id: Optional[int] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[InventoryItem], int]:
        """Return one page of rows and the total count."""
        pass

    @abstractmethod
    def list_low_stock(self, store_id: Optional[int] = None) -> List[InventoryItem]:
        """Rows at or below their reorder point."""
        pass


class IInventoryWriter(ABC):
    """Interface for inventory write operations - Interface Segregation Principle."""

    @abstractmethod
    def add(self, item: InventoryItem) -> InventoryItem:
        pass

    @abstractmethod
    def update_details(self, item: InventoryItem) -> InventoryItem:
        """Persist price, reorder point and notes. Quantity is never touched here."""
        pass

    @abstractmethod
    def increment_quantity(
        self, item_id: int, delta: int, restocked_at: Optional[datetime] = None
    ) -> bool:
        """Atomically add ``delta``; False if the result would be negative."""
        pass

    @abstractmethod
    def delete(self, item_id: int) -> bool:
        pass


class IInventoryRepository(IInventoryReader, IInventoryWriter):
    """Combined interface for full inventory repository functionality."""

    pass


class ISaleRepository(ABC):
    @abstractmethod
    def add(self, sale: Sale) -> Sale:
        pass

    @abstractmethod
    def get_by_id(self, sale_id: int) -> Optional[Sale]:
        pass

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> Optional[Sale]:
        pass

    @abstractmethod
    def update_status(
        self,
        sale_id: int,
        expected_status: str,
        new_status: str,
        reason: Optional[str] = None,
        updated_by: Optional[int] = None,
    ) -> bool:
        """Move a sale between statuses only if it is still in ``expected_status``."""
        pass

    @abstractmethod
    def list_sales(
        self, filters: Dict[str, Any], page: int = 1, limit: int = 10
    ) -> Tuple[List[Sale], int]:
        pass

    @abstractmethod
    def list_all(self, filters: Dict[str, Any]) -> List[Sale]:
        """Every matching sale, newest first (exports)."""
        pass


class IDrugRepository(ABC):
    @abstractmethod
    def add(self, drug: Drug) -> Drug:
        pass

    @abstractmethod
    def update(self, drug: Drug) -> Drug:
        pass

    @abstractmethod
    def get_by_id(self, drug_id: int) -> Optional[Drug]:
        pass

    @abstractmethod
    def list_drugs(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        active: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Drug], int]:
        pass


class IStoreRepository(ABC):
    @abstractmethod
    def add(self, store: Store) -> Store:
        pass

    @abstractmethod
    def update(self, store: Store) -> Store:
        pass

    @abstractmethod
    def get_by_id(self, store_id: int) -> Optional[Store]:
        pass

    @abstractmethod
    def list_stores(
        self, active: Optional[bool] = None, page: int = 1, limit: int = 10
    ) -> Tuple[List[Store], int]:
        pass


class ICustomerRepository(ABC):
    @abstractmethod
    def add(self, customer: Customer) -> Customer:
        pass

    @abstractmethod
    def update(self, customer: Customer) -> Customer:
        pass

    @abstractmethod
    def get_by_id(self, customer_id: int) -> Optional[Customer]:
        pass

    @abstractmethod
    def get_by_phone(self, phone: str) -> Optional[Customer]:
        pass

    @abstractmethod
    def list_customers(
        self,
        search: Optional[str] = None,
        active: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Customer], int]:
        pass


class IPrescriptionRepository(ABC):
    @abstractmethod
    def add(self, prescription: Prescription) -> Prescription:
        pass

    @abstractmethod
    def update(self, prescription: Prescription) -> Prescription:
        pass

    @abstractmethod
    def get_by_id(self, prescription_id: int) -> Optional[Prescription]:
        pass

    @abstractmethod
    def list_prescriptions(
        self,
        patient_id: Optional[int] = None,
        store_id: Optional[int] = None,
        stored_status: Optional[str] = None,
        expired_before: Optional[datetime] = None,
        not_expired_at: Optional[datetime] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Prescription], int]:
        pass

    @abstractmethod
    def list_expiring_between(
        self, start: datetime, end: datetime
    ) -> List[Prescription]:
        """Active prescriptions whose expiry falls in (start, end]."""
        pass


class IUserRepository(ABC):
    @abstractmethod
    def add(self, user: User) -> User:
        pass

    @abstractmethod
    def update(self, user: User) -> User:
        pass

    @abstractmethod
    def get_by_id(self, user_id: int) -> Optional[User]:
        pass

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[User]:
        pass

    @abstractmethod
    def list_users(
        self, role: Optional[str] = None, page: int = 1, limit: int = 10
    ) -> Tuple[List[User], int]:
        pass
