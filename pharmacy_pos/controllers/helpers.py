"""
Shared plumbing for the blueprints: settings lookup, service construction and
query-string parsing.
"""

from typing import Any, Dict, Tuple

from flask import current_app, request
from sqlalchemy.orm import Session

from pharmacy_pos.core.config import Settings
from pharmacy_pos.db.session import get_database
from pharmacy_pos.repositories.catalog_repo import DrugRepository, StoreRepository
from pharmacy_pos.repositories.customer_repo import CustomerRepository
from pharmacy_pos.repositories.inventory_repository import InventoryRepository
from pharmacy_pos.repositories.prescription_repo import PrescriptionRepository
from pharmacy_pos.repositories.user_repo import UserRepository
from pharmacy_pos.schemas.dtos import FieldSpec, parse_fields
from pharmacy_pos.services.catalog_service import CatalogService
from pharmacy_pos.services.customer_service import CustomerService
from pharmacy_pos.services.inventory_service import InventoryService
from pharmacy_pos.services.prescription_service import PrescriptionService
from pharmacy_pos.services.sale_service import SaleService
from pharmacy_pos.services.user_service import UserService

SETTINGS_KEY = "pharmacy_settings"


def get_settings() -> Settings:
    return current_app.extensions[SETTINGS_KEY]


def parse_query(specs: Tuple[FieldSpec, ...]) -> Dict[str, Any]:
    """Validate query-string filters; every filter is optional."""
    args = {k: v for k, v in request.args.items() if v != ""}
    return parse_fields(args, specs, partial=True)


def parse_bool_arg(name: str):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in ("true", "1", "yes")


def sale_service() -> SaleService:
    settings = get_settings()
    return SaleService(
        get_database(),
        max_retries=settings.sale_max_retries,
        operation_timeout=settings.db_operation_timeout,
    )


def inventory_service(session: Session) -> InventoryService:
    return InventoryService(
        InventoryRepository(session),
        DrugRepository(session),
        StoreRepository(session),
        low_stock_threshold=get_settings().low_stock_threshold,
    )


def catalog_service(session: Session) -> CatalogService:
    return CatalogService(DrugRepository(session), StoreRepository(session))


def customer_service(session: Session) -> CustomerService:
    return CustomerService(
        CustomerRepository(session), phone_pattern=get_settings().phone_pattern
    )


def prescription_service(session: Session) -> PrescriptionService:
    return PrescriptionService(
        PrescriptionRepository(session),
        CustomerRepository(session),
        UserRepository(session),
        StoreRepository(session),
        DrugRepository(session),
        expiring_days=get_settings().prescription_expiring_days,
    )


def user_service(session: Session) -> UserService:
    settings = get_settings()
    return UserService(
        UserRepository(session),
        jwt_secret=settings.jwt_secret_key,
        expiration_hours=settings.jwt_expiration_hours,
    )
