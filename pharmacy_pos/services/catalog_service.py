"""Reference data: drugs and stores."""

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from pharmacy_pos.core.exceptions import NotFoundError
from pharmacy_pos.domain.entities import Drug, Store
from pharmacy_pos.domain.interfaces import IDrugRepository, IStoreRepository

logger = logging.getLogger(__name__)


class CatalogService:
    def __init__(self, drugs: IDrugRepository, stores: IStoreRepository):
        self.drugs = drugs
        self.stores = stores

    # Drugs

    def create_drug(self, drug: Drug) -> Drug:
        created = self.drugs.add(drug)
        logger.info(
            "Drug created", extra={"context": {"drug_id": created.id, "name": created.name}}
        )
        return created

    def get_drug(self, drug_id: int) -> Drug:
        drug = self.drugs.get_by_id(drug_id)
        if drug is None:
            raise NotFoundError("Drug", drug_id)
        return drug

    def list_drugs(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        active: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Drug], int]:
        return self.drugs.list_drugs(search, category, active, page, limit)

    def update_drug(self, drug_id: int, changes: Dict[str, Any]) -> Drug:
        """Apply a partial update. ``replace`` re-runs the entity's validation."""
        drug = self.get_drug(drug_id)
        return self.drugs.update(replace(drug, **changes))

    def deactivate_drug(self, drug_id: int) -> Drug:
        drug = self.get_drug(drug_id)
        return self.drugs.update(replace(drug, is_active=False))

    # Stores

    def create_store(self, store: Store) -> Store:
        created = self.stores.add(store)
        logger.info(
            "Store created",
            extra={"context": {"store_id": created.id, "name": created.name}},
        )
        return created

    def get_store(self, store_id: int) -> Store:
        store = self.stores.get_by_id(store_id)
        if store is None:
            raise NotFoundError("Store", store_id)
        return store

    def list_stores(
        self, active: Optional[bool] = None, page: int = 1, limit: int = 10
    ) -> Tuple[List[Store], int]:
        return self.stores.list_stores(active, page, limit)

    def update_store(self, store_id: int, changes: Dict[str, Any]) -> Store:
        store = self.get_store(store_id)
        return self.stores.update(replace(store, **changes))

    def deactivate_store(self, store_id: int) -> Store:
        store = self.get_store(store_id)
        return self.stores.update(replace(store, is_active=False))
