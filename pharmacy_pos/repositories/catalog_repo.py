"""Repositories for the reference data: drugs and stores."""

from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from pharmacy_pos.db.base import Drug as DrugModel
from pharmacy_pos.db.base import Store as StoreModel
from pharmacy_pos.domain.entities import Drug, Store
from pharmacy_pos.domain.interfaces import IDrugRepository, IStoreRepository

_DRUG_FIELDS = (
    "name",
    "generic_name",
    "brand_name",
    "manufacturer",
    "category",
    "strength",
    "dosage_form",
    "description",
    "prescription_required",
    "is_controlled",
    "is_active",
)

_STORE_FIELDS = ("name", "location", "address", "city", "phone", "email", "is_active")


class DrugRepository(IDrugRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def add(self, drug: Drug) -> Drug:
        db_drug = DrugModel(**{f: getattr(drug, f) for f in _DRUG_FIELDS})
        self.db.add(db_drug)
        self.db.flush()
        self.db.refresh(db_drug)
        return self._to_domain(db_drug)

    def update(self, drug: Drug) -> Drug:
        db_drug = self.db.get(DrugModel, drug.id)
        if not db_drug:
            raise ValueError("Drug not found")
        for f in _DRUG_FIELDS:
            setattr(db_drug, f, getattr(drug, f))
        self.db.flush()
        self.db.refresh(db_drug)
        return self._to_domain(db_drug)

    def get_by_id(self, drug_id: int) -> Optional[Drug]:
        db_drug = self.db.get(DrugModel, drug_id)
        return self._to_domain(db_drug) if db_drug else None

    def list_drugs(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        active: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Drug], int]:
        query = self.db.query(DrugModel)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    DrugModel.name.ilike(pattern),
                    DrugModel.generic_name.ilike(pattern),
                    DrugModel.brand_name.ilike(pattern),
                )
            )
        if category:
            query = query.filter(DrugModel.category == category)
        if active is not None:
            query = query.filter(DrugModel.is_active == active)
        total = query.count()
        rows = (
            query.order_by(DrugModel.name.asc(), DrugModel.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return [self._to_domain(r) for r in rows], total

    def _to_domain(self, db_drug: DrugModel) -> Drug:
        return Drug(
            id=getattr(db_drug, "id", None),
            created_at=getattr(db_drug, "created_at", None),
            updated_at=getattr(db_drug, "updated_at", None),
            **{f: getattr(db_drug, f) for f in _DRUG_FIELDS},
        )


class StoreRepository(IStoreRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def add(self, store: Store) -> Store:
        db_store = StoreModel(**{f: getattr(store, f) for f in _STORE_FIELDS})
        self.db.add(db_store)
        self.db.flush()
        self.db.refresh(db_store)
        return self._to_domain(db_store)

    def update(self, store: Store) -> Store:
        db_store = self.db.get(StoreModel, store.id)
        if not db_store:
            raise ValueError("Store not found")
        for f in _STORE_FIELDS:
            setattr(db_store, f, getattr(store, f))
        self.db.flush()
        self.db.refresh(db_store)
        return self._to_domain(db_store)

    def get_by_id(self, store_id: int) -> Optional[Store]:
        db_store = self.db.get(StoreModel, store_id)
        return self._to_domain(db_store) if db_store else None

    def list_stores(
        self, active: Optional[bool] = None, page: int = 1, limit: int = 10
    ) -> Tuple[List[Store], int]:
        query = self.db.query(StoreModel)
        if active is not None:
            query = query.filter(StoreModel.is_active == active)
        total = query.count()
        rows = (
            query.order_by(StoreModel.name.asc(), StoreModel.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return [self._to_domain(r) for r in rows], total

    def _to_domain(self, db_store: StoreModel) -> Store:
        return Store(
            id=getattr(db_store, "id", None),
            created_at=getattr(db_store, "created_at", None),
            updated_at=getattr(db_store, "updated_at", None),
            **{f: getattr(db_store, f) for f in _STORE_FIELDS},
        )
