from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from pharmacy_pos.db.base import Prescription as PrescriptionModel
from pharmacy_pos.db.base import PrescriptionItem as PrescriptionItemModel
from pharmacy_pos.domain.entities import Prescription, PrescriptionItem
from pharmacy_pos.domain.enums import PrescriptionStatus
from pharmacy_pos.domain.interfaces import IPrescriptionRepository

_FIELDS = (
    "patient_id",
    "doctor_id",
    "store_id",
    "diagnosis",
    "instructions",
    "prescribed_date",
    "expiry_date",
    "refills",
    "status",
    "notes",
)

_ITEM_FIELDS = ("drug_id", "dosage", "frequency", "duration", "quantity", "instructions")


class PrescriptionRepository(IPrescriptionRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def _items_to_models(self, items: List[PrescriptionItem]):
        return [
            PrescriptionItemModel(
                position=position, **{f: getattr(item, f) for f in _ITEM_FIELDS}
            )
            for position, item in enumerate(items)
        ]

    def add(self, prescription: Prescription) -> Prescription:
        db_rx = PrescriptionModel(**{f: getattr(prescription, f) for f in _FIELDS})
        db_rx.items = self._items_to_models(prescription.items)
        self.db.add(db_rx)
        self.db.flush()
        self.db.refresh(db_rx)
        return self._to_domain(db_rx)

    def update(self, prescription: Prescription) -> Prescription:
        db_rx = self.db.get(PrescriptionModel, prescription.id)
        if not db_rx:
            raise ValueError("Prescription not found")
        for f in _FIELDS:
            setattr(db_rx, f, getattr(prescription, f))
        # Line items are replaced wholesale; delete-orphan removes the old rows
        db_rx.items = self._items_to_models(prescription.items)
        self.db.flush()
        self.db.refresh(db_rx)
        return self._to_domain(db_rx)

    def get_by_id(self, prescription_id: int) -> Optional[Prescription]:
        db_rx = self.db.get(PrescriptionModel, prescription_id)
        return self._to_domain(db_rx) if db_rx else None

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
        query = self.db.query(PrescriptionModel)
        if patient_id is not None:
            query = query.filter(PrescriptionModel.patient_id == patient_id)
        if store_id is not None:
            query = query.filter(PrescriptionModel.store_id == store_id)
        if stored_status:
            query = query.filter(PrescriptionModel.status == stored_status)
        if expired_before is not None:
            query = query.filter(PrescriptionModel.expiry_date < expired_before)
        if not_expired_at is not None:
            query = query.filter(PrescriptionModel.expiry_date >= not_expired_at)
        total = query.count()
        rows = (
            query.options(selectinload(PrescriptionModel.items))
            .order_by(PrescriptionModel.prescribed_date.desc(), PrescriptionModel.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return [self._to_domain(r) for r in rows], total

    def list_expiring_between(
        self, start: datetime, end: datetime
    ) -> List[Prescription]:
        rows = (
            self.db.query(PrescriptionModel)
            .options(selectinload(PrescriptionModel.items))
            .filter(
                PrescriptionModel.status == PrescriptionStatus.ACTIVE.value,
                PrescriptionModel.expiry_date > start,
                PrescriptionModel.expiry_date <= end,
            )
            .order_by(PrescriptionModel.expiry_date.asc())
            .all()
        )
        return [self._to_domain(r) for r in rows]

    def _to_domain(self, db_rx: PrescriptionModel) -> Prescription:
        items = [
            PrescriptionItem(
                id=getattr(i, "id", None), **{f: getattr(i, f) for f in _ITEM_FIELDS}
            )
            for i in db_rx.items
        ]
        return Prescription(
            id=getattr(db_rx, "id", None),
            items=items,
            created_at=getattr(db_rx, "created_at", None),
            updated_at=getattr(db_rx, "updated_at", None),
            **{f: getattr(db_rx, f) for f in _FIELDS},
        )
