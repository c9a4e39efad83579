import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from pharmacy_pos.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from pharmacy_pos.domain.entities import EXPIRING_SOON_DAYS, Prescription
from pharmacy_pos.domain.enums import PrescriptionStatus
from pharmacy_pos.domain.interfaces import (
    ICustomerRepository,
    IDrugRepository,
    IPrescriptionRepository,
    IStoreRepository,
    IUserRepository,
)
from pharmacy_pos.domain.status import utcnow

logger = logging.getLogger(__name__)

_TERMINAL = (PrescriptionStatus.COMPLETED.value, PrescriptionStatus.CANCELLED.value)


class PrescriptionService:
    """Prescriptions and their refill lifecycle.

    The stored status is one of active, completed or cancelled. ``expired`` is
    never written: it is derived on read from the expiry date.
    """

    def __init__(
        self,
        repository: IPrescriptionRepository,
        customers: ICustomerRepository,
        users: IUserRepository,
        stores: IStoreRepository,
        drugs: IDrugRepository,
        expiring_days: int = EXPIRING_SOON_DAYS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.customers = customers
        self.users = users
        self.stores = stores
        self.drugs = drugs
        self.expiring_days = expiring_days
        self._clock = clock

    def _check_references(self, prescription: Prescription) -> None:
        if self.customers.get_by_id(prescription.patient_id) is None:
            raise NotFoundError("Patient", prescription.patient_id)
        if self.users.get_by_id(prescription.doctor_id) is None:
            raise NotFoundError("Doctor", prescription.doctor_id)
        if self.stores.get_by_id(prescription.store_id) is None:
            raise NotFoundError("Store", prescription.store_id)
        for item in prescription.items:
            if self.drugs.get_by_id(item.drug_id) is None:
                raise NotFoundError("Drug", item.drug_id)

    def create_prescription(self, prescription: Prescription) -> Prescription:
        self._check_references(prescription)
        created = self.repository.add(
            replace(prescription, status=PrescriptionStatus.ACTIVE.value)
        )
        logger.info(
            "Prescription created",
            extra={
                "context": {
                    "prescription_id": created.id,
                    "patient_id": created.patient_id,
                    "items": len(created.items),
                }
            },
        )
        return created

    def get_prescription(self, prescription_id: int) -> Prescription:
        prescription = self.repository.get_by_id(prescription_id)
        if prescription is None:
            raise NotFoundError("Prescription", prescription_id)
        return prescription

    def list_prescriptions(
        self,
        status: Optional[str] = None,
        patient_id: Optional[int] = None,
        store_id: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Prescription], int]:
        """List by effective status; ``active`` excludes rows past their expiry."""
        now = self._clock()
        kwargs: Dict[str, Any] = {}
        if status == PrescriptionStatus.EXPIRED.value:
            kwargs = {
                "stored_status": PrescriptionStatus.ACTIVE.value,
                "expired_before": now,
            }
        elif status == PrescriptionStatus.ACTIVE.value:
            kwargs = {
                "stored_status": PrescriptionStatus.ACTIVE.value,
                "not_expired_at": now,
            }
        elif status in _TERMINAL:
            kwargs = {"stored_status": status}
        elif status:
            raise ValidationError(
                f"status must be one of: {', '.join(PrescriptionStatus.values())}",
                "status",
            )
        return self.repository.list_prescriptions(
            patient_id=patient_id, store_id=store_id, page=page, limit=limit, **kwargs
        )

    def update_prescription(
        self, prescription_id: int, changes: Dict[str, Any]
    ) -> Prescription:
        prescription = self.get_prescription(prescription_id)
        if prescription.status in _TERMINAL:
            raise InvalidStateError(
                f"Cannot edit a {prescription.status} prescription"
            )
        changes = {k: v for k, v in changes.items() if k != "status"}
        updated = replace(prescription, **changes)
        self._check_references(updated)
        return self.repository.update(updated)

    def refill(self, prescription_id: int) -> Prescription:
        """Use one refill. The last refill completes the prescription."""
        prescription = self.get_prescription(prescription_id)
        effective = prescription.effective_status(self._clock())
        if effective != PrescriptionStatus.ACTIVE.value:
            raise InvalidStateError(f"Cannot refill a {effective} prescription")
        if prescription.refills <= 0:
            raise InvalidStateError("No refills remaining")

        refills = prescription.refills - 1
        status = (
            PrescriptionStatus.COMPLETED.value
            if refills == 0
            else PrescriptionStatus.ACTIVE.value
        )
        updated = self.repository.update(
            replace(prescription, refills=refills, status=status)
        )
        logger.info(
            "Prescription refilled",
            extra={
                "context": {
                    "prescription_id": prescription_id,
                    "refills_left": refills,
                    "status": status,
                }
            },
        )
        return updated

    def cancel(self, prescription_id: int) -> Prescription:
        prescription = self.get_prescription(prescription_id)
        if prescription.status in _TERMINAL:
            raise InvalidStateError(
                f"Cannot cancel a {prescription.status} prescription"
            )
        return self.repository.update(
            replace(prescription, status=PrescriptionStatus.CANCELLED.value)
        )

    def list_expiring_soon(self, days: Optional[int] = None) -> List[Prescription]:
        """Active prescriptions that expire within ``days`` from now."""
        window = days if days is not None else self.expiring_days
        if window < 1:
            raise ValidationError("days must be at least 1", "days")
        now = self._clock()
        return self.repository.list_expiring_between(now, now + timedelta(days=window))
