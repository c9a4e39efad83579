"""
Prescription endpoints.

``status`` in responses is the effective status, so a prescription past its
expiry date reads as ``expired`` even though the row still says ``active``.
"""

from flask import Blueprint, request

from pharmacy_pos.controllers.helpers import prescription_service
from pharmacy_pos.core.api_utils import (
    api_response,
    get_json_body,
    get_optional_int_arg,
    get_pagination,
    pagination_meta,
)
from pharmacy_pos.core.auth_decorators import (
    STAFF_ROLES,
    get_current_user,
    jwt_required,
    require_role,
)
from pharmacy_pos.core.limiter_config import limiter
from pharmacy_pos.db.session import get_database
from pharmacy_pos.schemas.dtos import (
    prescription_changes,
    prescription_from_dict,
    prescription_to_dict,
)

prescriptions_bp = Blueprint("prescriptions", __name__, url_prefix="/prescriptions")


@prescriptions_bp.route("", methods=["GET"])
@limiter.limit("100 per minute")
@jwt_required
def list_prescriptions():
    page, limit = get_pagination()
    with get_database().session_scope() as session:
        prescriptions, total = prescription_service(session).list_prescriptions(
            status=request.args.get("status") or None,
            patient_id=get_optional_int_arg("patientId"),
            store_id=get_optional_int_arg("storeId"),
            page=page,
            limit=limit,
        )
    return api_response(
        True,
        "Prescriptions retrieved",
        [prescription_to_dict(p) for p in prescriptions],
        pagination=pagination_meta(page, limit, total),
    )


@prescriptions_bp.route("/expiring", methods=["GET"])
@jwt_required
def list_expiring():
    days = get_optional_int_arg("days")
    with get_database().session_scope() as session:
        prescriptions = prescription_service(session).list_expiring_soon(days)
    return api_response(
        True,
        "Expiring prescriptions retrieved",
        [prescription_to_dict(p) for p in prescriptions],
    )


@prescriptions_bp.route("", methods=["POST"])
@limiter.limit("30 per minute")
@require_role(*STAFF_ROLES)
def create_prescription():
    """Create a prescription; ``doctorId`` defaults to the caller."""
    prescription = prescription_from_dict(
        get_json_body(), default_doctor_id=get_current_user().id
    )
    with get_database().session_scope() as session:
        created = prescription_service(session).create_prescription(prescription)
    return api_response(
        True, "Prescription created successfully", prescription_to_dict(created), 201
    )


@prescriptions_bp.route("/<int:prescription_id>", methods=["GET"])
@jwt_required
def get_prescription(prescription_id: int):
    with get_database().session_scope() as session:
        prescription = prescription_service(session).get_prescription(prescription_id)
    return api_response(True, "Prescription retrieved", prescription_to_dict(prescription))


@prescriptions_bp.route("/<int:prescription_id>", methods=["PUT"])
@limiter.limit("30 per minute")
@require_role(*STAFF_ROLES)
def update_prescription(prescription_id: int):
    changes = prescription_changes(get_json_body())
    with get_database().session_scope() as session:
        prescription = prescription_service(session).update_prescription(
            prescription_id, changes
        )
    return api_response(
        True, "Prescription updated successfully", prescription_to_dict(prescription)
    )


@prescriptions_bp.route("/<int:prescription_id>/refill", methods=["POST"])
@limiter.limit("30 per minute")
@require_role(*STAFF_ROLES)
def refill_prescription(prescription_id: int):
    with get_database().session_scope() as session:
        prescription = prescription_service(session).refill(prescription_id)
    return api_response(
        True, "Prescription refilled successfully", prescription_to_dict(prescription)
    )


@prescriptions_bp.route("/<int:prescription_id>/cancel", methods=["POST"])
@limiter.limit("30 per minute")
@require_role(*STAFF_ROLES)
def cancel_prescription(prescription_id: int):
    with get_database().session_scope() as session:
        prescription = prescription_service(session).cancel(prescription_id)
    return api_response(True, "Prescription cancelled", prescription_to_dict(prescription))
