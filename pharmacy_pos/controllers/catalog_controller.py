"""
Drug and store endpoints. DELETE is a soft delete (deactivate).
"""

from flask import Blueprint, request

from pharmacy_pos.controllers.helpers import catalog_service, parse_bool_arg
from pharmacy_pos.core.api_utils import (
    api_response,
    get_json_body,
    get_pagination,
    pagination_meta,
)
from pharmacy_pos.core.auth_decorators import STAFF_ROLES, jwt_required, require_role
from pharmacy_pos.core.limiter_config import limiter
from pharmacy_pos.db.session import get_database
from pharmacy_pos.schemas.dtos import (
    DRUG_FIELDS,
    STORE_FIELDS,
    drug_from_dict,
    drug_to_dict,
    parse_fields,
    store_from_dict,
    store_to_dict,
)

drugs_bp = Blueprint("drugs", __name__, url_prefix="/drugs")
stores_bp = Blueprint("stores", __name__, url_prefix="/stores")


# ===========================
# Drugs
# ===========================


@drugs_bp.route("", methods=["GET"])
@limiter.limit("100 per minute")
@jwt_required
def list_drugs():
    page, limit = get_pagination()
    with get_database().session_scope() as session:
        drugs, total = catalog_service(session).list_drugs(
            search=request.args.get("search") or None,
            category=request.args.get("category") or None,
            active=parse_bool_arg("active"),
            page=page,
            limit=limit,
        )
    return api_response(
        True,
        "Drugs retrieved",
        [drug_to_dict(d) for d in drugs],
        pagination=pagination_meta(page, limit, total),
    )


@drugs_bp.route("", methods=["POST"])
@limiter.limit("30 per minute")
@require_role(*STAFF_ROLES)
def create_drug():
    drug = drug_from_dict(get_json_body())
    with get_database().session_scope() as session:
        created = catalog_service(session).create_drug(drug)
    return api_response(True, "Drug created successfully", drug_to_dict(created), 201)


@drugs_bp.route("/<int:drug_id>", methods=["GET"])
@jwt_required
def get_drug(drug_id: int):
    with get_database().session_scope() as session:
        drug = catalog_service(session).get_drug(drug_id)
    return api_response(True, "Drug retrieved", drug_to_dict(drug))


@drugs_bp.route("/<int:drug_id>", methods=["PUT"])
@limiter.limit("30 per minute")
@require_role(*STAFF_ROLES)
def update_drug(drug_id: int):
    changes = parse_fields(get_json_body(), DRUG_FIELDS, partial=True)
    with get_database().session_scope() as session:
        drug = catalog_service(session).update_drug(drug_id, changes)
    return api_response(True, "Drug updated successfully", drug_to_dict(drug))


@drugs_bp.route("/<int:drug_id>", methods=["DELETE"])
@limiter.limit("30 per minute")
@require_role(*STAFF_ROLES)
def deactivate_drug(drug_id: int):
    with get_database().session_scope() as session:
        drug = catalog_service(session).deactivate_drug(drug_id)
    return api_response(True, "Drug deactivated", drug_to_dict(drug))


# ===========================
# Stores
# ===========================


@stores_bp.route("", methods=["GET"])
@jwt_required
def list_stores():
    page, limit = get_pagination()
    with get_database().session_scope() as session:
        stores, total = catalog_service(session).list_stores(
            active=parse_bool_arg("active"), page=page, limit=limit
        )
    return api_response(
        True,
        "Stores retrieved",
        [store_to_dict(s) for s in stores],
        pagination=pagination_meta(page, limit, total),
    )


@stores_bp.route("", methods=["POST"])
@limiter.limit("30 per minute")
@require_role(*STAFF_ROLES)
def create_store():
    store = store_from_dict(get_json_body())
    with get_database().session_scope() as session:
        created = catalog_service(session).create_store(store)
    return api_response(True, "Store created successfully", store_to_dict(created), 201)


@stores_bp.route("/<int:store_id>", methods=["GET"])
@jwt_required
def get_store(store_id: int):
    with get_database().session_scope() as session:
        store = catalog_service(session).get_store(store_id)
    return api_response(True, "Store retrieved", store_to_dict(store))


@stores_bp.route("/<int:store_id>", methods=["PUT"])
@limiter.limit("30 per minute")
@require_role(*STAFF_ROLES)
def update_store(store_id: int):
    changes = parse_fields(get_json_body(), STORE_FIELDS, partial=True)
    with get_database().session_scope() as session:
        store = catalog_service(session).update_store(store_id, changes)
    return api_response(True, "Store updated successfully", store_to_dict(store))


@stores_bp.route("/<int:store_id>", methods=["DELETE"])
@limiter.limit("30 per minute")
@require_role(*STAFF_ROLES)
def deactivate_store(store_id: int):
    with get_database().session_scope() as session:
        store = catalog_service(session).deactivate_store(store_id)
    return api_response(True, "Store deactivated", store_to_dict(store))
