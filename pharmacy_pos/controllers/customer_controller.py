from flask import Blueprint, request

from pharmacy_pos.controllers.helpers import customer_service, parse_bool_arg
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
    CUSTOMER_FIELDS,
    customer_from_dict,
    customer_to_dict,
    parse_fields,
)

customers_bp = Blueprint("customers", __name__, url_prefix="/customers")


@customers_bp.route("", methods=["GET"])
@limiter.limit("100 per minute")
@jwt_required
def list_customers():
    page, limit = get_pagination()
    with get_database().session_scope() as session:
        customers, total = customer_service(session).list_customers(
            search=request.args.get("search") or None,
            active=parse_bool_arg("active"),
            page=page,
            limit=limit,
        )
    return api_response(
        True,
        "Customers retrieved",
        [customer_to_dict(c) for c in customers],
        pagination=pagination_meta(page, limit, total),
    )


@customers_bp.route("/search", methods=["GET"])
@limiter.limit("100 per minute")
@jwt_required
def search_customers():
    """Quick lookup used at the till (name, phone or email)."""
    _, limit = get_pagination()
    with get_database().session_scope() as session:
        customers = customer_service(session).search_customers(
            request.args.get("q", ""), limit=limit
        )
    return api_response(
        True, "Customers retrieved", [customer_to_dict(c) for c in customers]
    )


@customers_bp.route("", methods=["POST"])
@limiter.limit("30 per minute")
@jwt_required
def create_customer():
    customer = customer_from_dict(get_json_body())
    with get_database().session_scope() as session:
        created = customer_service(session).create_customer(customer)
    return api_response(
        True, "Customer created successfully", customer_to_dict(created), 201
    )


@customers_bp.route("/<int:customer_id>", methods=["GET"])
@jwt_required
def get_customer(customer_id: int):
    with get_database().session_scope() as session:
        customer = customer_service(session).get_customer(customer_id)
    return api_response(True, "Customer retrieved", customer_to_dict(customer))


@customers_bp.route("/<int:customer_id>", methods=["PUT"])
@limiter.limit("30 per minute")
@jwt_required
def update_customer(customer_id: int):
    changes = parse_fields(get_json_body(), CUSTOMER_FIELDS, partial=True)
    with get_database().session_scope() as session:
        customer = customer_service(session).update_customer(customer_id, changes)
    return api_response(True, "Customer updated successfully", customer_to_dict(customer))


@customers_bp.route("/<int:customer_id>", methods=["DELETE"])
@limiter.limit("30 per minute")
@require_role(*STAFF_ROLES)
def deactivate_customer(customer_id: int):
    with get_database().session_scope() as session:
        customer = customer_service(session).deactivate_customer(customer_id)
    return api_response(True, "Customer deactivated", customer_to_dict(customer))


@customers_bp.route("/<int:customer_id>/reactivate", methods=["POST"])
@limiter.limit("30 per minute")
@require_role(*STAFF_ROLES)
def reactivate_customer(customer_id: int):
    with get_database().session_scope() as session:
        customer = customer_service(session).reactivate_customer(customer_id)
    return api_response(True, "Customer reactivated", customer_to_dict(customer))
