"""
Inventory controller for handling HTTP requests.

Reads are open to every authenticated user; the sale screen uses
``GET /inventory/<drug_id>/<store_id>`` to pre-check stock, which is advisory
only since the sale coordinator checks again. Stock writes need a staff role,
and the CSV export is limited to admins and managers.
"""

from flask import Blueprint, Response, request

from pharmacy_pos.controllers.helpers import inventory_service
from pharmacy_pos.core.api_utils import (
    api_response,
    get_json_body,
    get_optional_int_arg,
    get_pagination,
    pagination_meta,
)
from pharmacy_pos.core.auth_decorators import STAFF_ROLES, jwt_required, require_role
from pharmacy_pos.core.limiter_config import limiter
from pharmacy_pos.db.session import get_database
from pharmacy_pos.domain.enums import UserRole
from pharmacy_pos.schemas.dtos import (
    INVENTORY_UPDATE_FIELDS,
    QUANTITY_ADJUST_FIELDS,
    RestockRequest,
    inventory_to_dict,
    parse_fields,
)
from pharmacy_pos.services.report_service import ReportService

inventory_bp = Blueprint("inventory", __name__, url_prefix="/inventory")


@inventory_bp.route("", methods=["GET"])
@limiter.limit("100 per minute")
@jwt_required
def list_inventory():
    """List inventory rows, optionally by store and derived status."""
    page, limit = get_pagination()
    store_id = get_optional_int_arg("storeId")
    status = request.args.get("status") or None
    with get_database().session_scope() as session:
        items, total = inventory_service(session).list_items(
            store_id, status, page, limit
        )
    return api_response(
        True,
        "Inventory retrieved",
        [inventory_to_dict(i) for i in items],
        pagination=pagination_meta(page, limit, total),
    )


@inventory_bp.route("/low-stock", methods=["GET"])
@jwt_required
def list_low_stock():
    store_id = get_optional_int_arg("storeId")
    with get_database().session_scope() as session:
        items = inventory_service(session).list_low_stock(store_id)
    return api_response(
        True, "Low stock items retrieved", [inventory_to_dict(i) for i in items]
    )


@inventory_bp.route("/export/csv", methods=["GET"])
@limiter.limit("10 per minute")
@require_role(UserRole.ADMIN, UserRole.MANAGER)
def export_inventory_csv():
    store_id = get_optional_int_arg("storeId")
    with get_database().session_scope() as session:
        content = ReportService(session).export_inventory_csv(store_id=store_id)
    return Response(
        content,
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=inventory-export.csv"},
    )


@inventory_bp.route("/<int:drug_id>/<int:store_id>", methods=["GET"])
@limiter.limit("200 per minute")
@jwt_required
def get_stock(drug_id: int, store_id: int):
    with get_database().session_scope() as session:
        item = inventory_service(session).get_by_drug_and_store(drug_id, store_id)
    return api_response(True, "Inventory retrieved", inventory_to_dict(item))


@inventory_bp.route("/<int:item_id>", methods=["GET"])
@jwt_required
def get_item(item_id: int):
    with get_database().session_scope() as session:
        item = inventory_service(session).get_item(item_id)
    return api_response(True, "Inventory retrieved", inventory_to_dict(item))


@inventory_bp.route("", methods=["POST"])
@limiter.limit("30 per minute")
@require_role(*STAFF_ROLES)
def restock():
    """Receive stock: adds to the existing row or creates it."""
    payload = RestockRequest.from_dict(get_json_body())
    with get_database().session_scope() as session:
        item = inventory_service(session).restock(
            payload.drug_id,
            payload.store_id,
            payload.quantity,
            selling_price=payload.selling_price,
            reorder_point=payload.reorder_point,
            notes=payload.notes,
        )
    return api_response(True, "Inventory updated successfully", inventory_to_dict(item), 201)


@inventory_bp.route("/<int:item_id>", methods=["PUT"])
@limiter.limit("30 per minute")
@require_role(*STAFF_ROLES)
def update_item(item_id: int):
    values = parse_fields(get_json_body(), INVENTORY_UPDATE_FIELDS, partial=True)
    with get_database().session_scope() as session:
        item = inventory_service(session).update_item(item_id, **values)
    return api_response(True, "Inventory item updated", inventory_to_dict(item))


@inventory_bp.route("/<int:item_id>/quantity", methods=["PATCH"])
@limiter.limit("30 per minute")
@require_role(*STAFF_ROLES)
def change_quantity(item_id: int):
    """Manual stock correction by ``delta`` units (negative to remove)."""
    values = parse_fields(get_json_body(), QUANTITY_ADJUST_FIELDS)
    with get_database().session_scope() as session:
        item = inventory_service(session).adjust_quantity(item_id, values["delta"])
    return api_response(True, "Quantity updated", inventory_to_dict(item))


@inventory_bp.route("/<int:item_id>", methods=["DELETE"])
@limiter.limit("30 per minute")
@require_role(*STAFF_ROLES)
def delete_item(item_id: int):
    with get_database().session_scope() as session:
        inventory_service(session).delete_item(item_id)
    return api_response(True, "Inventory item deleted")
