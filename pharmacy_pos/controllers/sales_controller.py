"""
Sales controller: HTTP concerns only.

Stock checks, pricing and the inventory decrement all live in
``SaleService``; this module parses requests, picks the cashier from the
token and shapes responses.
"""

import logging

from flask import Blueprint, Response, request

from pharmacy_pos.controllers.helpers import parse_query, sale_service
from pharmacy_pos.core.api_utils import (
    api_response,
    get_json_body,
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
    SALE_ACTION_FIELDS,
    SALE_FILTER_FIELDS,
    CreateSaleRequest,
    parse_fields,
    sale_to_dict,
)
from pharmacy_pos.services.report_service import ReportService

logger = logging.getLogger(__name__)

sales_bp = Blueprint("sales", __name__, url_prefix="/sales")


@sales_bp.route("", methods=["POST"])
@limiter.limit("60 per minute")
@jwt_required
def create_sale():
    """Record a sale and decrement stock.

    An ``Idempotency-Key`` header (or ``idempotencyKey`` in the body) makes
    resubmission safe: the replay answers 200 with the original sale.
    """
    payload = CreateSaleRequest.from_dict(
        get_json_body(), idempotency_key=request.headers.get("Idempotency-Key")
    )
    sale, created = sale_service().submit_sale(
        drug_id=payload.drug_id,
        store_id=payload.store_id,
        customer_id=payload.customer_id,
        cashier_id=get_current_user().id,
        quantity=payload.quantity,
        unit_price=payload.unit_price,
        discount_percent=payload.discount_percent,
        payment_method=payload.payment_method,
        customer_notes=payload.customer_notes,
        idempotency_key=payload.idempotency_key,
    )
    if created:
        return api_response(True, "Sale created successfully", sale_to_dict(sale), 201)
    return api_response(True, "Sale already recorded", sale_to_dict(sale), 200)


@sales_bp.route("", methods=["GET"])
@limiter.limit("100 per minute")
@jwt_required
def list_sales():
    page, limit = get_pagination()
    filters = parse_query(SALE_FILTER_FIELDS)
    sales, total = sale_service().list_sales(filters, page, limit)
    return api_response(
        True,
        "Sales retrieved",
        [sale_to_dict(s) for s in sales],
        pagination=pagination_meta(page, limit, total),
    )


@sales_bp.route("/<int:sale_id>", methods=["GET"])
@jwt_required
def get_sale(sale_id: int):
    sale = sale_service().get_sale(sale_id)
    return api_response(True, "Sale retrieved", sale_to_dict(sale))


@sales_bp.route("/<int:sale_id>/refund", methods=["PUT"])
@limiter.limit("30 per minute")
@require_role(*STAFF_ROLES)
def refund_sale(sale_id: int):
    """Refund a completed sale; the quantity goes back into stock."""
    body = request.get_json(silent=True) or {}
    values = parse_fields(body, SALE_ACTION_FIELDS, partial=True)
    sale = sale_service().refund_sale(
        sale_id, reason=values.get("reason"), updated_by=get_current_user().id
    )
    return api_response(True, "Sale refunded successfully", sale_to_dict(sale))


@sales_bp.route("/<int:sale_id>", methods=["DELETE"])
@limiter.limit("30 per minute")
@require_role(*STAFF_ROLES)
def cancel_sale(sale_id: int):
    """Cancel a sale. Completed sales put their quantity back into stock."""
    body = request.get_json(silent=True) or {}
    values = parse_fields(body, SALE_ACTION_FIELDS, partial=True)
    sale = sale_service().cancel_sale(
        sale_id, reason=values.get("reason"), updated_by=get_current_user().id
    )
    return api_response(True, "Sale cancelled successfully", sale_to_dict(sale))


@sales_bp.route("/export/csv", methods=["GET"])
@limiter.limit("10 per minute")
@require_role(*STAFF_ROLES)
def export_sales_csv():
    filters = parse_query(SALE_FILTER_FIELDS)
    with get_database().session_scope() as session:
        content = ReportService(session).export_sales_csv(
            store_id=filters.get("store_id"),
            start=filters.get("start_date"),
            end=filters.get("end_date"),
            status=filters.get("status"),
        )
    return Response(
        content,
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=sales-export.csv"},
    )
