"""
Reports controller: sales summary and best sellers.

Query parameters:
- storeId: restrict to one store
- startDate / endDate: ISO-8601 bounds on the sale timestamp (summary)
- limit / days: size of the ranking and look-back window (top drugs)
"""

from flask import Blueprint

from pharmacy_pos.controllers.helpers import parse_query
from pharmacy_pos.core.api_utils import api_response, get_optional_int_arg
from pharmacy_pos.core.auth_decorators import STAFF_ROLES, require_role
from pharmacy_pos.core.limiter_config import limiter
from pharmacy_pos.db.session import get_database
from pharmacy_pos.schemas.dtos import SALE_FILTER_FIELDS
from pharmacy_pos.services.report_service import ReportService

reports_bp = Blueprint("reports", __name__, url_prefix="/reports")


@reports_bp.route("/sales-summary", methods=["GET"])
@limiter.limit("30 per minute")
@require_role(*STAFF_ROLES)
def sales_summary():
    filters = parse_query(SALE_FILTER_FIELDS)
    with get_database().session_scope() as session:
        summary = ReportService(session).sales_summary(
            store_id=filters.get("store_id"),
            start=filters.get("start_date"),
            end=filters.get("end_date"),
        )
    return api_response(True, "Sales summary generated", summary)


@reports_bp.route("/top-drugs", methods=["GET"])
@limiter.limit("30 per minute")
@require_role(*STAFF_ROLES)
def top_drugs():
    limit = get_optional_int_arg("limit") or 10
    days = get_optional_int_arg("days") or 30
    with get_database().session_scope() as session:
        ranking = ReportService(session).top_selling_drugs(
            store_id=get_optional_int_arg("storeId"), limit=limit, days=days
        )
    return api_response(True, "Top selling drugs retrieved", ranking)
