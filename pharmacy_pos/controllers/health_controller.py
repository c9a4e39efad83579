"""
Health controller - liveness and database reachability for monitoring.
"""

import logging

from flask import Blueprint
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from pharmacy_pos import __version__
from pharmacy_pos.core.api_utils import api_response
from pharmacy_pos.db.session import get_database

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/health")


@health_bp.route("", methods=["GET"])
def health_check():
    """
    Report whether the API can reach its database.

    Returns:
        200 with {"status": "healthy", "database": "ok"} when a trivial query
        succeeds, 503 with {"status": "degraded", "database": "unreachable"}
        otherwise.

    Note:
        - No authentication required (monitoring endpoint)
    """
    try:
        with get_database().session_scope() as session:
            session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(
            "Health check: database unreachable",
            exc_info=True,
            extra={"context": {"endpoint": "/health", "error": str(e)}},
        )
        return api_response(
            False,
            "Database unreachable",
            {"status": "degraded", "database": "unreachable", "version": __version__},
            503,
        )

    return api_response(
        True,
        "Service healthy",
        {"status": "healthy", "database": "ok", "version": __version__},
    )
