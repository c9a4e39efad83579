"""
Common API utilities for consistent response formatting across all controllers.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from flask import Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from pharmacy_pos.core.exceptions import PharmacyError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def api_response(
    success: bool,
    message: str,
    data: Optional[Any] = None,
    status_code: int = 200,
    **extra: Any,
) -> tuple:
    """
    Standardized API response format for all endpoints.

    Args:
        success: Whether the operation was successful
        message: Human-readable message about the operation
        data: Optional data payload
        status_code: HTTP status code
        extra: Additional top-level keys (pagination, error codes)

    Returns:
        Tuple of (json_response, status_code)
    """
    response: Dict[str, Any] = {"success": success, "message": message}

    if data is not None:
        response["data"] = data
    response.update(extra)

    return jsonify(response), status_code


def get_json_body() -> Dict[str, Any]:
    """Return the request JSON object or raise ValidationError."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def get_pagination() -> Tuple[int, int]:
    """Parse ``page`` and ``limit`` query arguments."""
    try:
        page = int(request.args.get("page", 1))
        limit = int(request.args.get("limit", DEFAULT_PAGE_SIZE))
    except (TypeError, ValueError):
        raise ValidationError("page and limit must be integers")
    if page < 1:
        raise ValidationError("page must be >= 1", "page")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}", "limit")
    return page, limit


def pagination_meta(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": (total + limit - 1) // limit if total else 0,
    }


def get_optional_int_arg(name: str) -> Optional[int]:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", name)


def register_error_handlers(app: Flask) -> None:
    """Translate business errors and HTTP errors into the response envelope."""

    @app.errorhandler(PharmacyError)
    def handle_pharmacy_error(error: PharmacyError):
        log = logger.warning if error.status_code >= 500 else logger.info
        log(
            f"{type(error).__name__}: {error.message}",
            extra={
                "context": {
                    "path": request.path,
                    "method": request.method,
                    "status_code": error.status_code,
                    "error_code": error.error_code,
                }
            },
        )
        return api_response(False, error.message, None, error.status_code, **error.to_dict())

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        code = error.code or 500
        return api_response(
            False,
            error.description or error.name,
            None,
            code,
            error=error.name.lower().replace(" ", "_"),
        )

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        logger.error(
            f"Internal server error: {type(error).__name__}: {error}",
            exc_info=True,
            extra={"context": {"path": request.path, "method": request.method}},
        )
        if current_app.config.get("PROPAGATE_EXCEPTIONS"):
            raise error
        return api_response(
            False,
            "An internal error occurred. Please try again later.",
            None,
            500,
            error="internal_error",
        )
