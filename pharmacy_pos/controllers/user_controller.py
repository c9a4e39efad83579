"""
Authentication and staff account management.

``POST /auth/login`` is the only unauthenticated write in the API and carries
a tight rate limit. User management is admin only.
"""

import logging

from flask import Blueprint, request

from pharmacy_pos.controllers.helpers import get_settings, user_service
from pharmacy_pos.core.api_utils import (
    api_response,
    get_json_body,
    get_pagination,
    pagination_meta,
)
from pharmacy_pos.core.auth_decorators import get_current_user, jwt_required, require_role
from pharmacy_pos.core.limiter_config import limiter
from pharmacy_pos.db.session import get_database
from pharmacy_pos.domain.enums import UserRole
from pharmacy_pos.schemas.dtos import (
    USER_FIELDS,
    USER_UPDATE_FIELDS,
    LoginRequest,
    parse_fields,
    user_to_dict,
)

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")
users_bp = Blueprint("users", __name__, url_prefix="/users")


@auth_bp.route("/login", methods=["POST"])
@limiter.limit("10 per minute")
def login():
    """Exchange email and password for a bearer token."""
    payload = LoginRequest.from_dict(get_json_body())
    with get_database().session_scope() as session:
        token, user = user_service(session).authenticate(
            payload.email, payload.password
        )
    return api_response(
        True,
        "Login successful",
        {
            "token": token,
            "tokenType": "Bearer",
            "expiresInHours": get_settings().jwt_expiration_hours,
            "user": user_to_dict(user),
        },
    )


@auth_bp.route("/me", methods=["GET"])
@jwt_required
def me():
    return api_response(True, "Current user", user_to_dict(get_current_user()))


@users_bp.route("", methods=["GET"])
@require_role(UserRole.ADMIN)
def list_users():
    page, limit = get_pagination()
    with get_database().session_scope() as session:
        users, total = user_service(session).list_users(
            role=request.args.get("role") or None, page=page, limit=limit
        )
    return api_response(
        True,
        "Users retrieved",
        [user_to_dict(u) for u in users],
        pagination=pagination_meta(page, limit, total),
    )


@users_bp.route("", methods=["POST"])
@limiter.limit("30 per minute")
@require_role(UserRole.ADMIN)
def create_user():
    values = parse_fields(get_json_body(), USER_FIELDS)
    with get_database().session_scope() as session:
        user = user_service(session).create_user(
            values["email"],
            values["name"],
            values["password"],
            values.get("role") or UserRole.CASHIER.value,
        )
    return api_response(True, "User created successfully", user_to_dict(user), 201)


@users_bp.route("/<int:user_id>", methods=["GET"])
@require_role(UserRole.ADMIN)
def get_user(user_id: int):
    with get_database().session_scope() as session:
        user = user_service(session).get_user(user_id)
    return api_response(True, "User retrieved", user_to_dict(user))


@users_bp.route("/<int:user_id>", methods=["PUT"])
@limiter.limit("30 per minute")
@require_role(UserRole.ADMIN)
def update_user(user_id: int):
    changes = parse_fields(get_json_body(), USER_UPDATE_FIELDS, partial=True)
    with get_database().session_scope() as session:
        user = user_service(session).update_user(user_id, changes)
    return api_response(True, "User updated successfully", user_to_dict(user))


@users_bp.route("/<int:user_id>", methods=["DELETE"])
@limiter.limit("30 per minute")
@require_role(UserRole.ADMIN)
def deactivate_user(user_id: int):
    with get_database().session_scope() as session:
        user = user_service(session).deactivate_user(
            user_id, acting_user_id=get_current_user().id
        )
    return api_response(True, "User deactivated", user_to_dict(user))
