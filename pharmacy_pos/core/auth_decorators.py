"""
Authentication helpers for the pharmacy API.

Every route except ``/health`` and ``/auth/login`` is called with a bearer
token issued by ``POST /auth/login``:

    Authorization: Bearer <jwt>

DECORATOR GUIDE:
- @jwt_required: any active user (cashiers included)
- @require_role(...): restrict a route to some roles; implies @jwt_required

Examples:
    @sales_bp.route("/<int:sale_id>/refund", methods=["PUT"])
    @require_role(*STAFF_ROLES)
    def refund_sale(sale_id):
        user = get_current_user()
        ...
"""

from functools import wraps
from typing import Optional

from flask import current_app, g, request

from pharmacy_pos.core.exceptions import AuthenticationError, PermissionDeniedError
from pharmacy_pos.core.security import get_user_from_token
from pharmacy_pos.db.session import get_database
from pharmacy_pos.domain.entities import User, UserRole
from pharmacy_pos.repositories.user_repo import UserRepository

STAFF_ROLES = (UserRole.ADMIN, UserRole.MANAGER, UserRole.PHARMACIST)


def get_current_user() -> Optional[User]:
    """Return the user authenticated for this request, if any."""
    return getattr(g, "current_user", None)


def _authenticate() -> User:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise AuthenticationError("Missing or invalid Authorization header")

    token = auth_header.split(" ", 1)[1].strip()
    user_data = get_user_from_token(token, current_app.config["JWT_SECRET_KEY"])
    if not user_data:
        raise AuthenticationError("Invalid or expired token")

    with get_database().session_scope() as session:
        user = UserRepository(session).get_by_id(user_data["user_id"])

    if user is None or not user.is_active:
        raise AuthenticationError("User account is missing or inactive")
    return user


def jwt_required(f):
    """Decorator to require JWT authentication.

    Loads the token's user from the database so a deactivated account loses
    access immediately, and stores it in ``g.current_user``.
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.current_user = _authenticate()
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """Decorator factory: authenticate, then allow only the given roles.

    Returns 401 without a valid token and 403 for any other role.
    """
    allowed = {getattr(role, "value", role) for role in roles}

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = _authenticate()
            g.current_user = user
            if user.role not in allowed:
                raise PermissionDeniedError(
                    f"Role '{user.role}' may not perform this action"
                )
            return f(*args, **kwargs)

        return decorated_function

    return decorator
