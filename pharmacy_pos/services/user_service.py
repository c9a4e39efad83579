import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from pharmacy_pos.core.exceptions import (
    AuthenticationError,
    DuplicateError,
    NotFoundError,
    ValidationError,
)
from pharmacy_pos.core.security import create_user_token, hash_password, verify_password
from pharmacy_pos.domain.entities import User
from pharmacy_pos.domain.enums import UserRole
from pharmacy_pos.domain.interfaces import IUserRepository

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class UserService:
    """Application service for staff accounts and login.

    Works with domain entities, never database models. Password hashes never
    leave this service: controllers serialise users without them.
    """

    def __init__(
        self, repo: IUserRepository, jwt_secret: str, expiration_hours: int = 24
    ) -> None:
        self.repo = repo
        self.jwt_secret = jwt_secret
        self.expiration_hours = expiration_hours

    @staticmethod
    def _check_password(password: str) -> None:
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                "password",
            )

    def create_user(
        self,
        email: str,
        name: str,
        password: str,
        role: str = UserRole.CASHIER.value,
    ) -> User:
        self._check_password(password)
        email = email.strip().lower()
        if self.repo.get_by_email(email) is not None:
            raise DuplicateError("A user with this email already exists", "email")
        user = self.repo.add(
            User(
                email=email,
                name=name,
                role=role,
                is_active=True,
                password_hash=hash_password(password),
            )
        )
        logger.info(
            "User created", extra={"context": {"user_id": user.id, "role": user.role}}
        )
        return user

    def authenticate(self, email: str, password: str) -> Tuple[str, User]:
        """Check credentials and issue a bearer token.

        Returns:
            (token, user)

        Raises:
            AuthenticationError: unknown email, wrong password or inactive account;
                the message does not say which
        """
        user = self.repo.get_by_email((email or "").strip().lower())
        if (
            user is None
            or not user.is_active
            or not verify_password(password or "", user.password_hash)
        ):
            logger.warning(
                "Failed login attempt", extra={"context": {"email": email}}
            )
            raise AuthenticationError("Invalid email or password")

        token = create_user_token(
            user.id, user.email, user.role, self.jwt_secret, self.expiration_hours
        )
        logger.info("User logged in", extra={"context": {"user_id": user.id}})
        return token, user

    def get_user(self, user_id: int) -> User:
        user = self.repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def list_users(
        self, role: Optional[str] = None, page: int = 1, limit: int = 10
    ) -> Tuple[List[User], int]:
        return self.repo.list_users(role, page, limit)

    def update_user(self, user_id: int, changes: Dict[str, Any]) -> User:
        user = self.get_user(user_id)
        changes = dict(changes)
        password = changes.pop("password", None)
        if password is not None:
            self._check_password(password)
            changes["password_hash"] = hash_password(password)
        if "email" in changes:
            changes["email"] = changes["email"].strip().lower()
            owner = self.repo.get_by_email(changes["email"])
            if owner is not None and owner.id != user_id:
                raise DuplicateError("A user with this email already exists", "email")
        return self.repo.update(replace(user, **changes))

    def deactivate_user(self, user_id: int, acting_user_id: Optional[int] = None) -> User:
        if acting_user_id is not None and acting_user_id == user_id:
            raise ValidationError("You cannot deactivate your own account")
        user = self.get_user(user_id)
        return self.repo.update(replace(user, is_active=False))

    def ensure_admin(self, email: str, name: str, password: str) -> Tuple[User, bool]:
        """Create an admin account unless one with this email exists.

        Returns:
            (user, created)
        """
        existing = self.repo.get_by_email(email.strip().lower())
        if existing is not None:
            return existing, False
        return self.create_user(email, name, password, UserRole.ADMIN.value), True
