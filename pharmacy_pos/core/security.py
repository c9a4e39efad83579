from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from passlib.context import CryptContext

# Password hashing configuration
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

JWT_ALGORITHM = "HS256"
JWT_EXPIRATION_HOURS = 24
JWT_ISSUER = "pharmacy-pos"


def hash_password(password: str) -> str:
    """Hash a password using bcrypt.

    Args:
        password: Plain text password to hash

    Returns:
        Hashed password string
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a password against its hash.

    Returns False for accounts without a usable hash instead of raising.
    """
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def create_access_token(
    data: Dict[str, Any],
    secret: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a JWT access token.

    Args:
        data: Payload data to encode in the token
        secret: Signing key
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    issued_at = datetime.now(timezone.utc)
    to_encode = dict(data, iss=JWT_ISSUER, iat=issued_at)
    to_encode["exp"] = issued_at + (expires_delta or timedelta(hours=JWT_EXPIRATION_HOURS))
    return jwt.encode(to_encode, secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str, secret: str) -> Optional[Dict[str, Any]]:
    """Decode and validate a JWT access token.

    Tokens must carry ``exp`` and come from this service (``iss``).

    Returns:
        Decoded payload if valid, None if invalid or expired
    """
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[JWT_ALGORITHM],
            issuer=JWT_ISSUER,
            options={"require": ["exp", "iss"]},
        )
    except jwt.PyJWTError:
        return None


def create_user_token(
    user_id: int, email: str, role: str, secret: str, expiration_hours: int = 24
) -> str:
    """Create a JWT token for a user."""
    token_data = {"sub": str(user_id), "email": email, "role": role, "type": "access"}
    return create_access_token(
        token_data, secret, expires_delta=timedelta(hours=expiration_hours)
    )


def get_user_from_token(token: str, secret: str) -> Optional[Dict[str, Any]]:
    """Extract user information from a JWT token.

    Returns:
        User data dict if valid, None if invalid
    """
    payload = decode_access_token(token, secret)
    if payload is None or payload.get("type") != "access":
        return None

    user_id = payload.get("sub")
    email = payload.get("email")
    if user_id is None or email is None:
        return None

    try:
        return {"user_id": int(user_id), "email": email, "role": payload.get("role")}
    except (TypeError, ValueError):
        return None
