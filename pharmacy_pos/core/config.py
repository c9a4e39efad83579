"""
Centralized configuration module for application-wide settings.

Every setting is read from the environment (optionally primed from a ``.env``
file) through a small getter, and ``load_settings`` bundles them into one
immutable ``Settings`` object. The app factory builds that object once and
hands it to whoever needs it; nothing here is cached at import time, so tests
can change the environment before creating an app.
"""

import logging
import os
import re
from dataclasses import dataclass
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./pharmacy.db"
DEFAULT_PHONE_PATTERN = r"^(\+233|0)[0-9]{9}$"
WEAK_SECRETS = ("dev-secret-change-me", "dev-jwt-secret-change-me", "secret123")


def _get_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(
            f"Invalid integer for {name}; using default",
            extra={"context": {"variable": name, "value": raw, "default": default}},
        )
        return default
    if value < minimum:
        logger.warning(
            f"{name} below minimum; using default",
            extra={"context": {"variable": name, "value": value, "default": default}},
        )
        return default
    return value


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("true", "1", "yes")


# ===========================
# Timezone Configuration
# ===========================


def get_app_timezone() -> ZoneInfo:
    """
    Get the application timezone from the TZ environment variable.

    Returns:
        ZoneInfo: Application timezone (defaults to UTC if not configured)

    Examples:
        >>> # In .env file:
        >>> # TZ=Africa/Accra
        >>> tz = get_app_timezone()
    """
    tz_name = os.getenv("TZ", "UTC")
    try:
        return ZoneInfo(tz_name)
    except Exception as e:
        logger.warning(
            f"Invalid timezone '{tz_name}' specified in TZ environment variable. "
            f"Falling back to UTC. Error: {e}"
        )
        return ZoneInfo("UTC")


# ===========================
# Inventory & Sales Configuration
# ===========================


def get_low_stock_threshold() -> int:
    """
    Quantity at or below which a new inventory row is reported as low stock.

    Environment Variables:
        LOW_STOCK_THRESHOLD: non-negative integer, default 10
    """
    return _get_int("LOW_STOCK_THRESHOLD", 10)


def get_sale_max_retries() -> int:
    """
    How many attempts the sale coordinator makes at the read-check-write
    sequence before a concurrent-write conflict is reported.

    Environment Variables:
        SALE_MAX_RETRIES: integer >= 1, default 3
    """
    return _get_int("SALE_MAX_RETRIES", 3, minimum=1)


def get_db_operation_timeout() -> float:
    """
    Wall-clock budget in seconds for one coordinator operation, all retries
    included. Also used as the SQLite busy timeout and the pool timeout.

    Environment Variables:
        DB_OPERATION_TIMEOUT: positive number, default 5
    """
    raw = os.getenv("DB_OPERATION_TIMEOUT", "5")
    try:
        value = float(raw)
    except ValueError:
        value = 5.0
    return value if value > 0 else 5.0


def get_db_statement_timeout_ms() -> int:
    """PostgreSQL ``statement_timeout`` applied to every connection."""
    return _get_int("DB_STATEMENT_TIMEOUT_MS", 5000, minimum=1)


def get_phone_pattern() -> str:
    """
    Regional phone number pattern customers must match.

    Environment Variables:
        PHONE_PATTERN: regular expression, default Ghana numbers
            (+233 or 0 followed by nine digits)
    """
    pattern = os.getenv("PHONE_PATTERN", DEFAULT_PHONE_PATTERN)
    try:
        re.compile(pattern)
    except re.error as e:
        logger.warning(
            "Invalid PHONE_PATTERN; falling back to default",
            extra={"context": {"pattern": pattern, "error": str(e)}},
        )
        return DEFAULT_PHONE_PATTERN
    return pattern


def get_prescription_expiring_days() -> int:
    return _get_int("PRESCRIPTION_EXPIRING_DAYS", 7, minimum=1)


# ===========================
# Settings bundle
# ===========================


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings for one application instance."""

    database_url: str = DEFAULT_DATABASE_URL
    environment: str = "development"
    secret_key: str = "dev-secret-change-me"
    jwt_secret_key: str = "dev-jwt-secret-change-me"
    jwt_expiration_hours: int = 24
    low_stock_threshold: int = 10
    sale_max_retries: int = 3
    db_operation_timeout: float = 5.0
    db_statement_timeout_ms: int = 5000
    phone_pattern: str = DEFAULT_PHONE_PATTERN
    prescription_expiring_days: int = 7
    log_level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"
    rate_limit_enabled: bool = True
    limiter_storage_uri: str = "memory://"
    sentry_dsn: str = ""
    timezone: str = "UTC"
    testing: bool = False

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def load_settings() -> Settings:
    """Build a ``Settings`` object from the current environment.

    Raises:
        ValueError: in production when the Flask or JWT secret is weak.
    """
    environment = os.getenv("FLASK_ENV", "development")
    testing = _get_bool("TESTING", False)
    settings = Settings(
        database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
        environment=environment,
        secret_key=os.getenv("FLASK_SECRET_KEY", "dev-secret-change-me"),
        jwt_secret_key=os.getenv("JWT_SECRET_KEY", "dev-jwt-secret-change-me"),
        jwt_expiration_hours=_get_int("JWT_EXPIRATION_HOURS", 24, minimum=1),
        low_stock_threshold=get_low_stock_threshold(),
        sale_max_retries=get_sale_max_retries(),
        db_operation_timeout=get_db_operation_timeout(),
        db_statement_timeout_ms=get_db_statement_timeout_ms(),
        phone_pattern=get_phone_pattern(),
        prescription_expiring_days=get_prescription_expiring_days(),
        log_level=os.getenv(
            "LOG_LEVEL", "INFO" if environment == "production" else "DEBUG"
        ),
        log_to_file=_get_bool("LOG_TO_FILE", not testing),
        log_dir=os.getenv("LOG_DIR", "logs"),
        rate_limit_enabled=_get_bool("RATE_LIMIT_ENABLED", True),
        limiter_storage_uri=os.getenv("LIMITER_STORAGE_URI", "memory://"),
        sentry_dsn=os.getenv("SENTRY_DSN", ""),
        timezone=str(get_app_timezone()),
        testing=testing,
    )

    if settings.is_production:
        for name, value in (
            ("FLASK_SECRET_KEY", settings.secret_key),
            ("JWT_SECRET_KEY", settings.jwt_secret_key),
        ):
            if value in WEAK_SECRETS or len(value) < 32:
                raise ValueError(
                    f"Production deployment requires strong {name} (min 32 chars)."
                )

    return settings


def log_settings(settings: Settings) -> None:
    """Log the active configuration without secrets."""
    logger.info(
        "Configuration loaded",
        extra={
            "context": {
                "environment": settings.environment,
                "timezone": settings.timezone,
                "low_stock_threshold": settings.low_stock_threshold,
                "sale_max_retries": settings.sale_max_retries,
                "db_operation_timeout": settings.db_operation_timeout,
                "rate_limit_enabled": settings.rate_limit_enabled,
            }
        },
    )
