"""
Common validation utilities for request payloads.

Request DTOs collect every problem in a ``ValidationResult`` and then call
``raise_if_invalid``, so a client sees all field errors of a payload at once
instead of fixing them one round-trip at a time.
"""

import logging
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from pharmacy_pos.core.exceptions import ValidationError
from pharmacy_pos.domain.status import as_naive_utc

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[\w.+-]+@[\w-]+(\.[\w-]+)*\.[A-Za-z]{2,}$")


class ValidationResult:
    """Container for validation results."""

    def __init__(self):
        self.errors: List[str] = []
        self.fields: List[str] = []
        self.is_valid: bool = True

    def add_error(self, message: str, field: Optional[str] = None):
        """Add validation error."""
        error_msg = f"{field}: {message}" if field else message
        self.errors.append(error_msg)
        if field:
            self.fields.append(field)
        self.is_valid = False
        logger.debug(f"Validation error: {error_msg}")

    def raise_if_invalid(self) -> None:
        if self.is_valid:
            return
        raise ValidationError(
            "; ".join(self.errors), self.fields[0] if self.fields else None
        )


class BaseValidator:
    """Field-level validation helpers shared by all request schemas.

    Each helper returns the converted value, or None after recording an error
    (or when an optional value is absent).
    """

    @staticmethod
    def _is_blank(value: Any) -> bool:
        return value is None or (isinstance(value, str) and value.strip() == "")

    @staticmethod
    def validate_required_field(
        value: Any, field_name: str, result: ValidationResult
    ) -> bool:
        """Validate that a required field is present and not empty."""
        if BaseValidator._is_blank(value):
            result.add_error("is required", field_name)
            return False
        return True

    @staticmethod
    def validate_date(
        value: Any, field_name: str, result: ValidationResult
    ) -> Optional[date]:
        """Validate and convert a YYYY-MM-DD (or ISO datetime) field."""
        if BaseValidator._is_blank(value):
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            text = value.strip()
            try:
                return datetime.strptime(text[:10], "%Y-%m-%d").date()
            except ValueError:
                result.add_error("invalid date, use YYYY-MM-DD", field_name)
                return None
        result.add_error("invalid date format", field_name)
        return None

    @staticmethod
    def validate_datetime(
        value: Any, field_name: str, result: ValidationResult
    ) -> Optional[datetime]:
        """Validate and convert an ISO-8601 datetime to naive UTC (a bare date means midnight)."""
        if BaseValidator._is_blank(value):
            return None
        if isinstance(value, datetime):
            return as_naive_utc(value)
        if isinstance(value, str):
            text = value.strip().replace("Z", "+00:00")
            try:
                return as_naive_utc(datetime.fromisoformat(text))
            except ValueError:
                result.add_error("invalid datetime, use ISO-8601", field_name)
                return None
        result.add_error("invalid datetime format", field_name)
        return None

    @staticmethod
    def validate_decimal(
        value: Any,
        field_name: str,
        result: ValidationResult,
        min_value: Optional[Decimal] = None,
        max_value: Optional[Decimal] = None,
    ) -> Optional[Decimal]:
        """Validate and convert decimal field."""
        if BaseValidator._is_blank(value):
            return None
        if isinstance(value, bool):
            result.add_error("must be a number", field_name)
            return None
        try:
            decimal_value = Decimal(str(value).strip())
        except (InvalidOperation, TypeError, ValueError):
            result.add_error("must be a number", field_name)
            return None
        if not decimal_value.is_finite():
            result.add_error("must be a finite number", field_name)
            return None

        if min_value is not None and decimal_value < min_value:
            result.add_error(f"must be >= {min_value}", field_name)
            return None
        if max_value is not None and decimal_value > max_value:
            result.add_error(f"must be <= {max_value}", field_name)
            return None
        return decimal_value

    @staticmethod
    def validate_integer(
        value: Any,
        field_name: str,
        result: ValidationResult,
        min_value: Optional[int] = None,
        max_value: Optional[int] = None,
    ) -> Optional[int]:
        """Validate and convert integer field. Floats with a fraction are rejected."""
        if BaseValidator._is_blank(value):
            return None
        if isinstance(value, bool):
            result.add_error("must be an integer", field_name)
            return None
        if isinstance(value, float) and not value.is_integer():
            result.add_error("must be an integer", field_name)
            return None
        try:
            int_value = int(value)
        except (ValueError, TypeError):
            result.add_error("must be an integer", field_name)
            return None

        if min_value is not None and int_value < min_value:
            result.add_error(f"must be >= {min_value}", field_name)
            return None
        if max_value is not None and int_value > max_value:
            result.add_error(f"must be <= {max_value}", field_name)
            return None
        return int_value

    @staticmethod
    def validate_string(
        value: Any,
        field_name: str,
        result: ValidationResult,
        min_length: Optional[int] = None,
        max_length: Optional[int] = None,
        allowed_values: Optional[Iterable[str]] = None,
    ) -> Optional[str]:
        """Validate string field (stripped; empty becomes None)."""
        if value is None:
            return None
        if not isinstance(value, str):
            value = str(value)
        value = value.strip()

        if min_length is not None and len(value) < min_length:
            result.add_error(f"must have at least {min_length} characters", field_name)
            return None
        if max_length is not None and len(value) > max_length:
            result.add_error(f"must have at most {max_length} characters", field_name)
            return None
        if allowed_values is not None and value:
            allowed = list(allowed_values)
            if value not in allowed:
                result.add_error(f"must be one of: {', '.join(allowed)}", field_name)
                return None
        return value if value else None

    @staticmethod
    def validate_boolean(
        value: Any, field_name: str, result: ValidationResult
    ) -> Optional[bool]:
        if value is None:
            return None
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        result.add_error("must be true or false", field_name)
        return None

    @staticmethod
    def validate_email(
        value: Any, field_name: str, result: ValidationResult
    ) -> Optional[str]:
        email = BaseValidator.validate_string(value, field_name, result, max_length=120)
        if email is None:
            return None
        email = email.lower()
        if not EMAIL_PATTERN.match(email):
            result.add_error("invalid email address", field_name)
            return None
        return email


def pick(data: Dict[str, Any], *keys: str) -> Any:
    """Return the first present key, accepting both camelCase and snake_case."""
    for key in keys:
        if key in data:
            return data[key]
    return None
