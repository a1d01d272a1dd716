"""Input validation rules for insurance catalog and ledger records."""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from policy_ledger.core.errors import ValidationError

CODE_PATTERN = re.compile(r"^[A-Z0-9_-]+$")
PHONE_PATTERN = re.compile(r"^\+?[0-9]\d{0,15}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_required_text(
    value: str | None,
    field_name: str,
    min_length: int = 1,
    max_length: int | None = None,
) -> str:
    """Validate a non-empty text field and return it stripped."""
    normalized = (value or "").strip()
    if not normalized:
        raise ValidationError(f"{field_name} is required", field=field_name)
    return validate_length(normalized, field_name, min_length, max_length)


def validate_length(
    value: str,
    field_name: str,
    min_length: int = 0,
    max_length: int | None = None,
) -> str:
    if len(value) < min_length:
        raise ValidationError(f"must be at least {min_length} characters long", field=field_name)
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"must be no more than {max_length} characters long", field=field_name)
    return value


def validate_optional_text(value: str | None, field_name: str, max_length: int) -> str:
    """Validate an optional free-text field, returning "" when empty."""
    return validate_length((value or "").strip(), field_name, 0, max_length)


def validate_code(value: str | None, field_name: str = "code") -> str | None:
    """Validate an optional uppercase code such as ``ACM`` or ``HEALTH_01``."""
    normalized = (value or "").strip()
    if not normalized:
        return None
    if len(normalized) > 20:
        raise ValidationError("must be no more than 20 characters long", field=field_name)
    if not CODE_PATTERN.match(normalized):
        raise ValidationError(
            "must contain only uppercase letters, numbers, hyphens, and underscores",
            field=field_name,
        )
    return normalized


def validate_phone(value: str | None) -> str:
    normalized = (value or "").strip().replace(" ", "")
    if normalized and not PHONE_PATTERN.match(normalized):
        raise ValidationError("must be a valid phone number", field="phone")
    return normalized


def validate_email(value: str | None) -> str:
    normalized = (value or "").strip()
    if normalized and not EMAIL_PATTERN.match(normalized):
        raise ValidationError("must be a valid email address", field="email")
    return normalized


def validate_amount(
    value: Any,
    field_name: str,
    minimum: Decimal = Decimal("0"),
    allow_equal: bool = True,
) -> Decimal:
    """Coerce a monetary value to Decimal and check its lower bound."""
    if value is None or value == "":
        raise ValidationError(f"{field_name} is required", field=field_name)
    if isinstance(value, bool):
        raise ValidationError("must be a number", field=field_name)
    try:
        amount = Decimal(str(value))
    except InvalidOperation as error:
        raise ValidationError("must be a number", field=field_name) from error
    if not amount.is_finite():
        raise ValidationError("must be a number", field=field_name)
    if amount < minimum or (not allow_equal and amount == minimum):
        comparison = "at least" if allow_equal else "greater than"
        raise ValidationError(f"must be {comparison} {minimum}", field=field_name)
    return amount


def validate_optional_amount(value: Any, field_name: str) -> Decimal | None:
    if value is None or value == "":
        return None
    return validate_amount(value, field_name)


def validate_int_range(value: Any, field_name: str, minimum: int, maximum: int) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError("must be a whole number", field=field_name)
    try:
        number = int(value)
    except (TypeError, ValueError) as error:
        raise ValidationError("must be a whole number", field=field_name) from error
    if number < minimum or number > maximum:
        raise ValidationError(f"must be between {minimum} and {maximum}", field=field_name)
    return number


def validate_choice(value: str | None, field_name: str, choices: Iterable[str]) -> str:
    allowed = tuple(choices)
    if value not in allowed:
        raise ValidationError(f"must be one of: {', '.join(allowed)}", field=field_name)
    return value


def parse_date(value: Any, field_name: str) -> date | None:
    """Accept a date, a datetime, or an ISO ``YYYY-MM-DD`` string."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as error:
        raise ValidationError("must be a valid date", field=field_name) from error


def parse_id(value: Any, field_name: str) -> int:
    """Validate a record reference and return it as int."""
    if isinstance(value, bool):
        raise ValidationError("must be a valid id", field=field_name)
    try:
        record_id = int(value)
    except (TypeError, ValueError) as error:
        raise ValidationError("must be a valid id", field=field_name) from error
    if record_id <= 0:
        raise ValidationError("must be a valid id", field=field_name)
    return record_id


def parse_optional_id(value: Any, field_name: str) -> int | None:
    if value is None or value == "":
        return None
    return parse_id(value, field_name)

