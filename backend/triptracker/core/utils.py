"""
Utility functions for the application.
"""
from typing import Any, Dict, Type, TypeVar
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
import enum

from triptracker.core.errors import InvalidEnumValueError, ValidationError

CENTS = Decimal("0.01")

E = TypeVar("E", bound=enum.Enum)


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Attach UTC to naive datetimes.
    SQLite drops tzinfo on DateTime(timezone=True) columns, so values read
    back from storage may be naive; they were written as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def quantize_amount(value: Any) -> Decimal:
    """Round to 2 decimal places, half-up."""
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def to_decimal(value: Any) -> Decimal:
    """Convert numbers and numeric strings to Decimal without float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"Invalid amount: {value!r}")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid amount: {value!r}")


def parse_enum(enum_cls: Type[E], value: Any) -> E:
    """
    Resolve a member of a closed enumeration from a member, its value or its name.
    Matching is case-insensitive; anything else raises InvalidEnumValueError.
    """
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        wanted = value.strip().lower()
        for member in enum_cls:
            if member.value.lower() == wanted or member.name.lower() == wanted:
                return member
    raise InvalidEnumValueError(
        f"{value!r} is not a valid {enum_cls.__name__}",
        details={"allowed": [member.value for member in enum_cls]},
    )


def format_error(message: str, details: Any = None) -> Dict[str, Any]:
    """Format error response."""
    response = {"error": message}
    if details:
        response["details"] = details
    return response
