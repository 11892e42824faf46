"""
Domain exceptions for TripTracker.

Every exception carries an ErrorCode so the request layer can map it to a
response without inspecting the message, and callers can react to specific
conditions (retry on CONCURRENT_MODIFICATION, prompt for another currency
on UNKNOWN_CURRENCY).

Usage:
    from triptracker.core.errors import NotFoundError

    raise NotFoundError("Expense 12 not found")
"""
from enum import Enum
from typing import Any, Dict


class ErrorCode(str, Enum):
    """Error codes for client-facing error messages."""

    # Input errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNKNOWN_CURRENCY = "UNKNOWN_CURRENCY"
    INVALID_ENUM_VALUE = "INVALID_ENUM_VALUE"

    # Lookup errors
    NOT_FOUND = "NOT_FOUND"

    # State errors
    INVALID_TRANSITION = "INVALID_TRANSITION"
    DUPLICATE_ACTIVE_SHARE = "DUPLICATE_ACTIVE_SHARE"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"

    # Access errors
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # System errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


USER_MESSAGES: Dict[ErrorCode, str] = {
    ErrorCode.VALIDATION_ERROR: "Your request contains invalid information. Please check and try again.",
    ErrorCode.UNKNOWN_CURRENCY: "This currency is not supported. Please choose another currency.",
    ErrorCode.INVALID_ENUM_VALUE: "One of the selected options is not recognized.",
    ErrorCode.NOT_FOUND: "The requested item could not be found.",
    ErrorCode.INVALID_TRANSITION: "This action is not allowed in the item's current state.",
    ErrorCode.DUPLICATE_ACTIVE_SHARE: "This trip is already shared with that user.",
    ErrorCode.CONCURRENT_MODIFICATION: "This item was changed by someone else. Please reload and try again.",
    ErrorCode.PERMISSION_DENIED: "You do not have permission to perform this action.",
    ErrorCode.INTERNAL_ERROR: "An unexpected error occurred. Please try again.",
}


class TripTrackerError(Exception):
    """Base exception for all TripTracker errors."""

    default_code = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, code: ErrorCode = None, details: Any = None):
        self.message = message
        self.code = code or self.default_code
        self.details = details
        super().__init__(message)

    @property
    def user_message(self) -> str:
        return USER_MESSAGES.get(self.code, USER_MESSAGES[ErrorCode.INTERNAL_ERROR])


class ValidationError(TripTrackerError):
    """Input failed validation; nothing was changed."""

    default_code = ErrorCode.VALIDATION_ERROR


class UnknownCurrencyError(ValidationError):
    """Currency code is not in the supported set."""

    default_code = ErrorCode.UNKNOWN_CURRENCY

    def __init__(self, currency: str, message: str = None):
        self.currency = currency
        super().__init__(message or f"Unsupported currency code: {currency}", details={"currency": currency})


class InvalidEnumValueError(ValidationError):
    """Value is not a member of a closed enumeration."""

    default_code = ErrorCode.INVALID_ENUM_VALUE


class NotFoundError(TripTrackerError):
    """Trip, expense, share or alert does not exist."""

    default_code = ErrorCode.NOT_FOUND


class InvalidTransitionError(TripTrackerError):
    """State-machine rule violated."""

    default_code = ErrorCode.INVALID_TRANSITION


class DuplicateActiveShareError(TripTrackerError):
    """An active (pending or accepted) share already exists for the trip and user."""

    default_code = ErrorCode.DUPLICATE_ACTIVE_SHARE


class ConcurrentModificationError(TripTrackerError):
    """Stored state changed between read and write."""

    default_code = ErrorCode.CONCURRENT_MODIFICATION


class PermissionDeniedError(TripTrackerError):
    """Acting user lacks the access level required."""

    default_code = ErrorCode.PERMISSION_DENIED
