"""Store error definitions.

Only hard failures are exceptions. Not-found and lost CAS races are normal
outcomes and come back as None / False / structured results instead.
Store unavailability surfaces as the driver's own exceptions, unchanged.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Standardized error codes for the store layer.

    Format: E_CATEGORY_NAME
    """

    # Validation errors
    E_INVALID_INPUT = "E_INVALID_INPUT"

    # Hard failures
    E_INVITE_CODE_COLLISION = "E_INVITE_CODE_COLLISION"
    E_CONFIG_MISSING = "E_CONFIG_MISSING"


class StoreError(Exception):
    """Base exception for store errors.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
    """

    def __init__(self, code: ErrorCode, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


class InvalidInputError(StoreError):
    """Malformed or missing required input. Never retried."""

    def __init__(self, message: str = "Invalid input"):
        super().__init__(ErrorCode.E_INVALID_INPUT, message)


class InviteCodeCollisionError(StoreError):
    """Every generated invite code collided with an existing one."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            ErrorCode.E_INVITE_CODE_COLLISION,
            f"Failed to create invite code after {attempts} attempts (collision)",
        )


class ConfigMissingError(StoreError):
    """The server config row could not be read back after a write."""

    def __init__(self, message: str = "Server config row is missing"):
        super().__init__(ErrorCode.E_CONFIG_MISSING, message)


def require_text(value: str | None, field: str) -> str:
    """Return the stripped value or raise InvalidInputError if it is empty."""
    text = (value or "").strip()
    if not text:
        raise InvalidInputError(f"{field} is required")
    return text
