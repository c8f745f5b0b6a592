# =============================================================================
# lib/utils.py - Shared Utilities
# =============================================================================
# Common utilities used across the application.
# =============================================================================

import re
from typing import Any
from uuid import UUID


# =============================================================================
# UUID Utilities
# =============================================================================

def normalize_uuid(value: str | UUID) -> str:
    """
    Normalize a UUID to string format.

    Example:
        user_id = normalize_uuid(uuid_obj)  # "550e8400-..."
        user_id = normalize_uuid("550e8400-...")  # "550e8400-..."
    """
    return str(value) if isinstance(value, UUID) else value


# =============================================================================
# Phone & Secret Utilities
# =============================================================================

_NON_DIGITS = re.compile(r"\D")


def phone_digits(phone: str) -> str:
    """Strip everything but digits: "+39 333-123 4567" -> "393331234567"."""
    return _NON_DIGITS.sub("", phone)


def normalize_phone(phone: str) -> str:
    """
    Normalize a phone number to "+" followed by digits.

    Both OTP send and verify store and look up this form, so formatting
    differences in user input ("+39 333 ...", "0039-333...") don't matter
    beyond the digits themselves.

    Example:
        normalize_phone("+39 333-123 4567")  # "+393331234567"
    """
    return f"+{phone_digits(phone)}"


def mask_secret(secret: str, visible: int = 4) -> str:
    """Mask all but the last `visible` characters of a secret."""
    if len(secret) <= visible:
        return "*" * len(secret)
    return "*" * (len(secret) - visible) + secret[-visible:]


# =============================================================================
# Base Error Class
# =============================================================================

class ApplicationError(Exception):
    """
    Base error class for errors raised by the lib/ clients.

    Provides actionable error messages following the principle:
    "Errors should tell HOW to fix, not just WHAT failed."

    Attributes:
        code: Error code for categorization
        message: Human-readable error message
        suggestion: Actionable suggestion for fixing the error
        details: Additional context for debugging

    Example:
        class MyClientError(ApplicationError):
            def __init__(self, message: str, **kwargs):
                super().__init__(message, code="MY_CLIENT_ERROR", **kwargs)
    """

    def __init__(
        self,
        message: str,
        code: str = "APPLICATION_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f"\n  Suggestion: {self.suggestion}"
        return result

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "code": self.code,
            "message": self.message,
            "suggestion": self.suggestion,
            "details": self.details,
        }
