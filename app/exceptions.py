# =============================================================================
# app/exceptions.py - Custom Exception Handlers
# =============================================================================
# Centralized exception handling for the API.
# Errors should tell HOW to fix, not just WHAT failed.
# =============================================================================

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse


class MagicAIException(Exception):
    """
    Base exception for the Magic AI API.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        code: str = "MAGIC_AI_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result = {
            "detail": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


class ConfigurationError(MagicAIException):
    """Raised when a required secret or setting is missing."""

    def __init__(self, setting: str):
        super().__init__(
            message=f"{setting} not configured",
            code="CONFIGURATION_ERROR",
            status_code=500,
            suggestion=f"Set {setting} in the server environment",
            details={"setting": setting}
        )


# =============================================================================
# Credit & Payment Exceptions
# =============================================================================

class InsufficientCreditsError(MagicAIException):
    """Raised when the balance can't cover a generation on the platform key."""

    def __init__(self, balance: float, required: float):
        super().__init__(
            message=f"Insufficient credits: balance {balance:.2f}, required {required:.2f}",
            code="INSUFFICIENT_CREDITS",
            status_code=402,
            suggestion="Buy a credit package or add your own fal.ai API key",
            details={"balance": balance, "required": required}
        )


class InvalidPackageError(MagicAIException):
    """Raised when a checkout names an unknown credit package."""

    def __init__(self, package: str, allowed: list[str]):
        super().__init__(
            message="Invalid package",
            code="INVALID_PACKAGE",
            status_code=400,
            suggestion=f"Choose one of: {', '.join(allowed)}",
            details={"package": package, "allowed_packages": allowed}
        )


class CheckoutError(MagicAIException):
    """Raised when Stripe refuses to create a checkout session."""

    def __init__(self, error: str):
        super().__init__(
            message=f"Failed to create checkout session: {error}",
            code="CHECKOUT_ERROR",
            status_code=500,
            suggestion="Try again later or contact support if the issue persists",
            details={"error": error}
        )


class WebhookSignatureError(MagicAIException):
    """Raised when a Stripe webhook can't be authenticated."""

    def __init__(self, error: str):
        super().__init__(
            message=f"Webhook Error: {error}",
            code="WEBHOOK_SIGNATURE_ERROR",
            status_code=400,
            details={"error": error}
        )


# =============================================================================
# Generation Exceptions
# =============================================================================

class InvalidGenerationModeError(MagicAIException):
    """Raised when a generation request names an unknown mode."""

    def __init__(self, mode: str, valid_modes: list[str]):
        super().__init__(
            message=f"Invalid mode: {mode}. Valid modes: {', '.join(valid_modes)}",
            code="INVALID_MODE",
            status_code=400,
            details={"mode": mode, "valid_modes": valid_modes}
        )


class ProviderError(MagicAIException):
    """Raised when fal.ai rejects a submission. Keeps the upstream status."""

    def __init__(self, error: str, status_code: int = 502):
        super().__init__(
            message=f"fal.ai error: {error}",
            code="PROVIDER_ERROR",
            status_code=status_code,
            suggestion="Check the request parameters for the selected model",
        )


class GenerationFailedError(MagicAIException):
    """Raised when a queued job ends in FAILED."""

    def __init__(self, media_type: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=f"{media_type.capitalize()} generation failed",
            code="GENERATION_FAILED",
            status_code=500,
            suggestion="Try a different prompt or parameters. No credits were charged",
            details=details
        )


class GenerationTimeoutError(MagicAIException):
    """Raised when a queued job doesn't finish within the poll budget."""

    def __init__(self, media_type: str, attempts: int):
        suffix = " video" if media_type == "video" else ""
        super().__init__(
            message=f"Timeout waiting for{suffix} result",
            code="GENERATION_TIMEOUT",
            status_code=504,
            suggestion="Try again later. No credits were charged",
            details={"attempts": attempts}
        )


# =============================================================================
# OTP / Account Exceptions
# =============================================================================

class InvalidPhoneError(MagicAIException):
    """Raised when a phone number fails validation."""

    def __init__(self):
        super().__init__(
            message="Invalid phone number",
            code="INVALID_PHONE",
            status_code=400,
            suggestion="Enter a WhatsApp number with country code (8-20 characters)",
        )


class InvalidOTPError(MagicAIException):
    """Raised when an OTP code doesn't match, was used, or expired."""

    def __init__(self, message: str = "Invalid or expired OTP", status_code: int = 401):
        super().__init__(
            message=message,
            code="INVALID_OTP",
            status_code=status_code,
            suggestion="Request a new code and try again",
        )


class OTPDeliveryError(MagicAIException):
    """Raised when an OTP can't be stored or sent."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            code="OTP_DELIVERY_ERROR",
            status_code=500,
            suggestion="Try again later or contact support if the issue persists",
        )


class AccountError(MagicAIException):
    """Raised when the auth admin API can't create or sign in a user."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            code="ACCOUNT_ERROR",
            status_code=500,
        )


# =============================================================================
# API Key & Media Exceptions
# =============================================================================

class UnknownProviderError(MagicAIException):
    """Raised when an API key is for a provider we can't verify."""

    def __init__(self, provider: str):
        super().__init__(
            message="Unknown provider",
            code="UNKNOWN_PROVIDER",
            status_code=400,
            suggestion="Supported providers: fal, openai",
            details={"provider": provider}
        )


class ApiKeyNotFoundError(MagicAIException):
    """Raised when a user has no stored key for a provider."""

    def __init__(self, provider: str):
        super().__init__(
            message=f"No API key stored for provider: {provider}",
            code="API_KEY_NOT_FOUND",
            status_code=404,
            details={"provider": provider}
        )


class MediaNotFoundError(MagicAIException):
    """Raised when a media URL isn't in the user's gallery."""

    def __init__(self, url: str):
        super().__init__(
            message="Media not found",
            code="MEDIA_NOT_FOUND",
            status_code=404,
            suggestion="List your media with GET /media to find valid URLs",
            details={"url": url}
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def magic_ai_exception_handler(
    request: Request,
    exc: MagicAIException
) -> JSONResponse:
    """
    Convert MagicAIException to JSON response.

    Returns structured error with:
    - detail: Human-readable message
    - code: Machine-readable error code
    - suggestion: How to fix (if available)
    - details: Additional context
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )
