# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .credit_service import CreditService, CreditUpdateError
from .media_service import MediaService
from .api_key_service import ApiKeyService
from .generation_service import GenerationService
from .payment_service import PaymentService
from .otp_service import OTPService

__all__ = [
    "CreditService",
    "CreditUpdateError",
    "MediaService",
    "ApiKeyService",
    "GenerationService",
    "PaymentService",
    "OTPService",
]
