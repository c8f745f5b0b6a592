# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for data validation:
# - generation.py: Image/video generation requests, modes and results
# - credits.py: Credit balance and checkout schemas
# - account.py: OTP login, provider API keys, media gallery
#
# These models define the "contract" between API and clients.
# =============================================================================

# -----------------------------------------------------------------------------
# Generation Models
# -----------------------------------------------------------------------------
from .generation import (
    AsyncGenerationResponse,
    GenerationResult,
    IMAGE_ENDPOINTS,
    ImageGenerationRequest,
    ImageMode,
    MediaType,
    VIDEO_ENDPOINTS,
    VideoGenerationRequest,
    VideoMode,
    parse_duration_seconds,
)

# -----------------------------------------------------------------------------
# Credit Models
# -----------------------------------------------------------------------------
from .credits import (
    CheckoutRequest,
    CheckoutResponse,
    CreditBalance,
    CreditPackage,
    PACKAGE_CREDITS,
)

# -----------------------------------------------------------------------------
# Account Models
# -----------------------------------------------------------------------------
from .account import (
    ApiKeySaveRequest,
    ApiKeyVerifyRequest,
    ApiKeyVerifyResponse,
    ApiProvider,
    MediaItem,
    MediaList,
    OTPSendRequest,
    OTPSendResponse,
    OTPVerifyRequest,
    OTPVerifyResponse,
    StoredApiKey,
)

__all__ = [
    # Generation
    "AsyncGenerationResponse",
    "GenerationResult",
    "IMAGE_ENDPOINTS",
    "ImageGenerationRequest",
    "ImageMode",
    "MediaType",
    "VIDEO_ENDPOINTS",
    "VideoGenerationRequest",
    "VideoMode",
    "parse_duration_seconds",
    # Credits
    "CheckoutRequest",
    "CheckoutResponse",
    "CreditBalance",
    "CreditPackage",
    "PACKAGE_CREDITS",
    # Account
    "ApiKeySaveRequest",
    "ApiKeyVerifyRequest",
    "ApiKeyVerifyResponse",
    "ApiProvider",
    "MediaItem",
    "MediaList",
    "OTPSendRequest",
    "OTPSendResponse",
    "OTPVerifyRequest",
    "OTPVerifyResponse",
    "StoredApiKey",
]
