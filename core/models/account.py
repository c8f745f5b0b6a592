# =============================================================================
# core/models/account.py - OTP, API Key & Media Schemas
# =============================================================================
# Smaller request/response contracts for account-level features:
# - Phone login via WhatsApp OTP
# - User-supplied provider API keys
# - The generated media gallery
# =============================================================================

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

from .generation import MediaType


# =============================================================================
# OTP
# =============================================================================

class OTPSendRequest(BaseModel):
    """Request an OTP for a phone number (with country code)."""
    phone: str = Field(..., examples=["+393331234567"])


class OTPSendResponse(BaseModel):
    success: bool = True
    message: str = "OTP sent"


class OTPVerifyRequest(BaseModel):
    """Verify the 6-digit code received on WhatsApp."""
    phone: str = Field(..., examples=["+393331234567"])
    otp: str = Field(..., examples=["123456"])


class OTPVerifyResponse(BaseModel):
    """
    Magic-link credentials for the verified phone user.

    The client exchanges them with supabase.auth.verifyOtp(
    {token_hash, type: "magiclink"}) to get a session.
    """
    success: bool = True
    token_hash: str
    email: str


# =============================================================================
# API Keys
# =============================================================================

class ApiProvider(str, Enum):
    """Providers whose keys we know how to verify."""
    FAL = "fal"
    OPENAI = "openai"


class ApiKeyVerifyRequest(BaseModel):
    provider: str = Field(..., examples=["fal"])
    api_key: str = Field(..., min_length=1)


class ApiKeySaveRequest(BaseModel):
    api_key: str = Field(..., min_length=1)


class ApiKeyVerifyResponse(BaseModel):
    valid: bool
    error: str | None = None


class StoredApiKey(BaseModel):
    """A stored key as shown to its owner. The secret is always masked."""
    provider: str
    masked_key: str
    is_valid: bool
    created_at: datetime | None = None


# =============================================================================
# Media
# =============================================================================

class MediaItem(BaseModel):
    """One row of the user's generated media gallery."""
    id: UUID | None = None
    media_type: MediaType
    url: str
    created_at: datetime | None = None


class MediaList(BaseModel):
    items: list[MediaItem]
    total: int
