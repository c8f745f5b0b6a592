# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================
# Pydantic models for authentication data.
# =============================================================================

from pydantic import BaseModel, ConfigDict
from uuid import UUID
from typing import Optional


class AuthUser(BaseModel):
    """
    Authenticated user extracted from a Supabase JWT.

    Phone-login users carry a synthetic email (wa_<digits>@<domain>)
    alongside their phone number.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID
    email: Optional[str] = None
    phone: Optional[str] = None


class UserResponse(BaseModel):
    """Current user as returned by GET /auth/me."""
    id: UUID
    email: Optional[str] = None
    phone: Optional[str] = None
    balance: float = 0.0
    has_own_key: bool = False
