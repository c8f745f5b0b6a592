# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# WhatsApp OTP phone login plus "who am I" endpoints.
#
# Flow:
#   1. POST /auth/otp/send   {phone}        -> code delivered on WhatsApp
#   2. POST /auth/otp/verify {phone, otp}   -> {token_hash, email}
#   3. Client calls supabase.auth.verifyOtp({token_hash, type: "magiclink"})
#      and uses the resulting access token as Bearer for everything else.
# =============================================================================

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends

from app.auth.dependencies import get_current_user
from app.auth.models import AuthUser, UserResponse
from core.models.account import OTPSendResponse, OTPVerifyResponse
from core.services.credit_service import CreditService
from core.services.otp_service import OTPService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/otp/send", response_model=OTPSendResponse)
def send_otp(payload: dict[str, Any] = Body(..., examples=[{"phone": "+393331234567"}])):
    """
    Send a 6-digit login code to a WhatsApp number.

    The phone must include the country code. Codes expire after
    OTP_TTL_MINUTES (5 by default).
    """
    OTPService.send_otp(payload.get("phone"))
    return OTPSendResponse()


@router.post("/otp/verify", response_model=OTPVerifyResponse)
def verify_otp(payload: dict[str, Any] = Body(..., examples=[{"phone": "+393331234567", "otp": "123456"}])):
    """
    Verify a login code.

    Returns magic-link credentials the client exchanges for a session.
    """
    return OTPService.verify_otp(payload.get("phone"), payload.get("otp"))


@router.get("/me", response_model=UserResponse)
def get_current_user_info(user: AuthUser = Depends(get_current_user)) -> UserResponse:
    """Current user with credit summary."""
    return UserResponse(
        id=user.id,
        email=user.email,
        phone=user.phone,
        balance=CreditService.get_balance(user.id),
        has_own_key=CreditService.has_own_fal_key(user.id),
    )


@router.get("/verify")
async def verify_token(user: AuthUser = Depends(get_current_user)) -> dict:
    """
    Verify that the current token is valid.

    Raises:
        401: If token is invalid or expired
    """
    return {
        "valid": True,
        "user_id": str(user.id),
        "email": user.email,
    }
