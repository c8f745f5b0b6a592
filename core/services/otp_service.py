# =============================================================================
# core/services/otp_service.py - WhatsApp OTP Phone Login
# =============================================================================
# Phone login in two steps:
#
#   send:   validate phone -> store 6-digit code (5 min TTL) -> WhatsApp it
#   verify: match newest unused, unexpired code -> mark used
#           -> find or create the auth user for the phone
#           -> give the user a synthetic email and issue a magic link
#
# The client exchanges the returned token_hash with Supabase Auth
# (verifyOtp, type "magiclink") to obtain a session.
# =============================================================================

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from app.config import settings
from app.exceptions import AccountError, InvalidOTPError, InvalidPhoneError, OTPDeliveryError
from core.models.account import OTPVerifyResponse
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_phone, phone_digits
from lib.whatsapp_client import WhatsAppClient, WhatsAppClientError

logger = logging.getLogger(__name__)

MIN_PHONE_LENGTH = 8
MAX_PHONE_LENGTH = 20
OTP_LENGTH = 6

# Users fetched per page when looking an auth user up by phone
USERS_PAGE_SIZE = 1000


def generate_otp() -> str:
    """A uniformly random 6-digit code (100000-999999)."""
    return str(100000 + secrets.randbelow(900000))


def validate_phone(phone: Any) -> str:
    """
    Validate raw user input and return the normalized phone.

    Raises:
        InvalidPhoneError: Not a string, or outside 8-20 characters
    """
    if not isinstance(phone, str) or not MIN_PHONE_LENGTH <= len(phone) <= MAX_PHONE_LENGTH:
        raise InvalidPhoneError()
    if not phone_digits(phone):
        raise InvalidPhoneError()
    return normalize_phone(phone)


def synthetic_email(phone: str) -> str:
    """The email address phone-login users are given: wa_<digits>@<domain>."""
    return f"wa_{phone_digits(phone)}@{settings.OTP_EMAIL_DOMAIN}"


class OTPService:
    """Service for WhatsApp OTP login."""

    @staticmethod
    def _whatsapp() -> WhatsAppClient:
        return WhatsAppClient(settings.WASENDER_API_KEY, api_url=settings.WASENDER_API_URL)

    @staticmethod
    def send_otp(phone: Any) -> None:
        """
        Generate, store and deliver an OTP.

        Raises:
            InvalidPhoneError: Bad phone input
            OTPDeliveryError: Storing or sending failed
        """
        clean_phone = validate_phone(phone)
        if not settings.WASENDER_API_KEY:
            raise OTPDeliveryError("WASENDER_API_KEY not configured")

        otp = generate_otp()
        expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.OTP_TTL_MINUTES)

        try:
            client = SupabaseClient.get_client()
            client.table("phone_otps").insert({
                "phone": clean_phone,
                "otp_code": otp,
                "expires_at": expires_at.isoformat(),
            }).execute()
        except Exception as e:
            logger.error(f"DB error storing OTP: {e}")
            raise OTPDeliveryError("Failed to generate OTP")

        text = (
            f"Your Magic AI verification code is: {otp}\n\n"
            f"This code expires in {settings.OTP_TTL_MINUTES} minutes."
        )
        try:
            with OTPService._whatsapp() as whatsapp:
                whatsapp.send_message(clean_phone, text)
        except (WhatsAppClientError, httpx.HTTPError) as e:
            logger.error(f"Failed to deliver OTP: {e}")
            raise OTPDeliveryError("Failed to send OTP via WhatsApp")

        logger.info(f"OTP sent to phone ending {clean_phone[-4:]}")

    @staticmethod
    def verify_otp(phone: Any, otp: Any) -> OTPVerifyResponse:
        """
        Check an OTP and sign the phone's user in.

        Raises:
            InvalidOTPError: Missing input (400) or no matching code (401)
            AccountError: The auth admin API failed
        """
        if not phone or not otp or not isinstance(phone, str) or not isinstance(otp, str):
            raise InvalidOTPError("Phone and OTP are required", status_code=400)

        clean_phone = normalize_phone(phone)
        now_iso = datetime.now(timezone.utc).isoformat()

        record = SupabaseClient.fetch_active_otp(clean_phone, otp.strip(), now_iso)
        if not record:
            logger.info(f"OTP rejected for phone ending {clean_phone[-4:]}")
            raise InvalidOTPError()

        client = SupabaseClient.get_client()
        client.table("phone_otps").update({"verified": True}).eq("id", record["id"]).execute()

        user_id = OTPService._find_or_create_user(clean_phone)
        email = synthetic_email(clean_phone)

        try:
            client.auth.admin.update_user_by_id(user_id, {"email": email, "email_confirm": True})
            link = client.auth.admin.generate_link({"type": "magiclink", "email": email})
        except Exception as e:
            logger.error(f"Failed to generate magic link: {e}")
            raise AccountError("Authentication failed")

        token_hash = getattr(link.properties, "hashed_token", None) if link else None
        if not token_hash:
            logger.error("Magic link response has no hashed_token")
            raise AccountError("Authentication failed")

        logger.info(f"Phone login verified for user {user_id}")
        return OTPVerifyResponse(token_hash=token_hash, email=email)

    @staticmethod
    def _find_or_create_user(phone: str) -> str:
        """Return the auth user id for a phone, creating the user if needed."""
        client = SupabaseClient.get_client()
        digits = phone_digits(phone)

        try:
            page = 1
            while True:
                users = client.auth.admin.list_users(page=page, per_page=USERS_PAGE_SIZE)
                for user in users:
                    if user.phone and phone_digits(user.phone) == digits:
                        return str(user.id)
                if len(users) < USERS_PAGE_SIZE:
                    break
                page += 1

            created = client.auth.admin.create_user({"phone": phone, "phone_confirm": True})
        except Exception as e:
            logger.error(f"Failed to create user: {e}")
            raise AccountError("Failed to create user account")

        if not created or not created.user:
            raise AccountError("Failed to create user account")

        logger.info(f"Created phone user {created.user.id}")
        return str(created.user.id)
