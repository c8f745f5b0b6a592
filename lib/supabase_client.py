# =============================================================================
# lib/supabase_client.py - Supabase Client Wrapper
# =============================================================================
# This module provides a typed wrapper for Supabase database operations.
# It implements the singleton pattern to reuse a single client connection
# and provides specialized read helpers for:
# - Credit balances (user_credits)
# - Stored provider API keys (user_api_keys)
# - Generated media (generated_media)
# - Phone OTP codes (phone_otps)
#
# Writes live in core/services, next to the business rules that need them.
#
# Usage:
#   from lib.supabase_client import SupabaseClient
#   row = SupabaseClient.fetch_credits(user_id)
# =============================================================================

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from supabase import create_client, Client

from app.config import settings
from lib.utils import normalize_uuid

# Set up logging for this module
logger = logging.getLogger(__name__)

# PostgREST code for ".single()" matching no rows
NO_ROWS_CODE = "PGRST116"


class SupabaseClientError(Exception):
    """
    Error during Supabase operations.

    Provides actionable error messages:
    "Errors should tell HOW to fix, not just WHAT failed."
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
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
            result += f" Suggestion: {self.suggestion}"
        return result


class SupabaseClient:
    """
    Typed wrapper for Supabase database operations.

    Implements singleton pattern - one client instance is shared across
    the application. All methods are class methods for easy access without
    instantiation.

    Example:
        credits = SupabaseClient.fetch_credits(user_id)
        balance = credits["balance"] if credits else 0
    """

    _instance: Client | None = None

    @classmethod
    def get_client(cls) -> Client:
        """
        Get or create the singleton Supabase client.

        Uses service_role key which bypasses Row Level Security (RLS).
        This is appropriate for server-side operations, which is why every
        query below filters by user_id explicitly.

        Raises:
            SupabaseClientError: If client creation fails
        """
        if cls._instance is None:
            try:
                cls._instance = create_client(
                    settings.SUPABASE_URL,
                    settings.SUPABASE_SERVICE_KEY
                )
                logger.info("Supabase client initialized successfully")
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Failed to create Supabase client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file"
                )
        return cls._instance

    # -------------------------------------------------------------------------
    # Credits
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_credits(cls, user_id: str | UUID) -> dict[str, Any] | None:
        """
        Fetch a user's credit row.

        Returns:
            Dict with user_id and balance, or None if the user never topped up

        Raises:
            SupabaseClientError: If query fails
        """
        client = cls.get_client()
        user_id_str = normalize_uuid(user_id)

        try:
            response = (
                client.table("user_credits")
                .select("user_id, balance")
                .eq("user_id", user_id_str)
                .single()
                .execute()
            )
            return response.data

        except Exception as e:
            if NO_ROWS_CODE in str(e):
                return None
            raise SupabaseClientError(
                message=f"Failed to fetch credits: {e}",
                code="FETCH_CREDITS_FAILED",
                details={"user_id": user_id_str}
            )

    # -------------------------------------------------------------------------
    # API Keys
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_api_key(
        cls,
        user_id: str | UUID,
        provider: str,
        valid_only: bool = False,
    ) -> dict[str, Any] | None:
        """
        Fetch a user's stored key for one provider.

        Args:
            user_id: The user UUID
            provider: "fal" or "openai"
            valid_only: Only return the key if it was verified as valid

        Returns:
            Row dict (id, provider, api_key, is_valid, created_at) or None
        """
        client = cls.get_client()
        user_id_str = normalize_uuid(user_id)

        try:
            query = (
                client.table("user_api_keys")
                .select("id, provider, api_key, is_valid, created_at")
                .eq("user_id", user_id_str)
                .eq("provider", provider)
            )
            if valid_only:
                query = query.eq("is_valid", True)

            response = query.limit(1).execute()
            rows = response.data or []
            return rows[0] if rows else None

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch API key: {e}",
                code="FETCH_API_KEY_FAILED",
                details={"user_id": user_id_str, "provider": provider}
            )

    @classmethod
    def fetch_api_keys(cls, user_id: str | UUID) -> list[dict[str, Any]]:
        """Fetch all of a user's stored keys."""
        client = cls.get_client()
        user_id_str = normalize_uuid(user_id)

        try:
            response = (
                client.table("user_api_keys")
                .select("id, provider, api_key, is_valid, created_at")
                .eq("user_id", user_id_str)
                .order("created_at", desc=True)
                .execute()
            )
            return response.data or []

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch API keys: {e}",
                code="FETCH_API_KEYS_FAILED",
                details={"user_id": user_id_str}
            )

    # -------------------------------------------------------------------------
    # Generated Media
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_media(
        cls,
        user_id: str | UUID,
        media_type: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        Fetch a user's generated media, newest first.

        Args:
            user_id: The user UUID
            media_type: Optional "image" or "video" filter
            limit: Optional max rows
        """
        client = cls.get_client()
        user_id_str = normalize_uuid(user_id)

        try:
            query = (
                client.table("generated_media")
                .select("id, media_type, url, created_at")
                .eq("user_id", user_id_str)
            )
            if media_type:
                query = query.eq("media_type", media_type)
            query = query.order("created_at", desc=True)
            if limit:
                query = query.limit(limit)

            response = query.execute()
            media = response.data or []
            logger.debug(f"Fetched {len(media)} media rows for user {user_id_str}")
            return media

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch media: {e}",
                code="FETCH_MEDIA_FAILED",
                details={"user_id": user_id_str, "media_type": media_type}
            )

    # -------------------------------------------------------------------------
    # Phone OTPs
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_active_otp(
        cls,
        phone: str,
        otp_code: str,
        now_iso: str,
    ) -> dict[str, Any] | None:
        """
        Fetch the newest unverified, unexpired OTP row matching phone and code.

        Args:
            phone: Normalized phone ("+<digits>")
            otp_code: The 6-digit code the user typed
            now_iso: Current UTC time as ISO string (expiry cut-off)

        Returns:
            OTP row dict, or None if nothing matches
        """
        client = cls.get_client()

        try:
            response = (
                client.table("phone_otps")
                .select("*")
                .eq("phone", phone)
                .eq("otp_code", otp_code)
                .eq("verified", False)
                .gt("expires_at", now_iso)
                .order("created_at", desc=True)
                .limit(1)
                .execute()
            )
            rows = response.data or []
            return rows[0] if rows else None

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to look up OTP: {e}",
                code="FETCH_OTP_FAILED",
            )
