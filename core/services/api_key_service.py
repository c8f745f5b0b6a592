# =============================================================================
# core/services/api_key_service.py - User Provider API Keys
# =============================================================================
# Users may bring their own fal.ai (or OpenAI) key. A valid stored fal key
# makes generations free for that user: the key is used server-side and is
# never returned to the client unmasked.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

import httpx

from app.config import settings
from app.exceptions import ApiKeyNotFoundError, UnknownProviderError
from core.models.account import ApiKeyVerifyResponse, ApiProvider, StoredApiKey
from lib.fal_client import FalQueueClient
from lib.supabase_client import SupabaseClient
from lib.utils import mask_secret, normalize_uuid

logger = logging.getLogger(__name__)

OPENAI_MODELS_URL = "https://api.openai.com/v1/models?limit=1"


def _parse_provider(provider: str) -> ApiProvider:
    try:
        return ApiProvider(provider)
    except ValueError:
        raise UnknownProviderError(provider)


class ApiKeyService:
    """Service for verifying and storing provider API keys."""

    @staticmethod
    def verify_key(
        provider: str,
        api_key: str,
        http_client: httpx.Client | None = None,
    ) -> ApiKeyVerifyResponse:
        """
        Check a key against its provider with a cheap authenticated request.

        Raises:
            UnknownProviderError: For providers other than fal/openai
        """
        parsed = _parse_provider(provider)

        if parsed is ApiProvider.FAL:
            if FalQueueClient.check_key(api_key, base_url=settings.FAL_QUEUE_URL, http_client=http_client):
                return ApiKeyVerifyResponse(valid=True)
            return ApiKeyVerifyResponse(valid=False, error="Invalid fal.ai API key")

        headers = {"Authorization": f"Bearer {api_key}"}
        if http_client is not None:
            response = http_client.get(OPENAI_MODELS_URL, headers=headers)
        else:
            with httpx.Client(timeout=10) as http:
                response = http.get(OPENAI_MODELS_URL, headers=headers)
        if response.status_code in (401, 403):
            return ApiKeyVerifyResponse(valid=False, error="Invalid OpenAI API key")
        if response.is_success:
            return ApiKeyVerifyResponse(valid=True)

        logger.error(f"OpenAI verify error: {response.status_code} {response.text[:300]}")
        return ApiKeyVerifyResponse(
            valid=False,
            error=f"OpenAI verification failed: {response.status_code}",
        )

    @staticmethod
    def save_key(
        user_id: UUID | str,
        provider: str,
        api_key: str,
        http_client: httpx.Client | None = None,
    ) -> ApiKeyVerifyResponse:
        """
        Verify a key and store it with its validity flag.

        One key per (user, provider); saving again replaces the old key.
        """
        parsed = _parse_provider(provider)
        result = ApiKeyService.verify_key(parsed.value, api_key, http_client=http_client)

        user_id_str = normalize_uuid(user_id)
        client = SupabaseClient.get_client()
        client.table("user_api_keys").upsert(
            {
                "user_id": user_id_str,
                "provider": parsed.value,
                "api_key": api_key,
                "is_valid": result.valid,
            },
            on_conflict="user_id,provider",
        ).execute()

        logger.info(f"Stored {parsed.value} key for user {user_id_str} (valid={result.valid})")
        return result

    @staticmethod
    def list_keys(user_id: UUID | str) -> list[StoredApiKey]:
        """List a user's keys with the secrets masked."""
        return [
            StoredApiKey(
                provider=row["provider"],
                masked_key=mask_secret(row.get("api_key") or ""),
                is_valid=bool(row.get("is_valid")),
                created_at=row.get("created_at"),
            )
            for row in SupabaseClient.fetch_api_keys(user_id)
        ]

    @staticmethod
    def delete_key(user_id: UUID | str, provider: str) -> None:
        """
        Delete a stored key.

        Raises:
            ApiKeyNotFoundError: If the user has no key for this provider
        """
        parsed = _parse_provider(provider)
        user_id_str = normalize_uuid(user_id)
        client = SupabaseClient.get_client()

        response = (
            client.table("user_api_keys")
            .delete()
            .eq("user_id", user_id_str)
            .eq("provider", parsed.value)
            .execute()
        )
        if not response.data:
            raise ApiKeyNotFoundError(parsed.value)

        logger.info(f"Deleted {parsed.value} key for user {user_id_str}")

    @staticmethod
    def get_valid_key(user_id: UUID | str, provider: str) -> str | None:
        """The user's verified key for a provider, or None."""
        row: dict[str, Any] | None = SupabaseClient.fetch_api_key(user_id, provider, valid_only=True)
        return row["api_key"] if row else None
