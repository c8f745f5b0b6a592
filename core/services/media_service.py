# =============================================================================
# core/services/media_service.py - Generated Media Gallery
# =============================================================================
# Persists generated image/video URLs per user in generated_media.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid
from core.models.generation import MediaType
from app.exceptions import MediaNotFoundError

logger = logging.getLogger(__name__)


class MediaService:
    """Service for the user's media gallery."""

    @staticmethod
    def save_media(
        user_id: UUID | str,
        urls: list[str],
        media_type: MediaType,
    ) -> list[dict[str, Any]]:
        """
        Store generated media URLs for a user.

        Returns:
            Inserted rows (empty if there was nothing to save)
        """
        if not urls:
            return []

        user_id_str = normalize_uuid(user_id)
        rows = [
            {"user_id": user_id_str, "media_type": media_type.value, "url": url}
            for url in urls
        ]

        client = SupabaseClient.get_client()
        response = client.table("generated_media").insert(rows).execute()

        logger.info(f"Saved {len(rows)} {media_type.value}(s) for user {user_id_str}")
        return response.data or []

    @staticmethod
    def list_media(
        user_id: UUID | str,
        media_type: MediaType | None = None,
    ) -> list[dict[str, Any]]:
        """List a user's media, newest first."""
        return SupabaseClient.fetch_media(
            user_id,
            media_type=media_type.value if media_type else None,
        )

    @staticmethod
    def delete_media(user_id: UUID | str, url: str) -> None:
        """
        Remove a URL from the user's gallery.

        Raises:
            MediaNotFoundError: If the user has no media with this URL
        """
        user_id_str = normalize_uuid(user_id)
        client = SupabaseClient.get_client()

        response = (
            client.table("generated_media")
            .delete()
            .eq("user_id", user_id_str)
            .eq("url", url)
            .execute()
        )

        if not response.data:
            raise MediaNotFoundError(url)

        logger.info(f"Deleted {len(response.data)} media row(s) for user {user_id_str}")
