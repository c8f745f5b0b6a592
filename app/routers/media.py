# =============================================================================
# app/routers/media.py - Generated Media Gallery Endpoints
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Query

from app.dependencies import CurrentUser
from core.models.account import MediaItem, MediaList
from core.models.generation import MediaType
from core.services.media_service import MediaService

router = APIRouter()


@router.get("", response_model=MediaList)
def list_media(
    user: CurrentUser,
    media_type: Annotated[MediaType | None, Query(description="Filter by image or video")] = None,
):
    """The user's generated media, newest first."""
    rows = MediaService.list_media(user.id, media_type=media_type)
    items = [MediaItem(**row) for row in rows]
    return MediaList(items=items, total=len(items))


@router.delete("")
def delete_media(
    user: CurrentUser,
    url: Annotated[str, Query(min_length=1, description="URL of the media to remove")],
):
    """Remove a media URL from the user's gallery."""
    MediaService.delete_media(user.id, url)
    return {"url": url, "message": "Media deleted"}
