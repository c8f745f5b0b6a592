# =============================================================================
# workers/tasks.py - Celery Task Definitions
# =============================================================================
# Background generation tasks. They run the same GenerationService as the
# blocking endpoints, so credit accounting is identical: debit only after
# fal.ai reports COMPLETED.
#
# Tasks:
# - generate_image: Nano Banana Pro image generation/edit
# - generate_video: Veo 3.1 video generation
#
# Results always carry user_id so GET /tasks/{id} can enforce ownership.
# =============================================================================

import logging
from typing import Any

from celery import shared_task, current_task

from app.exceptions import MagicAIException

logger = logging.getLogger(__name__)


# =============================================================================
# Task State Updates
# =============================================================================

def update_progress(message: str, media_type: str, user_id: str):
    """Mark the current task as running with a status message for polling."""
    if current_task:
        current_task.update_state(
            state="PROGRESS",
            meta={"message": message, "media_type": media_type, "user_id": user_id},
        )


def _failure(user_id: str, exc: MagicAIException) -> dict[str, Any]:
    return {
        "success": False,
        "user_id": user_id,
        "error": exc.message,
        "code": exc.code,
        "status_code": exc.status_code,
    }


# =============================================================================
# Generation Tasks
# =============================================================================

@shared_task(bind=True, name="workers.tasks.generate_image")
def generate_image(self, user_id: str, payload: dict[str, Any]) -> dict[str, Any]:
    """
    Run an image generation in the background.

    Args:
        user_id: Owner of the job (charged if on the platform key)
        payload: ImageGenerationRequest fields

    Returns:
        {"success": True, "user_id", ...generation response} or
        {"success": False, "user_id", "error", "code", "status_code"}
    """
    from core.models.generation import ImageGenerationRequest
    from core.services.generation_service import GenerationService

    logger.info(f"Image task for user {user_id} (mode={payload.get('mode')})")
    update_progress("Generating images...", "image", user_id)

    try:
        request = ImageGenerationRequest.model_validate(payload)
        result = GenerationService.generate_image(user_id, request)
    except MagicAIException as e:
        logger.warning(f"Image task failed for user {user_id}: {e.code} {e.message}")
        return _failure(user_id, e)

    return {"success": True, "user_id": user_id, **result.to_response()}


@shared_task(bind=True, name="workers.tasks.generate_video")
def generate_video(self, user_id: str, payload: dict[str, Any]) -> dict[str, Any]:
    """
    Run a video generation in the background.

    Args:
        user_id: Owner of the job (charged if on the platform key)
        payload: VideoGenerationRequest fields
    """
    from core.models.generation import VideoGenerationRequest
    from core.services.generation_service import GenerationService

    logger.info(f"Video task for user {user_id} (mode={payload.get('mode')})")
    update_progress("Generating video...", "video", user_id)

    try:
        request = VideoGenerationRequest.model_validate(payload)
        result = GenerationService.generate_video(user_id, request)
    except MagicAIException as e:
        logger.warning(f"Video task failed for user {user_id}: {e.code} {e.message}")
        return _failure(user_id, e)

    return {"success": True, "user_id": user_id, **result.to_response()}
