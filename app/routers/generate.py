# =============================================================================
# app/routers/generate.py - Image & Video Generation Endpoints
# =============================================================================
# Two ways to run a generation:
# - Blocking: POST /generate/{image,video} waits for fal.ai and returns the
#   result (plain `def` handlers, so FastAPI runs them in its threadpool)
# - Queued: POST /generate/{image,video}/async hands the job to Celery and
#   returns a task_id to poll at GET /tasks/{task_id}
#
# Credits are debited only after a job succeeds.
# =============================================================================

import logging

from fastapi import APIRouter

from app.dependencies import CurrentUser
from core.models.generation import (
    AsyncGenerationResponse,
    ImageGenerationRequest,
    VideoGenerationRequest,
)
from core.services.generation_service import GenerationService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/image")
def generate_image(request: ImageGenerationRequest, user: CurrentUser):
    """
    Generate or edit images with Nano Banana Pro.

    Modes:
    - **generate**: text to image
    - **edit**: edit the images in `image_urls`

    Any other fields (num_images, aspect_ratio, resolution, output_format,
    safety_tolerance, ...) are forwarded to fal.ai.

    Returns the fal.ai output plus `media_urls`, `charged` and `balance`.
    """
    result = GenerationService.generate_image(user.id, request)
    return result.to_response()


@router.post("/video")
def generate_video(request: VideoGenerationRequest, user: CurrentUser):
    """
    Generate a video with Veo 3.1.

    Modes: text-to-video, extend-video, first-last-frame, image-to-video,
    reference-to-video. Can take several minutes; prefer /video/async from
    browsers.
    """
    result = GenerationService.generate_video(user.id, request)
    return result.to_response()


@router.post("/image/async", response_model=AsyncGenerationResponse, status_code=202)
def generate_image_async(request: ImageGenerationRequest, user: CurrentUser):
    """Queue an image generation. Poll GET /tasks/{task_id} for the result."""
    from workers.tasks import generate_image as generate_image_task

    task = generate_image_task.delay(str(user.id), request.model_dump(exclude_none=True))
    logger.info(f"Queued image generation {task.id} for user {user.id}")
    return AsyncGenerationResponse(task_id=task.id)


@router.post("/video/async", response_model=AsyncGenerationResponse, status_code=202)
def generate_video_async(request: VideoGenerationRequest, user: CurrentUser):
    """Queue a video generation. Poll GET /tasks/{task_id} for the result."""
    from workers.tasks import generate_video as generate_video_task

    task = generate_video_task.delay(str(user.id), request.model_dump(exclude_none=True))
    logger.info(f"Queued video generation {task.id} for user {user.id}")
    return AsyncGenerationResponse(task_id=task.id)
