# =============================================================================
# core/services/generation_service.py - Image & Video Generation
# =============================================================================
# Runs one generation job end to end:
#
#   1. Resolve the fal.ai key: the user's own valid key (free) or the
#      platform FAL_KEY (charged in credits)
#   2. On the platform key, check the balance covers the estimated cost
#   3. Submit to the fal.ai queue and poll at a fixed interval until
#      COMPLETED / FAILED / attempt budget exhausted
#   4. On success only: debit the actual cost once, then save the media
#
# A failed or timed-out job never touches the balance.
# =============================================================================

import logging
from dataclasses import dataclass
from typing import Any, Callable
from uuid import UUID

import httpx

from app.config import settings
from app.exceptions import (
    ConfigurationError,
    GenerationFailedError,
    GenerationTimeoutError,
    InsufficientCreditsError,
    InvalidGenerationModeError,
    ProviderError,
)
from core.models.generation import (
    IMAGE_ENDPOINTS,
    VIDEO_ENDPOINTS,
    GenerationResult,
    ImageGenerationRequest,
    ImageMode,
    MediaType,
    VideoGenerationRequest,
    VideoMode,
)
from core.services.api_key_service import ApiKeyService
from core.services.credit_service import CreditService, CreditUpdateError
from core.services.media_service import MediaService
from lib.fal_client import FalJobFailedError, FalQueueClient, FalQueueError, FalTimeoutError
from lib.utils import normalize_uuid

logger = logging.getLogger(__name__)


# =============================================================================
# Result parsing
# =============================================================================

def extract_image_urls(output: dict[str, Any]) -> list[str]:
    """
    Pull image URLs out of a fal.ai result.

    Models differ in where they put images (images, output.images,
    data.images) and whether entries are strings or {"url": ...} dicts.
    """
    raw = (
        output.get("images")
        or (output.get("output") or {}).get("images")
        or (output.get("data") or {}).get("images")
        or []
    )
    if not isinstance(raw, list):
        return []

    urls = []
    for item in raw:
        url = item if isinstance(item, str) else (item or {}).get("url")
        if url:
            urls.append(url)
    return urls


def extract_video_urls(output: dict[str, Any]) -> list[str]:
    """Pull the video URL out of a fal.ai result (video.url)."""
    url = (output.get("video") or {}).get("url")
    return [url] if url else []


# =============================================================================
# Service
# =============================================================================

@dataclass
class _Job:
    """Everything needed to run one queued generation."""
    media_type: MediaType
    endpoint_id: str
    params: dict[str, Any]
    estimated_cost: float
    poll_interval: float
    max_attempts: int
    extract_urls: Callable[[dict[str, Any]], list[str]]
    actual_cost: Callable[[list[str]], float]


class GenerationService:
    """Service for running fal.ai generations with credit accounting."""

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @classmethod
    def generate_image(
        cls,
        user_id: UUID | str,
        request: ImageGenerationRequest,
    ) -> GenerationResult:
        """Generate (or edit) images. Blocks until the job finishes."""
        try:
            mode = ImageMode(request.mode)
        except ValueError:
            raise InvalidGenerationModeError(request.mode, [m.value for m in ImageMode])

        unit_cost = settings.IMAGE_CREDIT_COST
        job = _Job(
            media_type=MediaType.IMAGE,
            endpoint_id=IMAGE_ENDPOINTS[mode],
            params=request.fal_params(),
            estimated_cost=round(request.requested_images * unit_cost, 2),
            poll_interval=settings.IMAGE_POLL_INTERVAL_SECONDS,
            max_attempts=settings.IMAGE_POLL_MAX_ATTEMPTS,
            extract_urls=extract_image_urls,
            actual_cost=lambda urls: round(len(urls) * unit_cost, 2),
        )
        return cls._run(user_id, job)

    @classmethod
    def generate_video(
        cls,
        user_id: UUID | str,
        request: VideoGenerationRequest,
    ) -> GenerationResult:
        """Generate a video. Blocks until the job finishes (up to ~10 minutes)."""
        try:
            mode = VideoMode(request.mode)
        except ValueError:
            raise InvalidGenerationModeError(request.mode, [m.value for m in VideoMode])

        seconds = request.duration_seconds(default=settings.VIDEO_DEFAULT_DURATION_SECONDS)
        cost = round(seconds * settings.VIDEO_CREDIT_COST_PER_SECOND, 2)
        job = _Job(
            media_type=MediaType.VIDEO,
            endpoint_id=VIDEO_ENDPOINTS[mode],
            params=request.fal_params(),
            estimated_cost=cost,
            poll_interval=settings.VIDEO_POLL_INTERVAL_SECONDS,
            max_attempts=settings.VIDEO_POLL_MAX_ATTEMPTS,
            extract_urls=extract_video_urls,
            actual_cost=lambda urls: cost if urls else 0.0,
        )
        return cls._run(user_id, job)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @classmethod
    def _resolve_key(cls, user_id: str, estimated_cost: float) -> tuple[str, bool]:
        """
        Pick the key to run with.

        Returns:
            (api_key, charge) where charge is False for the user's own key
        """
        own_key = ApiKeyService.get_valid_key(user_id, "fal")
        if own_key:
            return own_key, False

        if not settings.FAL_KEY:
            raise ConfigurationError("FAL_KEY")

        balance = CreditService.get_balance(user_id)
        if estimated_cost > 0 and balance < estimated_cost:
            raise InsufficientCreditsError(balance, estimated_cost)

        return settings.FAL_KEY, True

    @classmethod
    def _run(cls, user_id: UUID | str, job: _Job) -> GenerationResult:
        user_id_str = normalize_uuid(user_id)
        api_key, charge = cls._resolve_key(user_id_str, job.estimated_cost)

        logger.info(
            f"Starting {job.media_type.value} job on {job.endpoint_id} for user {user_id_str} "
            f"({'platform key' if charge else 'own key'})"
        )

        output = cls._execute(api_key, job)
        urls = job.extract_urls(output)

        charged = 0.0
        balance = None
        if charge:
            amount = job.actual_cost(urls)
            try:
                balance = CreditService.debit(user_id_str, amount)
                charged = amount
            except CreditUpdateError as e:
                # The job already succeeded upstream; return it uncharged
                logger.error(f"Credit debit failed for user {user_id_str}: {e.message}")

        try:
            MediaService.save_media(user_id_str, urls, job.media_type)
        except Exception as e:
            logger.warning(f"Could not save {job.media_type.value} to gallery: {e}")

        return GenerationResult(
            media_type=job.media_type,
            media_urls=urls,
            charged=charged,
            balance=balance,
            used_own_key=not charge,
            output=output,
        )

    @classmethod
    def _execute(cls, api_key: str, job: _Job) -> dict[str, Any]:
        """Submit and wait, translating client errors into API errors."""
        try:
            with FalQueueClient(api_key, base_url=settings.FAL_QUEUE_URL) as client:
                return client.run(
                    job.endpoint_id,
                    job.params,
                    interval=job.poll_interval,
                    max_attempts=job.max_attempts,
                )
        except FalJobFailedError as e:
            raise GenerationFailedError(job.media_type.value, details=e.status_payload)
        except FalTimeoutError as e:
            raise GenerationTimeoutError(job.media_type.value, e.attempts)
        except FalQueueError as e:
            raise ProviderError(e.message, status_code=e.status_code or 500)
        except httpx.HTTPError as e:
            logger.error(f"Transport error talking to fal.ai: {e}")
            raise ProviderError(str(e), status_code=502)
