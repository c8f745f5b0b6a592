# =============================================================================
# core/models/generation.py - Generation Request/Response Schemas
# =============================================================================
# These models define the API contract for image and video generation:
# - ImageMode / VideoMode: Supported modes and their fal.ai endpoints
# - ImageGenerationRequest / VideoGenerationRequest: Validated user input
# - GenerationResult: What the API returns once a job completes
#
# Request models accept extra fields (aspect_ratio, resolution, ...) and
# forward them to fal.ai untouched. Only `mode` is stripped.
# =============================================================================

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MediaType(str, Enum):
    """Kind of generated media stored in generated_media."""
    IMAGE = "image"
    VIDEO = "video"


class ImageMode(str, Enum):
    """
    Image generation modes.

    - generate: Text to image
    - edit: Edit one or more input images (requires image_urls)
    """
    GENERATE = "generate"
    EDIT = "edit"


class VideoMode(str, Enum):
    """
    Video generation modes (Veo 3.1 family on fal.ai).

    Required inputs per mode:
    - text-to-video: prompt only
    - extend-video: video_url
    - first-last-frame: first_frame_url and last_frame_url
    - image-to-video: image_url
    - reference-to-video: image_urls
    """
    TEXT_TO_VIDEO = "text-to-video"
    EXTEND_VIDEO = "extend-video"
    FIRST_LAST_FRAME = "first-last-frame"
    IMAGE_TO_VIDEO = "image-to-video"
    REFERENCE_TO_VIDEO = "reference-to-video"


IMAGE_ENDPOINTS: dict[ImageMode, str] = {
    ImageMode.GENERATE: "fal-ai/nano-banana-pro",
    ImageMode.EDIT: "fal-ai/nano-banana-pro/edit",
}

VIDEO_ENDPOINTS: dict[VideoMode, str] = {
    VideoMode.TEXT_TO_VIDEO: "fal-ai/veo3.1/fast",
    VideoMode.EXTEND_VIDEO: "fal-ai/veo3.1/fast/extend-video",
    VideoMode.FIRST_LAST_FRAME: "fal-ai/veo3.1/fast/first-last-frame-to-video",
    VideoMode.IMAGE_TO_VIDEO: "fal-ai/veo3.1/fast/image-to-video",
    VideoMode.REFERENCE_TO_VIDEO: "fal-ai/veo3.1/reference-to-video",
}

# Inputs each mode can't run without
VIDEO_REQUIRED_FIELDS: dict[VideoMode, tuple[str, ...]] = {
    VideoMode.TEXT_TO_VIDEO: (),
    VideoMode.EXTEND_VIDEO: ("video_url",),
    VideoMode.FIRST_LAST_FRAME: ("first_frame_url", "last_frame_url"),
    VideoMode.IMAGE_TO_VIDEO: ("image_url",),
    VideoMode.REFERENCE_TO_VIDEO: ("image_urls",),
}

_DURATION_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*s?\s*$")


def parse_duration_seconds(value: Any) -> float | None:
    """
    Parse a duration like "8s", "8" or 8 into seconds.

    Returns None when the value can't be read as a duration.
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _DURATION_PATTERN.match(str(value))
    return float(match.group(1)) if match else None


class _FalRequest(BaseModel):
    """Shared base: prompt plus arbitrary pass-through fal.ai parameters."""

    model_config = ConfigDict(extra="allow")

    mode: str
    prompt: str = Field(..., min_length=1, description="Text prompt")

    def fal_params(self) -> dict[str, Any]:
        """Everything but `mode`, ready to POST to fal.ai."""
        return self.model_dump(exclude={"mode"}, exclude_none=True)


class ImageGenerationRequest(_FalRequest):
    """
    Image generation request.

    Example:
        {
            "mode": "generate",
            "prompt": "a red fox in the snow",
            "num_images": 2,
            "aspect_ratio": "16:9",
            "output_format": "png",
            "resolution": "2K"
        }
    """

    mode: str = Field(default=ImageMode.GENERATE.value, description="generate or edit")
    num_images: int | None = Field(default=None, ge=1, le=4, description="Images to generate")
    image_urls: list[str] | None = Field(default=None, description="Input images for edit mode")

    @model_validator(mode="after")
    def _check_edit_inputs(self):
        if self.mode == ImageMode.EDIT.value and not self.image_urls:
            raise ValueError("edit mode requires at least one image in image_urls")
        return self

    @property
    def requested_images(self) -> int:
        return self.num_images or 1


class VideoGenerationRequest(_FalRequest):
    """
    Video generation request.

    Example:
        {
            "mode": "image-to-video",
            "prompt": "the camera slowly pans right",
            "image_url": "https://.../frame.png",
            "duration": "8s",
            "aspect_ratio": "16:9"
        }
    """

    mode: str = Field(default=VideoMode.TEXT_TO_VIDEO.value, description="Video mode")
    duration: str | int | float | None = Field(default=None, description='Clip length, e.g. "8s" or 8')

    @model_validator(mode="after")
    def _check_mode_inputs(self):
        try:
            mode = VideoMode(self.mode)
        except ValueError:
            # Unknown modes are reported by the service with the valid list
            return self

        extra = self.model_extra or {}
        missing = [name for name in VIDEO_REQUIRED_FIELDS[mode] if not extra.get(name)]
        if missing:
            raise ValueError(f"{mode.value} mode requires: {', '.join(missing)}")
        return self

    def duration_seconds(self, default: float) -> float:
        """Requested duration in seconds, or `default` when unset/unreadable."""
        return parse_duration_seconds(self.duration) or default


class GenerationResult(BaseModel):
    """
    Result of a completed generation.

    `output` is the raw fal.ai payload so clients keep access to
    model-specific fields (seed, description, ...).
    """

    media_type: MediaType
    media_urls: list[str] = Field(default_factory=list)
    charged: float = Field(default=0.0, ge=0, description="Credits debited for this job")
    balance: float | None = Field(default=None, description="Balance after the debit (platform key only)")
    used_own_key: bool = False
    output: dict[str, Any] = Field(default_factory=dict)

    def to_response(self) -> dict[str, Any]:
        """Flatten into the response body: raw fal output plus our fields."""
        return {
            **self.output,
            "media_urls": self.media_urls,
            "charged": self.charged,
            "balance": self.balance,
            "used_own_key": self.used_own_key,
        }


class AsyncGenerationResponse(BaseModel):
    """Response for a queued (Celery) generation."""
    task_id: str
    status: str = "PENDING"
    message: str = "Generation queued"
