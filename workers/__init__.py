# =============================================================================
# workers/ - Celery Background Task Workers
# =============================================================================
# Background generation jobs for clients that shouldn't hold an HTTP request
# open for minutes while fal.ai renders a video.
#
# Components:
# - celery_app.py: Celery application configuration
# - tasks.py: Task definitions (image and video generation)
# - config.py: Worker-specific settings
#
# Usage:
#   # Start worker
#   celery -A workers.celery_app worker -Q generation,default --loglevel=info
#
#   # Submit task (from API)
#   from workers.tasks import generate_video
#   result = generate_video.delay(user_id, {"mode": "text-to-video", "prompt": "..."})
# =============================================================================

from .celery_app import celery_app
from . import tasks

__all__ = [
    "celery_app",
    "tasks",
]
