# =============================================================================
# workers/config.py - Celery Worker Configuration
# =============================================================================
# Settings specific to Celery workers.
# =============================================================================

from app.config import settings


def _longest_poll_seconds() -> int:
    """Worst-case wall time of a single generation's poll loop."""
    return int(max(
        settings.IMAGE_POLL_INTERVAL_SECONDS * settings.IMAGE_POLL_MAX_ATTEMPTS,
        settings.VIDEO_POLL_INTERVAL_SECONDS * settings.VIDEO_POLL_MAX_ATTEMPTS,
    ))


class CeleryConfig:
    """
    Celery configuration settings.

    These are applied to the Celery app via app.config_from_object().
    """

    # -------------------------------------------------------------------------
    # Broker Settings (Redis)
    # -------------------------------------------------------------------------

    broker_url = settings.REDIS_URL
    result_backend = settings.REDIS_URL

    # -------------------------------------------------------------------------
    # Task Settings
    # -------------------------------------------------------------------------

    # Ack on receipt; a redelivered generation would submit a second fal.ai job
    task_acks_late = False

    # Generations block for minutes; don't hoard them
    worker_prefetch_multiplier = 1

    # Task results expire after 1 hour
    result_expires = 3600

    # Soft limit after the longest poll loop, hard limit a minute later
    task_soft_time_limit = _longest_poll_seconds() + 60
    task_time_limit = _longest_poll_seconds() + 120

    # Report STARTED so clients can tell queued from running
    task_track_started = True

    # Store task args with every state so GET /tasks/{id} can check the owner
    result_extended = True

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    # Use JSON for task serialization (safer than pickle)
    task_serializer = "json"
    result_serializer = "json"
    accept_content = ["json"]

    # -------------------------------------------------------------------------
    # Task Routing
    # -------------------------------------------------------------------------

    task_queues = {
        "default": {
            "exchange": "default",
            "routing_key": "default",
        },
        "generation": {
            "exchange": "generation",
            "routing_key": "generation",
        },
    }

    task_routes = {
        "workers.tasks.generate_image": {"queue": "generation"},
        "workers.tasks.generate_video": {"queue": "generation"},
    }

    task_default_queue = "default"

    # -------------------------------------------------------------------------
    # Monitoring
    # -------------------------------------------------------------------------

    # Send task events for monitoring (Flower, etc.)
    worker_send_task_events = True
    task_send_sent_event = True

    # -------------------------------------------------------------------------
    # Timezone
    # -------------------------------------------------------------------------

    timezone = "UTC"
    enable_utc = True
