# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Health check endpoints
# - generate.py: Image/video generation (blocking and queued)
# - tasks.py: Background generation status
# - credits.py: Balance, credit packages, Stripe Checkout
# - webhooks.py: Stripe webhook receiver
# - api_keys.py: User-supplied provider API keys
# - media.py: Generated media gallery
#
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import health
from . import generate
from . import tasks
from . import credits
from . import webhooks
from . import api_keys
from . import media

__all__ = [
    "health",
    "generate",
    "tasks",
    "credits",
    "webhooks",
    "api_keys",
    "media",
]
