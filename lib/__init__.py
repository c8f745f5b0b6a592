# =============================================================================
# lib/ - Standalone Client Modules
# =============================================================================
# This package contains reusable clients and utilities:
# - supabase_client.py: Typed Supabase wrapper for database reads
# - fal_client.py: fal.ai queue API client (submit / poll / fetch)
# - whatsapp_client.py: WaSender client used for OTP delivery
# - utils.py: Shared utilities (error base class, UUID/phone helpers)
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.fal_client import (
    FalQueueClient,
    FalQueueError,
    FalJobFailedError,
    FalTimeoutError,
    QueueHandle,
)
from lib.whatsapp_client import WhatsAppClient, WhatsAppClientError
from lib.utils import ApplicationError, mask_secret, normalize_phone, normalize_uuid

__all__ = [
    # Supabase
    "SupabaseClient",
    "SupabaseClientError",
    # fal.ai
    "FalQueueClient",
    "FalQueueError",
    "FalJobFailedError",
    "FalTimeoutError",
    "QueueHandle",
    # WhatsApp
    "WhatsAppClient",
    "WhatsAppClientError",
    # Utils
    "ApplicationError",
    "mask_secret",
    "normalize_phone",
    "normalize_uuid",
]
