# =============================================================================
# core/services/credit_service.py - Credit Balance Logic
# =============================================================================
# Reads and updates user_credits.balance (euros).
#
# Balance changes are a read followed by an update guarded on the value
# that was read (compare-and-set). If another request changed the balance
# in between, the update matches no row and we re-read and try again.
# =============================================================================

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid
from app.exceptions import MagicAIException

logger = logging.getLogger(__name__)

MAX_UPDATE_ATTEMPTS = 3


class CreditUpdateError(MagicAIException):
    """Raised when a balance update keeps losing to concurrent writers."""

    def __init__(self, user_id: str, attempts: int):
        super().__init__(
            message="Failed to update credit balance",
            code="CREDIT_UPDATE_FAILED",
            status_code=409,
            suggestion="Retry the request",
            details={"user_id": user_id, "attempts": attempts}
        )


def _to_amount(value: Any) -> float:
    """Balances come back from PostgREST as int, float or numeric string."""
    return round(float(value or 0), 2)


class CreditService:
    """
    Service for credit balance operations.

    All methods are static; the database is the only state.
    """

    @staticmethod
    def get_balance(user_id: UUID | str) -> float:
        """Current balance, 0 if the user never bought credits."""
        row = SupabaseClient.fetch_credits(user_id)
        return _to_amount(row["balance"]) if row else 0.0

    @staticmethod
    def has_own_fal_key(user_id: UUID | str) -> bool:
        """Whether the user stored a fal.ai key that verified as valid."""
        return SupabaseClient.fetch_api_key(user_id, "fal", valid_only=True) is not None

    @staticmethod
    def can_generate(user_id: UUID | str) -> bool:
        """A user can generate with a positive balance or their own fal key."""
        return CreditService.get_balance(user_id) > 0 or CreditService.has_own_fal_key(user_id)

    @staticmethod
    def add_credits(user_id: UUID | str, amount: float) -> float:
        """
        Add credits to a user's balance, creating the row on first top-up.

        Returns:
            The new balance
        """
        if amount <= 0:
            raise ValueError(f"Credit amount must be positive, got {amount}")

        user_id_str = normalize_uuid(user_id)
        row = SupabaseClient.fetch_credits(user_id_str)

        if row is None:
            client = SupabaseClient.get_client()
            balance = _to_amount(amount)
            client.table("user_credits").insert(
                {"user_id": user_id_str, "balance": balance}
            ).execute()
            logger.info(f"Created credit balance of {balance:.2f} for user {user_id_str}")
            return balance

        return CreditService._adjust(user_id_str, amount, current_row=row)

    @staticmethod
    def debit(user_id: UUID | str, amount: float) -> float:
        """
        Debit credits after a successful generation.

        The balance never goes below zero. Must be called at most once per
        job, and only once the job's result is in hand.

        Returns:
            The new balance

        Raises:
            CreditUpdateError: If concurrent updates keep winning
        """
        user_id_str = normalize_uuid(user_id)
        if amount <= 0:
            return CreditService.get_balance(user_id_str)

        row = SupabaseClient.fetch_credits(user_id_str)
        if row is None:
            logger.warning(f"Debit of {amount:.2f} for user {user_id_str} without a credit row")
            return 0.0

        return CreditService._adjust(user_id_str, -amount, current_row=row)

    @staticmethod
    def _adjust(
        user_id: str,
        delta: float,
        current_row: dict[str, Any],
    ) -> float:
        """Apply `delta` with a compare-and-set on the balance value."""
        client = SupabaseClient.get_client()
        row = current_row

        for attempt in range(1, MAX_UPDATE_ATTEMPTS + 1):
            current = _to_amount(row["balance"])
            new_balance = max(round(current + delta, 2), 0.0)

            response = (
                client.table("user_credits")
                .update({
                    "balance": new_balance,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                })
                .eq("user_id", user_id)
                .eq("balance", row["balance"])
                .execute()
            )

            if response.data:
                logger.info(
                    f"Balance for user {user_id}: {current:.2f} -> {new_balance:.2f} "
                    f"(delta {delta:+.2f})"
                )
                return new_balance

            logger.debug(f"Balance changed concurrently for user {user_id}, attempt {attempt}")
            row = SupabaseClient.fetch_credits(user_id)
            if row is None:
                break

        raise CreditUpdateError(user_id, MAX_UPDATE_ATTEMPTS)
