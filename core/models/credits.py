# =============================================================================
# core/models/credits.py - Credit & Checkout Schemas
# =============================================================================
# Credits are euros held in user_credits.balance. They are bought in fixed
# packages through Stripe Checkout and debited per generation on the
# platform fal.ai key.
# =============================================================================

from uuid import UUID

from pydantic import BaseModel, Field


class CreditPackage(BaseModel):
    """A purchasable credit package (package id == euro amount)."""
    package: str = Field(..., examples=["50"])
    credits: int = Field(..., ge=1)
    price_id: str = Field(..., description="Stripe price id")
    label: str = Field(..., examples=["€50"])
    highlight: bool = False


# Package ids and the credits they grant. Price ids come from settings.
PACKAGE_CREDITS: dict[str, int] = {
    "10": 10,
    "20": 20,
    "50": 50,
    "100": 100,
    "250": 250,
    "500": 500,
}

# Shown as "popular" in the UI
HIGHLIGHTED_PACKAGE = "50"


class CreditBalance(BaseModel):
    """
    Credit summary for the current user.

    `can_generate` is true when the user has a positive balance or their own
    valid fal.ai key (which makes generations free).
    """
    user_id: UUID
    balance: float = Field(default=0.0, ge=0)
    has_own_key: bool = False
    can_generate: bool = False


class CheckoutRequest(BaseModel):
    """Request to buy a credit package."""
    package: str = Field(..., examples=["50"], description="Package id (euro amount)")


class CheckoutResponse(BaseModel):
    """Stripe Checkout URL to redirect the browser to."""
    url: str
