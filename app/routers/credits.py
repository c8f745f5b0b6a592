# =============================================================================
# app/routers/credits.py - Credit Balance & Checkout Endpoints
# =============================================================================

from fastapi import APIRouter

from app.dependencies import CurrentUser, RequestOrigin
from core.models.credits import CheckoutRequest, CheckoutResponse, CreditBalance, CreditPackage
from core.services.credit_service import CreditService
from core.services.payment_service import PaymentService

router = APIRouter()


@router.get("", response_model=CreditBalance)
def get_credits(user: CurrentUser):
    """
    Current balance and whether the user can generate.

    A user with their own valid fal.ai key can always generate (∞ in the UI).
    """
    balance = CreditService.get_balance(user.id)
    has_own_key = CreditService.has_own_fal_key(user.id)
    return CreditBalance(
        user_id=user.id,
        balance=balance,
        has_own_key=has_own_key,
        can_generate=balance > 0 or has_own_key,
    )


@router.get("/packages", response_model=list[CreditPackage])
def list_packages():
    """Credit packages available for purchase."""
    return PaymentService.list_packages()


@router.post("/checkout", response_model=CheckoutResponse)
def create_checkout(request: CheckoutRequest, user: CurrentUser, origin: RequestOrigin):
    """
    Start a Stripe Checkout for a credit package.

    Redirect the browser to the returned `url`. Credits are added when
    Stripe confirms the payment through the webhook.
    """
    url = PaymentService.create_checkout_session(user, request.package, origin)
    return CheckoutResponse(url=url)
