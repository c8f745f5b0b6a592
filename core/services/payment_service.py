# =============================================================================
# core/services/payment_service.py - Stripe Checkout & Webhooks
# =============================================================================
# Credits are bought through Stripe Checkout (one-off payments). The
# purchased amount travels in the session metadata and is credited when
# Stripe calls our webhook with checkout.session.completed.
# =============================================================================

import json
import logging
from typing import Any

import stripe

from app.auth.models import AuthUser
from app.config import settings
from app.exceptions import (
    CheckoutError,
    ConfigurationError,
    InvalidPackageError,
    WebhookSignatureError,
)
from core.models.credits import HIGHLIGHTED_PACKAGE, PACKAGE_CREDITS, CreditPackage
from core.services.credit_service import CreditService

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


def _configure_stripe() -> None:
    if not settings.STRIPE_SECRET_KEY:
        raise ConfigurationError("STRIPE_SECRET_KEY")
    stripe.api_key = settings.STRIPE_SECRET_KEY


class PaymentService:
    """Service for credit purchases through Stripe."""

    @staticmethod
    def list_packages() -> list[CreditPackage]:
        """Packages that have a configured Stripe price, smallest first."""
        price_ids = settings.stripe_price_ids
        return [
            CreditPackage(
                package=package,
                credits=credits,
                price_id=price_ids[package],
                label=f"€{package}",
                highlight=package == HIGHLIGHTED_PACKAGE,
            )
            for package, credits in PACKAGE_CREDITS.items()
            if package in price_ids
        ]

    @staticmethod
    def get_package(package: str) -> CreditPackage:
        """
        Look up a package by id.

        Raises:
            InvalidPackageError: If the package is unknown or has no price
        """
        packages = {p.package: p for p in PaymentService.list_packages()}
        if package not in packages:
            raise InvalidPackageError(package, list(packages))
        return packages[package]

    @staticmethod
    def billing_email(user: AuthUser) -> str | None:
        """
        The email to hand to Stripe, if any.

        Phone-login users get a synthetic address on OTP_EMAIL_DOMAIN which
        must never reach Stripe receipts.
        """
        if user.email and not user.email.endswith(f"@{settings.OTP_EMAIL_DOMAIN}"):
            return user.email
        return None

    @staticmethod
    def create_checkout_session(user: AuthUser, package: str, origin: str | None) -> str:
        """
        Create a Stripe Checkout session for a credit package.

        Args:
            user: The buyer
            package: Package id ("10", "20", ...)
            origin: Frontend origin for the redirect URLs (FRONTEND_URL if None)

        Returns:
            The Checkout URL

        Raises:
            InvalidPackageError: Unknown package
            CheckoutError: Stripe refused the request
        """
        selected = PaymentService.get_package(package)
        _configure_stripe()

        base_url = (origin or settings.FRONTEND_URL).rstrip("/")
        email = PaymentService.billing_email(user)

        try:
            customer_id = None
            if email:
                customers = stripe.Customer.list(email=email, limit=1)
                if customers.data:
                    customer_id = customers.data[0].id

            session = stripe.checkout.Session.create(
                customer=customer_id,
                customer_email=None if customer_id else email,
                line_items=[{"price": selected.price_id, "quantity": 1}],
                mode="payment",
                success_url=f"{base_url}/profile?payment=success&credits={selected.credits}",
                cancel_url=f"{base_url}/profile?payment=cancelled",
                metadata={
                    "user_id": str(user.id),
                    "credits": str(selected.credits),
                },
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout failed for user {user.id}: {e}")
            raise CheckoutError(str(e))

        logger.info(f"Created checkout session {session.id} for user {user.id} ({selected.credits} credits)")
        return session.url

    @staticmethod
    def handle_webhook(payload: bytes, signature: str | None) -> dict[str, Any]:
        """
        Verify and process a Stripe webhook.

        Only checkout.session.completed changes state: it adds the purchased
        credits to the buyer's balance. Other verified events are acknowledged.

        Raises:
            WebhookSignatureError: Missing/invalid signature or secret
        """
        if not signature or not settings.STRIPE_WEBHOOK_SECRET:
            raise WebhookSignatureError("Missing signature or webhook secret")

        try:
            stripe.Webhook.construct_event(payload, signature, settings.STRIPE_WEBHOOK_SECRET)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.error(f"Webhook signature verification failed: {e}")
            raise WebhookSignatureError(str(e))

        # Signature is valid; read the event as plain JSON
        event = json.loads(payload)
        if event.get("type") == CHECKOUT_COMPLETED:
            session = (event.get("data") or {}).get("object") or {}
            PaymentService._credit_purchase(session)
        else:
            logger.debug(f"Ignoring Stripe event {event.get('type')}")

        return {"received": True}

    @staticmethod
    def _credit_purchase(session: dict[str, Any]) -> None:
        metadata = session.get("metadata") or {}
        user_id = metadata.get("user_id")
        try:
            credits = float(metadata.get("credits") or 0)
        except (TypeError, ValueError):
            credits = 0.0

        if not user_id or credits <= 0:
            logger.warning(f"Checkout session {session.get('id')} has no credit metadata")
            return

        balance = CreditService.add_credits(user_id, credits)
        logger.info(f"Added {credits:.2f}€ credits for user {user_id} (balance {balance:.2f})")
