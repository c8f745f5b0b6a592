# =============================================================================
# tests/test_payment_service.py - Stripe Checkout & Webhook Tests
# =============================================================================
# Stripe calls are patched at the SDK resource level; nothing leaves the
# process.
# =============================================================================

import json
from types import SimpleNamespace
from unittest.mock import patch

import pytest
import stripe

from app.auth.models import AuthUser
from app.config import settings
from app.exceptions import (
    CheckoutError,
    ConfigurationError,
    InvalidPackageError,
    WebhookSignatureError,
)
from core.services.payment_service import PaymentService


@pytest.fixture
def stripe_api():
    """Patch the Stripe resources the service calls."""
    with patch.object(stripe.Customer, "list") as customer_list, \
         patch.object(stripe.checkout.Session, "create") as session_create:
        customer_list.return_value = SimpleNamespace(data=[])
        session_create.return_value = SimpleNamespace(
            id="cs_test_1", url="https://checkout.stripe.com/c/pay/cs_test_1"
        )
        yield SimpleNamespace(customer_list=customer_list, session_create=session_create)


def _event(event_type, metadata=None):
    return json.dumps({
        "id": "evt_1",
        "type": event_type,
        "data": {"object": {"id": "cs_test_1", "metadata": metadata or {}}},
    }).encode()


# =============================================================================
# Packages
# =============================================================================

class TestPackages:
    """Tests for package listing and lookup."""

    def test_lists_configured_packages_in_order(self):
        packages = PaymentService.list_packages()

        assert [p.package for p in packages] == ["10", "20", "50", "100", "250", "500"]
        assert [p.credits for p in packages] == [10, 20, 50, 100, 250, 500]
        assert [p.package for p in packages if p.highlight] == ["50"]
        assert all(p.price_id.startswith("price_") for p in packages)

    def test_unconfigured_package_is_hidden(self, monkeypatch):
        monkeypatch.setattr(settings, "STRIPE_PRICE_IDS", "10:price_ten,50:price_fifty")

        assert [p.package for p in PaymentService.list_packages()] == ["10", "50"]
        with pytest.raises(InvalidPackageError):
            PaymentService.get_package("20")

    def test_unknown_package(self):
        with pytest.raises(InvalidPackageError) as exc_info:
            PaymentService.get_package("999")

        assert exc_info.value.status_code == 400

    def test_billing_email_skips_phone_users(self, user_id):
        phone_user = AuthUser(id=user_id, email=f"wa_4915@{settings.OTP_EMAIL_DOMAIN}")
        email_user = AuthUser(id=user_id, email="ada@example.com")

        assert PaymentService.billing_email(phone_user) is None
        assert PaymentService.billing_email(email_user) == "ada@example.com"


# =============================================================================
# Checkout
# =============================================================================

class TestCheckout:
    """Tests for PaymentService.create_checkout_session."""

    def test_creates_payment_session(self, stripe_api, auth_user):
        url = PaymentService.create_checkout_session(auth_user, "20", "https://app.test/")

        assert url == "https://checkout.stripe.com/c/pay/cs_test_1"
        kwargs = stripe_api.session_create.call_args.kwargs
        assert kwargs["mode"] == "payment"
        assert kwargs["line_items"] == [
            {"price": settings.stripe_price_ids["20"], "quantity": 1}
        ]
        assert kwargs["success_url"] == "https://app.test/profile?payment=success&credits=20"
        assert kwargs["cancel_url"] == "https://app.test/profile?payment=cancelled"
        assert kwargs["metadata"] == {"user_id": str(auth_user.id), "credits": "20"}
        assert kwargs["customer_email"] == "ada@example.com"
        assert kwargs["customer"] is None

    def test_reuses_existing_customer(self, stripe_api, auth_user):
        stripe_api.customer_list.return_value = SimpleNamespace(data=[SimpleNamespace(id="cus_42")])

        PaymentService.create_checkout_session(auth_user, "10", None)

        kwargs = stripe_api.session_create.call_args.kwargs
        assert kwargs["customer"] == "cus_42"
        assert kwargs["customer_email"] is None
        assert kwargs["success_url"].startswith(settings.FRONTEND_URL.rstrip("/"))

    def test_phone_user_has_no_email(self, stripe_api, user_id):
        user = AuthUser(id=user_id, email=f"wa_4915@{settings.OTP_EMAIL_DOMAIN}")

        PaymentService.create_checkout_session(user, "10", None)

        stripe_api.customer_list.assert_not_called()
        assert stripe_api.session_create.call_args.kwargs["customer_email"] is None

    def test_stripe_error(self, stripe_api, auth_user):
        stripe_api.session_create.side_effect = stripe.InvalidRequestError("No such price", "price")

        with pytest.raises(CheckoutError):
            PaymentService.create_checkout_session(auth_user, "10", None)

    def test_missing_secret_key(self, stripe_api, auth_user, monkeypatch):
        monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", None)

        with pytest.raises(ConfigurationError):
            PaymentService.create_checkout_session(auth_user, "10", None)

        stripe_api.session_create.assert_not_called()


# =============================================================================
# Webhook
# =============================================================================

class TestWebhook:
    """Tests for PaymentService.handle_webhook."""

    @pytest.fixture
    def construct_event(self):
        with patch.object(stripe.Webhook, "construct_event") as mock:
            yield mock

    @pytest.fixture
    def credits(self):
        with patch("core.services.payment_service.CreditService") as mock:
            mock.add_credits.return_value = 70.0
            yield mock

    def test_completed_checkout_adds_credits(self, construct_event, credits, user_id):
        payload = _event("checkout.session.completed", {"user_id": str(user_id), "credits": "50"})

        assert PaymentService.handle_webhook(payload, "t=1,v1=sig") == {"received": True}

        construct_event.assert_called_once_with(payload, "t=1,v1=sig", settings.STRIPE_WEBHOOK_SECRET)
        credits.add_credits.assert_called_once_with(str(user_id), 50.0)

    def test_other_events_are_acknowledged(self, construct_event, credits):
        payload = _event("payment_intent.created")

        assert PaymentService.handle_webhook(payload, "sig") == {"received": True}
        credits.add_credits.assert_not_called()

    def test_missing_metadata_is_ignored(self, construct_event, credits):
        payload = _event("checkout.session.completed", {"credits": "50"})

        PaymentService.handle_webhook(payload, "sig")

        credits.add_credits.assert_not_called()

    def test_missing_signature(self, construct_event, credits):
        with pytest.raises(WebhookSignatureError) as exc_info:
            PaymentService.handle_webhook(_event("checkout.session.completed"), None)

        assert exc_info.value.status_code == 400
        construct_event.assert_not_called()

    def test_invalid_signature(self, construct_event, credits, user_id):
        construct_event.side_effect = stripe.SignatureVerificationError("bad sig", "sig")
        payload = _event("checkout.session.completed", {"user_id": str(user_id), "credits": "50"})

        with pytest.raises(WebhookSignatureError):
            PaymentService.handle_webhook(payload, "sig")

        credits.add_credits.assert_not_called()
