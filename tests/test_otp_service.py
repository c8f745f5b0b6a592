# =============================================================================
# tests/test_otp_service.py - WhatsApp OTP Login Tests
# =============================================================================

from types import SimpleNamespace
from unittest.mock import patch

import httpx
import pytest

from app.config import settings
from app.exceptions import AccountError, InvalidOTPError, InvalidPhoneError, OTPDeliveryError
from core.services.otp_service import (
    USERS_PAGE_SIZE,
    OTPService,
    generate_otp,
    synthetic_email,
    validate_phone,
)
from lib.whatsapp_client import WhatsAppClient, WhatsAppClientError
from tests.conftest import make_query

MODULE = "core.services.otp_service"


@pytest.fixture
def supabase():
    with patch(f"{MODULE}.SupabaseClient") as mock:
        yield mock


@pytest.fixture
def whatsapp():
    with patch(f"{MODULE}.WhatsAppClient") as cls:
        client = cls.return_value
        client.__enter__.return_value = client
        yield client


def _user(user_id, phone):
    return SimpleNamespace(id=user_id, phone=phone)


# =============================================================================
# Helpers
# =============================================================================

class TestHelpers:
    """Tests for code generation and phone handling."""

    def test_generate_otp_is_six_digits(self):
        for _ in range(50):
            code = generate_otp()
            assert len(code) == 6
            assert code.isdigit()
            assert code[0] != "0"

    @pytest.mark.parametrize("raw,expected", [
        ("+49 151 2345 6789", "+4915123456789"),
        ("4915123456789", "+4915123456789"),
        ("(+1) 555-010-9999", "+15550109999"),
    ])
    def test_validate_phone_normalizes(self, raw, expected):
        assert validate_phone(raw) == expected

    @pytest.mark.parametrize("raw", [None, 4915123456789, "1234567", "+" + "1" * 20, "abcdefghij"])
    def test_validate_phone_rejects(self, raw):
        with pytest.raises(InvalidPhoneError):
            validate_phone(raw)

    def test_synthetic_email(self):
        assert synthetic_email("+49 151 234") == f"wa_49151234@{settings.OTP_EMAIL_DOMAIN}"


# =============================================================================
# Send
# =============================================================================

class TestSendOTP:
    """Tests for OTPService.send_otp."""

    def test_stores_and_sends_code(self, supabase, whatsapp):
        query = make_query([{"id": 1}])
        supabase.get_client.return_value.table.return_value = query

        OTPService.send_otp("+49 151 2345 6789")

        row = query.insert.call_args.args[0]
        assert row["phone"] == "+4915123456789"
        assert len(row["otp_code"]) == 6
        to, text = whatsapp.send_message.call_args.args
        assert to == "+4915123456789"
        assert row["otp_code"] in text
        assert f"expires in {settings.OTP_TTL_MINUTES} minutes" in text
        whatsapp.__exit__.assert_called_once()

    def test_invalid_phone_stores_nothing(self, supabase, whatsapp):
        with pytest.raises(InvalidPhoneError):
            OTPService.send_otp("123")

        supabase.get_client.assert_not_called()
        whatsapp.send_message.assert_not_called()

    def test_db_failure(self, supabase, whatsapp):
        supabase.get_client.return_value.table.side_effect = RuntimeError("db down")

        with pytest.raises(OTPDeliveryError, match="Failed to generate OTP"):
            OTPService.send_otp("+4915123456789")

        whatsapp.send_message.assert_not_called()

    def test_whatsapp_failure(self, supabase, whatsapp):
        supabase.get_client.return_value.table.return_value = make_query([{"id": 1}])
        whatsapp.send_message.side_effect = WhatsAppClientError(500, "gateway down")

        with pytest.raises(OTPDeliveryError, match="WhatsApp"):
            OTPService.send_otp("+4915123456789")

    def test_gateway_unreachable(self, supabase):
        supabase.get_client.return_value.table.return_value = make_query([{"id": 1}])

        def handler(request):
            raise httpx.ConnectError("name resolution failed", request=request)

        gateway = WhatsAppClient(
            "wa-key", http_client=httpx.Client(transport=httpx.MockTransport(handler))
        )
        with patch.object(OTPService, "_whatsapp", return_value=gateway):
            with pytest.raises(OTPDeliveryError, match="WhatsApp"):
                OTPService.send_otp("+4915123456789")

    def test_missing_gateway_key(self, supabase, monkeypatch):
        monkeypatch.setattr(settings, "WASENDER_API_KEY", None)

        with pytest.raises(OTPDeliveryError):
            OTPService.send_otp("+4915123456789")

        supabase.get_client.assert_not_called()


# =============================================================================
# Verify
# =============================================================================

class TestVerifyOTP:
    """Tests for OTPService.verify_otp."""

    def _admin(self, supabase, users=(), created_id="new-user"):
        client = supabase.get_client.return_value
        client.table.return_value = make_query([{"id": 7, "verified": True}])
        admin = client.auth.admin
        admin.list_users.return_value = list(users)
        admin.create_user.return_value = SimpleNamespace(user=SimpleNamespace(id=created_id))
        admin.generate_link.return_value = SimpleNamespace(
            properties=SimpleNamespace(hashed_token="hash-123")
        )
        return client, admin

    def test_missing_input(self, supabase):
        with pytest.raises(InvalidOTPError) as exc_info:
            OTPService.verify_otp("+4915123456789", "")

        assert exc_info.value.status_code == 400

    def test_no_matching_code(self, supabase):
        supabase.fetch_active_otp.return_value = None

        with pytest.raises(InvalidOTPError) as exc_info:
            OTPService.verify_otp("+4915123456789", "123456")

        assert exc_info.value.status_code == 401

    def test_lookup_uses_normalized_phone(self, supabase):
        """The phone is normalized the same way on send and verify."""
        supabase.fetch_active_otp.return_value = None

        with pytest.raises(InvalidOTPError):
            OTPService.verify_otp("+49 151 2345 6789", " 123456 ")

        phone, code, _ = supabase.fetch_active_otp.call_args.args
        assert phone == "+4915123456789"
        assert code == "123456"

    def test_existing_user_signs_in(self, supabase):
        supabase.fetch_active_otp.return_value = {"id": 7}
        client, admin = self._admin(
            supabase, users=[_user("other", "+1555"), _user("u-1", "4915123456789")]
        )

        response = OTPService.verify_otp("+4915123456789", "123456")

        assert response.success is True
        assert response.token_hash == "hash-123"
        assert response.email == f"wa_4915123456789@{settings.OTP_EMAIL_DOMAIN}"
        client.table.return_value.update.assert_called_once_with({"verified": True})
        admin.create_user.assert_not_called()
        admin.update_user_by_id.assert_called_once_with(
            "u-1", {"email": response.email, "email_confirm": True}
        )
        admin.generate_link.assert_called_once_with({"type": "magiclink", "email": response.email})

    def test_new_user_is_created(self, supabase):
        supabase.fetch_active_otp.return_value = {"id": 7}
        _, admin = self._admin(supabase, users=[], created_id="new-user")

        OTPService.verify_otp("+4915123456789", "123456")

        admin.create_user.assert_called_once_with(
            {"phone": "+4915123456789", "phone_confirm": True}
        )
        assert admin.update_user_by_id.call_args.args[0] == "new-user"

    def test_pages_through_users(self, supabase):
        supabase.fetch_active_otp.return_value = {"id": 7}
        _, admin = self._admin(supabase)
        first_page = [_user(f"u{i}", f"+1{i:09d}") for i in range(USERS_PAGE_SIZE)]
        admin.list_users.side_effect = [first_page, [_user("target", "+4915123456789")]]

        OTPService.verify_otp("+4915123456789", "123456")

        assert admin.list_users.call_count == 2
        assert admin.update_user_by_id.call_args.args[0] == "target"

    def test_magic_link_failure(self, supabase):
        supabase.fetch_active_otp.return_value = {"id": 7}
        _, admin = self._admin(supabase, users=[_user("u-1", "+4915123456789")])
        admin.generate_link.side_effect = RuntimeError("admin api down")

        with pytest.raises(AccountError, match="Authentication failed"):
            OTPService.verify_otp("+4915123456789", "123456")


# =============================================================================
# WhatsApp gateway client
# =============================================================================

class TestWhatsAppClient:
    """Tests for the WaSender HTTP client."""

    def test_posts_message_with_bearer_key(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"success": True})

        client = WhatsAppClient(
            "wa-key",
            api_url="https://gateway.test/api/send-message",
            http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        )
        client.send_message("+4915123456789", "hello")

        assert seen[0].headers["Authorization"] == "Bearer wa-key"
        assert str(seen[0].url) == "https://gateway.test/api/send-message"
        assert b'"to"' in seen[0].content

    def test_error_status_raises(self):
        client = WhatsAppClient(
            "wa-key",
            http_client=httpx.Client(
                transport=httpx.MockTransport(lambda r: httpx.Response(429, text="slow down"))
            ),
        )

        with pytest.raises(WhatsAppClientError) as exc_info:
            client.send_message("+4915123456789", "hello")

        assert exc_info.value.status_code == 429

    def test_close_keeps_injected_http_client(self):
        http = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))

        with WhatsAppClient("wa-key", http_client=http) as client:
            client.send_message("+4915123456789", "hello")

        assert http.is_closed is False

    def test_close_owned_http_client(self):
        client = WhatsAppClient("wa-key")
        client.close()

        assert client._http.is_closed is True
