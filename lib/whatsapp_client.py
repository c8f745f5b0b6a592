# =============================================================================
# lib/whatsapp_client.py - WhatsApp Sender Client
# =============================================================================
# Sends plain text WhatsApp messages through the WaSender HTTP API.
# Used only for OTP delivery.
# =============================================================================

from __future__ import annotations

import logging

import httpx

from lib.utils import ApplicationError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://www.wasenderapi.com/api/send-message"


class WhatsAppClientError(ApplicationError):
    """Raised when the sender API rejects a message."""

    def __init__(self, status_code: int, body: str):
        super().__init__(
            f"WhatsApp send failed with status {status_code}",
            code="WHATSAPP_SEND_FAILED",
            suggestion="Check WASENDER_API_KEY and that the number is on WhatsApp",
            details={"status_code": status_code, "body": body[:500]},
        )
        self.status_code = status_code


class WhatsAppClient:
    """
    Minimal WaSender client.

    Example:
        with WhatsAppClient(api_key="...") as client:
            client.send_message("+393331234567", "hello")
    """

    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_API_URL,
        http_client: httpx.Client | None = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self._owns_http = http_client is None
        self._http = http_client or httpx.Client(timeout=15)

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> WhatsAppClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def send_message(self, to: str, text: str) -> None:
        """
        Send a text message.

        Raises:
            WhatsAppClientError: On a non-2xx response
        """
        response = self._http.post(
            self.api_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json={"to": to, "text": text},
        )

        if response.is_error:
            logger.error(f"WaSender error: {response.status_code} {response.text[:500]}")
            raise WhatsAppClientError(response.status_code, response.text)

        logger.debug("WhatsApp message accepted by sender API")
