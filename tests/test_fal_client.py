# =============================================================================
# tests/test_fal_client.py - fal.ai Queue Client Tests
# =============================================================================
# The queue API is simulated with httpx.MockTransport; no network calls.
# =============================================================================

from __future__ import annotations

import json

import httpx
import pytest

from lib.fal_client import (
    FalJobFailedError,
    FalQueueClient,
    FalQueueError,
    FalTimeoutError,
    QueueHandle,
)

BASE = "https://queue.fal.run"
ENDPOINT = "fal-ai/nano-banana-pro"


class FakeQueue:
    """
    Minimal stand-in for the fal.ai queue.

    `statuses` is the sequence of status payloads returned by successive
    status polls; the last one repeats.
    """

    def __init__(self, statuses, result=None, submit_response=None, submit_status=200):
        self.statuses = list(statuses)
        self.result = result or {"images": [{"url": "https://fal.media/x.png"}]}
        self.submit_response = submit_response or {"request_id": "req-1"}
        self.submit_status = submit_status
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST":
            return httpx.Response(self.submit_status, json=self.submit_response)
        if request.url.path.endswith("/status"):
            payload = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
            return httpx.Response(200, json=payload)
        return httpx.Response(200, json=self.result)

    def client(self, sleeps: list[float] | None = None) -> FalQueueClient:
        recorder = sleeps if sleeps is not None else []
        return FalQueueClient(
            "test-key",
            base_url=BASE,
            http_client=httpx.Client(transport=httpx.MockTransport(self.handler)),
            sleep=recorder.append,
        )


# =============================================================================
# Submit
# =============================================================================

class TestSubmit:
    """Tests for FalQueueClient.submit."""

    def test_submit_builds_urls_when_missing(self):
        """Without status/response URLs in the reply, they are constructed."""
        queue = FakeQueue([{"status": "COMPLETED"}])

        handle = queue.client().submit(ENDPOINT, {"prompt": "a cat"})

        assert handle.request_id == "req-1"
        assert handle.response_url == f"{BASE}/{ENDPOINT}/requests/req-1"
        assert handle.status_url == f"{BASE}/{ENDPOINT}/requests/req-1/status"

    def test_submit_prefers_returned_urls(self):
        """URLs returned by the queue are used as-is."""
        queue = FakeQueue(
            [{"status": "COMPLETED"}],
            submit_response={
                "request_id": "req-9",
                "status_url": "https://queue.fal.run/fal-ai/veo3.1/requests/req-9/status",
                "response_url": "https://queue.fal.run/fal-ai/veo3.1/requests/req-9",
            },
        )

        handle = queue.client().submit("fal-ai/veo3.1/fast", {"prompt": "waves"})

        assert handle.status_url.endswith("/fal-ai/veo3.1/requests/req-9/status")
        assert handle.response_url.endswith("/fal-ai/veo3.1/requests/req-9")

    def test_submit_sends_key_and_params(self):
        """The key goes in "Authorization: Key ..." and params as JSON body."""
        queue = FakeQueue([{"status": "COMPLETED"}])

        queue.client().submit(ENDPOINT, {"prompt": "a cat", "num_images": 2})

        request = queue.requests[0]
        assert request.headers["Authorization"] == "Key test-key"
        assert str(request.url) == f"{BASE}/{ENDPOINT}"
        assert json.loads(request.content) == {"prompt": "a cat", "num_images": 2}

    def test_submit_error_keeps_upstream_status(self):
        """A rejected submission raises with the upstream status code."""
        queue = FakeQueue([], submit_response={"detail": "bad prompt"}, submit_status=422)

        with pytest.raises(FalQueueError) as exc_info:
            queue.client().submit(ENDPOINT, {"prompt": ""})

        assert exc_info.value.status_code == 422
        assert "bad prompt" in exc_info.value.message

    def test_submit_without_request_id(self):
        """A reply without request_id is an error."""
        queue = FakeQueue([], submit_response={"status": "IN_QUEUE"})

        with pytest.raises(FalQueueError, match="No request_id"):
            queue.client().submit(ENDPOINT, {"prompt": "x"})

    def test_non_json_response(self):
        """HTML error pages become a readable FalQueueError."""
        def handler(request):
            return httpx.Response(200, text="<html>Bad Gateway</html>")

        client = FalQueueClient(
            "k", http_client=httpx.Client(transport=httpx.MockTransport(handler))
        )

        with pytest.raises(FalQueueError, match="Non-JSON response"):
            client.submit(ENDPOINT, {"prompt": "x"})


# =============================================================================
# Poll loop
# =============================================================================

class TestWait:
    """Tests for the bounded poll loop."""

    def _handle(self):
        return QueueHandle(
            endpoint_id=ENDPOINT,
            request_id="req-1",
            status_url=f"{BASE}/{ENDPOINT}/requests/req-1/status",
            response_url=f"{BASE}/{ENDPOINT}/requests/req-1",
        )

    def test_returns_result_on_completed(self):
        """Polls until COMPLETED, then fetches the result."""
        queue = FakeQueue(
            [{"status": "IN_QUEUE"}, {"status": "IN_PROGRESS"}, {"status": "COMPLETED"}],
            result={"images": [{"url": "https://fal.media/done.png"}]},
        )
        sleeps: list[float] = []

        result = queue.client(sleeps).wait(self._handle(), interval=1.0, max_attempts=60)

        assert result == {"images": [{"url": "https://fal.media/done.png"}]}
        assert sleeps == [1.0, 1.0]

    def test_failed_raises_with_payload(self):
        """FAILED status raises FalJobFailedError carrying the payload."""
        queue = FakeQueue([{"status": "IN_PROGRESS"}, {"status": "FAILED", "error": "nsfw"}])

        with pytest.raises(FalJobFailedError) as exc_info:
            queue.client().wait(self._handle(), interval=1.0, max_attempts=60)

        assert exc_info.value.status_payload["error"] == "nsfw"

    def test_timeout_after_max_attempts(self):
        """Never-terminal jobs time out after exactly max_attempts polls."""
        queue = FakeQueue([{"status": "IN_PROGRESS"}])
        sleeps: list[float] = []

        with pytest.raises(FalTimeoutError) as exc_info:
            queue.client(sleeps).wait(self._handle(), interval=2.0, max_attempts=5)

        assert exc_info.value.attempts == 5
        assert len(sleeps) == 5
        status_polls = [r for r in queue.requests if r.url.path.endswith("/status")]
        assert len(status_polls) == 5

    def test_run_submits_then_waits(self):
        """run() is submit + wait."""
        queue = FakeQueue([{"status": "COMPLETED"}])

        result = queue.client().run(ENDPOINT, {"prompt": "x"}, interval=1.0, max_attempts=3)

        assert "images" in result
        assert [r.method for r in queue.requests] == ["POST", "GET", "GET"]

    def test_error_status_stops_polling(self):
        """A rejected poll (e.g. revoked key) raises instead of using up the budget."""
        queue = FakeQueue([{"status": "IN_PROGRESS"}, {"status": "IN_PROGRESS"}])

        def handler(request):
            if len(queue.requests) >= 2:
                queue.requests.append(request)
                return httpx.Response(401, json={"detail": "Invalid key"})
            return queue.handler(request)

        sleeps: list[float] = []
        client = FalQueueClient(
            "test-key",
            base_url=BASE,
            http_client=httpx.Client(transport=httpx.MockTransport(handler)),
            sleep=sleeps.append,
        )

        with pytest.raises(FalQueueError) as exc_info:
            client.wait(self._handle(), interval=1.0, max_attempts=60)

        assert exc_info.value.status_code == 401
        assert sleeps == [1.0, 1.0]

    def test_error_fetching_result(self):
        def handler(request):
            if request.url.path.endswith("/status"):
                return httpx.Response(200, json={"status": "COMPLETED"})
            return httpx.Response(500, text="internal error")

        client = FalQueueClient(
            "k", http_client=httpx.Client(transport=httpx.MockTransport(handler))
        )

        with pytest.raises(FalQueueError) as exc_info:
            client.wait(self._handle(), interval=1.0, max_attempts=3)

        assert exc_info.value.status_code == 500


# =============================================================================
# Key check
# =============================================================================

class TestCheckKey:
    """Tests for FalQueueClient.check_key."""

    @pytest.mark.parametrize("status,expected", [(401, False), (403, False), (404, True), (200, True)])
    def test_only_auth_errors_are_invalid(self, status, expected):
        transport = httpx.MockTransport(lambda request: httpx.Response(status))
        http = httpx.Client(transport=transport)

        assert FalQueueClient.check_key("k", http_client=http) is expected


# =============================================================================
# Connection handling
# =============================================================================

class TestClose:
    """Tests for closing the underlying httpx client."""

    def test_context_manager_closes_owned_client(self):
        with FalQueueClient("k") as client:
            http = client._http

        assert http.is_closed is True

    def test_injected_client_stays_open(self):
        http = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))

        with FalQueueClient("k", http_client=http):
            pass

        assert http.is_closed is False
