# =============================================================================
# lib/fal_client.py - fal.ai Queue API Client
# =============================================================================
# Thin synchronous wrapper over the fal.ai queue REST API:
#   POST {base}/{endpoint_id}                      -> {request_id, status_url, response_url}
#   GET  {base}/{endpoint_id}/requests/{id}/status -> {status: IN_QUEUE|IN_PROGRESS|COMPLETED|FAILED}
#   GET  {base}/{endpoint_id}/requests/{id}        -> model output
#
# The poll loop is deliberately simple: fixed interval, bounded attempts,
# no backoff. Callers pick interval/attempts per media type.
#
# Usage:
#   with FalQueueClient(api_key="...") as client:
#       handle = client.submit("fal-ai/nano-banana-pro", {"prompt": "a cat"})
#       result = client.wait(handle, interval=1.0, max_attempts=60)
# =============================================================================

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

import httpx

from lib.utils import ApplicationError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://queue.fal.run"

# Cheap endpoint used only to check whether a key authenticates
KEY_CHECK_ENDPOINT = "fal-ai/fast-sdxl/status"

STATUS_COMPLETED = "COMPLETED"
STATUS_FAILED = "FAILED"


# =============================================================================
# Errors
# =============================================================================

class FalQueueError(ApplicationError):
    """Submission or transport failure talking to the queue API."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code="FAL_QUEUE_ERROR", details=details)
        self.status_code = status_code


class FalJobFailedError(ApplicationError):
    """The job reached the FAILED state."""

    def __init__(self, status_payload: dict[str, Any]):
        super().__init__(
            "Generation failed",
            code="FAL_JOB_FAILED",
            details=status_payload,
        )
        self.status_payload = status_payload


class FalTimeoutError(ApplicationError):
    """The job didn't reach a terminal state within the poll budget."""

    def __init__(self, request_id: str, attempts: int):
        super().__init__(
            f"Timeout waiting for result of request {request_id}",
            code="FAL_TIMEOUT",
            suggestion="Increase the poll budget or retry later",
            details={"request_id": request_id, "attempts": attempts},
        )
        self.attempts = attempts


# =============================================================================
# Client
# =============================================================================

@dataclass(frozen=True)
class QueueHandle:
    """Where to poll and fetch a submitted job."""
    endpoint_id: str
    request_id: str
    status_url: str
    response_url: str


def _safe_json(response: httpx.Response) -> dict[str, Any]:
    """Parse a JSON body, turning HTML error pages into a readable error."""
    try:
        return response.json()
    except ValueError:
        text = response.text
        logger.error(f"Failed to parse JSON, raw response: {text[:500]}")
        raise FalQueueError(
            f"Non-JSON response (status {response.status_code}): {text[:200]}",
            status_code=response.status_code,
        )


class FalQueueClient:
    """
    Submit jobs to the fal.ai queue and wait for their results.

    Args:
        api_key: fal.ai key, sent as "Authorization: Key <api_key>"
        base_url: Queue API base URL
        http_client: Optional httpx.Client (tests pass one with a MockTransport)
        sleep: Sleep function used between polls
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        http_client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._owns_http = http_client is None
        self._http = http_client or httpx.Client(timeout=30)
        self._sleep = sleep

    def close(self) -> None:
        """Close the HTTP connection pool if this client created it."""
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> FalQueueClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Key {self.api_key}"}

    def submit(self, endpoint_id: str, params: dict[str, Any]) -> QueueHandle:
        """
        Submit a job to the queue.

        Raises:
            FalQueueError: On a non-2xx response or a response without request_id
        """
        queue_url = f"{self.base_url}/{endpoint_id}"
        logger.info(f"Submitting to {queue_url}")

        response = self._http.post(
            queue_url,
            headers={**self._headers, "Content-Type": "application/json"},
            json=params,
        )

        if response.is_error:
            logger.error(f"fal.ai submit error: {response.status_code} {response.text[:500]}")
            raise FalQueueError(response.text, status_code=response.status_code)

        data = _safe_json(response)
        request_id = data.get("request_id")
        if not request_id:
            raise FalQueueError(
                "No request_id returned from fal.ai",
                details=data,
            )

        # Prefer the URLs the queue hands back, construct them otherwise
        response_url = data.get("response_url") or f"{queue_url}/requests/{request_id}"
        status_url = data.get("status_url") or f"{response_url}/status"

        logger.debug(f"Queued request {request_id}, polling {status_url}")
        return QueueHandle(
            endpoint_id=endpoint_id,
            request_id=request_id,
            status_url=status_url,
            response_url=response_url,
        )

    def _get(self, url: str) -> dict[str, Any]:
        response = self._http.get(url, headers=self._headers)
        if response.is_error:
            logger.error(f"fal.ai poll error: {response.status_code} {response.text[:500]}")
            raise FalQueueError(response.text, status_code=response.status_code)
        return _safe_json(response)

    def status(self, handle: QueueHandle) -> dict[str, Any]:
        """
        Fetch the current status payload of a job.

        Raises:
            FalQueueError: On a non-2xx response (e.g. the key was revoked)
        """
        return self._get(handle.status_url)

    def result(self, handle: QueueHandle) -> dict[str, Any]:
        """Fetch the output of a completed job."""
        return self._get(handle.response_url)

    def wait(
        self,
        handle: QueueHandle,
        interval: float,
        max_attempts: int,
    ) -> dict[str, Any]:
        """
        Poll until the job completes, fails, or the attempt budget runs out.

        Returns:
            The job output once status is COMPLETED

        Raises:
            FalJobFailedError: If status becomes FAILED
            FalTimeoutError: After max_attempts non-terminal polls
        """
        for attempt in range(max_attempts):
            payload = self.status(handle)
            state = payload.get("status")

            if state == STATUS_COMPLETED:
                logger.info(f"Request {handle.request_id} completed after {attempt + 1} polls")
                return self.result(handle)

            if state == STATUS_FAILED:
                logger.error(f"Request {handle.request_id} failed: {payload}")
                raise FalJobFailedError(payload)

            self._sleep(interval)

        logger.warning(f"Request {handle.request_id} timed out after {max_attempts} polls")
        raise FalTimeoutError(handle.request_id, max_attempts)

    def run(
        self,
        endpoint_id: str,
        params: dict[str, Any],
        interval: float,
        max_attempts: int,
    ) -> dict[str, Any]:
        """Submit a job and block until its result is available."""
        handle = self.submit(endpoint_id, params)
        return self.wait(handle, interval=interval, max_attempts=max_attempts)

    # -------------------------------------------------------------------------
    # Key verification
    # -------------------------------------------------------------------------

    @staticmethod
    def check_key(
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        http_client: httpx.Client | None = None,
    ) -> bool:
        """
        Check whether a fal.ai key authenticates.

        Only 401/403 count as invalid; other errors (e.g. 404 for an empty
        queue) still prove the key was accepted.
        """
        url = f"{base_url.rstrip('/')}/{KEY_CHECK_ENDPOINT}"
        headers = {"Authorization": f"Key {api_key}"}
        if http_client is not None:
            response = http_client.get(url, headers=headers)
        else:
            with httpx.Client(timeout=10) as http:
                response = http.get(url, headers=headers)
        return response.status_code not in (401, 403)
