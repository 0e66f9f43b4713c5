# ABOUTME: HTTP delivery of the cluster snapshot to the collection endpoint
# ABOUTME: One PUT per run via httpx, retrying timeouts with tenacity, never raising to the caller

"""
Snapshot delivery.

=============================================================================
WHAT IS THIS FILE?
=============================================================================

At the end of each run the snapshot JSON is sent to the collector:

    PUT <API_URL>
    Content-Type: application/json
    x-api-token: <API_TOKEN>

    { "cluster_id": ..., "helm_charts": [...] }

Delivery is best-effort. A network failure or a non-2xx answer is logged and
reported as False; it never changes the job's exit status. When API_URL or
API_TOKEN is missing, or the token cannot be sent as a header, the sender
makes no HTTP calls at all.

=============================================================================
RETRY LOGIC
=============================================================================

Only timeouts are retried, with exponential backoff:

- Attempt 1: immediate
- Attempt 2: after 1 second
- Attempt 3: after 2 seconds
- Give up: the timeout is logged as a failed delivery

A 4xx/5xx answer is NOT retried: the collector has answered, and sending the
same body again would get the same answer. The next CronJob tick is the retry.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

if TYPE_CHECKING:
    from pydantic import SecretStr

    from chartwatch.config import ReporterSettings

logger = structlog.get_logger(__name__)

# Response bodies are logged on failure, truncated to this many characters.
ERROR_BODY_LIMIT = 200


class SnapshotSender:
    """
    Sends snapshots to the collection endpoint.

    LIFECYCLE:
    ----------
        with SnapshotSender.from_settings(settings) as sender:
            sender.send(snapshot.to_json())

    The httpx.Client (and its connection pool) only exists inside the `with`
    block, and only when delivery is enabled.
    """

    def __init__(
        self,
        url: str | None,
        token: SecretStr | None,
        timeout: float = 30.0,
    ) -> None:
        self._url = url
        self._token = token
        self._timeout = timeout
        self._client: httpx.Client | None = None

    @classmethod
    def from_settings(cls, settings: ReporterSettings) -> SnapshotSender:
        return cls(
            url=settings.api_url,
            token=settings.api_token,
            timeout=settings.request_timeout,
        )

    @property
    def enabled(self) -> bool:
        """True when both the endpoint and the token are configured."""
        return bool(self._url) and self._token is not None

    def __enter__(self) -> SnapshotSender:
        if self.enabled:
            try:
                self._client = httpx.Client(
                    headers={
                        "Content-Type": "application/json",
                        "x-api-token": self._token.get_secret_value(),
                    },
                    timeout=self._timeout,
                )
            except ValueError as e:
                # Header values must be ASCII. The message would echo part of the token.
                logger.error("Invalid delivery configuration", error=type(e).__name__)
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    @retry(
        retry=retry_if_exception_type(httpx.TimeoutException),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    def _put(self, body: str) -> httpx.Response:
        if not self._client:
            raise RuntimeError("Sender not initialized. Use 'with' context manager.")
        logger.debug("Sending snapshot", url=self._url, bytes=len(body))
        return self._client.put(self._url, content=body)

    def send(self, body: str) -> bool:
        """
        Deliver one serialized snapshot.

        Args:
            body: The snapshot JSON, as produced by ClusterSnapshot.to_json().

        Returns:
            True if the collector answered with a 2xx status. False if
            delivery is disabled or misconfigured, the request failed, or the
            status was not 2xx.
        """
        if not self.enabled:
            logger.info("API_URL or API_TOKEN not set, skipping delivery")
            return False
        if self._client is None:
            logger.warning("No HTTP client available, skipping delivery")
            return False

        try:
            response = self._put(body)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error("Failed to send snapshot", url=self._url, error=str(e) or type(e).__name__)
            return False

        if 200 <= response.status_code < 300:
            logger.info("Snapshot delivered", status=response.status_code)
            return True

        logger.warning(
            "Snapshot delivery rejected",
            status=response.status_code,
            body=response.text[:ERROR_BODY_LIMIT],
        )
        return False
