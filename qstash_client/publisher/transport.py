"""
HTTP transport with bounded retries and exponential backoff.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

import httpx

from qstash_client.observability.metrics import MetricsCollector, get_metrics
from qstash_client.types.options import BackoffPolicy

logger = logging.getLogger(__name__)


class SendCapability(Protocol):
    async def send(self, request: httpx.Request) -> httpx.Response: ...


def is_status_ok(status_code: int) -> bool:
    """Check if a status code is in the 2xx range."""
    return 200 <= status_code <= 299


def backoff_delay(attempt: int, min_backoff: float, max_backoff: float) -> float:
    """
    Get the exponential back off delay that follows a failed attempt.

    The first failed attempt waits ``min_backoff``; every following attempt
    doubles the delay until it reaches ``max_backoff``, where it stays.

    Args:
        attempt: The 1-based number of the attempt that just failed.
        min_backoff: Smallest delay in seconds.
        max_backoff: Largest delay in seconds.

    Returns:
        The delay in seconds.
    """
    delay = min_backoff
    for _ in range(1, attempt):
        delay *= 2
        if delay >= max_backoff:
            return max_backoff
    return min(delay, max_backoff)


class RetryingTransport:
    """
    Wraps a send capability with retry logic.

    A request is attempted up to ``policy.retries + 1`` times. Failed sends
    and responses outside the 2xx range are retried after an exponentially
    growing sleep. Once attempts are exhausted, the last exception is raised
    or the last response is returned as is, so callers must check the status
    themselves.

    Sleeps and in-flight sends are cancelled with the calling task.
    """

    def __init__(
        self,
        client: SendCapability,
        policy: BackoffPolicy,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the transport.

        Args:
            client: Lower level sender, usually an ``httpx.AsyncClient``.
            policy: Attempt count and backoff bounds.
            sleep: Awaitable sleep used between attempts.
            metrics: Optional metrics collector. Defaults to the global one.
        """
        self._client = client
        self.policy = policy
        self._sleep = sleep
        self._metrics = metrics or get_metrics()

    async def send(self, request: httpx.Request) -> httpx.Response:
        """
        Send the request, retrying failures.

        Args:
            request: The request to send. Its body must be replayable.

        Returns:
            The first 2xx response, or the last response if none succeeded.

        Raises:
            httpx.HTTPError: If the last attempt failed without a response.
        """
        attempts = self.policy.attempts
        for attempt in range(1, attempts + 1):
            try:
                response = await self._client.send(request)
            except httpx.HTTPError as e:
                if attempt == attempts:
                    raise
                failure = f"{type(e).__name__}: {e}"
            else:
                if is_status_ok(response.status_code) or attempt == attempts:
                    return response
                failure = f"status {response.status_code}"
                await response.aclose()

            delay = backoff_delay(attempt, self.policy.min_backoff, self.policy.max_backoff)
            logger.warning(
                "Publish attempt failed, retrying",
                extra={
                    "attempt": attempt,
                    "attempts": attempts,
                    "failure": failure,
                    "delay_seconds": delay,
                },
            )
            self._metrics.record_retry()
            await self._sleep(delay)

        raise AssertionError("unreachable")  # pragma: no cover

    async def aclose(self) -> None:
        """Close the wrapped client if it supports closing."""
        close = getattr(self._client, "aclose", None)
        if close is not None:
            await close()
