"""
Publisher for QStash topics.

Builds one POST request per message, enforcing the header and
deduplication contract, and sends it through the retrying transport.
"""

import asyncio
import logging
import time
from datetime import timedelta
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from qstash_client.config import Settings, get_settings, validate_publisher_settings
from qstash_client.constants import (
    AUTHORIZATION_HEADER,
    CONTENT_BASED_DEDUPLICATION_HEADER,
    CONTENT_TYPE_HEADER,
    CONTENT_TYPE_JSON,
    DEDUPLICATION_ID_HEADER,
    DELAY_HEADER,
    FORWARD_HEADER_PREFIX,
    RETRIES_HEADER,
    SCHEDULE_HEADER,
    SPAN_PUBLISH_MESSAGE,
)
from qstash_client.errors import (
    BadStatusError,
    DeduplicationConflictError,
    HeaderPrefixError,
    RequestBuildError,
    ResponseDecodeError,
    TransportError,
    ValidationError,
)
from qstash_client.observability.metrics import MetricsCollector, get_metrics
from qstash_client.observability.tracing import get_tracer
from qstash_client.publisher.identifiers import IdentifierGenerator, RandomIdentifierGenerator
from qstash_client.publisher.transport import RetryingTransport, SendCapability, is_status_ok
from qstash_client.types.api import PublishResponse
from qstash_client.types.message import Message
from qstash_client.types.options import BackoffPolicy, PublishOptions

logger = logging.getLogger(__name__)


def format_duration(delay: timedelta) -> str:
    """
    Format a duration the way the broker expects it, e.g. ``1s``, ``1m30s``,
    ``1.5s``, ``250ms``, ``500us`` or ``1h0m0s``. Units are ASCII so the
    value is a valid header.
    """
    micros = delay // timedelta(microseconds=1)
    if micros <= 0:
        return "0s"
    if micros < 1_000:
        return f"{micros}us"
    if micros < 1_000_000:
        return f"{_decimal(micros, 1_000)}ms"

    hours, rest = divmod(micros, 3_600_000_000)
    minutes, rest = divmod(rest, 60_000_000)
    seconds = _decimal(rest, 1_000_000)
    if hours:
        return f"{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"


def _decimal(value: int, unit: int) -> str:
    whole, fraction = divmod(value, unit)
    if not fraction:
        return str(whole)
    width = len(str(unit)) - 1
    return f"{whole}.{fraction:0{width}d}".rstrip("0")


def validate_forward_headers(headers: dict[str, str]) -> None:
    """
    Check that every custom header is meant to be forwarded to the consumer.

    Raises:
        HeaderPrefixError: If a header lacks the ``Upstash-Forward-`` prefix.
    """
    for key in headers:
        if not key.lower().startswith(FORWARD_HEADER_PREFIX):
            raise HeaderPrefixError(
                f"headers must start with 'Upstash-Forward-', got {key!r}"
            )


class Publisher:
    """
    Publishes messages to a single QStash topic.

    Example:
        async with Publisher("https://my-app.example.com/api/receive") as p:
            await p.publish(Message(body=b"Hello World!"))
    """

    def __init__(
        self,
        topic: str,
        settings: Settings | None = None,
        *,
        transport: SendCapability | None = None,
        id_generator: IdentifierGenerator | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the publisher.

        Args:
            topic: Destination appended to the publish url.
            settings: Optional settings. Defaults to the cached environment settings.
            transport: Optional sender. Defaults to a retrying httpx client.
            id_generator: Optional deduplication id generator.
            metrics: Optional metrics collector. Defaults to the global one.

        Raises:
            ConfigurationError: If the settings cannot back a publisher.
        """
        settings = settings or get_settings()
        validate_publisher_settings(settings, topic)

        self.topic = topic
        self._token = settings.token
        self._url = settings.url
        self._verbose = settings.verbose
        self._metrics = metrics or get_metrics()
        self._ids = id_generator or RandomIdentifierGenerator()
        self._transport = transport or RetryingTransport(
            httpx.AsyncClient(timeout=settings.client_timeout_seconds),
            BackoffPolicy(
                min_backoff=settings.client_min_backoff_seconds,
                max_backoff=settings.client_max_backoff_seconds,
                retries=settings.client_retries,
            ),
            metrics=self._metrics,
        )

    @property
    def endpoint(self) -> str:
        """The url every publish request is posted to."""
        return f"{self._url}/{self.topic}"

    async def publish(
        self,
        message: Message,
        *,
        delay: timedelta | float | None = None,
        schedule: str | None = None,
        retries: int | None = None,
        content_based_deduplication: bool = False,
        timeout: float | None = None,
    ) -> str:
        """
        Publish a message to the topic.

        Args:
            message: The message. Its ``id`` is set to the broker assigned id.
            delay: Delay before the broker delivers the message.
            schedule: Cron expression for repeated delivery.
            retries: Number of delivery retries the broker should attempt.
            content_based_deduplication: Deduplicate on the message content
                instead of a deduplication id.
            timeout: Optional deadline in seconds for the whole call,
                retries and backoff sleeps included.

        Returns:
            The message id assigned by the broker.

        Raises:
            ValidationError: If the message or the options are rejected.
            IdentifierGenerationError: If no deduplication id can be generated.
            RequestBuildError: If the request cannot be constructed.
            TransportError: If the request could not be completed.
            ProtocolError: If the broker rejected the request or answered
                with an unreadable body.
            TimeoutError: If ``timeout`` elapsed first.
        """
        options = self._parse_options(
            delay=delay,
            schedule=schedule,
            retries=retries,
            content_based_deduplication=content_based_deduplication,
        )
        request = self.build_request(message, options)

        async with asyncio.timeout(timeout):
            message.id = await self._send(request)
        return message.id

    async def publish_with_delay(
        self,
        message: Message,
        delay: timedelta | float,
        **options: Any,
    ) -> str:
        """Publish a message that the broker delivers after ``delay``."""
        return await self.publish(message, delay=delay, **options)

    async def publish_with_schedule(
        self,
        message: Message,
        schedule: str,
        **options: Any,
    ) -> str:
        """
        Publish a message on a cron schedule.

        Note: see https://crontab.guru/ for help with the schedule format.
        """
        return await self.publish(message, schedule=schedule, **options)

    def build_request(self, message: Message, options: PublishOptions) -> httpx.Request:
        """
        Build the publish request for a message.

        Raises:
            ValidationError: If the headers or deduplication settings conflict.
            IdentifierGenerationError: If no deduplication id can be generated.
            RequestBuildError: If httpx rejects the url or a header.
        """
        headers = self._build_headers(message, options)
        try:
            return httpx.Request(
                "POST",
                self.endpoint,
                headers=headers,
                content=message.body,
            )
        except (httpx.InvalidURL, ValueError, TypeError) as e:
            raise RequestBuildError(f"could not create request: {e}") from e

    def _parse_options(self, **options: Any) -> PublishOptions:
        try:
            return PublishOptions(**options)
        except PydanticValidationError as e:
            raise ValidationError(f"bad options: {e}") from e

    def _build_headers(self, message: Message, options: PublishOptions) -> dict[str, str]:
        headers: dict[str, str] = {}

        # Custom headers are forwarded verbatim
        if message.headers:
            validate_forward_headers(message.headers)
            headers.update(message.headers)

        # Exactly one deduplication strategy per request
        if message.id and options.content_based_deduplication:
            raise DeduplicationConflictError(
                "you cannot set 'content based deduplication' and pass a custom deduplication id"
            )
        elif options.content_based_deduplication:
            headers[CONTENT_BASED_DEDUPLICATION_HEADER] = "true"
        elif message.id:
            headers[DEDUPLICATION_ID_HEADER] = message.id
        else:
            # Generated ids let the broker drop duplicates of retried publishes
            headers[DEDUPLICATION_ID_HEADER] = self._ids.new_id()

        headers[AUTHORIZATION_HEADER] = f"Bearer {self._token}"
        headers[CONTENT_TYPE_HEADER] = CONTENT_TYPE_JSON

        if options.has_delay:
            headers[DELAY_HEADER] = format_duration(options.delay)
        if options.schedule:
            headers[SCHEDULE_HEADER] = options.schedule
        if options.retries:
            headers[RETRIES_HEADER] = str(options.retries)

        return headers

    async def _send(self, request: httpx.Request) -> str:
        start_time = time.perf_counter()
        status = "failed"

        with get_tracer().start_as_current_span(SPAN_PUBLISH_MESSAGE) as span:
            span.set_attribute("topic", self.topic)
            try:
                try:
                    response = await self._transport.send(request)
                except httpx.HTTPError as e:
                    raise TransportError(f"could not complete request: {e}") from e

                try:
                    body = await response.aread()
                finally:
                    await response.aclose()

                span.set_attribute("http.status_code", response.status_code)
                if self._verbose:
                    logger.info(
                        "Publish response",
                        extra={
                            "topic": self.topic,
                            "status_code": response.status_code,
                            "body": body.decode("utf-8", errors="replace"),
                        },
                    )

                if not is_status_ok(response.status_code):
                    raise BadStatusError(
                        response.status_code,
                        body.decode("utf-8", errors="replace"),
                    )

                try:
                    decoded = PublishResponse.model_validate_json(body)
                except PydanticValidationError as e:
                    raise ResponseDecodeError(f"could not decode response: {e}") from e

                status = "succeeded"
                span.set_attribute("message_id", decoded.message_id)
                return decoded.message_id
            finally:
                self._metrics.record_publish(
                    topic=self.topic,
                    status=status,
                    duration_seconds=time.perf_counter() - start_time,
                )

    async def aclose(self) -> None:
        """Close the underlying transport."""
        close = getattr(self._transport, "aclose", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "Publisher":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
