"""
Unit tests for the publisher.
"""

import asyncio
import logging
from datetime import timedelta

import httpx
import pytest

from qstash_client.config import Settings
from qstash_client.errors import (
    BadStatusError,
    ConfigurationError,
    DeduplicationConflictError,
    HeaderPrefixError,
    IdentifierGenerationError,
    RequestBuildError,
    ResponseDecodeError,
    TransportError,
    ValidationError,
)
from qstash_client.publisher import Publisher, format_duration
from qstash_client.types.message import Message

STANDARD_HEADERS = {
    "Authorization": "Bearer token",
    "Content-Type": "application/json",
}


def upstash_headers(request: httpx.Request) -> dict[str, str]:
    """Get the Upstash-* headers of a request, keyed in lower case."""
    return {
        key.lower(): value
        for key, value in request.headers.items()
        if key.lower().startswith("upstash-")
    }


class TestPublish:
    """Tests for Publisher.publish."""

    @pytest.fixture
    def publisher(self, test_settings, mock_client, mock_uuid, metrics) -> Publisher:
        return Publisher(
            "topic",
            test_settings,
            transport=mock_client,
            id_generator=mock_uuid,
            metrics=metrics,
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("message", "options", "want_headers"),
        [
            pytest.param(
                Message(body=b"message"),
                {},
                {"Upstash-Deduplication-ID": "uuid"},
                id="no options",
            ),
            pytest.param(
                Message(body=b"message"),
                {"delay": timedelta(seconds=1)},
                {"Upstash-Deduplication-ID": "uuid", "Upstash-Delay": "1s"},
                id="with delay",
            ),
            pytest.param(
                Message(body=b"message"),
                {"delay": timedelta(microseconds=500)},
                {"Upstash-Deduplication-ID": "uuid", "Upstash-Delay": "500us"},
                id="with sub millisecond delay",
            ),
            pytest.param(
                Message(body=b"message", headers={"Upstash-Forward-Key": "value"}),
                {},
                {"Upstash-Deduplication-ID": "uuid", "Upstash-Forward-Key": "value"},
                id="with custom headers",
            ),
            pytest.param(
                Message(body=b"message", id="custom-deduplication-id"),
                {},
                {"Upstash-Deduplication-ID": "custom-deduplication-id"},
                id="with custom id",
            ),
            pytest.param(
                Message(body=b"message"),
                {"content_based_deduplication": True},
                {"Upstash-Content-Based-Deduplication": "true"},
                id="with content based deduplication",
            ),
            pytest.param(
                Message(body=b"message"),
                {"schedule": "*/5 * * * *", "retries": 3},
                {
                    "Upstash-Deduplication-ID": "uuid",
                    "Upstash-Schedule": "*/5 * * * *",
                    "Upstash-Retries": "3",
                },
                id="with schedule and retries",
            ),
        ],
    )
    async def test_publish_request(
        self,
        publisher: Publisher,
        mock_client,
        message: Message,
        options: dict,
        want_headers: dict[str, str],
    ):
        """Test the url, headers and body of the publish request."""
        await publisher.publish(message, **options)

        request = mock_client.request
        assert request.method == "POST"
        assert str(request.url) == "url/topic"
        assert request.content == b"message"
        for key, value in {**STANDARD_HEADERS, **want_headers}.items():
            assert request.headers[key] == value
        assert upstash_headers(request) == {k.lower(): v for k, v in want_headers.items()}

    @pytest.mark.asyncio
    async def test_verbose_logs_response(self, test_settings, mock_client, mock_uuid, metrics, caplog):
        """Test verbose publishers log the broker response status and body."""
        publisher = Publisher(
            "topic",
            test_settings.model_copy(update={"verbose": True}),
            transport=mock_client,
            id_generator=mock_uuid,
            metrics=metrics,
        )
        caplog.set_level(logging.INFO, logger="qstash_client.publisher.client")

        await publisher.publish(Message(body=b"message"))

        records = [r for r in caplog.records if r.getMessage() == "Publish response"]
        assert len(records) == 1
        assert records[0].status_code == 200
        assert records[0].topic == "topic"
        assert "mock-id" in records[0].body

    @pytest.mark.asyncio
    async def test_quiet_by_default(self, publisher: Publisher, caplog):
        caplog.set_level(logging.INFO, logger="qstash_client.publisher.client")

        await publisher.publish(Message(body=b"message"))

        assert not [r for r in caplog.records if r.getMessage() == "Publish response"]

    @pytest.mark.asyncio
    async def test_publish_sets_message_id(self, publisher: Publisher):
        """Test the broker assigned id is written back to the message."""
        message = Message(body=b"message")

        message_id = await publisher.publish(message)

        assert message_id == "mock-id"
        assert message.id == "mock-id"

    @pytest.mark.asyncio
    async def test_forward_header_prefix_is_case_insensitive(self, publisher, mock_client):
        """Test lower case forward headers are accepted and forwarded verbatim."""
        message = Message(body=b"message", headers={"upstash-forward-trace": "abc"})

        await publisher.publish(message)

        assert mock_client.request.headers["Upstash-Forward-Trace"] == "abc"

    @pytest.mark.asyncio
    async def test_zero_delay_and_retries_are_omitted(self, publisher, mock_client):
        """Test non positive delay and retry options add no headers."""
        await publisher.publish(Message(body=b"message"), delay=0, retries=0, schedule="")

        assert upstash_headers(mock_client.request) == {"upstash-deduplication-id": "uuid"}

    @pytest.mark.asyncio
    async def test_publish_with_delay(self, publisher, mock_client):
        """Test publish_with_delay adds the delay header."""
        await publisher.publish_with_delay(Message(body=b"message"), timedelta(seconds=5))

        assert mock_client.request.headers["Upstash-Delay"] == "5s"

    @pytest.mark.asyncio
    async def test_publish_with_delay_in_seconds(self, publisher, mock_client):
        """Test delays may be given as seconds."""
        await publisher.publish_with_delay(Message(body=b"message"), 90)

        assert mock_client.request.headers["Upstash-Delay"] == "1m30s"

    @pytest.mark.asyncio
    async def test_publish_with_schedule(self, publisher, mock_client):
        """Test publish_with_schedule adds the schedule header and keeps options."""
        await publisher.publish_with_schedule(
            Message(body=b"message"),
            "0 * * * *",
            retries=2,
        )

        assert mock_client.request.headers["Upstash-Schedule"] == "0 * * * *"
        assert mock_client.request.headers["Upstash-Retries"] == "2"

    @pytest.mark.asyncio
    async def test_generated_id_per_publish(self, test_settings, mock_client, metrics):
        """Test every publish without an id gets a fresh generated id."""
        publisher = Publisher("topic", test_settings, transport=mock_client, metrics=metrics)

        await publisher.publish(Message(body=b"one"))
        await publisher.publish(Message(body=b"two"))

        first, second = (r.headers["Upstash-Deduplication-ID"] for r in mock_client.requests)
        assert first and second
        assert first != second
        assert first.isalnum()

    @pytest.mark.asyncio
    async def test_publish_records_metrics(self, publisher, registry):
        """Test successful publishes are counted."""
        await publisher.publish(Message(body=b"message"))

        value = registry.get_sample_value(
            "qstash_messages_published_total",
            {"topic": "topic", "status": "succeeded"},
        )
        assert value == 1.0


class TestPublishErrors:
    """Tests for publish failure modes."""

    @pytest.fixture
    def publisher(self, test_settings, mock_client, mock_uuid, metrics) -> Publisher:
        return Publisher(
            "topic",
            test_settings,
            transport=mock_client,
            id_generator=mock_uuid,
            metrics=metrics,
        )

    @pytest.mark.asyncio
    async def test_bad_header_prefix(self, publisher, mock_client):
        """Test headers without the forward prefix fail before sending."""
        message = Message(body=b"message", headers={"key": "value"})

        with pytest.raises(HeaderPrefixError):
            await publisher.publish(message)

        assert mock_client.requests == []

    @pytest.mark.asyncio
    async def test_custom_id_and_content_based_deduplication(self, publisher, mock_client, mock_uuid):
        """Test both deduplication strategies together fail before sending."""
        message = Message(body=b"message", id="custom-deduplication-id")

        with pytest.raises(DeduplicationConflictError):
            await publisher.publish(message, content_based_deduplication=True)

        assert mock_client.requests == []
        assert mock_uuid.calls == 0
        assert message.id == "custom-deduplication-id"

    @pytest.mark.asyncio
    async def test_invalid_options(self, publisher, mock_client):
        """Test out of range options are rejected."""
        with pytest.raises(ValidationError):
            await publisher.publish(Message(body=b"message"), retries=-1)

        assert mock_client.requests == []

    @pytest.mark.asyncio
    async def test_identifier_generation_failure(self, publisher, mock_client, mock_uuid):
        """Test generator failures propagate."""
        mock_uuid.error = IdentifierGenerationError("entropy exhausted")

        with pytest.raises(IdentifierGenerationError):
            await publisher.publish(Message(body=b"message"))

        assert mock_client.requests == []

    @pytest.mark.asyncio
    async def test_request_build_failure(self, publisher, mock_client):
        """Test unencodable header values fail request construction."""
        message = Message(body=b"message", headers={"Upstash-Forward-Name": "snow☃man"})

        with pytest.raises(RequestBuildError):
            await publisher.publish(message)

        assert mock_client.requests == []

    @pytest.mark.asyncio
    async def test_transport_failure(self, publisher, mock_client, registry):
        """Test network errors surface as TransportError."""
        mock_client.results.append(httpx.ConnectError("connection refused"))

        with pytest.raises(TransportError) as exc_info:
            await publisher.publish(Message(body=b"message"))

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        assert registry.get_sample_value(
            "qstash_messages_published_total",
            {"topic": "topic", "status": "failed"},
        ) == 1.0

    @pytest.mark.asyncio
    async def test_bad_status(self, publisher, mock_client):
        """Test non 2xx responses carry the status and body."""
        mock_client.results.append(httpx.Response(400, text="invalid destination"))
        message = Message(body=b"message")

        with pytest.raises(BadStatusError) as exc_info:
            await publisher.publish(message)

        assert exc_info.value.status_code == 400
        assert exc_info.value.body == "invalid destination"
        assert "400" in str(exc_info.value)
        assert message.id == ""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "content",
        [b"not json", b"[]", b"{}", b'{"messageId": 42}'],
    )
    async def test_response_decode_failure(self, publisher, mock_client, content):
        """Test unreadable publish responses fail."""
        mock_client.results.append(httpx.Response(201, content=content))

        with pytest.raises(ResponseDecodeError):
            await publisher.publish(Message(body=b"message"))

    @pytest.mark.asyncio
    async def test_timeout_cancels_publish(self, publisher, mock_client):
        """Test the per call timeout aborts an in-flight send."""

        async def hang(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(10)
            return httpx.Response(200, json={"messageId": "late"})

        mock_client.send = hang
        message = Message(body=b"message")

        with pytest.raises(TimeoutError):
            await publisher.publish(message, timeout=0.05)

        assert message.id == ""


class TestPublisherConfiguration:
    """Tests for publisher construction."""

    @pytest.mark.parametrize(
        "overrides",
        [
            {"token": ""},
            {"url": ""},
            {"client_timeout_seconds": 0},
            {"client_retries": -1},
            {"client_min_backoff_seconds": 0.0001},
            {"client_max_backoff_seconds": 0},
            {"client_min_backoff_seconds": 2.0, "client_max_backoff_seconds": 1.0},
        ],
    )
    def test_invalid_settings(self, test_settings, mock_client, metrics, overrides):
        """Test invalid settings fail at construction."""
        settings = test_settings.model_copy(update=overrides)

        with pytest.raises(ConfigurationError):
            Publisher("topic", settings, transport=mock_client, metrics=metrics)

    def test_missing_topic(self, test_settings, mock_client, metrics):
        """Test an empty topic fails at construction."""
        with pytest.raises(ConfigurationError):
            Publisher("", test_settings, transport=mock_client, metrics=metrics)

    def test_endpoint(self, mock_client, metrics):
        """Test the endpoint joins the publish url and the topic."""
        settings = Settings(token="token", url="https://qstash.upstash.io/v2/publish")
        publisher = Publisher(
            "https://my-app.example.com/api",
            settings,
            transport=mock_client,
            metrics=metrics,
        )

        assert publisher.endpoint == (
            "https://qstash.upstash.io/v2/publish/https://my-app.example.com/api"
        )

    @pytest.mark.asyncio
    async def test_default_transport_closes(self, test_settings, metrics):
        """Test the default transport is closed with the publisher."""
        async with Publisher("topic", test_settings, metrics=metrics) as publisher:
            assert publisher.topic == "topic"


class TestFormatDuration:
    """Tests for delay header formatting."""

    @pytest.mark.parametrize(
        ("delay", "expected"),
        [
            (timedelta(0), "0s"),
            (timedelta(microseconds=500), "500us"),
            (timedelta(milliseconds=200), "200ms"),
            (timedelta(microseconds=1500), "1.5ms"),
            (timedelta(seconds=1), "1s"),
            (timedelta(seconds=1.5), "1.5s"),
            (timedelta(seconds=90), "1m30s"),
            (timedelta(hours=1), "1h0m0s"),
            (timedelta(hours=26, minutes=3, seconds=4), "26h3m4s"),
        ],
    )
    def test_format_duration(self, delay: timedelta, expected: str):
        assert format_duration(delay) == expected
