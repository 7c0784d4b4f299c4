"""
Receiver for QStash webhook deliveries.

Each delivery goes through: read body -> verify signature -> dispatch to the
application callback -> respond. The response is written only once the
callback has returned, so a callback that acknowledges and then fails never
reports success to the broker.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable

from fastapi import APIRouter, Request, status
from fastapi.responses import PlainTextResponse, Response
from starlette.concurrency import run_in_threadpool
from starlette.requests import ClientDisconnect

from qstash_client.config import Settings, get_settings, validate_receiver_settings
from qstash_client.constants import (
    MESSAGE_ID_HEADER,
    RETRIED_HEADER,
    SIGNATURE_HEADER,
    SPAN_RECEIVE_MESSAGE,
    UNACKNOWLEDGED_STATUS_CODE,
    Outcome,
)
from qstash_client.errors import AuthenticationError
from qstash_client.observability.logging import delivery_context
from qstash_client.observability.metrics import MetricsCollector, get_metrics
from qstash_client.observability.tracing import get_tracer
from qstash_client.receiver.signature import SignatureVerifier
from qstash_client.types.message import Message

logger = logging.getLogger(__name__)

# Callbacks may be sync or async and may return an explicit outcome
OnReceive = Callable[[Message], Outcome | None | Awaitable[Outcome | None]]
Endpoint = Callable[[Request], Awaitable[Response]]


def parse_retried(value: str | None) -> int:
    """Parse the retry count header, treating anything unparsable as 0."""
    try:
        return int(value) if value else 0
    except ValueError:
        return 0


class Receiver:
    """
    Verifies and dispatches QStash deliveries.

    Example:
        receiver = Receiver()

        async def on_receive(message: Message) -> None:
            print(message.body)
            message.ack()

        app.include_router(receiver.router(on_receive, path="/api/qstash"))
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        verifier: SignatureVerifier | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the receiver.

        Args:
            settings: Optional settings. Defaults to the cached environment settings.
            verifier: Optional verifier. Defaults to one built from the
                current and next signing keys.
            metrics: Optional metrics collector. Defaults to the global one.

        Raises:
            ConfigurationError: If a signing key is missing.
        """
        if verifier is None:
            settings = settings or get_settings()
            validate_receiver_settings(settings)
            verifier = SignatureVerifier(
                [settings.signing_key, settings.next_signing_key],
                clock_skew=settings.clock_skew_seconds,
            )
        self._verifier = verifier
        self._metrics = metrics or get_metrics()

    async def handle(self, request: Request, on_receive: OnReceive | None) -> Response:
        """
        Process one delivery.

        Args:
            request: The inbound webhook request.
            on_receive: Application callback. It acknowledges the message by
                calling ``message.ack()`` or by returning ``Outcome.ACKNOWLEDGED``.

        Returns:
            200 if acknowledged, 401 if the signature is invalid, 422 if the
            callback did not acknowledge, 500 if the body could not be read
            or the callback raised.
        """
        with get_tracer().start_as_current_span(SPAN_RECEIVE_MESSAGE) as span:
            try:
                body = await request.body()
            except ClientDisconnect as e:
                logger.warning("Could not read delivery body", extra={"error": str(e)})
                self._metrics.record_received("failed")
                return PlainTextResponse(
                    "could not read request body",
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                )

            try:
                self._verifier.verify(body, request.headers.get(SIGNATURE_HEADER, ""))
            except AuthenticationError as e:
                logger.warning("Rejected delivery", extra={"error": str(e)})
                span.set_attribute("outcome", "rejected")
                self._metrics.record_received("rejected")
                return PlainTextResponse(str(e), status_code=status.HTTP_401_UNAUTHORIZED)

            message = Message(
                id=request.headers.get(MESSAGE_ID_HEADER, ""),
                headers=dict(request.headers),
                body=body,
                retried=parse_retried(request.headers.get(RETRIED_HEADER)),
            )
            span.set_attribute("message_id", message.id)
            span.set_attribute("retried", message.retried)

            with delivery_context(message):
                try:
                    outcome = await self._dispatch(message, on_receive)
                except Exception:
                    logger.exception("Message handler raised")
                    span.set_attribute("outcome", "failed")
                    self._metrics.record_received("failed")
                    return PlainTextResponse(
                        "message handler failed",
                        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    )

            span.set_attribute("outcome", outcome.value)
            self._metrics.record_received(outcome.value)

            # Retry unacknowledged messages
            if outcome is not Outcome.ACKNOWLEDGED:
                return PlainTextResponse(
                    "message was not acknowledged by the receiver",
                    status_code=UNACKNOWLEDGED_STATUS_CODE,
                )
            return Response(status_code=status.HTTP_200_OK)

    async def _dispatch(self, message: Message, on_receive: OnReceive | None) -> Outcome:
        if on_receive is None:
            return message.outcome

        if inspect.iscoroutinefunction(on_receive):
            result = await on_receive(message)
        else:
            result = await run_in_threadpool(on_receive, message)
            if inspect.isawaitable(result):
                result = await result

        # An explicit return value wins over the acknowledgment flag
        if result is None:
            return message.outcome
        return Outcome(result)

    def receive(self, on_receive: OnReceive | None) -> Endpoint:
        """
        Create an endpoint that verifies and dispatches deliveries.

        Args:
            on_receive: Application callback.

        Returns:
            An async ``Request -> Response`` endpoint for FastAPI or Starlette.
        """

        async def endpoint(request: Request) -> Response:
            return await self.handle(request, on_receive)

        return endpoint

    def router(self, on_receive: OnReceive | None, path: str = "/") -> APIRouter:
        """
        Create a router exposing the receive endpoint.

        Args:
            on_receive: Application callback.
            path: Route path for deliveries.

        Returns:
            APIRouter with a POST route at ``path``.
        """
        router = APIRouter(tags=["QStash"])
        router.add_api_route(
            path,
            self.receive(on_receive),
            methods=["POST"],
            summary="Receive a QStash message",
            description="Verify the delivery signature and dispatch the message.",
            include_in_schema=False,
        )
        return router
