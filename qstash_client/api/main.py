"""
FastAPI application hosting a QStash receiver endpoint.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from qstash_client.api.routes import health_router
from qstash_client.config import Settings, get_settings
from qstash_client.constants import CLIENT_VERSION
from qstash_client.observability.logging import setup_logging
from qstash_client.observability.tracing import instrument_fastapi, setup_tracing
from qstash_client.receiver import OnReceive, Receiver

logger = logging.getLogger(__name__)


def create_app(
    on_receive: OnReceive | None,
    settings: Settings | None = None,
    *,
    receiver: Receiver | None = None,
    path: str = "/",
) -> FastAPI:
    """
    Create a FastAPI application that receives QStash deliveries.

    Serve it with any ASGI server, e.g. ``uvicorn module:app``.

    Args:
        on_receive: Application callback for verified messages.
        settings: Optional settings. Defaults to the cached environment settings.
        receiver: Optional receiver. Defaults to one built from ``settings``.
        path: Route path for deliveries.

    Returns:
        FastAPI: The configured application instance.

    Raises:
        ConfigurationError: If the receiver cannot be built from the settings.
    """
    settings = settings or get_settings()
    receiver = receiver or Receiver(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        setup_logging(settings)
        if settings.otel_enabled:
            setup_tracing(settings)

        logger.info("Receiver started", extra={"path": path})

        yield

        logger.info("Receiver shutdown")

    app = FastAPI(
        title="QStash Receiver",
        description="Verifies and dispatches QStash webhook deliveries",
        version=CLIENT_VERSION,
        lifespan=lifespan,
    )

    app.include_router(health_router)
    app.include_router(receiver.router(on_receive, path=path))

    if settings.otel_enabled:
        instrument_fastapi(app)

    return app
