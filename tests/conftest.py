"""
Pytest configuration and shared fixtures.
"""

import time
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from jose import jwt
from prometheus_client import CollectorRegistry

from qstash_client.config import Settings
from qstash_client.observability.metrics import MetricsCollector
from qstash_client.receiver.signature import body_hash

SIGNING_KEY = "sig_current_7Yf3kQ2mXv"
NEXT_SIGNING_KEY = "sig_next_Pz81LwRt0c"


class MockClient:
    """
    Stand-in for the send capability.

    Records every request and replays the queued results in order: a
    response is returned, an exception is raised. Once the queue is empty
    it answers with a successful publish response.
    """

    def __init__(self, results: list[httpx.Response | Exception] | None = None):
        self.requests: list[httpx.Request] = []
        self.results = list(results or [])

    async def send(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.results:
            return httpx.Response(200, json={"messageId": "mock-id"})
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    @property
    def request(self) -> httpx.Request:
        return self.requests[-1]


class MockIdentifierGenerator:
    """Identifier generator returning a fixed id or raising a fixed error."""

    def __init__(self, uuid: str = "uuid", error: Exception | None = None):
        self.uuid = uuid
        self.error = error
        self.calls = 0

    def new_id(self) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.uuid


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        token="token",
        url="url",
        signing_key=SIGNING_KEY,
        next_signing_key=NEXT_SIGNING_KEY,
        client_timeout_seconds=1.0,
        client_min_backoff_seconds=0.2,
        client_max_backoff_seconds=1.0,
        client_retries=5,
        log_level="DEBUG",
        log_format="console",
    )


@pytest.fixture
def registry() -> CollectorRegistry:
    """Create an isolated Prometheus registry."""
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> MetricsCollector:
    """Create a metrics collector bound to the isolated registry."""
    return MetricsCollector(registry=registry)


@pytest.fixture
def mock_client() -> MockClient:
    return MockClient()


@pytest.fixture
def mock_uuid() -> MockIdentifierGenerator:
    return MockIdentifierGenerator()


@pytest.fixture
def signing_keys() -> tuple[str, str]:
    """Current and next signing keys matching test_settings."""
    return SIGNING_KEY, NEXT_SIGNING_KEY


@pytest.fixture
def sign_token() -> Callable[..., str]:
    """
    Create a factory for broker style signed tokens.

    Claims passed as keyword arguments override the defaults; passing None
    removes the claim, so `body=None` signs a token without a body hash.
    """

    def sign(
        content: bytes,
        key: str = SIGNING_KEY,
        algorithm: str = "HS256",
        **claims: Any,
    ) -> str:
        now = int(time.time())
        payload: dict[str, Any] = {
            "iss": "Upstash",
            "sub": "https://my-app.example.com/api/receive",
            "exp": now + 300,
            "nbf": now - 5,
            "iat": now,
            "jti": "jwt_3kQ2mXv7Yf",
            "body": body_hash(content),
        }
        payload.update(claims)
        payload = {k: v for k, v in payload.items() if v is not None}
        return jwt.encode(payload, key, algorithm=algorithm)

    return sign
