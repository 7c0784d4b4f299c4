"""
QStash Client

Publishes messages to the QStash hosted queue over HTTP and receives its
signed webhook deliveries.

Configuration comes from the environment or explicit ``Settings``:

- ``QSTASH_TOKEN`` - The api token used to publish messages
- ``QSTASH_SIGNING_KEY`` - The current signing key of your instance
- ``QSTASH_NEXT_SIGNING_KEY`` - The next signing key, used during key rotation
"""

from qstash_client.config import Settings, get_settings
from qstash_client.constants import CLIENT_VERSION, Outcome
from qstash_client.errors import (
    AuthenticationError,
    BadStatusError,
    BodyHashMismatchError,
    ConfigurationError,
    DeduplicationConflictError,
    HeaderPrefixError,
    IdentifierGenerationError,
    InvalidIssuerError,
    InvalidSignatureError,
    MalformedTokenError,
    ProtocolError,
    QStashError,
    RequestBuildError,
    ResponseDecodeError,
    TokenExpiredError,
    TokenNotYetValidError,
    TransportError,
    UnsupportedAlgorithmError,
    ValidationError,
)
from qstash_client.publisher import (
    Publisher,
    RandomIdentifierGenerator,
    RetryingTransport,
    backoff_delay,
    new_id,
)
from qstash_client.receiver import Receiver, SignatureVerifier
from qstash_client.types import BackoffPolicy, Message, PublishOptions

__version__ = CLIENT_VERSION

__all__ = [
    # Configuration
    "Settings",
    "get_settings",
    # Types
    "Message",
    "Outcome",
    "PublishOptions",
    "BackoffPolicy",
    # Publisher
    "Publisher",
    "RetryingTransport",
    "RandomIdentifierGenerator",
    "backoff_delay",
    "new_id",
    # Receiver
    "Receiver",
    "SignatureVerifier",
    # Errors
    "QStashError",
    "ConfigurationError",
    "ValidationError",
    "HeaderPrefixError",
    "DeduplicationConflictError",
    "IdentifierGenerationError",
    "RequestBuildError",
    "TransportError",
    "ProtocolError",
    "BadStatusError",
    "ResponseDecodeError",
    "AuthenticationError",
    "MalformedTokenError",
    "UnsupportedAlgorithmError",
    "InvalidSignatureError",
    "InvalidIssuerError",
    "TokenExpiredError",
    "TokenNotYetValidError",
    "BodyHashMismatchError",
]
