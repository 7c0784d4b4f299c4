"""
Publisher module.
Contains the publisher, its retrying transport, and id generation.
"""

from qstash_client.publisher.client import Publisher, format_duration
from qstash_client.publisher.identifiers import (
    IdentifierGenerator,
    RandomIdentifierGenerator,
    new_id,
)
from qstash_client.publisher.transport import RetryingTransport, backoff_delay

__all__ = [
    "Publisher",
    "format_duration",
    "IdentifierGenerator",
    "RandomIdentifierGenerator",
    "new_id",
    "RetryingTransport",
    "backoff_delay",
]
