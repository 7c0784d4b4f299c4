"""
Type definitions for the QStash client.
Contains message, option and wire types, grouped by concern.
"""

from qstash_client.constants import Outcome
from qstash_client.types.api import HealthResponse, PublishResponse
from qstash_client.types.message import Message
from qstash_client.types.options import BackoffPolicy, PublishOptions

__all__ = [
    # Message types
    "Message",
    "Outcome",
    # Option types
    "PublishOptions",
    "BackoffPolicy",
    # Wire types
    "PublishResponse",
    "HealthResponse",
]
