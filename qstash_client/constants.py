"""
Application constants.
Centralized location for all constant values used across the client.
"""

from enum import StrEnum


class Outcome(StrEnum):
    """
    Result of handing a received message to application code.

    State transitions for an inbound delivery:
    - RECEIVED -> REJECTED (signature verification failed, 401)
    - RECEIVED -> DISPATCHED (signature verified, callback invoked)
    - DISPATCHED -> ACKNOWLEDGED (200)
    - DISPATCHED -> UNACKNOWLEDGED (422, broker retries)
    """

    ACKNOWLEDGED = "acknowledged"
    UNACKNOWLEDGED = "unacknowledged"


CLIENT_VERSION = "1.0.0"

# Default values
DEFAULT_QSTASH_URL = "https://qstash.upstash.io/v2/publish"
DEFAULT_CLIENT_TIMEOUT_SECONDS = 1.0
DEFAULT_MIN_BACKOFF_SECONDS = 0.2
DEFAULT_MAX_BACKOFF_SECONDS = 1.0
DEFAULT_CLIENT_RETRIES = 5
MIN_DURATION_SECONDS = 0.001

# Signature constants
SIGNATURE_ISSUER = "Upstash"
HMAC_ALGORITHMS = ["HS256", "HS384", "HS512"]

# Publish headers
FORWARD_HEADER_PREFIX = "upstash-forward-"
AUTHORIZATION_HEADER = "Authorization"
CONTENT_TYPE_HEADER = "Content-Type"
CONTENT_TYPE_JSON = "application/json"
DEDUPLICATION_ID_HEADER = "Upstash-Deduplication-ID"
CONTENT_BASED_DEDUPLICATION_HEADER = "Upstash-Content-Based-Deduplication"
DELAY_HEADER = "Upstash-Delay"
SCHEDULE_HEADER = "Upstash-Schedule"
RETRIES_HEADER = "Upstash-Retries"

# Receive headers
SIGNATURE_HEADER = "Upstash-Signature"
MESSAGE_ID_HEADER = "Upstash-Message-Id"
RETRIED_HEADER = "Upstash-Retried"

# Receive status for deliveries the callback did not acknowledge
UNACKNOWLEDGED_STATUS_CODE = 422

# Metrics names
METRIC_MESSAGES_PUBLISHED = "qstash_messages_published_total"
METRIC_PUBLISH_LATENCY = "qstash_publish_latency_seconds"
METRIC_PUBLISH_RETRIES = "qstash_publish_retries_total"
METRIC_MESSAGES_RECEIVED = "qstash_messages_received_total"

# Trace span names
SPAN_PUBLISH_MESSAGE = "publish_message"
SPAN_RECEIVE_MESSAGE = "receive_message"
