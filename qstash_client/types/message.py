"""
Message type shared by the publish and receive paths.
"""

from dataclasses import dataclass, field

from qstash_client.constants import Outcome


@dataclass
class Message:
    """
    Message published to or received from a QStash topic.

    On the publish path ``id`` is an optional caller supplied deduplication id
    and is overwritten with the broker assigned id once the publish succeeds.
    On the receive path it carries the ``Upstash-Message-Id`` header.
    """

    body: bytes = b""
    id: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    retried: int = 0
    acknowledged: bool = False

    def ack(self) -> None:
        """
        Acknowledge the message.

        The receiver writes the success status once the callback returns.
        Messages that are not acknowledged are retried by the broker.
        """
        self.acknowledged = True

    @property
    def outcome(self) -> Outcome:
        """Outcome implied by the acknowledgment flag."""
        return Outcome.ACKNOWLEDGED if self.acknowledged else Outcome.UNACKNOWLEDGED
