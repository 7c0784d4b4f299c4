"""
Receiver module.
Contains webhook signature verification and message dispatch.
"""

from qstash_client.receiver.receiver import OnReceive, Receiver
from qstash_client.receiver.signature import SignatureVerifier, body_hash

__all__ = ["Receiver", "OnReceive", "SignatureVerifier", "body_hash"]
