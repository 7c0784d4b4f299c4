"""
Exception hierarchy for the QStash client.

Publisher-side errors are raised to the caller. Receiver-side errors never
leave the receiver; they are translated into HTTP status codes.
"""


class QStashError(Exception):
    """Base class for all QStash client errors."""


class ConfigurationError(QStashError):
    """Raised when a publisher or receiver is constructed with invalid settings."""


class ValidationError(QStashError):
    """Raised when a message or its publish options are rejected before any I/O."""


class HeaderPrefixError(ValidationError):
    """Raised when a custom header does not carry the forwarding prefix."""


class DeduplicationConflictError(ValidationError):
    """Raised when a custom id and content based deduplication are both requested."""


class IdentifierGenerationError(QStashError):
    """Raised when a deduplication id cannot be generated."""


class RequestBuildError(QStashError):
    """Raised when the publish request cannot be constructed."""


class TransportError(QStashError):
    """Raised when the publish request could not be completed."""


class ProtocolError(QStashError):
    """Raised when the broker answers with something other than a success."""


class BadStatusError(ProtocolError):
    """Raised when the broker responds with a non 2xx status."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"bad request status {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class ResponseDecodeError(ProtocolError):
    """Raised when the publish response body cannot be decoded."""


class AuthenticationError(QStashError):
    """Base class for inbound signature verification failures."""


class MalformedTokenError(AuthenticationError):
    """Raised when the signature token cannot be parsed."""


class UnsupportedAlgorithmError(AuthenticationError):
    """Raised when the token is not signed with an HMAC algorithm."""


class InvalidSignatureError(AuthenticationError):
    """Raised when the token signature does not match the signing key."""


class InvalidIssuerError(AuthenticationError):
    """Raised when the token was not issued by the broker."""


class TokenExpiredError(AuthenticationError):
    """Raised when the token expiry is missing or in the past."""


class TokenNotYetValidError(AuthenticationError):
    """Raised when the token not-before claim is in the future."""


class BodyHashMismatchError(AuthenticationError):
    """Raised when the body claim does not match the received body."""
