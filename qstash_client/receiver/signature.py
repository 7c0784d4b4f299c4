"""
Signature verification for inbound QStash deliveries.

The broker signs every delivery with a JWT carrying a SHA-256 hash of the
body. Verification is attempted with the current signing key first and the
next signing key second, so receivers keep working while keys rotate.
"""

import base64
import hashlib
import hmac
import json
import time
from collections.abc import Callable, Sequence
from typing import Any

from jose import jws
from jose.exceptions import JWSError

from qstash_client.constants import HMAC_ALGORITHMS, SIGNATURE_ISSUER
from qstash_client.errors import (
    AuthenticationError,
    BodyHashMismatchError,
    InvalidIssuerError,
    InvalidSignatureError,
    MalformedTokenError,
    TokenExpiredError,
    TokenNotYetValidError,
    UnsupportedAlgorithmError,
)


def body_hash(body: bytes) -> str:
    """
    Hash a body the way the broker does for the ``body`` claim.

    Returns:
        URL-safe base64 of the SHA-256 digest, padded.
    """
    return base64.urlsafe_b64encode(hashlib.sha256(body).digest()).decode("ascii")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class SignatureVerifier:
    """
    Verifies signed tokens against an ordered list of signing keys.

    Expiry and not-before checks tolerate ``clock_skew`` seconds of drift
    between the broker and this host. The default tolerance is zero.
    """

    def __init__(
        self,
        keys: Sequence[str],
        *,
        clock_skew: float = 0.0,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the verifier.

        Args:
            keys: Signing keys in the order they are tried, current key first.
            clock_skew: Tolerated clock drift in seconds.
            clock: Source of the current unix time.
        """
        if not keys:
            raise ValueError("at least one signing key is required")
        self._keys = tuple(keys)
        self._clock_skew = clock_skew
        self._clock = clock

    def verify(self, body: bytes, token: str) -> dict[str, Any]:
        """
        Verify a token against each key in turn.

        Args:
            body: The exact received body.
            token: The ``Upstash-Signature`` header value.

        Returns:
            The claims of the first key that verifies.

        Raises:
            AuthenticationError: The failure of the last key tried.
        """
        error: AuthenticationError | None = None
        for key in self._keys:
            try:
                return self.verify_with_key(body, token, key)
            except AuthenticationError as e:
                error = e
        raise error

    def verify_with_key(self, body: bytes, token: str, key: str) -> dict[str, Any]:
        """
        Verify a token against a single signing key.

        Raises:
            MalformedTokenError: If the token cannot be parsed.
            UnsupportedAlgorithmError: If the token is not HMAC signed.
            InvalidSignatureError: If the signature does not match the key.
            InvalidIssuerError: If the issuer is not the broker.
            TokenExpiredError: If the expiry is missing or has passed.
            TokenNotYetValidError: If the token is not valid yet.
            BodyHashMismatchError: If the body does not match the body claim.
        """
        try:
            header = jws.get_unverified_header(token)
        except JWSError as e:
            raise MalformedTokenError(f"could not parse jwt: {e}") from e

        algorithm = header.get("alg")
        if algorithm not in HMAC_ALGORITHMS:
            raise UnsupportedAlgorithmError(f"unexpected signing method: {algorithm}")

        try:
            payload = jws.verify(token, key, algorithms=HMAC_ALGORITHMS)
        except JWSError as e:
            raise InvalidSignatureError(f"could not verify jwt: {e}") from e

        try:
            claims = json.loads(payload)
        except ValueError as e:
            raise MalformedTokenError("could not process jwt claims") from e
        if not isinstance(claims, dict):
            raise MalformedTokenError("could not process jwt claims")

        self._validate_claims(claims)
        self._validate_body(body, claims)
        return claims

    def _validate_claims(self, claims: dict[str, Any]) -> None:
        now = self._clock()

        if claims.get("iss") != SIGNATURE_ISSUER:
            raise InvalidIssuerError("invalid issuer")

        expires_at = claims.get("exp")
        if not _is_number(expires_at):
            raise TokenExpiredError("token has no valid expiry")
        if now > expires_at + self._clock_skew:
            raise TokenExpiredError("token has expired")

        not_before = claims.get("nbf")
        if not_before is not None:
            if not _is_number(not_before):
                raise TokenNotYetValidError("token has an invalid not before claim")
            if now < not_before - self._clock_skew:
                raise TokenNotYetValidError("token is not valid yet")

    def _validate_body(self, body: bytes, claims: dict[str, Any]) -> None:
        claimed = claims.get("body")
        if not isinstance(claimed, str):
            raise BodyHashMismatchError("body hash does not match")
        # Padding is optional on the broker side
        expected = body_hash(body).rstrip("=")
        if not hmac.compare_digest(claimed.rstrip("=").encode("utf-8"), expected.encode("ascii")):
            raise BodyHashMismatchError("body hash does not match")
