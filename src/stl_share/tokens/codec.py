"""Compact HMAC-SHA256 signed token encoding.

A token is a compact HS256 JWT: three base64url segments joined by ``.``
holding the header, the JSON payload and the signature over
``header.payload``. Time claims are epoch milliseconds, so PyJWT's own
``exp``/``iat`` checks are switched off and expiry is left to the caller.
"""

from __future__ import annotations

import logging
from typing import Any

import jwt

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
SEGMENT_SEPARATOR = "."

# Claims are verified by TokenService in milliseconds, not by PyJWT in seconds.
_DECODE_OPTIONS: dict[str, Any] = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_iat": False,
    "verify_nbf": False,
}


class TokenCodecError(Exception):
    """Base class for token encoding and decoding failures."""


class MalformedTokenError(TokenCodecError):
    """Raised when a token does not have the expected structure."""


class InvalidSignatureError(TokenCodecError):
    """Raised when a token's signature does not match its contents."""


def encode(payload: dict[str, Any], secret: str) -> str:
    """Serialize and sign a payload.

    Args:
        payload: JSON-serializable claims.
        secret: HMAC secret.

    Returns:
        Token string ``header.payload.signature``.
    """
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode(token: str, secret: str) -> dict[str, Any]:
    """Verify a token's signature and return its payload.

    PyJWT checks the signature before parsing the payload JSON, so a
    tampered payload surfaces as an invalid signature rather than a parse
    error.

    Args:
        token: Token string produced by ``encode``.
        secret: HMAC secret the token was signed with.

    Returns:
        The decoded payload dict.

    Raises:
        MalformedTokenError: If the token does not split into three non-empty
            base64url segments or the header or payload is not a JSON object.
        InvalidSignatureError: If the signature does not match.
    """
    if not isinstance(token, str):
        raise MalformedTokenError("Token must be a string")
    segments = token.split(SEGMENT_SEPARATOR)
    if len(segments) != 3 or not all(segments):
        raise MalformedTokenError("Token must have exactly three non-empty segments")

    try:
        payload: dict[str, Any] = jwt.decode(
            token, secret, algorithms=[ALGORITHM], options=_DECODE_OPTIONS
        )
    except jwt.InvalidSignatureError as exc:
        logger.info("[decode] token signature mismatch")
        raise InvalidSignatureError("Invalid signature") from exc
    except jwt.InvalidTokenError as exc:
        raise MalformedTokenError(f"Malformed token: {exc}") from exc
    return payload
