"""Share token issuing and validation: the authorization boundary."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from stl_share.tokens import codec
from stl_share.tokens.models import ResourceType, SharePayload

if TYPE_CHECKING:
    from stl_share.config import AppConfig

logger = logging.getLogger(__name__)

MILLIS_PER_MINUTE = 60_000


def epoch_millis() -> int:
    """Return the current wall-clock time in milliseconds since epoch."""
    return int(time.time() * 1000)


class ShareTokenError(Exception):
    """Base class for share token validation failures."""


class InvalidTokenError(ShareTokenError):
    """Raised when a token is malformed, forged or signed with another secret."""


class TokenExpiredError(ShareTokenError):
    """Raised when a correctly signed token is past its expiry."""

    def __init__(self, payload: SharePayload) -> None:
        super().__init__("Token expired")
        self.payload = payload


class TokenService:
    """Issues and validates stateless, signed share tokens."""

    def __init__(self, secret: str, clock: Callable[[], int] = epoch_millis) -> None:
        """Initialise the token service.

        Args:
            secret: HMAC secret shared by every issuer and validator.
            clock: Returns the current time in epoch milliseconds.
        """
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._secret = secret
        self._clock = clock

    def issue(
        self,
        resource_id: str,
        resource_type: ResourceType | str,
        ttl_minutes: float,
        now: int | None = None,
    ) -> str:
        """Sign a token granting read access to one Drive resource.

        Args:
            resource_id: Drive object ID.
            resource_type: ResourceType or its wire value (``image``/``stl`` mean file).
            ttl_minutes: Lifetime in minutes, must be positive.
            now: Issue time in epoch milliseconds; defaults to the clock.

        Returns:
            Signed token string.

        Raises:
            ValueError: If any argument is empty, unknown, non-positive or not finite.
        """
        if not isinstance(resource_id, str) or not resource_id:
            raise ValueError("resourceId must be a non-empty string")
        if not resource_type:
            raise ValueError("resourceType is required")
        if isinstance(ttl_minutes, bool) or not isinstance(ttl_minutes, (int, float)):
            raise ValueError("ttlMinutes must be a number")
        if ttl_minutes <= 0:
            raise ValueError("ttlMinutes must be positive")
        try:
            ttl_millis = int(ttl_minutes * MILLIS_PER_MINUTE)
        except (OverflowError, ValueError) as exc:
            raise ValueError("ttlMinutes must be a finite number") from exc

        kind = (
            resource_type
            if isinstance(resource_type, ResourceType)
            else ResourceType.parse(resource_type)
        )
        issued_at = self._clock() if now is None else now
        payload = SharePayload(
            resource_id=resource_id,
            resource_type=kind,
            expires_at=issued_at + ttl_millis,
            issued_at=issued_at,
        )
        logger.info(
            "[issue] issued share token; resource_id:%s;resource_type:%s;expires_at:%d",
            resource_id,
            kind.value,
            payload.expires_at,
        )
        return codec.encode(payload.to_dict(), self._secret)

    def decode(self, token: str) -> SharePayload:
        """Verify a token's signature and structure without checking expiry.

        Raises:
            InvalidTokenError: If the token is malformed or its signature is wrong.
        """
        try:
            raw = codec.decode(token, self._secret)
            return SharePayload.from_dict(raw)
        except codec.TokenCodecError as exc:
            raise InvalidTokenError("Invalid token") from exc
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidTokenError("Invalid token payload") from exc

    def validate(self, token: str, now: int | None = None) -> SharePayload:
        """Verify a token and check it has not expired.

        Args:
            token: Token string from ``issue``.
            now: Current time in epoch milliseconds; defaults to the clock.

        Returns:
            The token's payload.

        Raises:
            InvalidTokenError: If the token is malformed, forged or signed with
                a different secret.
            TokenExpiredError: If the token is authentic but ``expiresAt <= now``.
        """
        payload = self.decode(token)
        current = self._clock() if now is None else now
        if payload.expires_at <= current:
            logger.info(
                "[validate] share token expired; resource_id:%s;expired_at:%d",
                payload.resource_id,
                payload.expires_at,
            )
            raise TokenExpiredError(payload)
        return payload


def token_service_from_config(config: AppConfig) -> TokenService:
    """Construct a TokenService from application configuration.

    Args:
        config: Application configuration instance.

    Returns:
        Configured TokenService instance.
    """
    return TokenService(secret=config.token_secret)
