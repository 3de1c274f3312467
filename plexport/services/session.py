from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import jwt
from pydantic import ValidationError

from plexport.config import Settings
from plexport.errors import SessionError
from plexport.models.auth import IdentityClaims


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SessionCodec:
    """Signs identity claims into a self-contained, time-bounded JWT.

    Nothing is stored server side: trust is rebuilt from the signature on
    every request, so rotating ``session_secret_key`` invalidates every
    outstanding session.
    """

    REQUIRED_CLAIMS = ["authToken", "userId", "username", "iat", "exp"]

    def __init__(self, settings: Settings, clock: Callable[[], datetime] = _utcnow):
        self.secret = settings.session_secret_key
        self.algorithm = settings.jwt_algorithm
        self.lifetime = timedelta(seconds=settings.session_max_age_seconds)
        self._clock = clock

    def encode(self, claims: IdentityClaims) -> str:
        """Create a session token for the given claims.

        Args:
            claims: The minimal identity to carry in the token

        Returns:
            JWT token string, valid for the configured lifetime
        """
        issued_at = self._clock()
        payload = {
            **claims.model_dump(by_alias=True),
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.lifetime).timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> IdentityClaims:
        """Verify a session token and return its claims.

        Raises:
            SessionError: on a malformed token, bad signature, missing
                claims or expiry
        """
        try:
            # Expiry is checked below against the injected clock.
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "require": self.REQUIRED_CLAIMS},
            )
        except jwt.InvalidTokenError as e:
            raise SessionError(f"Invalid session token: {e}") from e

        if self._clock().timestamp() > payload["exp"]:
            raise SessionError("Session token has expired")

        try:
            return IdentityClaims.model_validate(payload)
        except ValidationError as e:
            raise SessionError("Session token has malformed claims") from e
