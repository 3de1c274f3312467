import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from urllib.parse import urlencode

from plexport.config import Settings
from plexport.errors import PinExpiredError, PinTimeoutError, PlexUpstreamError
from plexport.models.auth import IdentityClaims, PinResponse, PlexUser
from plexport.models.media import ServerDescriptor
from plexport.services.plex_client import PlexClient
from plexport.services.session import SessionCodec

logger = logging.getLogger(__name__)

PLEX_AUTH_URL = "https://app.plex.tv/auth"


@dataclass
class PinCheckResult:
    """Outcome of one PIN check.

    ``session_token`` and ``user`` are only set once the PIN is authorized.
    """

    authorized: bool
    user: PlexUser | None = None
    servers: list[ServerDescriptor] | None = None
    session_token: str | None = None


class PlexAuthService:
    """Service for handling Plex PIN-based authentication."""

    def __init__(self, settings: Settings, plex_client: PlexClient, codec: SessionCodec):
        self.settings = settings
        self.plex_client = plex_client
        self.codec = codec

    @property
    def client_identifier(self) -> str:
        return self.settings.plex_client_identifier

    def build_auth_url(self, code: str) -> str:
        """Build the app.plex.tv deep link the user opens to approve a PIN."""
        auth_params = {
            "clientID": self.client_identifier,
            "code": code,
            "context[device][product]": self.settings.plex_product_name,
        }
        return f"{PLEX_AUTH_URL}#?{urlencode(auth_params)}"

    async def create_pin(self) -> PinResponse:
        """Create a new PIN for Plex authentication.

        Returns:
            PinResponse with id, code, expires_at and auth_url
        """
        pin = await self.plex_client.request_pin(self.client_identifier)
        logger.info("Requested Plex PIN %s", pin.id)
        return PinResponse(
            id=pin.id,
            code=pin.code,
            auth_url=self.build_auth_url(pin.code),
            expires_at=pin.expires_at,
        )

    async def check_pin(self, pin_id: int) -> PinCheckResult:
        """Check whether a PIN has been claimed and, if so, start a session.

        Safe to call any number of times while the PIN is pending; nothing is
        stored between calls.

        Args:
            pin_id: The PIN ID

        Returns:
            PinCheckResult, authorized with a session token once plex.tv
            reports an auth token for the PIN

        Raises:
            PinExpiredError: if the PIN expired before being claimed
            PlexUpstreamError: if plex.tv could not be reached
        """
        pin = await self.plex_client.check_pin(pin_id, self.client_identifier)

        if not pin.is_authorized:
            if pin.is_expired():
                raise PinExpiredError()
            return PinCheckResult(authorized=False)

        auth_token = pin.auth_token
        user, servers = await asyncio.gather(
            self.plex_client.get_user(auth_token),
            self.plex_client.get_servers(auth_token),
        )
        session_token = self.codec.encode(
            IdentityClaims(auth_token=auth_token, user_id=user.id, username=user.username)
        )
        logger.info("PIN %s authorized for %s", pin_id, user.username)
        return PinCheckResult(
            authorized=True,
            user=user,
            servers=servers,
            session_token=session_token,
        )


async def poll_pin(
    check: Callable[[], Awaitable[PinCheckResult]],
    *,
    interval: float = 2.0,
    timeout: float = 300.0,
    max_failures: int = 5,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> PinCheckResult:
    """Drive PIN checks from the caller side until authorized.

    Pending results are retried every ``interval`` seconds. Upstream errors
    are retried with exponential backoff; ``max_failures`` consecutive errors
    re-raise the last one. Total polling is capped at ``timeout`` seconds.

    Raises:
        PinTimeoutError: if the PIN is still pending when the cap is reached
        PinExpiredError: if plex.tv reports the PIN as expired
        PlexUpstreamError: after too many consecutive upstream failures
    """
    deadline = clock() + timeout
    failures = 0
    while True:
        try:
            result = await check()
        except PlexUpstreamError:
            failures += 1
            if failures >= max_failures:
                raise
            delay = interval * 2 ** (failures - 1)
            logger.warning("PIN check failed (%d/%d), retrying in %.1fs", failures, max_failures, delay)
        else:
            if result.authorized:
                return result
            failures = 0
            delay = interval

        remaining = deadline - clock()
        if remaining <= 0:
            raise PinTimeoutError()
        await sleep(min(delay, remaining))
