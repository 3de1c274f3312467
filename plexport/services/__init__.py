from plexport.services.plex_auth import PlexAuthService, PinCheckResult, poll_pin
from plexport.services.plex_client import PlexClient
from plexport.services.session import SessionCodec

__all__ = [
    "PlexAuthService",
    "PinCheckResult",
    "PlexClient",
    "SessionCodec",
    "poll_pin",
]
