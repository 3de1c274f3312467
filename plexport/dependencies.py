from typing import Annotated

from fastapi import Depends, Request

from plexport.config import Settings, get_settings
from plexport.errors import NoServerAvailableError, SessionError, UnauthorizedError
from plexport.models.auth import IdentityClaims
from plexport.models.media import ServerDescriptor
from plexport.services.plex_auth import PlexAuthService
from plexport.services.plex_client import PlexClient
from plexport.services.session import SessionCodec


def get_session_codec(settings: Settings = Depends(get_settings)) -> SessionCodec:
    return SessionCodec(settings)


def get_plex_client(settings: Settings = Depends(get_settings)) -> PlexClient:
    return PlexClient(settings)


def get_plex_auth_service(
    settings: Settings = Depends(get_settings),
    plex_client: PlexClient = Depends(get_plex_client),
    codec: SessionCodec = Depends(get_session_codec),
) -> PlexAuthService:
    return PlexAuthService(settings, plex_client, codec)


def require_session(token: str | None, codec: SessionCodec) -> IdentityClaims:
    """Turn a session token into claims or fail with one Unauthorized outcome.

    A missing token, a bad signature and an expired session all look the
    same to the caller.
    """
    if not token:
        raise UnauthorizedError()
    try:
        return codec.decode(token)
    except SessionError as e:
        raise UnauthorizedError() from e


def get_current_session(
    request: Request,
    settings: Settings = Depends(get_settings),
    codec: SessionCodec = Depends(get_session_codec),
) -> IdentityClaims:
    """Extract and validate the session from the session cookie."""
    token = request.cookies.get(settings.session_cookie_name)
    return require_session(token, codec)


async def get_primary_server(
    session: IdentityClaims = Depends(get_current_session),
    plex_client: PlexClient = Depends(get_plex_client),
) -> ServerDescriptor:
    """Resolve the session's servers live and pick the first one."""
    servers = await plex_client.get_servers(session.auth_token)
    if not servers:
        raise NoServerAvailableError()
    return servers[0]


CurrentSession = Annotated[IdentityClaims, Depends(get_current_session)]
PrimaryServer = Annotated[ServerDescriptor, Depends(get_primary_server)]
