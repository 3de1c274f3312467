import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from plexport.config import Settings, get_settings
from plexport.dependencies import (
    get_plex_auth_service,
    get_plex_client,
    get_session_codec,
    require_session,
)
from plexport.errors import UnauthorizedError
from plexport.models.auth import (
    CheckPinRequest,
    CheckPinResponse,
    LogoutResponse,
    PinResponse,
    ServerSummary,
    SessionResponse,
    SessionUser,
    UserSummary,
)
from plexport.services.plex_auth import PlexAuthService
from plexport.services.plex_client import PlexClient
from plexport.services.session import SessionCodec

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_max_age_seconds,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


@router.post("/pin", response_model=PinResponse, response_model_exclude_none=True)
async def create_pin(
    auth_service: PlexAuthService = Depends(get_plex_auth_service),
) -> PinResponse:
    """Create a new PIN for Plex authentication.

    Returns the code to show the user and the auth URL to open in a popup.
    """
    return await auth_service.create_pin()


@router.post("/check", response_model=CheckPinResponse, response_model_exclude_none=True)
async def check_pin(
    body: CheckPinRequest,
    response: Response,
    settings: Settings = Depends(get_settings),
    auth_service: PlexAuthService = Depends(get_plex_auth_service),
) -> CheckPinResponse:
    """Check if a PIN has been claimed.

    Poll this endpoint (every 2 seconds) until ``authorized`` is true; the
    session cookie is set on that response.
    """
    result = await auth_service.check_pin(body.pin_id)
    if not result.authorized:
        return CheckPinResponse(authorized=False)

    set_session_cookie(response, result.session_token, settings)
    user = result.user
    return CheckPinResponse(
        authorized=True,
        user=UserSummary(username=user.username, email=user.email, thumb=user.thumb),
    )


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    response: Response,
    settings: Settings = Depends(get_settings),
) -> LogoutResponse:
    """Clear the session cookie. Sessions are stateless, nothing else to do."""
    response.delete_cookie(settings.session_cookie_name, path="/")
    return LogoutResponse(success=True)


@router.get("/session", response_model=SessionResponse)
async def get_session(
    request: Request,
    settings: Settings = Depends(get_settings),
    codec: SessionCodec = Depends(get_session_codec),
    plex_client: PlexClient = Depends(get_plex_client),
) -> SessionResponse | JSONResponse:
    """Report the current session and its primary server, resolved live."""
    try:
        session = require_session(request.cookies.get(settings.session_cookie_name), codec)
    except UnauthorizedError:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"authenticated": False},
        )

    servers = await plex_client.get_servers(session.auth_token)
    primary = servers[0] if servers else None
    return SessionResponse(
        authenticated=True,
        user=SessionUser(username=session.username, user_id=session.user_id),
        server=ServerSummary(name=primary.name, version=primary.version) if primary else None,
    )
