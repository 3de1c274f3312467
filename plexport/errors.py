"""Typed failures raised by the services and mapped to HTTP in ``main``."""

from fastapi import status


class PlexportError(Exception):
    """Base class for errors with a client-safe message and status code."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)
        if message is not None:
            self.public_message = message


class SessionError(PlexportError):
    """A session token failed signature, format or expiry checks."""

    status_code = status.HTTP_401_UNAUTHORIZED
    public_message = "Invalid session"


class UnauthorizedError(PlexportError):
    status_code = status.HTTP_401_UNAUTHORIZED
    public_message = "Unauthorized"


class RequestValidationFailure(PlexportError):
    status_code = status.HTTP_400_BAD_REQUEST
    public_message = "Invalid request"


class NoServerAvailableError(PlexportError):
    status_code = status.HTTP_400_BAD_REQUEST
    public_message = "No Plex server available"


class PinExpiredError(PlexportError):
    status_code = status.HTTP_410_GONE
    public_message = "PIN has expired"


class PinTimeoutError(PlexportError):
    """Caller-side polling gave up before the PIN was authorized."""

    status_code = status.HTTP_408_REQUEST_TIMEOUT
    public_message = "Timed out waiting for authorization"


class PlexUpstreamError(PlexportError):
    """plex.tv or the Plex Media Server failed, timed out or sent garbage.

    The upstream detail stays in ``str(exc)`` for server-side logs; clients
    only ever see ``public_message``.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = "Plex is unavailable"

    def __init__(self, detail: str, public_message: str | None = None):
        super().__init__(detail)
        self.public_message = public_message or PlexUpstreamError.public_message
