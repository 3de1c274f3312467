from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads and writes Plex-style camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


class AuthPin(CamelModel):
    """A plex.tv PIN as returned by ``/api/v2/pins``."""

    id: int
    code: str
    expires_at: datetime | None = None
    auth_token: str | None = None
    client_identifier: str | None = None

    @property
    def is_authorized(self) -> bool:
        return bool(self.auth_token)

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.is_authorized or self.expires_at is None:
            return False
        now = now or datetime.now(UTC)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return now >= expires_at


class PlexUser(CamelModel):
    """The plex.tv account behind an auth token."""

    id: str
    uuid: str | None = None
    username: str
    title: str | None = None
    email: str | None = None
    thumb: str | None = None
    auth_token: str | None = None


class IdentityClaims(CamelModel):
    """The only data carried inside a session token."""

    auth_token: str
    user_id: str
    username: str


class PinResponse(CamelModel):
    """PIN details for the login page: show ``code`` and open ``auth_url``."""

    id: int
    code: str
    auth_url: str
    expires_at: datetime | None = None


class CheckPinRequest(CamelModel):
    pin_id: int


class UserSummary(CamelModel):
    username: str
    email: str | None = None
    thumb: str | None = None


class CheckPinResponse(CamelModel):
    authorized: bool
    user: UserSummary | None = None


class SessionUser(CamelModel):
    username: str
    user_id: str


class ServerSummary(CamelModel):
    name: str
    version: str | None = None


class SessionResponse(CamelModel):
    authenticated: bool
    user: SessionUser | None = None
    server: ServerSummary | None = None


class LogoutResponse(CamelModel):
    success: bool
