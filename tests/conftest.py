import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from plexport.config import Settings, get_settings
from plexport.main import app
from plexport.models.auth import IdentityClaims
from plexport.services.session import SessionCodec


@pytest.fixture
async def client() -> AsyncClient:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def settings() -> Settings:
    return Settings(
        plex_client_identifier="test-client-id",
        plex_product_name="Test Product",
        session_secret_key="test-secret-key",
        jwt_algorithm="HS256",
        session_max_age_seconds=604800,
        upstream_timeout_seconds=5.0,
    )


@pytest.fixture
def mock_plex_client():
    client = AsyncMock()
    client.get_servers.return_value = []
    return client


def make_mock_response(json_data=None, text=None, content_type="application/json"):
    """Create a mock httpx response (json() and raise_for_status() are sync)."""
    resp = MagicMock()
    resp.headers = {"content-type": content_type}
    resp.text = text if text is not None else json.dumps(json_data)
    resp.json.return_value = json_data
    resp.raise_for_status.return_value = None
    return resp


def make_mock_client(**method_responses):
    """Create a mock async httpx client context manager."""
    mock_client = AsyncMock()
    for method, response in method_responses.items():
        getattr(mock_client, method).return_value = response
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    return mock_client


def make_session_token(
    auth_token: str = "test-plex-token",
    user_id: str = "123",
    username: str = "testuser",
) -> str:
    codec = SessionCodec(get_settings())
    return codec.encode(IdentityClaims(auth_token=auth_token, user_id=user_id, username=username))


def session_cookie(**claims) -> dict[str, str]:
    name = get_settings().session_cookie_name
    return {"Cookie": f"{name}={make_session_token(**claims)}"}
