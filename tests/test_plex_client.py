from unittest.mock import MagicMock, patch

import httpx
import pytest

from plexport.errors import PlexUpstreamError
from plexport.models.media import AlbumItem, CatalogItemBase, MovieItem, ShowItem
from plexport.services.plex_client import PlexClient, _element_to_dict
from tests.conftest import make_mock_client, make_mock_response

SERVER = "https://10-0-0-2.abc.plex.direct:32400"

ACCOUNT_XML = """<?xml version="1.0" encoding="UTF-8"?>
<user id="4242" uuid="u-1" username="testuser" title="Test User"
      email="test@example.com" thumb="https://plex.tv/users/u-1/avatar"
      authenticationToken="plex-token-xml">
  <subscription active="1" status="Active" plan="lifetime"/>
</user>
"""


@pytest.fixture
def plex_client(settings):
    return PlexClient(settings)


def _patch_client(mock_client):
    return patch("plexport.services.plex_client.httpx.AsyncClient", return_value=mock_client)


class TestElementToDict:
    def test_groups_children_by_tag(self):
        import xml.etree.ElementTree as ET

        root = ET.fromstring('<Video title="A"><Genre tag="x"/><Genre tag="y"/></Video>')
        assert _element_to_dict(root) == {
            "title": "A",
            "Genre": [{"tag": "x"}, {"tag": "y"}],
        }


class TestFetch:
    async def test_sends_plex_headers(self, plex_client):
        mock_client = make_mock_client(request=make_mock_response({"MediaContainer": {}}))

        with _patch_client(mock_client):
            await plex_client.get_libraries(SERVER, "tok")

        method, url = mock_client.request.call_args.args
        headers = mock_client.request.call_args.kwargs["headers"]
        assert method == "GET"
        assert url == f"{SERVER}/library/sections"
        assert headers["X-Plex-Token"] == "tok"
        assert headers["X-Plex-Client-Identifier"] == "test-client-id"
        assert headers["X-Plex-Product"] == "Test Product"

    async def test_applies_timeout(self, plex_client):
        mock_client = make_mock_client(request=make_mock_response({"MediaContainer": {}}))

        with _patch_client(mock_client) as client_cls:
            await plex_client.get_libraries(SERVER, "tok")

        client_cls.assert_called_once_with(timeout=5.0)

    async def test_timeout_is_upstream_error(self, plex_client):
        mock_client = make_mock_client()
        mock_client.request.side_effect = httpx.ReadTimeout("slow")

        with _patch_client(mock_client), pytest.raises(PlexUpstreamError):
            await plex_client.get_libraries(SERVER, "tok")

    async def test_http_error_is_upstream_error(self, plex_client):
        resp = make_mock_response({})
        resp.raise_for_status.side_effect = httpx.HTTPStatusError(
            "boom", request=MagicMock(), response=MagicMock(status_code=500)
        )
        mock_client = make_mock_client(request=resp)

        with _patch_client(mock_client), pytest.raises(PlexUpstreamError) as exc_info:
            await plex_client.get_libraries(SERVER, "tok")
        assert exc_info.value.public_message == "Plex is unavailable"

    async def test_undecodable_body(self, plex_client):
        resp = make_mock_response(text="not json", content_type="text/plain")
        resp.json.side_effect = ValueError("bad json")
        mock_client = make_mock_client(request=resp)

        with _patch_client(mock_client), pytest.raises(PlexUpstreamError):
            await plex_client.get_libraries(SERVER, "tok")


class TestPins:
    async def test_request_pin(self, plex_client):
        resp = make_mock_response({
            "id": 12345,
            "code": "ABCD",
            "expiresAt": "2025-01-01T00:00:00Z",
            "authToken": None,
        })
        mock_client = make_mock_client(request=resp)

        with _patch_client(mock_client):
            pin = await plex_client.request_pin("client-xyz")

        assert pin.id == 12345
        assert pin.code == "ABCD"
        assert not pin.is_authorized
        kwargs = mock_client.request.call_args.kwargs
        assert kwargs["data"] == {"strong": "true"}
        assert kwargs["headers"]["X-Plex-Client-Identifier"] == "client-xyz"
        assert "X-Plex-Token" not in kwargs["headers"]

    async def test_check_pin_authorized(self, plex_client):
        resp = make_mock_response({"id": 12345, "code": "ABCD", "authToken": "plex-token-123"})
        mock_client = make_mock_client(request=resp)

        with _patch_client(mock_client):
            pin = await plex_client.check_pin(12345, "client-xyz")

        assert pin.is_authorized
        assert pin.auth_token == "plex-token-123"
        assert mock_client.request.call_args.args[1].endswith("/pins/12345")


class TestGetUser:
    async def test_parses_xml_account(self, plex_client):
        resp = make_mock_response(text=ACCOUNT_XML, content_type="application/xml")
        mock_client = make_mock_client(request=resp)

        with _patch_client(mock_client):
            user = await plex_client.get_user("plex-token")

        assert user.id == "4242"
        assert user.username == "testuser"
        assert user.email == "test@example.com"
        assert user.auth_token == "plex-token-xml"

    async def test_parses_json_account(self, plex_client):
        resp = make_mock_response({
            "user": {"id": 4242, "username": "testuser", "authToken": "plex-token-json"}
        })
        mock_client = make_mock_client(request=resp)

        with _patch_client(mock_client):
            user = await plex_client.get_user("plex-token")

        assert user.id == "4242"
        assert user.auth_token == "plex-token-json"


class TestGetServers:
    async def test_filters_to_servers_in_order(self, plex_client):
        resp = make_mock_response([
            {
                "name": "Living Room",
                "provides": "client,player",
                "clientIdentifier": "player-1",
            },
            {
                "name": "Main",
                "provides": "server",
                "clientIdentifier": "srv-1",
                "productVersion": "1.40.0",
                "accessToken": "srv-token",
                "connections": [
                    {"uri": SERVER, "address": "10.0.0.2", "port": 32400},
                    {"uri": "http://10.0.0.2:32400", "address": "10.0.0.2", "port": 32400},
                ],
            },
            {"name": "Backup", "provides": "server", "clientIdentifier": "srv-2"},
        ])
        mock_client = make_mock_client(request=resp)

        with _patch_client(mock_client):
            servers = await plex_client.get_servers("tok")

        assert [s.name for s in servers] == ["Main", "Backup"]
        main = servers[0]
        assert main.host == SERVER
        assert main.machine_identifier == "srv-1"
        assert main.version == "1.40.0"
        assert main.access_token == "srv-token"
        assert servers[1].host == ""
        assert servers[1].port == 32400
        assert mock_client.request.call_args.kwargs["params"] == {"includeHttps": 1, "includeRelay": 0}

    async def test_transport_error_degrades_to_empty(self, plex_client):
        mock_client = make_mock_client()
        mock_client.request.side_effect = httpx.ConnectError("unreachable")

        with _patch_client(mock_client):
            assert await plex_client.get_servers("tok") == []

    async def test_non_list_response_is_empty(self, plex_client):
        mock_client = make_mock_client(request=make_mock_response({"error": "nope"}))

        with _patch_client(mock_client):
            assert await plex_client.get_servers("tok") == []


class TestLibraryContent:
    async def test_items_are_typed_by_kind(self, plex_client):
        resp = make_mock_response({
            "MediaContainer": {
                "size": 3,
                "totalSize": 120,
                "Metadata": [
                    {"ratingKey": 1, "type": "movie", "title": "Inception", "duration": 8880000},
                    {"ratingKey": "2", "type": "show", "title": "Dark", "leafCount": 26},
                    {"ratingKey": "3", "type": "episode", "title": "Pilot"},
                ],
            }
        })
        mock_client = make_mock_client(request=resp)

        with _patch_client(mock_client):
            content = await plex_client.get_library_content(SERVER, "tok", "1")

        assert content.total == 120
        movie, show, episode = content.items
        assert isinstance(movie, MovieItem)
        assert movie.rating_key == "1"
        assert isinstance(show, ShowItem)
        assert show.leaf_count == 26
        assert type(episode) is CatalogItemBase
        assert mock_client.request.call_args.kwargs["params"] is None

    async def test_type_filter_is_sent(self, plex_client):
        resp = make_mock_response({
            "MediaContainer": {
                "size": 1,
                "Metadata": [{"ratingKey": "9", "type": "album", "title": "Blue", "parentTitle": "Joni"}],
            }
        })
        mock_client = make_mock_client(request=resp)

        with _patch_client(mock_client):
            content = await plex_client.get_library_content(SERVER, "tok", "4", type_filter=9)

        assert content.total == 1
        assert isinstance(content.items[0], AlbumItem)
        assert content.items[0].parent_title == "Joni"
        assert mock_client.request.call_args.kwargs["params"] == {"type": 9}
        assert mock_client.request.call_args.args[1] == f"{SERVER}/library/sections/4/all"

    async def test_missing_container(self, plex_client):
        mock_client = make_mock_client(request=make_mock_response({"unexpected": True}))

        with _patch_client(mock_client), pytest.raises(PlexUpstreamError):
            await plex_client.get_library_content(SERVER, "tok", "1")


class TestGroupings:
    async def test_collections(self, plex_client):
        resp = make_mock_response({
            "MediaContainer": {
                "Metadata": [
                    {"ratingKey": "77", "key": "/library/collections/77/children", "title": "Marvel", "childCount": "23"},
                ]
            }
        })
        mock_client = make_mock_client(request=resp)

        with _patch_client(mock_client):
            collections = await plex_client.get_collections(SERVER, "tok", "1")

        assert collections[0].title == "Marvel"
        assert collections[0].child_count == 23
        assert mock_client.request.call_args.args[1] == f"{SERVER}/library/sections/1/collections"

    async def test_empty_collections(self, plex_client):
        mock_client = make_mock_client(request=make_mock_response({"MediaContainer": {"size": 0}}))

        with _patch_client(mock_client):
            assert await plex_client.get_collections(SERVER, "tok", "1") == []

    async def test_playlists_with_type(self, plex_client):
        mock_client = make_mock_client(request=make_mock_response({"MediaContainer": {}}))

        with _patch_client(mock_client):
            await plex_client.get_playlists(SERVER, "tok", playlist_type="audio")

        assert mock_client.request.call_args.args[1] == f"{SERVER}/playlists"
        assert mock_client.request.call_args.kwargs["params"] == {"playlistType": "audio"}

    async def test_collection_items_url(self, plex_client):
        mock_client = make_mock_client(request=make_mock_response({"MediaContainer": {}}))

        with _patch_client(mock_client):
            items = await plex_client.get_collection_items(SERVER, "tok", "/library/collections/77/children")

        assert items == []
        assert mock_client.request.call_args.args[1] == f"{SERVER}/library/collections/77/children"

    @pytest.mark.parametrize("key", ["/playlists/5", "/playlists/5/items"])
    async def test_playlist_items_url(self, plex_client, key):
        mock_client = make_mock_client(request=make_mock_response({"MediaContainer": {}}))

        with _patch_client(mock_client):
            await plex_client.get_playlist_items(SERVER, "tok", key)

        assert mock_client.request.call_args.args[1] == f"{SERVER}/playlists/5/items"

    async def test_search_library(self, plex_client):
        resp = make_mock_response({
            "MediaContainer": {"Metadata": [{"ratingKey": "1", "type": "movie", "title": "Alien"}]}
        })
        mock_client = make_mock_client(request=resp)

        with _patch_client(mock_client):
            items = await plex_client.search_library(SERVER, "tok", "1", "alien")

        assert items[0].title == "Alien"
        assert mock_client.request.call_args.kwargs["params"] == {"title": "alien"}
