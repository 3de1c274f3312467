import logging
import xml.etree.ElementTree as ET
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from plexport.config import Settings
from plexport.errors import PlexUpstreamError
from plexport.models.auth import AuthPin, PlexUser
from plexport.models.media import (
    CatalogItemBase,
    CollectionOrPlaylist,
    LibraryContent,
    LibrarySection,
    ServerDescriptor,
    catalog_items_adapter,
)

logger = logging.getLogger(__name__)

PLEX_TV_URL = "https://plex.tv"
PLEX_API_URL = f"{PLEX_TV_URL}/api/v2"
DEFAULT_SERVER_PORT = 32400

# Plex metadata type ids accepted by the ``type`` filter of section listings
PLEX_METADATA_TYPES = {
    "movie": 1,
    "show": 2,
    "artist": 8,
    "album": 9,
}

_sections_adapter = TypeAdapter(list[LibrarySection])
_groupings_adapter = TypeAdapter(list[CollectionOrPlaylist])


def _element_to_dict(element: ET.Element) -> dict[str, Any]:
    """Flatten an XML element the way Plex shapes its JSON.

    Attributes become keys and child elements are grouped by tag into lists,
    so ``<Video><Genre tag="x"/></Video>`` reads like ``{"Genre": [{"tag": "x"}]}``.
    """
    data: dict[str, Any] = dict(element.attrib)
    for child in element:
        data.setdefault(child.tag, []).append(_element_to_dict(child))
    return data


def _parse_body(response: httpx.Response) -> Any:
    """Decode a JSON or XML upstream body into plain Python structures."""
    content_type = response.headers.get("content-type", "")
    text = response.text
    try:
        if "xml" in content_type or text.lstrip().startswith("<"):
            root = ET.fromstring(text)
            return {root.tag: _element_to_dict(root)}
        return response.json()
    except (ET.ParseError, ValueError) as e:
        raise PlexUpstreamError(
            f"Undecodable response from {response.request.url}: {e}"
        ) from e


def _media_container(payload: Any) -> dict[str, Any]:
    container = payload.get("MediaContainer") if isinstance(payload, dict) else None
    if not isinstance(container, dict):
        raise PlexUpstreamError("Response has no MediaContainer")
    return container


class PlexClient:
    """Stateless client for plex.tv and Plex Media Server.

    Every method takes the auth token and server it talks to as arguments,
    so one instance can serve any number of sessions.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.timeout = settings.upstream_timeout_seconds

    def _headers(self, auth_token: str | None = None, client_identifier: str | None = None) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "X-Plex-Product": self.settings.plex_product_name,
            "X-Plex-Client-Identifier": client_identifier or self.settings.plex_client_identifier,
        }
        if auth_token:
            headers["X-Plex-Token"] = auth_token
        return headers

    async def _fetch(
        self,
        method: str,
        url: str,
        *,
        auth_token: str | None = None,
        client_identifier: str | None = None,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> Any:
        """Perform one upstream request and return its normalized body.

        Raises:
            PlexUpstreamError: on transport errors, timeouts, non-2xx
                statuses or bodies that are neither JSON nor XML
        """
        logger.debug("Plex request %s %s", method, url)
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method,
                    url,
                    headers=self._headers(auth_token, client_identifier),
                    params=params,
                    data=data,
                )
                response.raise_for_status()
        except httpx.TimeoutException as e:
            raise PlexUpstreamError(f"Timed out calling {url}") from e
        except httpx.HTTPStatusError as e:
            raise PlexUpstreamError(
                f"{url} returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise PlexUpstreamError(f"Request to {url} failed: {e!r}") from e
        return _parse_body(response)

    # Authentication

    async def request_pin(self, client_identifier: str) -> AuthPin:
        data = await self._fetch(
            "POST",
            f"{PLEX_API_URL}/pins",
            client_identifier=client_identifier,
            data={"strong": "true"},
        )
        return self._validate(AuthPin, data)

    async def check_pin(self, pin_id: int, client_identifier: str) -> AuthPin:
        data = await self._fetch(
            "GET",
            f"{PLEX_API_URL}/pins/{pin_id}",
            client_identifier=client_identifier,
        )
        return self._validate(AuthPin, data)

    async def get_user(self, auth_token: str) -> PlexUser:
        """Get the plex.tv account for an auth token.

        ``/users/account`` answers in XML (``<user .../>``) where the other
        plex.tv endpoints answer in JSON; both decode to the same mapping.
        """
        payload = await self._fetch(
            "GET", f"{PLEX_TV_URL}/users/account", auth_token=auth_token
        )
        user = payload.get("user", payload) if isinstance(payload, dict) else None
        if not isinstance(user, dict):
            raise PlexUpstreamError("Account response has no user")
        if not user.get("authToken"):
            user["authToken"] = user.get("authenticationToken")
        return self._validate(PlexUser, user)

    async def get_servers(self, auth_token: str) -> list[ServerDescriptor]:
        """List the Plex Media Servers the account can reach, in plex.tv order.

        Any failure degrades to an empty list; callers treat "no servers" as
        a normal, reportable condition.
        """
        try:
            resources = await self._fetch(
                "GET",
                f"{PLEX_API_URL}/resources",
                auth_token=auth_token,
                params={"includeHttps": 1, "includeRelay": 0},
            )
        except PlexUpstreamError:
            logger.warning("Server discovery failed, treating as no servers", exc_info=True)
            return []

        if not isinstance(resources, list):
            return []

        servers = []
        for resource in resources:
            if not isinstance(resource, dict):
                continue
            provides = str(resource.get("provides") or "").split(",")
            if "server" not in provides:
                continue
            connections = resource.get("connections") or [{}]
            connection = connections[0] or {}
            try:
                servers.append(
                    ServerDescriptor(
                        name=resource.get("name") or "",
                        host=connection.get("uri") or "",
                        address=connection.get("address") or "",
                        port=connection.get("port") or DEFAULT_SERVER_PORT,
                        machine_identifier=resource.get("clientIdentifier"),
                        version=resource.get("productVersion"),
                        access_token=resource.get("accessToken"),
                    )
                )
            except ValidationError:
                logger.warning("Skipping malformed server resource %r", resource.get("name"))
        return servers

    # Library

    async def get_libraries(self, server_host: str, auth_token: str) -> list[LibrarySection]:
        payload = await self._fetch(
            "GET", f"{server_host.rstrip('/')}/library/sections", auth_token=auth_token
        )
        container = _media_container(payload)
        return self._validate(_sections_adapter, container.get("Directory") or [])

    async def get_library_content(
        self,
        server_host: str,
        auth_token: str,
        section_key: str,
        type_filter: int | None = None,
    ) -> LibraryContent:
        """Get every item of a library section.

        Args:
            server_host: Base URI of the Plex Media Server
            auth_token: The Plex auth token
            section_key: Library section key
            type_filter: Plex metadata type id, e.g. 9 to list an artist
                section's albums instead of its artists

        Returns:
            LibraryContent with the items and the section's total size
        """
        params = {"type": type_filter} if type_filter is not None else None
        payload = await self._fetch(
            "GET",
            f"{server_host.rstrip('/')}/library/sections/{section_key}/all",
            auth_token=auth_token,
            params=params,
        )
        container = _media_container(payload)
        items = self._items(container)
        total = container.get("totalSize") or container.get("size") or len(items)
        return LibraryContent(items=items, total=int(total))

    async def get_collections(
        self, server_host: str, auth_token: str, section_key: str
    ) -> list[CollectionOrPlaylist]:
        payload = await self._fetch(
            "GET",
            f"{server_host.rstrip('/')}/library/sections/{section_key}/collections",
            auth_token=auth_token,
        )
        container = _media_container(payload)
        return self._validate(_groupings_adapter, container.get("Metadata") or [])

    async def get_playlists(
        self, server_host: str, auth_token: str, playlist_type: str | None = None
    ) -> list[CollectionOrPlaylist]:
        params = {"playlistType": playlist_type} if playlist_type else None
        payload = await self._fetch(
            "GET",
            f"{server_host.rstrip('/')}/playlists",
            auth_token=auth_token,
            params=params,
        )
        container = _media_container(payload)
        return self._validate(_groupings_adapter, container.get("Metadata") or [])

    async def get_collection_items(
        self, server_host: str, auth_token: str, collection_key: str
    ) -> list[CatalogItemBase]:
        payload = await self._fetch(
            "GET",
            f"{server_host.rstrip('/')}/{collection_key.lstrip('/')}",
            auth_token=auth_token,
        )
        return self._items(_media_container(payload))

    async def get_playlist_items(
        self, server_host: str, auth_token: str, playlist_key: str
    ) -> list[CatalogItemBase]:
        path = playlist_key.strip("/")
        if not path.endswith("/items"):
            path = f"{path}/items"
        payload = await self._fetch(
            "GET", f"{server_host.rstrip('/')}/{path}", auth_token=auth_token
        )
        return self._items(_media_container(payload))

    async def search_library(
        self, server_host: str, auth_token: str, section_key: str, query: str
    ) -> list[CatalogItemBase]:
        payload = await self._fetch(
            "GET",
            f"{server_host.rstrip('/')}/library/sections/{section_key}/all",
            auth_token=auth_token,
            params={"title": query},
        )
        return self._items(_media_container(payload))

    def _items(self, container: dict[str, Any]) -> list[CatalogItemBase]:
        return self._validate(catalog_items_adapter, container.get("Metadata") or [])

    def _validate(self, schema: Any, data: Any) -> Any:
        """Validate upstream data against a model or adapter."""
        try:
            if isinstance(schema, TypeAdapter):
                return schema.validate_python(data)
            return schema.model_validate(data)
        except ValidationError as e:
            raise PlexUpstreamError(f"Unexpected Plex response shape: {e}") from e
