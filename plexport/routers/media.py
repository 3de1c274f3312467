import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from pydantic import ValidationError

from plexport.dependencies import CurrentSession, PrimaryServer, get_plex_client
from plexport.errors import RequestValidationFailure
from plexport.models.media import (
    CollectionsResponse,
    ExportRequest,
    ItemsResponse,
    LibrariesResponse,
)
from plexport.services import exporter
from plexport.services.plex_client import PLEX_METADATA_TYPES, PlexClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["media"])

SectionKey = Annotated[str | None, Query(alias="sectionKey")]


@router.get("/libraries", response_model=LibrariesResponse, response_model_exclude_none=True)
async def get_libraries(
    session: CurrentSession,
    server: PrimaryServer,
    plex_client: PlexClient = Depends(get_plex_client),
) -> LibrariesResponse:
    """Get all library sections of the primary Plex server."""
    logger.info("Using Plex server %s", server.name)
    libraries = await plex_client.get_libraries(server.host, session.auth_token)
    return LibrariesResponse(libraries=libraries)


@router.get("/collections", response_model=CollectionsResponse, response_model_exclude_none=True)
async def get_collections(
    session: CurrentSession,
    server: PrimaryServer,
    section_key: SectionKey = None,
    listing: Annotated[str | None, Query(alias="type")] = None,
    plex_client: PlexClient = Depends(get_plex_client),
) -> CollectionsResponse:
    """List a section's collections, or every playlist with ``type=playlists``."""
    if not section_key:
        raise RequestValidationFailure("sectionKey is required")

    if listing == "playlists":
        items = await plex_client.get_playlists(server.host, session.auth_token)
    else:
        items = await plex_client.get_collections(server.host, session.auth_token, section_key)
    return CollectionsResponse(items=items)


@router.get("/media", response_model=ItemsResponse, response_model_exclude_none=True)
async def get_media(
    session: CurrentSession,
    server: PrimaryServer,
    section_key: SectionKey = None,
    collection_key: Annotated[str | None, Query(alias="collectionKey")] = None,
    playlist_key: Annotated[str | None, Query(alias="playlistKey")] = None,
    view_mode: Annotated[str | None, Query(alias="viewMode")] = None,
    plex_client: PlexClient = Depends(get_plex_client),
) -> ItemsResponse:
    """Get the items of a collection, a playlist or a whole library section.

    ``viewMode`` (``artist`` or ``album``) picks which level of a music
    section is listed.
    """
    if collection_key:
        items = await plex_client.get_collection_items(
            server.host, session.auth_token, collection_key
        )
        return ItemsResponse(items=items)

    if playlist_key:
        items = await plex_client.get_playlist_items(
            server.host, session.auth_token, playlist_key
        )
        return ItemsResponse(items=items)

    if section_key:
        if view_mode and view_mode not in ("artist", "album"):
            raise RequestValidationFailure("viewMode must be artist or album")
        content = await plex_client.get_library_content(
            server.host,
            session.auth_token,
            section_key,
            type_filter=PLEX_METADATA_TYPES.get(view_mode) if view_mode else None,
        )
        return ItemsResponse(items=content.items, total=content.total)

    raise RequestValidationFailure("sectionKey, collectionKey, or playlistKey is required")


@router.get("/search", response_model=ItemsResponse, response_model_exclude_none=True)
async def search_library(
    session: CurrentSession,
    server: PrimaryServer,
    section_key: SectionKey = None,
    query: str | None = None,
    plex_client: PlexClient = Depends(get_plex_client),
) -> ItemsResponse:
    """Search a library section by title."""
    if not section_key or not query:
        raise RequestValidationFailure("sectionKey and query are required")
    items = await plex_client.search_library(server.host, session.auth_token, section_key, query)
    return ItemsResponse(items=items)


@router.post("/export")
async def export_items(session: CurrentSession, body: ExportRequest) -> Response:
    """Export items as a CSV or JSON attachment."""
    if not body.items:
        raise RequestValidationFailure("No items to export")
    if body.format not in exporter.EXPORT_MEDIA_TYPES:
        raise RequestValidationFailure("Invalid format. Must be csv or json")

    try:
        records = exporter.format_raw_items(body.items, body.library_type)
    except ValidationError as e:
        raise RequestValidationFailure("Items do not match the library type") from e

    filename = exporter.export_filename(body.format)
    logger.info("Exporting %d %s items for %s", len(records), body.library_type, session.username)
    return Response(
        content=exporter.render(records, body.format),
        media_type=exporter.EXPORT_MEDIA_TYPES[body.format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
