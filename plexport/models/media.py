from typing import Annotated, Any

from pydantic import ConfigDict, Discriminator, Field, Tag, TypeAdapter

from plexport.models.auth import CamelModel


class ServerDescriptor(CamelModel):
    """A Plex Media Server reachable by the signed-in account."""

    name: str
    host: str  # connection URI, e.g. https://1-2-3-4.abc.plex.direct:32400
    address: str = ""
    port: int = 32400
    machine_identifier: str | None = None
    version: str | None = None
    access_token: str | None = None


class LibrarySection(CamelModel):
    """A library section within a Plex server."""

    model_config = ConfigDict(extra="allow")

    key: str
    type: str  # 'movie', 'show', 'artist', 'album', 'photo'
    title: str
    agent: str | None = None
    scanner: str | None = None
    language: str | None = None
    uuid: str | None = None


class CollectionOrPlaylist(CamelModel):
    """A collection (section scoped) or playlist (server wide)."""

    model_config = ConfigDict(extra="allow")

    rating_key: str
    key: str
    title: str
    type: str | None = None
    subtype: str | None = None
    summary: str | None = None
    thumb: str | None = None
    child_count: int | None = None
    leaf_count: int | None = None


class PlexTag(CamelModel):
    model_config = ConfigDict(extra="allow")

    tag: str | None = None


class CatalogItemBase(CamelModel):
    """Fields shared by every catalog item.

    Unknown upstream attributes are kept so items can be handed back to the
    browser untouched and posted to the export endpoint later.
    """

    model_config = ConfigDict(extra="allow")

    rating_key: str | None = None
    key: str | None = None
    type: str | None = None
    title: str | None = None
    year: int | None = None
    added_at: int | None = None
    thumb: str | None = None


class MovieItem(CatalogItemBase):
    studio: str | None = None
    content_rating: str | None = None
    rating: float | None = None
    duration: int | None = None  # milliseconds
    summary: str | None = None
    genres: list[PlexTag] | None = Field(default=None, alias="Genre")
    directors: list[PlexTag] | None = Field(default=None, alias="Director")
    roles: list[PlexTag] | None = Field(default=None, alias="Role")
    countries: list[PlexTag] | None = Field(default=None, alias="Country")


class ShowItem(CatalogItemBase):
    studio: str | None = None
    content_rating: str | None = None
    rating: float | None = None
    summary: str | None = None
    child_count: int | None = None  # seasons
    leaf_count: int | None = None  # episodes
    genres: list[PlexTag] | None = Field(default=None, alias="Genre")
    roles: list[PlexTag] | None = Field(default=None, alias="Role")


class ArtistItem(CatalogItemBase):
    summary: str | None = None
    genres: list[PlexTag] | None = Field(default=None, alias="Genre")
    countries: list[PlexTag] | None = Field(default=None, alias="Country")


class AlbumItem(CatalogItemBase):
    parent_title: str | None = None  # artist name
    studio: str | None = None
    rating: float | None = None
    summary: str | None = None
    genres: list[PlexTag] | None = Field(default=None, alias="Genre")


ITEM_MODELS: dict[str, type[CatalogItemBase]] = {
    "movie": MovieItem,
    "show": ShowItem,
    "artist": ArtistItem,
    "album": AlbumItem,
}


def _item_kind(value: Any) -> str:
    if isinstance(value, dict):
        kind = value.get("type")
    else:
        kind = getattr(value, "type", None)
    return kind if kind in ITEM_MODELS else "other"


CatalogItem = Annotated[
    Annotated[MovieItem, Tag("movie")]
    | Annotated[ShowItem, Tag("show")]
    | Annotated[ArtistItem, Tag("artist")]
    | Annotated[AlbumItem, Tag("album")]
    | Annotated[CatalogItemBase, Tag("other")],
    Discriminator(_item_kind),
]

catalog_items_adapter: TypeAdapter[list[CatalogItem]] = TypeAdapter(list[CatalogItem])


def parse_items_as(raw_items: list[dict[str, Any]], library_type: str | None) -> list[CatalogItemBase]:
    """Validate raw items against the model for a caller-supplied library type."""
    model = ITEM_MODELS.get(library_type or "", CatalogItemBase)
    return [model.model_validate(raw) for raw in raw_items]


class LibraryContent(CamelModel):
    """Items of a library section plus the section's reported size."""

    items: list[CatalogItem]
    total: int


class LibrariesResponse(CamelModel):
    libraries: list[LibrarySection]


class CollectionsResponse(CamelModel):
    items: list[CollectionOrPlaylist]


class ItemsResponse(CamelModel):
    items: list[CatalogItem]
    total: int | None = None


class ExportRequest(CamelModel):
    items: list[dict[str, Any]] | None = None
    format: str | None = None
    library_type: str | None = None
