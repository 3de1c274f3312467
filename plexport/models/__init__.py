from plexport.models.auth import (
    AuthPin,
    CheckPinRequest,
    CheckPinResponse,
    IdentityClaims,
    PinResponse,
    PlexUser,
    SessionResponse,
    UserSummary,
)
from plexport.models.media import (
    AlbumItem,
    ArtistItem,
    CatalogItem,
    CatalogItemBase,
    CollectionOrPlaylist,
    LibraryContent,
    LibrarySection,
    MovieItem,
    ServerDescriptor,
    ShowItem,
)

__all__ = [
    "AuthPin",
    "CheckPinRequest",
    "CheckPinResponse",
    "IdentityClaims",
    "PinResponse",
    "PlexUser",
    "SessionResponse",
    "UserSummary",
    "ServerDescriptor",
    "LibrarySection",
    "CollectionOrPlaylist",
    "CatalogItem",
    "CatalogItemBase",
    "MovieItem",
    "ShowItem",
    "ArtistItem",
    "AlbumItem",
    "LibraryContent",
]
