from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from plexport.config import Settings
from plexport.models.auth import AuthPin, IdentityClaims
from plexport.models.media import (
    AlbumItem,
    ArtistItem,
    CatalogItemBase,
    MovieItem,
    ShowItem,
    catalog_items_adapter,
    parse_items_as,
)


class TestAuthPin:
    def test_pending_until_expiry(self):
        pin = AuthPin.model_validate({"id": 1, "code": "AB", "expiresAt": "2030-01-01T00:00:00Z"})
        assert not pin.is_authorized
        assert not pin.is_expired(datetime(2029, 12, 31, tzinfo=UTC))
        assert pin.is_expired(datetime(2030, 1, 1, 0, 0, 1, tzinfo=UTC))

    def test_authorized_never_expires(self):
        pin = AuthPin(
            id=1, code="AB", auth_token="tok", expires_at=datetime.now(UTC) - timedelta(hours=1)
        )
        assert pin.is_authorized
        assert not pin.is_expired()

    def test_empty_token_is_not_authorized(self):
        assert not AuthPin(id=1, code="AB", auth_token="").is_authorized


class TestIdentityClaims:
    def test_dumps_camel_case(self):
        claims = IdentityClaims(auth_token="t", user_id=9, username="u")
        assert claims.model_dump(by_alias=True) == {"authToken": "t", "userId": "9", "username": "u"}

    def test_ignores_extra_fields(self):
        claims = IdentityClaims.model_validate(
            {"authToken": "t", "userId": "9", "username": "u", "email": "e@x.com"}
        )
        assert not hasattr(claims, "email")


class TestCatalogItemUnion:
    def test_dispatch_by_type(self):
        items = catalog_items_adapter.validate_python([
            {"type": "movie", "title": "A"},
            {"type": "show", "title": "B"},
            {"type": "artist", "title": "C"},
            {"type": "album", "title": "D"},
            {"type": "track", "title": "E"},
            {"title": "F"},
        ])
        assert [type(i) for i in items] == [
            MovieItem, ShowItem, ArtistItem, AlbumItem, CatalogItemBase, CatalogItemBase
        ]

    def test_tags_use_plex_names(self):
        movie = MovieItem.model_validate({"title": "A", "Role": [{"tag": "x"}]})
        assert movie.roles[0].tag == "x"
        dumped = movie.model_dump(by_alias=True, exclude_none=True)
        assert dumped["Role"] == [{"tag": "x"}]

    def test_tags_keep_upstream_attributes(self):
        movie = MovieItem.model_validate(
            {"title": "A", "Genre": [{"id": 7, "filter": "genre=7", "tag": "Sci-Fi"}]}
        )
        dumped = movie.model_dump(by_alias=True, exclude_none=True)
        assert dumped["Genre"] == [{"id": 7, "filter": "genre=7", "tag": "Sci-Fi"}]
        assert "Director" not in dumped
        assert "Role" not in dumped

    def test_parse_as_library_type(self):
        [item] = parse_items_as([{"type": "show", "title": "B", "studio": "HBO"}], "movie")
        assert isinstance(item, MovieItem)
        assert item.studio == "HBO"

    def test_parse_as_unknown_type(self):
        [item] = parse_items_as([{"title": "B"}], "photo")
        assert type(item) is CatalogItemBase

    def test_bad_field_type(self):
        with pytest.raises(ValidationError):
            parse_items_as([{"title": "B", "duration": "long"}], "movie")


class TestSettings:
    def test_cookie_secure_in_production(self):
        assert Settings(environment="production").cookie_secure
        assert not Settings(environment="development").cookie_secure

    def test_defaults(self):
        settings = Settings()
        assert settings.session_max_age_seconds == 7 * 24 * 60 * 60
        assert settings.session_cookie_name == "plexport-session"
        assert settings.pin_poll_interval_seconds == 2.0
