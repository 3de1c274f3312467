"""Flatten catalog items into export records and render them as CSV or JSON."""

import csv
import io
import json
import time
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any

from plexport.models.media import (
    AlbumItem,
    ArtistItem,
    CatalogItemBase,
    MovieItem,
    PlexTag,
    ShowItem,
    parse_items_as,
)

MAX_ACTORS = 5

EXPORT_MEDIA_TYPES = {
    "csv": "text/csv",
    "json": "application/json",
}

ExportRecord = dict[str, Any]


def _value(value: Any) -> Any:
    return "" if value is None else value


def _join_tags(tags: Sequence[PlexTag] | None, limit: int | None = None) -> str:
    names = [t.tag for t in tags or () if t.tag]
    if limit is not None:
        names = names[:limit]
    return ", ".join(names)


def _iso_timestamp(epoch_seconds: int | None) -> str:
    if epoch_seconds is None:
        return ""
    moment = datetime.fromtimestamp(epoch_seconds, UTC)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _minutes(duration_ms: int | None) -> Any:
    if duration_ms is None:
        return ""
    return duration_ms // 60000


def _base_fields(item: CatalogItemBase) -> ExportRecord:
    return {
        "title": item.title or "",
        "year": _value(item.year),
        "addedAt": _iso_timestamp(item.added_at),
        "ratingKey": _value(item.rating_key),
    }


def _movie_fields(item: MovieItem) -> ExportRecord:
    return {
        "studio": _value(item.studio),
        "contentRating": _value(item.content_rating),
        "rating": _value(item.rating),
        "duration": _minutes(item.duration),
        "summary": _value(item.summary),
        "genres": _join_tags(item.genres),
        "directors": _join_tags(item.directors),
        "actors": _join_tags(item.roles, limit=MAX_ACTORS),
    }


def _show_fields(item: ShowItem) -> ExportRecord:
    return {
        "studio": _value(item.studio),
        "contentRating": _value(item.content_rating),
        "rating": _value(item.rating),
        "seasons": _value(item.child_count),
        "episodes": _value(item.leaf_count),
        "summary": _value(item.summary),
        "genres": _join_tags(item.genres),
    }


def _artist_fields(item: ArtistItem) -> ExportRecord:
    return {
        "summary": _value(item.summary),
        "genres": _join_tags(item.genres),
        "country": _join_tags(item.countries),
    }


def _album_fields(item: AlbumItem) -> ExportRecord:
    return {
        "artist": _value(item.parent_title),
        "studio": _value(item.studio),
        "rating": _value(item.rating),
        "genres": _join_tags(item.genres),
    }


_EXTRA_FIELDS: dict[str, Callable[[Any], ExportRecord]] = {
    "movie": _movie_fields,
    "show": _show_fields,
    "artist": _artist_fields,
    "album": _album_fields,
}


def format_items(items: Sequence[CatalogItemBase], library_type: str | None) -> list[ExportRecord]:
    """Project items onto the export columns for a library type.

    Items must already be the model for ``library_type`` (see
    ``format_raw_items``). An unknown type yields the base columns only.
    """
    extra = _EXTRA_FIELDS.get(library_type or "")
    records = []
    for item in items:
        record = _base_fields(item)
        if extra is not None:
            record.update(extra(item))
        records.append(record)
    return records


def format_raw_items(raw_items: list[dict[str, Any]], library_type: str | None) -> list[ExportRecord]:
    """Validate raw Plex item mappings as ``library_type`` and format them."""
    return format_items(parse_items_as(raw_items, library_type), library_type)


def render_json(records: list[ExportRecord]) -> str:
    return json.dumps(records, indent=2)


def render_csv(records: list[ExportRecord]) -> str:
    if not records:
        return ""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(records[0].keys()), lineterminator="\r\n")
    writer.writeheader()
    writer.writerows(records)
    return buffer.getvalue()


def render(records: list[ExportRecord], export_format: str) -> str:
    if export_format == "csv":
        return render_csv(records)
    return render_json(records)


def export_filename(export_format: str) -> str:
    return f"plex-export-{int(time.time() * 1000)}.{export_format}"
