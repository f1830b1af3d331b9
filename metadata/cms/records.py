from __future__ import annotations

from typing import Iterable

from metadata.normalize import first_value, resolve_poster_url
from metadata.types import MediaRecord

# Field aliases seen across CMS deployments, preferred name first.
_ID_KEYS = ("vod_id", "id")
_TITLE_KEYS = ("vod_name", "name")
_POSTER_KEYS = ("vod_pic", "pic", "vod_img", "img", "vod_pic_thumb")
_GENRE_KEYS = ("type_name", "type")
_YEAR_KEYS = ("vod_year", "year")
_NOTE_KEYS = ("vod_remarks", "note")
_SYNOPSIS_KEYS = ("vod_content", "des")
_CAST_KEYS = ("vod_actor", "actor")
_DIRECTOR_KEYS = ("vod_director", "director")


def build_record(fields: dict, host: str, pic_domain: str | None = None) -> MediaRecord:
    """Shared canonical-record builder used by both schema decoders."""
    return MediaRecord(
        id=first_value(fields, *_ID_KEYS),
        title=first_value(fields, *_TITLE_KEYS),
        year=first_value(fields, *_YEAR_KEYS),
        genre=first_value(fields, *_GENRE_KEYS),
        poster_url=resolve_poster_url(first_value(fields, *_POSTER_KEYS), host, pic_domain),
        note=first_value(fields, *_NOTE_KEYS),
        synopsis=first_value(fields, *_SYNOPSIS_KEYS),
        cast=first_value(fields, *_CAST_KEYS),
        director=first_value(fields, *_DIRECTOR_KEYS),
        raw_play_links=first_value(fields, "vod_play_url"),
    )


def unique_titled(records: Iterable[MediaRecord]) -> list[MediaRecord]:
    """Drop untitled rows and repeated ids, keeping the first occurrence."""
    seen_ids: set[str] = set()
    out: list[MediaRecord] = []
    for record in records:
        if not record.title:
            continue
        if record.id:
            if record.id in seen_ids:
                continue
            seen_ids.add(record.id)
        out.append(record)
    return out
