"""Same-title merge of search hits coming from several CMS sources."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable

from metadata.normalize import title_key
from metadata.types import MediaRecord, SourceRef

_LOG = logging.getLogger(__name__)


def merge_same_title(records: Iterable[MediaRecord]) -> list[MediaRecord]:
    """Collapse records whose trimmed, lower-cased titles match.

    The first record of each group becomes canonical; later matches only add
    a ``SourceRef`` (one per api) and fill the canonical ``year`` and
    ``poster_url`` when those are empty. Input records are not mutated.
    """
    groups: dict[str, MediaRecord] = {}
    for record in records:
        key = title_key(record.title)
        ref = _source_ref(record)
        canonical = groups.get(key)
        if canonical is None:
            groups[key] = replace(record, available_sources=[ref] if ref else [])
            continue

        if ref and all(existing.api != ref.api for existing in canonical.available_sources):
            canonical.available_sources.append(ref)
        if not canonical.year and record.year:
            canonical.year = record.year
        if not canonical.poster_url and record.poster_url:
            canonical.poster_url = record.poster_url
        _LOG.debug("metadata_merge title=%r api=%s", key, record.source_api)
    return list(groups.values())


def _source_ref(record: MediaRecord) -> SourceRef | None:
    if not record.source_api:
        return None
    return SourceRef(api=record.source_api, name=record.source_name or "", vod_id=record.id)
