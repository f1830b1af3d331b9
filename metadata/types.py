"""Structured types shared by the fetch, parse, search and scan layers."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SourceEndpoint:
    """One upstream CMS API as supplied by the persistence layer."""

    name: str
    api_base_url: str
    is_custom: bool = False
    is_disabled: bool = False

    @property
    def api(self) -> str:
        return self.api_base_url


@dataclass(frozen=True)
class SourceRef:
    api: str
    name: str
    vod_id: str


@dataclass(frozen=True)
class Category:
    id: str
    name: str


@dataclass
class MediaRecord:
    """Canonical video record built from either CMS schema."""

    id: str
    title: str
    year: str = ""
    genre: str = ""
    poster_url: str = ""
    note: str = ""
    synopsis: str = ""
    cast: str = ""
    director: str = ""
    raw_play_links: str = ""
    source_api: str | None = None
    source_name: str | None = None
    available_sources: list[SourceRef] = field(default_factory=list)

    def tagged(self, source: SourceEndpoint) -> "MediaRecord":
        """Return a copy attributed to ``source``."""
        return MediaRecord(
            id=self.id,
            title=self.title,
            year=self.year,
            genre=self.genre,
            poster_url=self.poster_url,
            note=self.note,
            synopsis=self.synopsis,
            cast=self.cast,
            director=self.director,
            raw_play_links=self.raw_play_links,
            source_api=source.api_base_url,
            source_name=source.name,
            available_sources=list(self.available_sources),
        )


@dataclass(frozen=True)
class ParsedListing:
    records: list[MediaRecord]
    categories: list[Category]


@dataclass(frozen=True)
class ProgressEvent:
    index: int
    total: int
    current_name: str


@dataclass(frozen=True)
class HealthCheckResult:
    duplicate_count: int
    dead_apis: list[str]
    working_sources: list[SourceEndpoint]

    @property
    def dead_count(self) -> int:
        return len(self.dead_apis)


@dataclass(frozen=True)
class DoubanSubject:
    """One card of the Douban recommendation feed."""

    id: str
    title: str
    genre: str
    poster_url: str
    rating: float = 0.0


@dataclass(frozen=True)
class SanitizeResult:
    content: str
    removed_count: int


@dataclass(frozen=True)
class PlaybackSource:
    """What the player receives: the original URL or a synthetic playlist."""

    url: str
    playlist: str | None = None
    removed_count: int = 0

    @property
    def is_sanitized(self) -> bool:
        return self.playlist is not None


__all__ = [
    "Category",
    "DoubanSubject",
    "HealthCheckResult",
    "MediaRecord",
    "ParsedListing",
    "PlaybackSource",
    "ProgressEvent",
    "SanitizeResult",
    "SourceEndpoint",
    "SourceRef",
]
