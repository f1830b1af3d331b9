"""Heuristic ad-segment stripping for HLS playlists.

Upstream hosts splice ad segments into otherwise clean media playlists. The
genuine content is assumed to come from one host/directory pair, so segments
are clustered by that fingerprint and everything outside the dominant cluster
is dropped together with its preceding metadata directives. When no cluster
dominates, the playlist is left alone.
"""

from __future__ import annotations

import logging

import requests

from app.errors import NetworkFailure, RedirectLoopExceeded
from app.proxy.client import bounded_get, decode_body
from config.settings import (
    PLAYLIST_TIMEOUT_SECONDS,
    SANITIZE_MAX_DEPTH,
    SANITIZE_MIN_DOMINANT_RATIO,
    USER_AGENT,
)
from metadata.types import PlaybackSource, SanitizeResult
from playlist.hls import (
    KEY_TAG,
    is_master_playlist,
    is_plain_comment,
    is_segment_metadata,
    rewrite_key_uri,
    segment_fingerprint,
    select_variant,
    split_lines,
    to_absolute,
)

logger = logging.getLogger(__name__)


def strip_ad_segments(
    content: str,
    base_url: str,
    *,
    min_ratio: float = SANITIZE_MIN_DOMINANT_RATIO,
) -> SanitizeResult | None:
    """Rebuild a media playlist without its minority-cluster segments.

    Returns None when the playlist has no segments or the dominant cluster's
    share is below ``min_ratio``; the caller must then keep ``content`` as is.
    """
    lines = split_lines(content)
    segments: list[tuple[int, str]] = []
    counts: dict[str, int] = {}
    for idx, raw in enumerate(lines):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        fingerprint = segment_fingerprint(to_absolute(line, base_url))
        if fingerprint is None:
            continue
        counts[fingerprint] = counts.get(fingerprint, 0) + 1
        segments.append((idx, fingerprint))

    dominant = ""
    max_count = 0
    for fingerprint, count in counts.items():
        if count > max_count:
            dominant, max_count = fingerprint, count

    if not segments or max_count / len(segments) < min_ratio:
        return None

    removed: set[int] = set()
    for idx, fingerprint in segments:
        if fingerprint == dominant:
            continue
        removed.add(idx)
        cursor = idx - 1
        while cursor >= 0 and cursor not in removed:
            line = lines[cursor].strip()
            if not line or is_segment_metadata(line):
                removed.add(cursor)
            elif not is_plain_comment(line):
                break
            cursor -= 1

    rebuilt: list[str] = []
    for idx, raw in enumerate(lines):
        if idx in removed:
            continue
        line = raw.strip()
        if not line:
            continue
        if line.startswith("#"):
            if line.startswith(KEY_TAG) and 'URI="' in line:
                line = rewrite_key_uri(line, base_url)
            rebuilt.append(line)
        else:
            rebuilt.append(to_absolute(line, base_url))

    return SanitizeResult(content="\n".join(rebuilt), removed_count=len(segments) - max_count)


class PlaylistSanitizer:
    """Fetch an HLS playlist directly and strip injected ad segments."""

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        timeout_seconds: float = PLAYLIST_TIMEOUT_SECONDS,
        max_depth: int = SANITIZE_MAX_DEPTH,
        min_ratio: float = SANITIZE_MIN_DOMINANT_RATIO,
    ) -> None:
        self._session = session or requests.Session()
        self.timeout_seconds = float(timeout_seconds)
        self.max_depth = int(max_depth)
        self.min_ratio = float(min_ratio)

    def fetch_playlist(self, url: str) -> str:
        resp, body = bounded_get(
            self._session,
            url,
            budget=self.timeout_seconds,
            headers={"User-Agent": USER_AGENT},
        )
        status = int(resp.status_code)
        if status < 200 or status >= 300:
            raise NetworkFailure(f"HTTP {status}")
        return decode_body(body or b"", resp.headers.get("content-type"))

    def sanitize(self, playlist_url: str, depth: int = 0) -> SanitizeResult:
        if depth > self.max_depth:
            raise RedirectLoopExceeded(f"master playlist nesting deeper than {self.max_depth}: {playlist_url}")
        content = self.fetch_playlist(playlist_url)

        if is_master_playlist(content):
            variant = select_variant(split_lines(content))
            if variant:
                logger.debug("[HLS] depth=%d variant=%s", depth, variant)
                return self.sanitize(to_absolute(variant, playlist_url), depth + 1)

        cleaned = strip_ad_segments(content, playlist_url, min_ratio=self.min_ratio)
        if cleaned is None:
            return SanitizeResult(content=content, removed_count=0)
        if depth > 0:
            # The variant selection itself collapsed the master playlist.
            return SanitizeResult(content=cleaned.content, removed_count=cleaned.removed_count + 1)
        return cleaned

    def resolve_playback(self, url: str) -> PlaybackSource:
        """Never raises: any failure hands back the untouched URL."""
        if ".m3u8" not in url:
            return PlaybackSource(url=url)
        try:
            result = self.sanitize(url)
        except Exception as exc:
            logger.debug("[HLS] sanitize skipped url=%s error=%s: %s", url, type(exc).__name__, exc)
            return PlaybackSource(url=url)
        if result.removed_count <= 0:
            return PlaybackSource(url=url)
        logger.info("[HLS] url=%s removed=%d", url, result.removed_count)
        return PlaybackSource(url=url, playlist=result.content, removed_count=result.removed_count)
