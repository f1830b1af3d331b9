"""Line-level helpers for HLS (``.m3u8``) playlist documents."""

from __future__ import annotations

import re
from urllib.parse import urljoin, urlsplit

STREAM_INF_TAG = "#EXT-X-STREAM-INF"
KEY_TAG = "#EXT-X-KEY"
# Directives that belong to the segment URI following them.
SEGMENT_METADATA_PREFIXES = ("#EXTINF", "#EXT-X-BYTERANGE", KEY_TAG, "#EXT-X-DISCONTINUITY")

_LINE_SPLIT_RE = re.compile(r"\r?\n")
_BANDWIDTH_RE = re.compile(r"(?<![-A-Z])BANDWIDTH=(\d+)")
_KEY_URI_RE = re.compile(r'URI="([^"]+)"')


def split_lines(text: str) -> list[str]:
    return _LINE_SPLIT_RE.split(text)


def is_master_playlist(text: str) -> bool:
    return STREAM_INF_TAG in text


def is_uri_line(line: str) -> bool:
    stripped = line.strip()
    return bool(stripped) and not stripped.startswith("#")


def is_segment_metadata(line: str) -> bool:
    return line.startswith(SEGMENT_METADATA_PREFIXES)


def is_plain_comment(line: str) -> bool:
    return line.startswith("#") and not line.startswith("#EXT")


def to_absolute(ref: str, base: str) -> str:
    try:
        return urljoin(base, ref)
    except ValueError:
        return ref


def select_variant(lines: list[str]) -> str | None:
    """URI of the variant with the strictly highest BANDWIDTH; first wins ties."""
    best_uri = None
    best_bandwidth = -1
    for idx, line in enumerate(lines):
        if STREAM_INF_TAG not in line:
            continue
        match = _BANDWIDTH_RE.search(line)
        bandwidth = int(match.group(1)) if match else 0
        uri = next((candidate.strip() for candidate in lines[idx + 1 :] if is_uri_line(candidate)), None)
        if uri is None:
            continue
        if bandwidth > best_bandwidth:
            best_bandwidth = bandwidth
            best_uri = uri
    return best_uri


def segment_fingerprint(absolute_url: str) -> str | None:
    """``hostname|directory`` of a segment URL, or None when it is not absolute."""
    try:
        parts = urlsplit(absolute_url)
        hostname = parts.hostname or ""
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None
    directory = parts.path.rsplit("/", 1)[0] if "/" in parts.path else ""
    return f"{hostname}|{directory}"


def rewrite_key_uri(line: str, base: str) -> str:
    return _KEY_URI_RE.sub(lambda m: f'URI="{to_absolute(m.group(1), base)}"', line, count=1)
