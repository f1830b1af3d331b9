from __future__ import annotations

import threading
import time

import pytest
import requests

from app.errors import NetworkFailure, NetworkTimeout, RedirectLoopExceeded
from fakes import FakeResponse, FakeSession
from playlist.hls import segment_fingerprint, select_variant, split_lines
from playlist.sanitizer import PlaylistSanitizer, strip_ad_segments

BASE = "https://cdn.example.com/movie/index.m3u8"


def _playlist(*lines):
    return "\n".join(lines)


AD_SPLICED = _playlist(
    "#EXTM3U",
    "#EXT-X-VERSION:3",
    "#EXT-X-TARGETDURATION:10",
    '#EXT-X-KEY:METHOD=AES-128,URI="enc.key"',
    "#EXTINF:10,",
    "seg0.ts",
    "#EXTINF:10,",
    "seg1.ts",
    "#EXTINF:10,",
    "seg2.ts",
    "#EXTINF:10,",
    "seg3.ts",
    "#EXT-X-DISCONTINUITY",
    "#EXTINF:5,",
    "https://ads.example.net/ad/a1.ts",
    "# sponsor",
    "#EXTINF:5,",
    "https://ads.example.net/ad/a2.ts",
    "#EXT-X-DISCONTINUITY",
    "#EXTINF:10,",
    "seg4.ts",
    "#EXTINF:10,",
    "seg5.ts",
    "#EXTINF:10,",
    "seg6.ts",
    "#EXTINF:10,",
    "seg7.ts",
    "#EXT-X-ENDLIST",
)


def test_minority_cluster_is_removed_with_its_directives() -> None:
    result = strip_ad_segments(AD_SPLICED, BASE)

    assert result is not None
    assert result.removed_count == 2
    assert result.content == _playlist(
        "#EXTM3U",
        "#EXT-X-VERSION:3",
        "#EXT-X-TARGETDURATION:10",
        '#EXT-X-KEY:METHOD=AES-128,URI="https://cdn.example.com/movie/enc.key"',
        "#EXTINF:10,",
        "https://cdn.example.com/movie/seg0.ts",
        "#EXTINF:10,",
        "https://cdn.example.com/movie/seg1.ts",
        "#EXTINF:10,",
        "https://cdn.example.com/movie/seg2.ts",
        "#EXTINF:10,",
        "https://cdn.example.com/movie/seg3.ts",
        "# sponsor",
        "#EXT-X-DISCONTINUITY",
        "#EXTINF:10,",
        "https://cdn.example.com/movie/seg4.ts",
        "#EXTINF:10,",
        "https://cdn.example.com/movie/seg5.ts",
        "#EXTINF:10,",
        "https://cdn.example.com/movie/seg6.ts",
        "#EXTINF:10,",
        "https://cdn.example.com/movie/seg7.ts",
        "#EXT-X-ENDLIST",
    )
    assert "ads.example.net" not in result.content


def _scattered_playlist():
    hosts = ["a"] * 3 + ["b"] * 3 + ["c"] * 2 + ["d"] * 2
    lines = ["#EXTM3U", "#EXT-X-TARGETDURATION:10"]
    for idx, host in enumerate(hosts):
        lines += ["#EXTINF:10,", f"https://{host}.example.com/v/{idx}.ts"]
    lines.append("#EXT-X-ENDLIST")
    return "\r\n".join(lines) + "\r\n"


def test_no_dominant_cluster_leaves_playlist_untouched() -> None:
    content = _scattered_playlist()
    sanitizer = PlaylistSanitizer(session=FakeSession({BASE: FakeResponse(content)}))

    assert strip_ad_segments(content, BASE) is None
    result = sanitizer.sanitize(BASE)
    assert result.content == content
    assert result.removed_count == 0
    assert sanitizer.resolve_playback(BASE).is_sanitized is False


def test_playlist_without_segments_is_left_alone() -> None:
    assert strip_ad_segments("#EXTM3U\n#EXT-X-ENDLIST\n", BASE) is None


MASTER = _playlist(
    "#EXTM3U",
    "#EXT-X-STREAM-INF:BANDWIDTH=800000,RESOLUTION=640x360",
    "low/index.m3u8",
    "#EXT-X-STREAM-INF:AVERAGE-BANDWIDTH=9000000,BANDWIDTH=1200000,RESOLUTION=1280x720",
    "mid/index.m3u8",
    "#EXT-X-STREAM-INF:BANDWIDTH=1200000,RESOLUTION=1280x720",
    "dup/index.m3u8",
)

VARIANT = _playlist(
    "#EXTM3U",
    "#EXTINF:10,",
    "0.ts",
    "#EXTINF:10,",
    "1.ts",
    "#EXT-X-ENDLIST",
)


def test_master_follows_highest_bandwidth_variant() -> None:
    session = FakeSession(
        {
            BASE: FakeResponse(MASTER),
            "https://cdn.example.com/movie/mid/index.m3u8": FakeResponse(VARIANT),
            "https://cdn.example.com/movie/low/index.m3u8": requests.ConnectionError("wrong variant"),
            "https://cdn.example.com/movie/dup/index.m3u8": requests.ConnectionError("wrong variant"),
        }
    )

    result = PlaylistSanitizer(session=session).sanitize(BASE)

    assert result.removed_count == 1
    assert result.content == _playlist(
        "#EXTM3U",
        "#EXTINF:10,",
        "https://cdn.example.com/movie/mid/0.ts",
        "#EXTINF:10,",
        "https://cdn.example.com/movie/mid/1.ts",
        "#EXT-X-ENDLIST",
    )
    assert [url for url, _ in session.calls] == [BASE, "https://cdn.example.com/movie/mid/index.m3u8"]


def test_select_variant_ignores_average_bandwidth_and_defaults_missing_to_zero() -> None:
    lines = split_lines(
        _playlist(
            "#EXT-X-STREAM-INF:RESOLUTION=320x180",
            "none.m3u8",
            "#EXT-X-STREAM-INF:AVERAGE-BANDWIDTH=5000000,BANDWIDTH=100",
            "avg.m3u8",
            "#EXT-X-STREAM-INF:BANDWIDTH=200",
            "plain.m3u8",
        )
    )

    assert select_variant(lines) == "plain.m3u8"
    assert select_variant(["#EXT-X-STREAM-INF:RESOLUTION=1x1", "only.m3u8"]) == "only.m3u8"


def test_self_referencing_master_hits_depth_limit() -> None:
    looping = _playlist("#EXTM3U", "#EXT-X-STREAM-INF:BANDWIDTH=1", "index.m3u8")
    session = FakeSession({BASE: FakeResponse(looping)})
    sanitizer = PlaylistSanitizer(session=session)

    with pytest.raises(RedirectLoopExceeded):
        sanitizer.sanitize(BASE)
    assert len(session.calls) == 4

    assert sanitizer.resolve_playback(BASE).url == BASE
    assert sanitizer.resolve_playback(BASE).is_sanitized is False


def test_fetch_errors_are_classified() -> None:
    sanitizer = PlaylistSanitizer(
        session=FakeSession(
            {
                BASE: requests.Timeout("slow"),
                "https://cdn.example.com/gone.m3u8": FakeResponse("", status_code=404),
            }
        )
    )

    with pytest.raises(NetworkTimeout):
        sanitizer.sanitize(BASE)
    with pytest.raises(NetworkFailure):
        sanitizer.sanitize("https://cdn.example.com/gone.m3u8")


def test_resolve_playback_returns_synthetic_playlist_when_segments_removed() -> None:
    sanitizer = PlaylistSanitizer(session=FakeSession({BASE: FakeResponse(AD_SPLICED)}))

    source = sanitizer.resolve_playback(BASE)

    assert source.is_sanitized is True
    assert source.removed_count == 2
    assert source.url == BASE
    assert source.playlist.startswith("#EXTM3U\n")


def test_resolve_playback_skips_non_hls_urls() -> None:
    session = FakeSession()
    source = PlaylistSanitizer(session=session).resolve_playback("https://v.example.com/movie.mp4")

    assert source.url == "https://v.example.com/movie.mp4"
    assert source.is_sanitized is False
    assert session.calls == []


def test_segment_fingerprint() -> None:
    assert segment_fingerprint("https://CDN.example.com/a/b/c.ts?x=1") == "cdn.example.com|/a/b"
    assert segment_fingerprint("https://cdn.example.com/c.ts") == "cdn.example.com|"
    assert segment_fingerprint("c.ts") is None


def _clustered_playlist(hosts):
    lines = ["#EXTM3U"]
    for idx, host in enumerate(hosts):
        lines += ["#EXTINF:10,", f"https://{host}.example.com/v/{idx}.ts"]
    lines.append("#EXT-X-ENDLIST")
    return _playlist(*lines)


def test_tied_clusters_keep_the_first_encountered_one() -> None:
    hosts = ["b", "a", "b", "a", "c", "b", "a", "c", "b", "a"]

    result = strip_ad_segments(_clustered_playlist(hosts), BASE)

    assert result is not None
    assert result.removed_count == 6
    kept = [line for line in split_lines(result.content) if not line.startswith("#")]
    assert kept == [f"https://b.example.com/v/{idx}.ts" for idx in (0, 2, 5, 8)]
    assert result.content.count("#EXTINF") == 4


def test_dominant_share_exactly_at_threshold_is_sanitized() -> None:
    result = strip_ad_segments(_clustered_playlist(["a", "b", "a", "c", "d"]), BASE)

    assert result is not None
    assert result.removed_count == 3
    assert [line for line in split_lines(result.content) if not line.startswith("#")] == [
        "https://a.example.com/v/0.ts",
        "https://a.example.com/v/2.ts",
    ]


def test_just_below_threshold_is_left_alone() -> None:
    assert strip_ad_segments(_clustered_playlist(["a", "b", "a", "c", "d", "e"]), BASE) is None


class _SlowPlaylist:
    status_code = 200

    def __init__(self):
        self.headers = {}
        self.closed = threading.Event()

    @property
    def content(self):
        self.closed.wait(5)
        return b"#EXTM3U\n"

    def close(self):
        self.closed.set()


def test_slow_playlist_fetch_is_bounded() -> None:
    slow = _SlowPlaylist()
    sanitizer = PlaylistSanitizer(session=FakeSession({BASE: slow}), timeout_seconds=0.3)

    started = time.monotonic()
    with pytest.raises(NetworkTimeout):
        sanitizer.sanitize(BASE)

    assert time.monotonic() - started < 2
    assert slow.closed.is_set()
    assert sanitizer.resolve_playback(BASE).is_sanitized is False
