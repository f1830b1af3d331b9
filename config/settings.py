"""Application settings constants."""

from __future__ import annotations

import os


def _env_flag(name: str, default: str = "") -> bool:
    return str(os.getenv(name, default)).strip().lower() in {"1", "true", "yes", "on"}


USER_AGENT = os.getenv(
    "VODHUB_USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
)

# Per-attempt budgets for CMS API calls and HLS playlist fetches.
API_TIMEOUT_SECONDS = float(os.getenv("VODHUB_API_TIMEOUT_SECONDS", "15"))
PLAYLIST_TIMEOUT_SECONDS = float(os.getenv("VODHUB_PLAYLIST_TIMEOUT_SECONDS", "8"))
POSTER_TIMEOUT_SECONDS = float(os.getenv("VODHUB_POSTER_TIMEOUT_SECONDS", "5"))

# Direct pass-through is only usable from a runtime without CORS restrictions.
DIRECT_FETCH_ENABLED = _env_flag("VODHUB_DIRECT_FETCH")
RELAY_URL = os.getenv("VODHUB_RELAY_URL", "http://127.0.0.1:8787/relay?url=")
PUBLIC_RELAYS = (
    "https://api.codetabs.com/v1/proxy?quest=",
    "https://api.allorigins.win/raw?url=",
)

# Hosts that answer CMS-style calls with real HTML pages.
HTML_ALLOWED_DOMAINS = ("douban.com",)

SEARCH_MAX_WORKERS = int(os.getenv("VODHUB_SEARCH_MAX_WORKERS", "8"))

HEALTH_PROBE_MARKERS = ("vod", "list", "class", 'code":200')

# Ad stripping gives up below this dominant-cluster share.
SANITIZE_MIN_DOMINANT_RATIO = 0.4
SANITIZE_MAX_DEPTH = 3

POSTER_LOOKUP_URL = os.getenv("VODHUB_POSTER_LOOKUP_URL", "https://api.wmdb.tv/movie/api")
POSTER_CACHE_MAX_ENTRIES = int(os.getenv("VODHUB_POSTER_CACHE_MAX_ENTRIES", "512"))
POSTER_CACHE_TTL_SECONDS = int(os.getenv("VODHUB_POSTER_CACHE_TTL_SECONDS", str(24 * 60 * 60)))
POSTER_JITTER_MS = int(os.getenv("VODHUB_POSTER_JITTER_MS", "300"))

RELAY_HOST = os.getenv("VODHUB_RELAY_HOST", "127.0.0.1")
RELAY_PORT = int(os.getenv("VODHUB_RELAY_PORT", "8787"))

# Douban recommendation feed. The proxy prefix is appended to, never
# URL-encoded; it also fronts doubanio.com images.
DOUBAN_RECOMMEND_URL = os.getenv("VODHUB_DOUBAN_RECOMMEND_URL", "https://movie.douban.com/j/search_subjects")
DOUBAN_PROXY_URL = os.getenv("VODHUB_DOUBAN_PROXY_URL", "")
DOUBAN_PAGE_LIMIT = int(os.getenv("VODHUB_DOUBAN_PAGE_LIMIT", "24"))
DOUBAN_TIMEOUT_SECONDS = float(os.getenv("VODHUB_DOUBAN_TIMEOUT_SECONDS", "8"))
