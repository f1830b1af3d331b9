import logging
import random
import time

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from app.proxy.cache import BoundedTTLCache
from config.settings import (
    DOUBAN_PROXY_URL,
    POSTER_JITTER_MS,
    POSTER_LOOKUP_URL,
    POSTER_TIMEOUT_SECONDS,
    USER_AGENT,
)

logger = logging.getLogger(__name__)


def _build_session() -> requests.Session:
    session = requests.Session()
    retry = Retry(
        total=2,
        backoff_factor=0.3,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset({"GET"}),
        respect_retry_after_header=True,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def wrap_douban_image(url: str, proxy: str) -> str:
    """Route doubanio.com images through ``proxy``; other hosts pass through."""
    if proxy and "doubanio.com" in url and not url.startswith(proxy):
        return f"{proxy}{url}"
    return url


def _first_entry(payload):
    if isinstance(payload, list):
        return payload[0] if payload else None
    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        rows = payload["data"]
        return rows[0] if rows else None
    return payload if isinstance(payload, dict) else None


class PosterLookup:
    """HD poster lookup by Douban id.

    Only hits are cached, so a transient miss is retried on the next call.
    A random delay before each network call spreads out the bursts a grid of
    cards produces when it renders.
    """

    def __init__(
        self,
        cache: BoundedTTLCache,
        *,
        session: requests.Session | None = None,
        lookup_url: str = POSTER_LOOKUP_URL,
        timeout_seconds: float = POSTER_TIMEOUT_SECONDS,
        jitter_ms: int = POSTER_JITTER_MS,
        image_proxy: str = DOUBAN_PROXY_URL,
        sleep=time.sleep,
    ) -> None:
        self._cache = cache
        self._session = session or _build_session()
        self.lookup_url = lookup_url
        self.timeout_seconds = timeout_seconds
        self.jitter_ms = max(0, int(jitter_ms))
        self.image_proxy = image_proxy
        self._sleep = sleep

    def poster_for(self, douban_id: str) -> str | None:
        douban_id = str(douban_id or "").strip()
        if not douban_id:
            return None
        cached = self._cache.get(douban_id)
        if cached:
            return cached

        if self.jitter_ms:
            self._sleep(random.randint(0, self.jitter_ms) / 1000.0)
        poster = self._lookup(douban_id)
        if poster:
            self._cache.set(douban_id, poster)
        return poster

    def _lookup(self, douban_id: str) -> str | None:
        try:
            resp = self._session.get(
                self.lookup_url,
                params={"id": douban_id},
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout_seconds,
            )
            if not resp.ok:
                logger.debug("Poster lookup status=%s id=%s", resp.status_code, douban_id)
                return None
            entry = _first_entry(resp.json())
        except (requests.RequestException, ValueError):
            logger.debug("Poster lookup failed for id=%s", douban_id)
            return None
        poster = str((entry or {}).get("poster") or "").strip()
        if not poster or "noposter" in poster:
            return None
        return self._wrap_image(poster)

    def _wrap_image(self, url: str) -> str:
        return wrap_douban_image(url, self.image_proxy)
