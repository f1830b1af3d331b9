"""Douban recommendation feed.

The user's Douban proxy is tried first because it forwards the Referer that
Douban insists on; the general relay chain is the fallback. A feed that no
route can deliver comes back empty.
"""

from __future__ import annotations

import json
import logging
import threading
from urllib.parse import quote

import requests

from app.errors import FetchCancelled, VodhubError
from app.proxy.client import STRATEGY_APPEND, ProxyFetchClient, ProxyStrategy
from config.settings import (
    DOUBAN_PAGE_LIMIT,
    DOUBAN_PROXY_URL,
    DOUBAN_RECOMMEND_URL,
    DOUBAN_TIMEOUT_SECONDS,
)
from metadata.posters import wrap_douban_image
from metadata.types import DoubanSubject

logger = logging.getLogger(__name__)

DOUBAN_KINDS = ("movie", "tv")
_TAG_SAFE_CHARS = "!~*'()"


def build_recommend_url(
    kind: str,
    tag: str,
    page_start: int = 0,
    *,
    base_url: str = DOUBAN_RECOMMEND_URL,
    page_limit: int = DOUBAN_PAGE_LIMIT,
) -> str:
    return (
        f"{base_url}?type={kind}&tag={quote(tag, safe=_TAG_SAFE_CHARS)}"
        f"&sort=recommend&page_limit={int(page_limit)}&page_start={int(page_start)}"
    )


def _decode_subjects(text: str) -> list | None:
    if not text or not text.strip().startswith("{"):
        return None
    try:
        payload = json.loads(text)
    except ValueError:
        return None
    subjects = payload.get("subjects") if isinstance(payload, dict) else None
    return subjects if isinstance(subjects, list) else None


def _rating(raw) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError):
        return 0.0


class DoubanRecommendClient:
    def __init__(
        self,
        fetch_client: ProxyFetchClient,
        *,
        proxy_url: str = DOUBAN_PROXY_URL,
        session: requests.Session | None = None,
        timeout_seconds: float = DOUBAN_TIMEOUT_SECONDS,
    ) -> None:
        self.fetch_client = fetch_client
        self.proxy_url = proxy_url
        self._proxy_client = None
        if proxy_url:
            self._proxy_client = ProxyFetchClient(
                (ProxyStrategy("douban_proxy", proxy_url, STRATEGY_APPEND),),
                session=session,
                timeout_seconds=timeout_seconds,
            )

    def fetch_recommend(
        self,
        kind: str,
        tag: str,
        page_start: int = 0,
        cancel_event: threading.Event | None = None,
    ) -> list[DoubanSubject]:
        if kind not in DOUBAN_KINDS:
            raise ValueError(f"unknown douban kind: {kind!r}")
        target = build_recommend_url(kind, tag, page_start)

        subjects = None
        if self._proxy_client is not None:
            subjects = self._try_route("douban_proxy", self._proxy_client, target, cancel_event)
        if subjects is None:
            subjects = self._try_route("relay_chain", self.fetch_client, target, cancel_event)
        if not subjects:
            return []
        return [self._to_subject(item, tag) for item in subjects if isinstance(item, dict)]

    def _try_route(self, route, client, target, cancel_event):
        try:
            text = client.fetch(target, cancel_event)
        except FetchCancelled:
            raise
        except VodhubError as exc:
            logger.info("[DOUBAN] route=%s status=error error=%s", route, exc)
            return None
        subjects = _decode_subjects(text)
        if subjects is None:
            logger.info("[DOUBAN] route=%s status=invalid", route)
        return subjects

    def _to_subject(self, item: dict, tag: str) -> DoubanSubject:
        cover = str(item.get("cover") or "")
        if cover:
            cover = wrap_douban_image(cover.replace("s_ratio_poster", "l_ratio_poster"), self.proxy_url)
        return DoubanSubject(
            id=str(item.get("id") or ""),
            title=str(item.get("title") or ""),
            genre=tag,
            poster_url=cover,
            rating=_rating(item.get("rate")),
        )
