"""Per-source CMS calls: listing, detail and search."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from urllib.parse import quote

from app.errors import FetchCancelled, VodhubError
from app.proxy.client import ProxyFetchClient
from engine.json_utils import safe_json_dumps
from metadata.cms import parse
from metadata.normalize import api_host
from metadata.types import Category, MediaRecord, ParsedListing


def _log_event(level, message, **fields):
    payload = {"message": message, **fields}
    try:
        logging.log(level, safe_json_dumps(payload, sort_keys=True))
    except Exception as exc:
        logging.log(level, f"log_event_serialization_failed: {exc} message={message}")


def build_api_url(api: str, **params) -> str:
    """Append CMS query parameters, respecting an existing query string.

    ``wd`` is percent-encoded; the other values are plain tokens.
    """
    separator = "&" if "?" in api else "?"
    pairs = []
    for key, value in params.items():
        if value is None or value == "":
            continue
        text = str(value)
        if key == "wd":
            text = quote(text, safe="!~*'()")
        pairs.append(f"{key}={text}")
    return f"{api}{separator}{'&'.join(pairs)}"


class CMSCatalogClient:
    def __init__(self, fetch_client: ProxyFetchClient) -> None:
        self.fetch_client = fetch_client

    def _fetch_listing(self, url: str, api: str, cancel_event=None) -> ParsedListing:
        text = self.fetch_client.fetch(url, cancel_event)
        return parse(text, api_host(api))

    def fetch_categories(self, api: str) -> list[Category]:
        try:
            return self._fetch_listing(build_api_url(api, ac="list"), api).categories
        except VodhubError as exc:
            _log_event(logging.WARNING, "catalog_categories_failed", api=api, error=exc)
            return []

    def fetch_page(self, api: str, type_id: str = "", page: int = 1) -> list[MediaRecord]:
        url = build_api_url(api, ac="list", pg=page, t=type_id)
        try:
            return self._fetch_listing(url, api).records
        except VodhubError as exc:
            _log_event(logging.WARNING, "catalog_page_failed", api=api, page=page, type_id=type_id, error=exc)
            return []

    def fetch_video_list(self, api: str, type_id: str = "", page: int = 1) -> ParsedListing:
        """Categories and one listing page, fetched side by side.

        Either half failing leaves that half empty.
        """
        with ThreadPoolExecutor(max_workers=2) as pool:
            categories = pool.submit(self.fetch_categories, api)
            records = pool.submit(self.fetch_page, api, type_id, page)
            return ParsedListing(records=records.result(), categories=categories.result())

    def fetch_video_details(self, api: str, ids: str) -> MediaRecord | None:
        url = build_api_url(api, ac="detail", ids=ids)
        try:
            records = self._fetch_listing(url, api).records
        except VodhubError as exc:
            _log_event(logging.WARNING, "catalog_detail_failed", api=api, ids=ids, error=exc)
            return None
        return records[0] if records else None

    def search_videos(self, api: str, query: str, cancel_event: threading.Event | None = None) -> list[MediaRecord]:
        """Search one source. Failures propagate; callers decide isolation."""
        url = build_api_url(api, ac="detail", wd=query)
        records = self._fetch_listing(url, api, cancel_event).records
        if cancel_event is not None and cancel_event.is_set():
            raise FetchCancelled(f"search cancelled: {api}")
        return records
