"""Sequential source health scan."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, Iterator, Union

from app.errors import EmptySourceSet, FetchCancelled
from app.proxy.client import ProxyFetchClient
from config.settings import HEALTH_PROBE_MARKERS
from engine.catalog import build_api_url
from metadata.types import HealthCheckResult, ProgressEvent, SourceEndpoint

logger = logging.getLogger(__name__)

ScanItem = Union[ProgressEvent, HealthCheckResult]


class SourceHealthScanner:
    """Probe sources one at a time and classify them working, dead or duplicate.

    Probes run sequentially so upstream hosts are not hit in bursts and
    progress is reported in source order. The scanner never persists anything;
    ``engine.sources.plan_cleanup`` turns its result into storable lists.
    """

    def __init__(self, fetch_client: ProxyFetchClient, *, markers: tuple[str, ...] = HEALTH_PROBE_MARKERS) -> None:
        self.fetch_client = fetch_client
        self.markers = tuple(markers)

    def iter_scan(
        self,
        all_sources: Iterable[SourceEndpoint],
        cancel_event: threading.Event | None = None,
    ) -> Iterator[ScanItem]:
        """Yield a ``ProgressEvent`` after every probe, then the result."""
        sources = list(all_sources)
        if not sources:
            raise EmptySourceSet("no sources to scan")

        total = len(sources)
        seen_apis: set[str] = set()
        working: list[SourceEndpoint] = []
        dead_apis: list[str] = []
        duplicates = 0

        for index, source in enumerate(sources, start=1):
            if cancel_event is not None and cancel_event.is_set():
                raise FetchCancelled("health scan cancelled")
            api = source.api_base_url
            if api in seen_apis:
                duplicates += 1
                logger.info("[HEALTH] %d/%d name=%s status=duplicate", index, total, source.name)
            else:
                seen_apis.add(api)
                if self.probe(source, cancel_event):
                    working.append(source)
                    logger.info("[HEALTH] %d/%d name=%s status=working", index, total, source.name)
                else:
                    dead_apis.append(api)
                    logger.info("[HEALTH] %d/%d name=%s status=dead", index, total, source.name)
            yield ProgressEvent(index=index, total=total, current_name=source.name)

        yield HealthCheckResult(duplicate_count=duplicates, dead_apis=dead_apis, working_sources=working)

    def scan(
        self,
        all_sources: Iterable[SourceEndpoint],
        on_progress: Callable[[ProgressEvent], None] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> HealthCheckResult:
        result = None
        for item in self.iter_scan(all_sources, cancel_event):
            if isinstance(item, ProgressEvent):
                if on_progress is not None:
                    on_progress(item)
            else:
                result = item
        return result

    def probe(self, source: SourceEndpoint, cancel_event: threading.Event | None = None) -> bool:
        try:
            body = self.fetch_client.fetch(build_api_url(source.api_base_url, ac="list"), cancel_event)
        except FetchCancelled:
            raise
        except Exception as exc:
            logger.debug("[HEALTH] probe failed name=%s error=%s", source.name, exc)
            return False
        return any(marker in body for marker in self.markers)
