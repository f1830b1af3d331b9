import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait

from app.errors import EmptySourceSet, FetchCancelled
from config.settings import SEARCH_MAX_WORKERS
from engine.catalog import CMSCatalogClient
from engine.json_utils import safe_json_dumps
from metadata.merge import merge_same_title

SEARCH_STATE_IDLE = "idle"
SEARCH_STATE_LOADING = "loading"
SEARCH_STATE_READY = "ready"
SEARCH_STATE_EMPTY = "empty"
SEARCH_STATE_CANCELLED = "cancelled"


def _log_event(level, message, **fields):
    payload = {"message": message, **fields}
    try:
        logging.log(level, safe_json_dumps(payload, sort_keys=True))
    except Exception as exc:
        logging.log(level, f"log_event_serialization_failed: {exc} message={message}")


# Helper to run one source search safely
def _run_source_search(catalog, source, query, cancel_event):
    """
    Execute a single source search.
    - Source failures are contained and yield []
    - Cancellation is re-raised so the whole query can be dropped
    """
    try:
        records = catalog.search_videos(source.api_base_url, query, cancel_event)
    except FetchCancelled:
        raise
    except Exception as exc:
        _log_event(
            logging.WARNING,
            "source_search_failed",
            source=source.name,
            api=source.api_base_url,
            query=query,
            error=f"{type(exc).__name__}: {exc}",
        )
        return []
    return [record.tagged(source) for record in records]


class SearchSession:
    """Published search state for one logical session.

    Every ``begin`` supersedes the previous query: its cancel event is set and
    the generation moves on, so a late ``publish`` from the old query is
    refused.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._generation = 0
        self._cancel_event = None
        self.query = ""
        self.results = []
        self.state = SEARCH_STATE_IDLE
        self.has_searched = False

    def begin(self, query):
        with self._lock:
            if self._cancel_event is not None:
                self._cancel_event.set()
            self._generation += 1
            self._cancel_event = threading.Event()
            self.query = query
            self.results = []
            self.state = SEARCH_STATE_LOADING
            self.has_searched = False
            return self._generation, self._cancel_event

    def is_current(self, generation):
        with self._lock:
            return generation == self._generation

    def publish(self, generation, results):
        with self._lock:
            if generation != self._generation:
                return False
            self.results = list(results)
            self.state = SEARCH_STATE_READY if self.results else SEARCH_STATE_EMPTY
            self.has_searched = True
            self._cancel_event = None
            return True

    def cancel(self):
        with self._lock:
            if self._cancel_event is not None:
                self._cancel_event.set()
            self._cancel_event = None
            self._generation += 1
            if self.state == SEARCH_STATE_LOADING:
                self.state = SEARCH_STATE_CANCELLED


class AggregateSearchEngine:
    def __init__(self, catalog: CMSCatalogClient, *, max_workers=SEARCH_MAX_WORKERS):
        self.catalog = catalog
        self.max_workers = max(1, int(max_workers))

    def search(self, query, sources, session=None):
        """Search every source in parallel and merge same-title hits.

        Results are published to ``session`` only once all branches have
        settled. Raises ``FetchCancelled`` when a newer query superseded this
        one, and ``EmptySourceSet`` when no source was selected.
        """
        return self._run(query, sources, session, merge=True)

    def search_source(self, query, source, session=None):
        return self._run(query, [source], session, merge=False)

    def _run(self, query, sources, session, *, merge):
        sources = list(sources)
        if not sources:
            if session is not None:
                session.cancel()
            raise EmptySourceSet("no sources selected for search")
        session = session or SearchSession()
        generation, cancel_event = session.begin(query)
        _log_event(
            logging.INFO,
            "search_started",
            query=query,
            generation=generation,
            sources_total=len(sources),
        )

        records, cancelled = self._fan_out(query, sources, cancel_event)
        if cancelled or cancel_event.is_set():
            _log_event(logging.INFO, "search_superseded", query=query, generation=generation)
            raise FetchCancelled(f"search superseded: {query!r}")

        results = merge_same_title(records) if merge else records
        if not session.publish(generation, results):
            _log_event(logging.INFO, "search_superseded", query=query, generation=generation)
            raise FetchCancelled(f"search superseded: {query!r}")
        _log_event(
            logging.INFO,
            "search_completed",
            query=query,
            generation=generation,
            records=len(records),
            results=len(results),
        )
        return results

    def _fan_out(self, query, sources, cancel_event):
        # Flattened in source order so the merge is deterministic for a selection.
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(sources))) as pool:
            futures = [
                pool.submit(_run_source_search, self.catalog, source, query, cancel_event)
                for source in sources
            ]
            wait(futures)

        records = []
        cancelled = False
        for future in futures:
            try:
                records.extend(future.result())
            except FetchCancelled:
                cancelled = True
        return records, cancelled
