import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from urllib.parse import quote, urlparse

import requests

from app.errors import (
    FetchCancelled,
    InvalidPayload,
    NetworkFailure,
    NetworkTimeout,
    ProxyExhaustedError,
    VodhubError,
)
from config.settings import (
    API_TIMEOUT_SECONDS,
    DIRECT_FETCH_ENABLED,
    HTML_ALLOWED_DOMAINS,
    PUBLIC_RELAYS,
    RELAY_URL,
    USER_AGENT,
)

logger = logging.getLogger(__name__)

STRATEGY_APPEND = "append"
STRATEGY_QUERY = "query"

_HTML_PREFIXES = ("<!doctype html", "<html")
# encodeURIComponent leaves these unescaped; relays expect the same shape.
_QUERY_SAFE_CHARS = "!~*'()"
# How often a pending transfer re-checks its deadline and cancel event.
_POLL_SECONDS = 0.1


@dataclass(frozen=True)
class ProxyStrategy:
    name: str
    prefix: str
    mode: str = STRATEGY_QUERY

    def wrap(self, target_url: str) -> str:
        if self.mode == STRATEGY_QUERY:
            return f"{self.prefix}{quote(target_url, safe=_QUERY_SAFE_CHARS)}"
        return f"{self.prefix}{target_url}"


def build_default_strategies(
    *,
    direct: bool = DIRECT_FETCH_ENABLED,
    relay_url: str | None = RELAY_URL,
    public_relays: tuple[str, ...] = PUBLIC_RELAYS,
) -> tuple[ProxyStrategy, ...]:
    strategies: list[ProxyStrategy] = []
    if direct:
        strategies.append(ProxyStrategy("direct", "", STRATEGY_APPEND))
    if relay_url:
        strategies.append(ProxyStrategy("local_relay", relay_url))
    for idx, prefix in enumerate(public_relays, start=1):
        strategies.append(ProxyStrategy(urlparse(prefix).hostname or f"public_relay_{idx}", prefix))
    return tuple(strategies)


DEFAULT_STRATEGIES = build_default_strategies()


def looks_like_html(text: str) -> bool:
    head = text.lstrip()[:32].lower()
    return head.startswith(_HTML_PREFIXES)


def html_is_expected(target_url: str) -> bool:
    try:
        host = (urlparse(target_url).hostname or "").lower()
    except ValueError:
        return False
    return any(host == domain or host.endswith("." + domain) for domain in HTML_ALLOWED_DOMAINS)


def _raise_if_cancelled(cancel_event: threading.Event | None, target_url: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise FetchCancelled(f"fetch cancelled: {target_url}")


def _declared_charset(content_type: str | None) -> str | None:
    for part in (content_type or "").split(";")[1:]:
        key, _, value = part.partition("=")
        if key.strip().lower() == "charset":
            return value.strip().strip("\"'") or None
    return None


def decode_body(content: bytes, content_type: str | None = None) -> str:
    """Decode a response body with its declared charset, else UTF-8.

    ``requests`` assumes ISO-8859-1 for ``text/*`` without a charset, which
    garbles the UTF-8 that CMS hosts send as bare ``text/xml``.
    """
    charset = _declared_charset(content_type)
    if charset:
        try:
            return content.decode(charset, errors="replace")
        except LookupError:
            logger.debug("[PROXY] unknown charset=%s, decoding as utf-8", charset)
    return content.decode("utf-8-sig", errors="replace")


def bounded_get(
    session: requests.Session,
    url: str,
    *,
    budget: float,
    cancel_event: threading.Event | None = None,
    headers: dict[str, str] | None = None,
):
    """GET ``url`` and read the whole body within ``budget`` seconds.

    Returns ``(response, body_bytes)``. The transfer runs on a worker thread
    so a body that trickles in cannot outlive the budget; on deadline or
    cancellation the response is closed and the worker is abandoned.
    """
    deadline = time.monotonic() + budget
    opened: list = []

    def _download():
        resp = session.get(url, headers=headers, timeout=budget, stream=True)
        opened.append(resp)
        try:
            return resp, resp.content
        finally:
            resp.close()

    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="vodhub-fetch")
    try:
        future = pool.submit(_download)
    finally:
        pool.shutdown(wait=False)

    while True:
        if cancel_event is not None and cancel_event.is_set():
            _abandon(future, opened)
            raise FetchCancelled(f"fetch cancelled: {url}")
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            _abandon(future, opened)
            raise NetworkTimeout(f"request exceeded {budget:g}s budget")
        done, _ = wait((future,), timeout=min(_POLL_SECONDS, remaining))
        if not done:
            continue
        try:
            return future.result()
        except requests.Timeout as exc:
            raise NetworkTimeout(f"request timed out after {budget:g}s") from exc
        except requests.RequestException as exc:
            raise NetworkFailure(str(exc) or type(exc).__name__) from exc


def _abandon(future, opened: list) -> None:
    future.cancel()
    for resp in list(opened):
        try:
            resp.close()
        except Exception as exc:
            logger.debug("[PROXY] close after abandon failed: %s", exc)


class ProxyFetchClient:
    """Fetch text through an ordered list of relay strategies.

    Each strategy gets one attempt bounded by the per-attempt timeout. The
    first strategy returning a usable body wins; otherwise the failure of the
    last strategy is surfaced inside a ``ProxyExhaustedError``.
    """

    def __init__(
        self,
        strategies: tuple[ProxyStrategy, ...] | None = None,
        *,
        session: requests.Session | None = None,
        timeout_seconds: float = API_TIMEOUT_SECONDS,
    ) -> None:
        self.strategies = tuple(strategies) if strategies is not None else DEFAULT_STRATEGIES
        self.timeout_seconds = float(timeout_seconds)
        self._session = session or requests.Session()

    def fetch(
        self,
        target_url: str,
        cancel_event: threading.Event | None = None,
        *,
        timeout: float | None = None,
    ) -> str:
        budget = self.timeout_seconds if timeout is None else float(timeout)
        attempts: list[tuple[str, Exception]] = []
        for strategy in self.strategies:
            _raise_if_cancelled(cancel_event, target_url)
            try:
                text = self._attempt(strategy.wrap(target_url), budget, cancel_event)
                _raise_if_cancelled(cancel_event, target_url)
                if looks_like_html(text) and not html_is_expected(target_url):
                    raise InvalidPayload("relay returned HTML instead of data")
            except FetchCancelled:
                raise
            except VodhubError as exc:
                _raise_if_cancelled(cancel_event, target_url)
                attempts.append((strategy.name, exc))
                logger.info(
                    "[PROXY] strategy=%s target=%s status=error error=%s reason=%s",
                    strategy.name,
                    target_url,
                    type(exc).__name__,
                    exc,
                )
                continue
            logger.info("[PROXY] strategy=%s target=%s status=ok", strategy.name, target_url)
            return text

        last_error = attempts[-1][1] if attempts else None
        raise ProxyExhaustedError(target_url, attempts) from last_error

    def _attempt(self, url: str, budget: float, cancel_event: threading.Event | None = None) -> str:
        resp, body = bounded_get(
            self._session,
            url,
            budget=budget,
            cancel_event=cancel_event,
            headers={"User-Agent": USER_AGENT},
        )
        status = int(resp.status_code)
        if status < 200 or status >= 300:
            raise NetworkFailure(f"HTTP status {status}")
        text = decode_body(body or b"", resp.headers.get("content-type"))
        if not text.strip():
            raise NetworkFailure(f"HTTP status {status} with empty body")
        return text

    def close(self) -> None:
        self._session.close()
