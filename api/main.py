#!/usr/bin/env python3
import logging
from urllib.parse import urlparse

import requests
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse, Response
from pydantic import BaseModel

from app.errors import VodhubError
from app.proxy.client import bounded_get
from config.settings import API_TIMEOUT_SECONDS, RELAY_HOST, RELAY_PORT, USER_AGENT
from playlist.sanitizer import PlaylistSanitizer

APP_NAME = "vodhub relay"
HLS_MEDIA_TYPE = "application/vnd.apple.mpegurl"

logger = logging.getLogger(__name__)

app = FastAPI(title=APP_NAME)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["GET"], allow_headers=["*"])
app.state.relay_session = requests.Session()
app.state.sanitizer = PlaylistSanitizer()


class ErrorPayload(BaseModel):
    error: str
    details: str | None = None


def _error(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorPayload(error=error, details=details).model_dump())


def _is_douban(url: str) -> bool:
    host = (urlparse(url).hostname or "").lower()
    return host == "douban.com" or host.endswith(".douban.com")


@app.get("/relay")
def relay(url: str | None = Query(default=None)):
    """Fetch ``url`` server-side and hand the body back with CORS headers.

    Upstream status codes are flattened to 200; clients sniff the body.
    """
    if not url:
        return _error(400, "Missing URL parameter")
    headers = {"User-Agent": USER_AGENT}
    if _is_douban(url):
        headers["Referer"] = "https://movie.douban.com/"
    try:
        upstream, body = bounded_get(app.state.relay_session, url, budget=API_TIMEOUT_SECONDS, headers=headers)
    except VodhubError as exc:
        logger.warning("[RELAY] target=%s status=error error=%s", url, exc)
        return _error(500, "Failed to fetch data", str(exc))
    logger.info("[RELAY] target=%s upstream_status=%s", url, upstream.status_code)
    return Response(
        content=body,
        status_code=200,
        headers={
            "content-type": upstream.headers.get("content-type") or "text/plain",
            "Access-Control-Allow-Origin": "*",
            "Cache-Control": "s-maxage=3600, stale-while-revalidate",
        },
    )


@app.get("/api/playlist")
def sanitized_playlist(url: str = Query(...)):
    playback = app.state.sanitizer.resolve_playback(url)
    if not playback.is_sanitized:
        return RedirectResponse(url, status_code=307)
    return PlainTextResponse(
        playback.playlist,
        media_type=HLS_MEDIA_TYPE,
        headers={"X-Removed-Segments": str(playback.removed_count)},
    )


def main() -> None:
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    uvicorn.run(app, host=RELAY_HOST, port=RELAY_PORT)


if __name__ == "__main__":
    main()
