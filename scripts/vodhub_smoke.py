#!/usr/bin/env python3
from __future__ import annotations

import logging
import sys

from app.proxy.client import ProxyFetchClient
from engine.catalog import CMSCatalogClient
from engine.search_engine import AggregateSearchEngine
from engine.sources import DEFAULT_SOURCES
from metadata.play_links import parse_play_url


def main() -> int:
    query = " ".join(sys.argv[1:]).strip()
    if not query:
        print("Usage: scripts/vodhub_smoke.py <query>")
        return 1
    logging.basicConfig(level=logging.WARNING)
    engine = AggregateSearchEngine(CMSCatalogClient(ProxyFetchClient()))
    rows = engine.search(query, DEFAULT_SOURCES)
    print(f"query={query!r} results={len(rows)}")
    for idx, row in enumerate(rows, start=1):
        episodes = parse_play_url(row.raw_play_links)
        print(
            f"{idx}. {row.title} | {row.year or '?'} | sources={len(row.available_sources)} | "
            f"episodes={len(episodes)}"
        )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
