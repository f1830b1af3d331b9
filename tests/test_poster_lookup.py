from __future__ import annotations

import unittest

import requests

from app.proxy.cache import BoundedTTLCache
from fakes import FakeResponse, FakeSession
from metadata.posters import PosterLookup

LOOKUP = "https://posters.example.com/movie/api"


class _Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class BoundedTTLCacheTests(unittest.TestCase):
    def test_expired_entries_are_dropped(self):
        clock = _Clock()
        cache = BoundedTTLCache(max_entries=4, ttl_seconds=60, clock=clock)
        cache.set("a", 1)

        clock.now += 59
        self.assertEqual(cache.get("a"), 1)
        clock.now += 1
        self.assertIsNone(cache.get("a"))
        self.assertEqual(len(cache), 0)

    def test_least_recently_used_entry_is_evicted(self):
        cache = BoundedTTLCache(max_entries=2, ttl_seconds=60, clock=_Clock())
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)

        self.assertIn("a", cache)
        self.assertNotIn("b", cache)
        self.assertIn("c", cache)

    def test_per_entry_ttl(self):
        clock = _Clock()
        cache = BoundedTTLCache(max_entries=4, ttl_seconds=60, clock=clock)
        cache.set("short", "x", ttl_seconds=5)
        clock.now += 10

        self.assertIsNone(cache.get("short"))


class PosterLookupTests(unittest.TestCase):
    def _lookup(self, routes, **kwargs):
        self.sleeps = []
        self.session = FakeSession()
        self.session.routes = routes
        self.cache = BoundedTTLCache(max_entries=8, ttl_seconds=60)
        return PosterLookup(
            self.cache,
            session=self.session,
            lookup_url=LOOKUP,
            jitter_ms=300,
            sleep=self.sleeps.append,
            **kwargs,
        )

    def test_hit_is_cached_and_served_without_network(self):
        lookup = self._lookup({LOOKUP: FakeResponse(json_data=[{"poster": "https://img.example.com/p.jpg"}])})

        self.assertEqual(lookup.poster_for("1292052"), "https://img.example.com/p.jpg")
        self.assertEqual(lookup.poster_for("1292052"), "https://img.example.com/p.jpg")

        self.assertEqual(len(self.session.calls), 1)
        self.assertEqual(self.session.calls[0][1]["params"], {"id": "1292052"})
        self.assertEqual(len(self.sleeps), 1)
        self.assertTrue(0 <= self.sleeps[0] <= 0.3)

    def test_placeholder_and_failures_are_not_cached(self):
        lookup = self._lookup({LOOKUP: FakeResponse(json_data={"data": [{"poster": "https://img.example.com/noposter.png"}]})})
        self.assertIsNone(lookup.poster_for("1"))
        self.assertEqual(len(self.cache), 0)

        lookup = self._lookup({LOOKUP: requests.ConnectionError("down")})
        self.assertIsNone(lookup.poster_for("1"))
        self.assertIsNone(lookup.poster_for("1"))
        self.assertEqual(len(self.session.calls), 2)

        lookup = self._lookup({LOOKUP: FakeResponse("busy", status_code=503)})
        self.assertIsNone(lookup.poster_for("1"))

    def test_blank_id_skips_lookup(self):
        lookup = self._lookup({})

        self.assertIsNone(lookup.poster_for("  "))
        self.assertEqual(self.session.calls, [])

    def test_douban_images_are_routed_through_image_proxy(self):
        lookup = self._lookup(
            {LOOKUP: FakeResponse(json_data={"poster": "https://img1.doubanio.com/view/p.jpg"})},
            image_proxy="https://images.example.com/?url=",
        )

        self.assertEqual(lookup.poster_for("2"), "https://images.example.com/?url=https://img1.doubanio.com/view/p.jpg")


if __name__ == "__main__":
    unittest.main()
