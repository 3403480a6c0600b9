from __future__ import annotations

import unittest

from birdmap.image_cache import ImageCache


class TestImageCache(unittest.TestCase):

    def test_evicts_least_recently_used(self):
        cache = ImageCache(max_entries=2)
        cache.put("a", b"A")
        cache.put("b", b"B")
        self.assertEqual(cache.get("a"), b"A")  # a is now most recent
        cache.put("c", b"C")

        self.assertIn("a", cache)
        self.assertNotIn("b", cache)
        self.assertIn("c", cache)
        self.assertEqual(len(cache), 2)

    def test_get_or_fetch_only_fetches_on_miss(self):
        cache = ImageCache(max_entries=4)
        fetched = []

        def fetch(url):
            fetched.append(url)
            return url.encode()

        self.assertEqual(cache.get_or_fetch("u1", fetch), b"u1")
        self.assertEqual(cache.get_or_fetch("u1", fetch), b"u1")
        self.assertEqual(fetched, ["u1"])

    def test_failed_fetch_is_not_cached(self):
        cache = ImageCache(max_entries=4)

        def boom(url):
            raise RuntimeError("down")

        with self.assertRaises(RuntimeError):
            cache.get_or_fetch("u1", boom)
        self.assertNotIn("u1", cache)

    def test_rejects_zero_capacity(self):
        with self.assertRaises(ValueError):
            ImageCache(max_entries=0)
