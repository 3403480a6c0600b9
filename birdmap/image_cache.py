# birdmap:image_cache.py

# MIT License
#
# Copyright (c) 2025 Jonas Waldeck
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND.

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Callable, Optional

import requests


class ImageCache:
    """
    Bounded LRU of image URL -> image bytes, safe to share between the
    request threads and the image fan-out workers.
    """

    def __init__(self, max_entries: int = 256) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self._lock = threading.Lock()
        self._items: "OrderedDict[str, bytes]" = OrderedDict()

    def get(self, url: str) -> Optional[bytes]:
        with self._lock:
            data = self._items.get(url)
            if data is not None:
                self._items.move_to_end(url)
            return data

    def put(self, url: str, data: bytes) -> None:
        with self._lock:
            self._items[url] = data
            self._items.move_to_end(url)
            while len(self._items) > self.max_entries:
                self._items.popitem(last=False)

    def get_or_fetch(self, url: str, fetch: Callable[[str], bytes]) -> bytes:
        # fetch runs outside the lock; two racing misses both download and the last put wins
        cached = self.get(url)
        if cached is not None:
            return cached
        data = fetch(url)
        self.put(url, data)
        return data

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


def download_image(url: str, timeout_s: int = 15) -> bytes:
    resp = requests.get(url, timeout=timeout_s, headers={"User-Agent": "birdmap/0.1 (bird sighting map)"})
    if resp.status_code != 200:
        raise RuntimeError(f"image download failed: HTTP {resp.status_code} – {url}")
    return resp.content
