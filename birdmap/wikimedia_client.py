# birdmap:wikimedia_client.py

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

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)


class ImageError(Exception):
    pass


class NoImageFoundError(ImageError):
    pass


class ImageNetworkError(ImageError):
    pass


@dataclass(frozen=True)
class WikimediaClient:
    api_url: str = "https://en.wikipedia.org/w/api.php"
    timeout_s: int = 15
    user_agent: str = "birdmap/0.1 (bird sighting map)"

    def fetch_image_url(self, title: str) -> str:
        """
        Original-size page image for the Wikipedia article titled `title`.
        Raises NoImageFoundError / ImageNetworkError.
        """
        if not title or not title.strip():
            raise NoImageFoundError("empty title")

        params = {
            "action": "query",
            "prop": "pageimages",
            "format": "json",
            "piprop": "original",
            "titles": title.strip(),
        }
        try:
            resp = requests.get(
                self.api_url,
                params=params,
                headers={"User-Agent": self.user_agent, "Accept": "application/json"},
                timeout=self.timeout_s,
            )
        except requests.RequestException as e:
            raise ImageNetworkError(str(e)) from e

        if resp.status_code != 200:
            raise ImageNetworkError(f"HTTP {resp.status_code} for {title!r}")

        try:
            payload = resp.json()
        except ValueError as e:
            raise NoImageFoundError(f"invalid JSON for {title!r}") from e

        src = _first_original_source(payload)
        if not src:
            raise NoImageFoundError(title)
        return src

    def fetch_species_image_url(self, sci_name: Optional[str], common_name: Optional[str]) -> str:
        """Scientific name first, common name as the fallback."""
        last: Optional[ImageError] = None
        for name in (sci_name, common_name):
            if not name:
                continue
            try:
                return self.fetch_image_url(name)
            except ImageError as e:
                logger.debug("no image for %r: %s", name, e)
                last = e
        if last is not None:
            raise last
        raise NoImageFoundError("no species name to search for")


def _first_original_source(payload: Dict[str, Any]) -> Optional[str]:
    pages = ((payload or {}).get("query") or {}).get("pages") or {}
    if not isinstance(pages, dict):
        return None
    for key in sorted(pages):
        page = pages[key]
        if not isinstance(page, dict):
            continue
        src = (page.get("original") or {}).get("source")
        if src:
            return str(src)
    return None
