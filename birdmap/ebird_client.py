# birdmap:ebird_client.py

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
from typing import Dict, List

import requests

from birdmap.models import Observation

logger = logging.getLogger(__name__)

MAX_DIST_KM = 50
MAX_RESULTS_LIMIT = 10000


class FetchError(Exception):
    """Observation fetch failed; the caller keeps whatever it had before."""


class MissingCredentialsError(FetchError):
    def __init__(self) -> None:
        super().__init__("Missing EBIRD_API_KEY")


class BadRequestError(FetchError):
    pass


class HttpStatusError(FetchError):
    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        super().__init__(f"eBird request failed: HTTP {status_code} – {body[:200]}")


class NoDataError(FetchError):
    def __init__(self) -> None:
        super().__init__("eBird returned no data")


@dataclass(frozen=True)
class EbirdClient:
    base_url: str
    api_key: str
    timeout_s: int = 15

    def _headers(self) -> Dict[str, str]:
        return {
            "X-eBirdApiToken": self.api_key,
            "Accept": "application/json",
        }

    def fetch_recent_observations(
        self,
        lat: float,
        lng: float,
        dist_km: int = 10,
        max_results: int = 50,
    ) -> List[Observation]:
        if not self.api_key:
            raise MissingCredentialsError()
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
            raise BadRequestError(f"coordinate out of range: lat={lat} lng={lng}")
        if not (0 <= dist_km <= MAX_DIST_KM):
            raise BadRequestError(f"dist must be 0..{MAX_DIST_KM} km, got {dist_km}")
        if not (1 <= max_results <= MAX_RESULTS_LIMIT):
            raise BadRequestError(f"maxResults must be 1..{MAX_RESULTS_LIMIT}, got {max_results}")

        url = self.base_url.rstrip("/") + "/data/obs/geo/recent"
        params = {
            "lat": str(lat),
            "lng": str(lng),
            "dist": str(dist_km),
            "maxResults": str(max_results),
        }

        try:
            resp = requests.get(url, headers=self._headers(), params=params, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise FetchError(f"eBird request failed: {e}") from e

        if not (200 <= resp.status_code <= 299):
            raise HttpStatusError(resp.status_code, resp.text or "")
        if not resp.content:
            raise NoDataError()

        try:
            payload = resp.json()
        except ValueError as e:
            raise FetchError(f"eBird returned invalid JSON: {e}") from e
        if not isinstance(payload, list):
            raise FetchError(f"eBird returned {type(payload).__name__}, expected a list")

        out = [Observation.from_ebird(rec) for rec in payload if isinstance(rec, dict)]
        logger.debug("eBird lat=%.5f lng=%.5f dist=%d -> %d observations", lat, lng, dist_km, len(out))
        return out
