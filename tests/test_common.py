"""
Shared factories and fakes for the birdmap tests.
"""

from __future__ import annotations

import itertools
from typing import Callable, Dict, List, Optional
from unittest.mock import MagicMock

from birdmap.models import Observation
from birdmap.wikimedia_client import NoImageFoundError

# one degree of latitude along a meridian, for the haversine radius in birdmap.distance
M_PER_DEG_LAT = 6_371_008.8 * 3.141592653589793 / 180.0


def make_obs(
    common: Optional[str] = None,
    sci: Optional[str] = None,
    lat: Optional[float] = 37.0,
    lon: Optional[float] = -122.0,
    obs_dt: Optional[str] = "2025-05-01 08:00",
) -> Observation:
    return Observation(common_name=common, sci_name=sci, lat=lat, lon=lon, obs_dt=obs_dt)


def counter_ids(prefix: str = "a") -> Callable[[], str]:
    c = itertools.count(1)
    return lambda: f"{prefix}{next(c)}"


def north_of(lat: float, meters: float) -> float:
    return lat + meters / M_PER_DEG_LAT


def mock_response(status: int = 200, json_data=None, content: bytes = b"x", text: str = "") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.content = content
    resp.text = text
    if isinstance(json_data, Exception):
        resp.json.side_effect = json_data
    else:
        resp.json.return_value = json_data
    return resp


class FakeObservationSource:
    """Returns canned batches in order; an Exception entry is raised instead."""

    def __init__(self, *batches) -> None:
        self.batches = list(batches)
        self.calls: List[tuple] = []

    def fetch_recent_observations(self, lat, lng, dist_km=10, max_results=50):
        self.calls.append((lat, lng, dist_km, max_results))
        batch = self.batches[min(len(self.calls), len(self.batches)) - 1]
        if isinstance(batch, Exception):
            raise batch
        return list(batch)


class FakeImageSource:
    def __init__(self, urls: Dict[str, str]) -> None:
        self.urls = urls
        self.calls: List[tuple] = []

    def fetch_species_image_url(self, sci_name, common_name):
        self.calls.append((sci_name, common_name))
        for name in (sci_name, common_name):
            if name and name in self.urls:
                return self.urls[name]
        raise NoImageFoundError(sci_name or common_name or "")
