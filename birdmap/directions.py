# birdmap:directions.py

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

from dataclasses import dataclass
from typing import List

import requests

from birdmap.models import Coordinate


class DirectionsError(RuntimeError):
    pass


@dataclass(frozen=True)
class PlannedRoute:
    coordinates: List[Coordinate]
    distance_m: float
    duration_s: float


@dataclass(frozen=True)
class DirectionsClient:
    """Driving directions from an OSRM-compatible routing service."""
    base_url: str = "https://router.project-osrm.org"
    timeout_s: int = 15

    def driving_route(self, start: Coordinate, end: Coordinate) -> PlannedRoute:
        # OSRM wants lon,lat pairs
        path = f"{start.lon:.6f},{start.lat:.6f};{end.lon:.6f},{end.lat:.6f}"
        url = self.base_url.rstrip("/") + "/route/v1/driving/" + path
        params = {"overview": "full", "geometries": "geojson", "alternatives": "false"}

        try:
            resp = requests.get(url, params=params, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise DirectionsError(f"directions request failed: {e}") from e

        if resp.status_code != 200:
            raise DirectionsError(f"directions failed: HTTP {resp.status_code} – {(resp.text or '')[:200]}")

        try:
            payload = resp.json()
        except ValueError as e:
            raise DirectionsError("directions returned invalid JSON") from e

        if payload.get("code") != "Ok" or not payload.get("routes"):
            raise DirectionsError(f"no route found ({payload.get('code')})")

        best = payload["routes"][0]
        coords = [
            Coordinate(lat=float(lat), lon=float(lon))
            for lon, lat in (best.get("geometry") or {}).get("coordinates") or []
        ]
        if len(coords) < 2:
            raise DirectionsError("route geometry has fewer than 2 points")

        return PlannedRoute(
            coordinates=coords,
            distance_m=float(best.get("distance") or 0.0),
            duration_s=float(best.get("duration") or 0.0),
        )
