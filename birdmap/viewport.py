# birdmap:viewport.py

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
from typing import Any, Dict, Sequence

from birdmap.clustering import threshold_for_span
from birdmap.distance import haversine_m
from birdmap.models import Coordinate

CENTER_TOLERANCE_M = 50.0
SPAN_TOLERANCE_DEG = 0.001


@dataclass(frozen=True)
class Viewport:
    center: Coordinate
    lat_span: float
    lon_span: float

    @property
    def threshold_m(self) -> float:
        return threshold_for_span(self.lat_span)

    def to_dict(self) -> Dict[str, float]:
        return {
            "lat": self.center.lat,
            "lon": self.center.lon,
            "lat_span": self.lat_span,
            "lon_span": self.lon_span,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Viewport":
        lat_span = float(d["lat_span"])
        lon_span = float(d.get("lon_span", lat_span))
        if lat_span <= 0 or lon_span <= 0:
            raise ValueError("viewport spans must be positive")
        return cls(center=Coordinate.from_dict(d), lat_span=lat_span, lon_span=lon_span)

    @classmethod
    def fit(cls, coords: Sequence[Coordinate], padding: float = 1.3, min_span: float = 0.01) -> "Viewport":
        """
        Smallest region (times `padding`) that shows all coords. This is a
        recommendation for the map client; nothing here moves the map.
        """
        if not coords:
            raise ValueError("cannot fit a viewport to zero coordinates")
        lats = [c.lat for c in coords]
        lons = [c.lon for c in coords]
        top, bottom = max(lats), min(lats)
        right, left = max(lons), min(lons)
        return cls(
            center=Coordinate((top + bottom) / 2.0, (left + right) / 2.0),
            lat_span=max((top - bottom) * padding, min_span),
            lon_span=max((right - left) * padding, min_span),
        )


def regions_equal(a: Viewport, b: Viewport) -> bool:
    """Close enough that re-applying b over a would be a visual no-op."""
    d = haversine_m(a.center.lat, a.center.lon, b.center.lat, b.center.lon)
    return (
        d <= CENTER_TOLERANCE_M
        and abs(a.lat_span - b.lat_span) < SPAN_TOLERANCE_DEG
        and abs(a.lon_span - b.lon_span) < SPAN_TOLERANCE_DEG
    )
