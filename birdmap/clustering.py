# birdmap:clustering.py

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

from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from birdmap.config import (
    METERS_PER_DEGREE_LAT,
    THRESHOLD_FACTOR,
    THRESHOLD_MAX_M,
    THRESHOLD_MIN_M,
)
from birdmap.distance import haversine_m
from birdmap.models import Annotation, Coordinate


@dataclass(frozen=True)
class Cluster:
    id: str                           # id of the founding member
    members: Tuple[Annotation, ...]
    centroid: Coordinate              # plain mean of member lat/lon degrees

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def is_single(self) -> bool:
        return len(self.members) == 1


@dataclass
class _Building:
    members: List[Annotation] = field(default_factory=list)
    lat_sum: float = 0.0
    lon_sum: float = 0.0
    lat: float = 0.0
    lon: float = 0.0

    def add(self, ann: Annotation) -> None:
        self.members.append(ann)
        self.lat_sum += ann.lat
        self.lon_sum += ann.lon
        n = len(self.members)
        self.lat = self.lat_sum / n
        self.lon = self.lon_sum / n

    def freeze(self) -> Cluster:
        return Cluster(
            id=self.members[0].id,
            members=tuple(self.members),
            centroid=Coordinate(self.lat, self.lon),
        )


def threshold_for_span(lat_span_deg: float) -> float:
    """
    Cluster join distance in meters for a viewport showing lat_span_deg degrees
    of latitude: 0.1% of the visible height, clamped to [8, 2000] m.
    """
    visible_m = abs(lat_span_deg) * METERS_PER_DEGREE_LAT
    return min(max(visible_m * THRESHOLD_FACTOR, THRESHOLD_MIN_M), THRESHOLD_MAX_M)


def cluster_annotations(annotations: Iterable[Annotation], threshold_m: float) -> List[Cluster]:
    """
    Single-pass greedy clustering.

    Each annotation joins the first cluster (creation order) whose running
    centroid is within threshold_m (inclusive), otherwise it founds a new one.
    The result depends on input order; the same order always yields the same
    partition.
    """
    building: List[_Building] = []
    for ann in annotations:
        for b in building:
            if haversine_m(b.lat, b.lon, ann.lat, ann.lon) <= threshold_m:
                b.add(ann)
                break
        else:
            nb = _Building()
            nb.add(ann)
            building.append(nb)

    return [b.freeze() for b in building]
