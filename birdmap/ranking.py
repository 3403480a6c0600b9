# birdmap:ranking.py

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

import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from birdmap.clustering import Cluster
from birdmap.config import MAX_RANKED, RING_PADDING, SIZE_TIERS
from birdmap.models import Annotation


@dataclass(frozen=True)
class RankedEntry:
    annotation: Annotation           # representative member for this species
    species_key: str
    count: int                       # occurrences within the cluster
    size: int                        # display size tier
    offset: Tuple[float, float]      # (dx, dy) from the cluster centroid, display units


@dataclass(frozen=True)
class RankedCluster:
    cluster: Cluster
    entries: Tuple[RankedEntry, ...]


# A display item is either a lone annotation or a ranked multi-member cluster.
DisplayItem = Union[Annotation, RankedCluster]


def ring_radius(sizes: Sequence[int], padding: float = RING_PADDING) -> float:
    if len(sizes) < 2:
        return 0.0
    return sizes[0] / 2.0 + sizes[1] / 2.0 + padding


def ring_offsets(sizes: Sequence[int], padding: float = RING_PADDING) -> List[Tuple[float, float]]:
    """
    Packing layout: the first (largest) entry sits on the centroid, the others
    are spread evenly on a ring around it, starting straight up and going
    clockwise (screen coordinates, +y down).
    """
    if not sizes:
        return []
    out: List[Tuple[float, float]] = [(0.0, 0.0)]
    ring = len(sizes) - 1
    if ring == 0:
        return out
    r = ring_radius(sizes, padding)
    for i in range(ring):
        angle = -math.pi / 2 + 2 * math.pi * i / ring
        out.append((round(r * math.cos(angle), 6) + 0.0, round(r * math.sin(angle), 6) + 0.0))
    return out


def _species_group_key(ann: Annotation) -> str:
    # members without a species key never share a group
    return ann.species_key or f"#{ann.id}"


def rank_cluster(
    cluster: Cluster,
    frequencies: Mapping[str, int],
    image_urls: Optional[Mapping[str, str]] = None,
    *,
    limit: int = MAX_RANKED,
    tiers: Sequence[int] = SIZE_TIERS,
) -> RankedCluster:
    """
    Order a cluster's species by how often they occur inside the cluster and
    keep the top `limit`. Equal in-cluster counts fall back to the rarer
    species (batch frequency) first, then species key.
    """
    image_urls = image_urls or {}

    groups: Dict[str, List[Annotation]] = {}
    for m in cluster.members:
        groups.setdefault(_species_group_key(m), []).append(m)

    ranked: List[Tuple[int, int, str, Annotation]] = []
    for key, members in groups.items():
        rep = next((m for m in members if m.id in image_urls), members[0])
        global_freq = frequencies.get(rep.species_key, 1) if rep.species_key else 1
        ranked.append((len(members), global_freq, key, rep))

    ranked.sort(key=lambda t: (-t[0], t[1], t[2]))
    top = ranked[: min(limit, len(tiers))]

    sizes = [int(tiers[i]) for i in range(len(top))]
    offsets = ring_offsets(sizes)

    entries = tuple(
        RankedEntry(
            annotation=rep,
            species_key=rep.species_key,
            count=count,
            size=sizes[i],
            offset=offsets[i],
        )
        for i, (count, _freq, _key, rep) in enumerate(top)
    )
    return RankedCluster(cluster=cluster, entries=entries)


def layout_clusters(
    clusters: Sequence[Cluster],
    frequencies: Mapping[str, int],
    image_urls: Optional[Mapping[str, str]] = None,
) -> List[DisplayItem]:
    """Single-member clusters bypass ranking and render as the plain annotation."""
    out: List[DisplayItem] = []
    for c in clusters:
        if c.is_single:
            out.append(c.members[0])
        else:
            out.append(rank_cluster(c, frequencies, image_urls))
    return out
