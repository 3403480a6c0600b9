# birdmap:rarity.py

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

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Tuple

from birdmap.cells import cell_key
from birdmap.models import Observation


@dataclass(frozen=True)
class RarityResult:
    observations: List[Observation]   # one survivor per dedup cell, first-seen cell order
    frequencies: Dict[str, int]       # species key -> count in this batch (non-empty keys only)
    dropped: int = 0                  # co-located observations that lost to a rarer one


def drop_unlocated(observations: Iterable[Observation]) -> List[Observation]:
    return [o for o in observations if o.has_location]


def frequency_table(observations: Iterable[Observation]) -> Dict[str, int]:
    freq: Dict[str, int] = defaultdict(int)
    for o in observations:
        k = o.species_key
        if k:
            freq[k] += 1
    return dict(freq)


def observation_frequency(obs: Observation, frequencies: Mapping[str, int]) -> int:
    """
    An observation without a species key is its own species, seen once.
    """
    k = obs.species_key
    if not k:
        return 1
    return frequencies.get(k, 1)


def rarity_sort_key(obs: Observation, frequencies: Mapping[str, int]) -> Tuple:
    """
    Ascending total order, the smallest key survives a dedup cell:
      1. lower batch frequency
      2. species key derived from a scientific name
      3. lexicographically smaller common name
    The trailing fields only order records the rules above consider equal.
    """
    return (
        observation_frequency(obs, frequencies),
        0 if obs.has_sci_name else 1,
        obs.common_name or "",
        obs.species_key,
        obs.obs_dt or "",
        obs.lat,
        obs.lon,
    )


def group_cells(observations: Iterable[Observation]) -> Dict[str, List[Observation]]:
    cells: Dict[str, List[Observation]] = {}
    for o in observations:
        cells.setdefault(cell_key(o.lat, o.lon), []).append(o)  # type: ignore[arg-type]
    return cells


def resolve_rarity(observations: Iterable[Observation]) -> RarityResult:
    """
    Deduplicate co-located sightings, keeping the rarest one per ~11 m cell.

    Observations without a usable position are dropped before anything else,
    so they neither count towards frequencies nor occupy a cell.
    """
    located = drop_unlocated(observations)
    freq = frequency_table(located)

    kept: List[Observation] = []
    dropped = 0
    for members in group_cells(located).values():
        if len(members) == 1:
            kept.append(members[0])
            continue
        kept.append(min(members, key=lambda o: rarity_sort_key(o, freq)))
        dropped += len(members) - 1

    return RarityResult(observations=kept, frequencies=freq, dropped=dropped)
