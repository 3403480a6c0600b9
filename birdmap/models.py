# birdmap:models.py

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
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lon: float

    def to_dict(self) -> Dict[str, float]:
        return {"lat": float(self.lat), "lon": float(self.lon)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Coordinate":
        # "lng" is what eBird and most map clients send
        lon = d["lon"] if "lon" in d else d["lng"]
        return cls(lat=float(d["lat"]), lon=float(lon))


@dataclass(frozen=True)
class Observation:
    """One raw sighting record as received from the observation source."""
    common_name: Optional[str] = None
    sci_name: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    obs_dt: Optional[str] = None
    species_code: Optional[str] = None
    how_many: Optional[int] = None

    @classmethod
    def from_ebird(cls, rec: Dict[str, Any]) -> "Observation":
        return cls(
            common_name=_opt_str(rec.get("comName")),
            sci_name=_opt_str(rec.get("sciName")),
            lat=_opt_float(rec.get("lat")),
            lon=_opt_float(rec.get("lng")),
            obs_dt=_opt_str(rec.get("obsDt")),
            species_code=_opt_str(rec.get("speciesCode")),
            how_many=_opt_int(rec.get("howMany")),
        )

    @property
    def has_location(self) -> bool:
        return (
            self.lat is not None
            and self.lon is not None
            and math.isfinite(self.lat)
            and math.isfinite(self.lon)
        )

    @property
    def coordinate(self) -> Coordinate:
        if not self.has_location:
            raise ValueError("observation has no usable coordinate")
        return Coordinate(float(self.lat), float(self.lon))  # type: ignore[arg-type]

    @property
    def species_key(self) -> str:
        return species_key(self.sci_name, self.common_name)

    @property
    def has_sci_name(self) -> bool:
        return bool(self.sci_name)


@dataclass(frozen=True)
class Annotation:
    """
    Display-ready point. Identity (id) is assigned once by AnnotationArena and
    never reused; the mutable image URL lives in the arena, not here.
    """
    id: str
    lat: float
    lon: float
    common_name: Optional[str] = None
    sci_name: Optional[str] = None
    obs_dt: Optional[str] = None
    is_route_point: bool = False

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lon)

    @property
    def species_key(self) -> str:
        return species_key(self.sci_name, self.common_name)

    @property
    def title(self) -> str:
        return self.common_name or self.sci_name or ""


def species_key(sci_name: Optional[str], common_name: Optional[str]) -> str:
    """Lowercased scientific name, else lowercased common name, else ""."""
    if sci_name:
        return sci_name.lower()
    if common_name:
        return common_name.lower()
    return ""


def _opt_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def _opt_float(v: Any) -> Optional[float]:
    if v is None:
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


def _opt_int(v: Any) -> Optional[int]:
    if v is None:
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None
