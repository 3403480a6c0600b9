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

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from birdmap.models import Annotation
from birdmap.ranking import DisplayItem, RankedCluster


def _point(lat: float, lon: float) -> Dict[str, Any]:
    return {"type": "Point", "coordinates": [float(lon), float(lat)]}


def annotation_feature(
    ann: Annotation,
    frequencies: Mapping[str, int],
    image_urls: Mapping[str, str],
) -> Dict[str, Any]:
    return {
        "type": "Feature",
        "properties": {
            "kind": "route_point" if ann.is_route_point else "sighting",
            "id": ann.id,
            "title": ann.title,
            "common_name": ann.common_name,
            "sci_name": ann.sci_name,
            "obs_dt": ann.obs_dt,
            "image_url": image_urls.get(ann.id),
            "frequency": frequencies.get(ann.species_key) if ann.species_key else None,
        },
        "geometry": _point(ann.lat, ann.lon),
    }


def cluster_feature(rc: RankedCluster, image_urls: Mapping[str, str]) -> Dict[str, Any]:
    c = rc.cluster
    entries = [
        {
            "id": e.annotation.id,
            "title": e.annotation.title,
            "species_key": e.species_key,
            "count": int(e.count),
            "size": int(e.size),
            "offset": [float(e.offset[0]), float(e.offset[1])],
            "image_url": image_urls.get(e.annotation.id),
        }
        for e in rc.entries
    ]
    return {
        "type": "Feature",
        "properties": {
            "kind": "cluster",
            "id": c.id,
            "member_count": c.size,
            "member_ids": [m.id for m in c.members],
            "entries": entries,
        },
        "geometry": _point(c.centroid.lat, c.centroid.lon),
    }


def display_geojson(
    items: Iterable[DisplayItem],
    frequencies: Mapping[str, int],
    image_urls: Optional[Mapping[str, str]] = None,
    extra: Iterable[Annotation] = (),
) -> Dict[str, Any]:
    image_urls = image_urls or {}
    features: List[Dict[str, Any]] = []
    for item in items:
        if isinstance(item, RankedCluster):
            features.append(cluster_feature(item, image_urls))
        else:
            features.append(annotation_feature(item, frequencies, image_urls))
    for ann in extra:
        features.append(annotation_feature(ann, frequencies, image_urls))
    return {"type": "FeatureCollection", "features": features}


def export_display_geojson(
    items: Iterable[DisplayItem],
    frequencies: Mapping[str, int],
    out_path: Path,
    image_urls: Optional[Mapping[str, str]] = None,
) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fc = display_geojson(items, frequencies, image_urls)
    out_path.write_text(json.dumps(fc, ensure_ascii=False), encoding="utf-8")
