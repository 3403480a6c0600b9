#!/usr/bin/env python3

# script:nearby_sightings.py

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

# -*- coding: utf-8 -*-

from __future__ import annotations

import sys
from pathlib import Path

# --- make repo root importable ---
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))
# --------------------------------

from birdmap.config import Config
from birdmap.ebird_client import EbirdClient, FetchError
from birdmap.export_geojson import export_display_geojson
from birdmap.logging_utils import setup_logger
from birdmap.models import Coordinate
from birdmap.ranking import RankedCluster
from birdmap.session import MapSession
from birdmap.viewport import Viewport
from birdmap.wikimedia_client import WikimediaClient


# Golden Gate Park
DEFAULT_LAT = "37.7694"
DEFAULT_LON = "-122.4862"


def _get_arg(name: str, default: str | None = None) -> str | None:
    if name in sys.argv:
        return sys.argv[sys.argv.index(name) + 1]
    return default


def main() -> int:
    cfg = Config(repo_root=REPO_ROOT)
    logger = setup_logger("nearby_sightings", cfg.logs_dir)

    lat = float(_get_arg("--lat", DEFAULT_LAT))
    lon = float(_get_arg("--lon", DEFAULT_LON))
    lat_span = float(_get_arg("--span", "0.05"))  # degrees of latitude on screen
    radius_km = int(_get_arg("--radius-km", str(cfg.search_radius_km)))
    max_results = int(_get_arg("--max", str(cfg.max_results)))
    out = _get_arg("--out", None)
    with_images = "--images" in sys.argv

    logger.info("Using position: lat=%.6f lon=%.6f span=%.4f radius_km=%d", lat, lon, lat_span, radius_km)

    session = MapSession(
        EbirdClient(base_url=cfg.ebird_base_url, api_key=cfg.ebird_api_key, timeout_s=cfg.http_timeout_s),
        WikimediaClient(api_url=cfg.wikipedia_api_url, timeout_s=cfg.http_timeout_s) if with_images else None,
        radius_km=radius_km,
        max_results=max_results,
        image_workers=cfg.image_workers,
    )
    try:
        vp = Viewport(center=Coordinate(lat, lon), lat_span=lat_span, lon_span=lat_span)
        try:
            snap = session.refresh(vp)
        except FetchError as e:
            logger.error("Fetch failed: %s", e)
            return 2

        if with_images:
            session.wait_for_images(timeout=60)

        logger.info(
            "Kept %d sightings (%d co-located dropped), %d clusters at threshold=%.1fm",
            len(snap.annotations), snap.dropped_duplicates, len(snap.clusters), snap.threshold_m,
        )

        items = session.display_items()
        image_urls = session.arena.image_urls()
        for i, item in enumerate(items, 1):
            if isinstance(item, RankedCluster):
                c = item.cluster
                logger.info(
                    "Cluster %d: %d sightings at (%.5f,%.5f)",
                    i, c.size, c.centroid.lat, c.centroid.lon,
                )
                for e in item.entries:
                    logger.info(
                        "        %s x%d size=%d batch_freq=%s",
                        e.annotation.title, e.count, e.size, snap.frequencies.get(e.species_key, "-"),
                    )
            else:
                logger.info(
                    "Sighting %d: %s at (%.5f,%.5f) batch_freq=%s image=%s",
                    i, item.title, item.lat, item.lon,
                    snap.frequencies.get(item.species_key, "-"), image_urls.get(item.id, "-"),
                )

        if out:
            out_path = Path(out).expanduser().resolve()
            export_display_geojson(items, snap.frequencies, out_path, image_urls)
            logger.info("Wrote %s", out_path)

        return 0
    finally:
        session.close()


if __name__ == "__main__":
    raise SystemExit(main())
