#!/usr/bin/env python3

# script:saved_routes.py

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

import argparse
import sys
from pathlib import Path

# --- make repo root importable ---
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))
# --------------------------------

from birdmap.cli_paths import apply_path_overrides
from birdmap.config import Config
from birdmap.directions import DirectionsClient, DirectionsError
from birdmap.logging_utils import setup_logger
from birdmap.models import Coordinate
from birdmap.routes import RouteStore
from birdmap.storage import SqliteKeyValueStore


def _coord(s: str) -> Coordinate:
    lat, lon = (float(p) for p in s.split(","))
    return Coordinate(lat, lon)


def main() -> int:
    ap = argparse.ArgumentParser(description="List, plan and delete saved routes.")
    ap.add_argument("--db-dir", default=None, help="Override DB directory (expects birdmap.sqlite).")
    ap.add_argument("--logs-dir", default=None)
    sub = ap.add_subparsers(dest="cmd", required=True)

    sub.add_parser("list")

    p_plan = sub.add_parser("plan", help="Driving route between two lat,lon points, saved under a name.")
    p_plan.add_argument("name")
    p_plan.add_argument("start", type=_coord, help="lat,lon")
    p_plan.add_argument("end", type=_coord, help="lat,lon")

    p_del = sub.add_parser("delete")
    p_del.add_argument("route_id")

    args = ap.parse_args()

    apply_path_overrides(db_dir=args.db_dir, logs_dir=args.logs_dir, create_dirs=True)
    cfg = Config(repo_root=REPO_ROOT)
    logger = setup_logger("saved_routes", cfg.logs_dir)

    store = RouteStore(SqliteKeyValueStore(cfg.db_path))

    if args.cmd == "list":
        if not store.routes:
            logger.info("No saved routes yet")
        for r in store.routes:
            logger.info("%s\t%s\t%d points\t%s", r.id, r.name, len(r.coords), r.created_at.date().isoformat())
        return 0

    if args.cmd == "plan":
        client = DirectionsClient(base_url=cfg.osrm_base_url, timeout_s=cfg.http_timeout_s)
        try:
            planned = client.driving_route(args.start, args.end)
        except DirectionsError as e:
            logger.error("Directions failed: %s", e)
            return 2
        r = store.add_route(args.name, planned.coordinates)
        logger.info(
            "Saved %s (%s): %d points, %.1f km, %.0f min",
            r.name, r.id, len(r.coords), planned.distance_m / 1000.0, planned.duration_s / 60.0,
        )
        return 0

    if args.cmd == "delete":
        if store.delete_route(args.route_id):
            logger.info("Deleted %s", args.route_id)
        else:
            logger.warning("No route with id %s", args.route_id)
        return 0

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
