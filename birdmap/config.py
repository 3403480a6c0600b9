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
from pathlib import Path
import os

# Dedup grid: 4 decimals of a degree is roughly 11 m
CELL_DECIMALS = 4

# Zoom-adaptive cluster threshold
METERS_PER_DEGREE_LAT = 111_000
THRESHOLD_FACTOR = 0.001
THRESHOLD_MIN_M = 8.0
THRESHOLD_MAX_M = 2000.0

# Cluster ranking / packing layout (display units)
MAX_RANKED = 5
SIZE_TIERS = (44, 36, 28, 22, 16)
RING_PADDING = 6

ROUTES_KEY = "birdmap_saved_routes"


@dataclass(frozen=True)
class Config:
    repo_root: Path

    ebird_base_url: str = os.getenv("EBIRD_BASE_URL", "https://api.ebird.org/v2").strip()
    ebird_api_key: str = os.getenv("EBIRD_API_KEY", "").strip()

    wikipedia_api_url: str = os.getenv("BIRDMAP_WIKIPEDIA_API", "https://en.wikipedia.org/w/api.php").strip()
    osrm_base_url: str = os.getenv("BIRDMAP_OSRM_URL", "https://router.project-osrm.org").strip()

    search_radius_km: int = int(os.getenv("BIRDMAP_RADIUS_KM", "10"))
    max_results: int = int(os.getenv("BIRDMAP_MAX_RESULTS", "50"))

    debounce_s: float = float(os.getenv("BIRDMAP_DEBOUNCE_S", "0.8"))
    image_workers: int = int(os.getenv("BIRDMAP_IMAGE_WORKERS", "4"))
    image_cache_entries: int = int(os.getenv("BIRDMAP_IMAGE_CACHE", "256"))
    http_timeout_s: int = int(os.getenv("BIRDMAP_HTTP_TIMEOUT_S", "15"))

    db_path: Path = None    # type: ignore[assignment]
    logs_dir: Path = None   # type: ignore[assignment]

    def __post_init__(self) -> None:
        def _p(env_key: str, default_rel: Path) -> Path:
            raw = os.getenv(env_key, str(default_rel))
            return Path(raw).expanduser().resolve()

        object.__setattr__(self, "db_path", _p("BIRDMAP_DB", self.repo_root / "data" / "db" / "birdmap.sqlite"))
        object.__setattr__(self, "logs_dir", _p("BIRDMAP_LOGS_DIR", self.repo_root / "logs"))
