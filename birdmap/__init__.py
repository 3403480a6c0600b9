"""
birdmap package
"""
__all__ = [
    "config",
    "logging_utils",
    "distance",
    "cells",
    "models",
    "annotations",
    "rarity",
    "clustering",
    "ranking",
    "viewport",
    "ebird_client",
    "wikimedia_client",
    "image_cache",
    "directions",
    "storage",
    "routes",
    "debounce",
    "session",
    "export_geojson",
]
