# birdmap:cells.py

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

from birdmap.config import CELL_DECIMALS


def round_coord(value: float, decimals: int = CELL_DECIMALS) -> float:
    """
    Round one coordinate component with Python's round() (half-to-even on the
    float's binary value). Negative zero is folded into zero so that cells
    straddling the equator/meridian get a single key.
    """
    return round(value, decimals) + 0.0


def cell_key(lat: float, lon: float, decimals: int = CELL_DECIMALS) -> str:
    """
    Lossy grid key: every coordinate inside the same ~11 m cell maps to the
    same string, e.g. "37.0000,-122.0000".
    """
    return f"{round_coord(lat, decimals):.{decimals}f},{round_coord(lon, decimals):.{decimals}f}"
