"""Packing engine for gangsheet.

Computes non-overlapping grid placements for copies of one design on a
sheet, optionally filling leftover demand from a rotated retiling.
"""

from gangsheet.packing.engine import (
    PackedPosition,
    PackResult,
    auto_pack,
    grid_capacity,
    manual_pack,
)

__all__ = [
    "PackResult",
    "PackedPosition",
    "auto_pack",
    "grid_capacity",
    "manual_pack",
]
