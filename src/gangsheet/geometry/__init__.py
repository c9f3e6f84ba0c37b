"""Geometry module for gangsheet.

This package provides sheet-coordinate primitives, unit conversion and
snapping, and the padded-box collision rules every placement obeys.

Key Components:
    - Primitives: Box model and Rotation enum in sheet inches
    - Units: inches <-> display pixels, grid snapping
    - Validators: bounds/overlap tests, padded boxes, LayoutValidator

Example:
    from gangsheet.geometry import LayoutValidator, Rotation, padded_box_for

    box = padded_box_for(1.0, 1.0, 4.0, 2.0, Rotation.DEG_90, deadspace=0.157)
    LayoutValidator().validate([box], [], 22.0, 12.0)  # Raises if invalid
"""

from gangsheet.geometry.primitives import EPSILON, Box, Rotation
from gangsheet.geometry.units import PX_PER_INCH_UI, snap, to_inches, to_pixels
from gangsheet.geometry.validators import (
    LayoutValidator,
    LayoutViolation,
    Placeable,
    intersects,
    padded_box,
    padded_box_for,
    within_bounds,
)

__all__ = [
    "EPSILON",
    "PX_PER_INCH_UI",
    "Box",
    "LayoutValidator",
    "LayoutViolation",
    "Placeable",
    "Rotation",
    "intersects",
    "padded_box",
    "padded_box_for",
    "snap",
    "to_inches",
    "to_pixels",
    "within_bounds",
]
