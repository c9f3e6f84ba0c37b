"""Unit conversion and grid snapping for gangsheet.

Sheet coordinates are physical inches. The canvas draws them at a fixed
display density (PX_PER_INCH_UI) before zoom and device pixel ratio are
applied, so these conversions are screen-only and never touch print
resolution.

Transform Direction Conventions:
    - to_pixels: Multiply by pixels-per-inch
    - to_inches: Divide by pixels-per-inch
"""

from __future__ import annotations

# Pixels per inch for the unzoomed canvas (screen only)
PX_PER_INCH_UI = 200.0


def to_pixels(inches: float, px_per_inch: float = PX_PER_INCH_UI) -> float:
    """Convert inches to display pixels.

    Args:
        inches: Measurement in inches.
        px_per_inch: Display density. Defaults to PX_PER_INCH_UI.

    Returns:
        Measurement in pixels.

    Raises:
        ValueError: If px_per_inch is not positive.
    """
    if px_per_inch <= 0:
        raise ValueError(f"px_per_inch must be positive, got {px_per_inch}")
    return inches * px_per_inch


def to_inches(px: float, px_per_inch: float = PX_PER_INCH_UI) -> float:
    """Convert display pixels to inches.

    Args:
        px: Measurement in pixels.
        px_per_inch: Display density. Defaults to PX_PER_INCH_UI.

    Returns:
        Measurement in inches.

    Raises:
        ValueError: If px_per_inch is not positive.
    """
    if px_per_inch <= 0:
        raise ValueError(f"px_per_inch must be positive, got {px_per_inch}")
    return px / px_per_inch


def snap(value: float, increment: float) -> float:
    """Snap a value to the nearest multiple of a grid increment.

    Args:
        value: Value to snap.
        increment: Grid increment (e.g. 0.125 for 1/8 inch). Zero or a
            negative increment disables snapping.

    Returns:
        The snapped value, or value unchanged when snapping is off.

    Example:
        >>> snap(1.3, 0.25)
        1.25
        >>> snap(1.3, 0)
        1.3
    """
    if increment <= 0:
        return value
    return round(value / increment) * increment
