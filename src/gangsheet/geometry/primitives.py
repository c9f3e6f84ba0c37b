"""Geometry primitives for gangsheet.

This module provides immutable Pydantic models for rectangles and
rotations in sheet coordinates. All coordinates are in inches and follow
the convention where (0, 0) is the top-left corner of the sheet, x grows
rightward and y grows downward.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Self

from pydantic import BaseModel, Field

# Tolerance (inches) for bounds and overlap tests on float coordinates.
EPSILON = 1e-9


class Rotation(IntEnum):
    """Quarter-turn rotation applied to a placed instance."""

    DEG_0 = 0
    DEG_90 = 90

    def toggled(self) -> Rotation:
        """Return the other rotation."""
        return Rotation.DEG_90 if self is Rotation.DEG_0 else Rotation.DEG_0

    @property
    def swaps_axes(self) -> bool:
        """True if the rotation exchanges the width and height axes."""
        return self is Rotation.DEG_90


class Box(BaseModel, frozen=True):
    """An axis-aligned rectangle in sheet inches.

    Defined by top-left corner (x, y) and dimensions (width, height). The
    origin may be negative: proposed boxes are built before they are
    validated, and an out-of-sheet box is a legitimate value to reject.

    Attributes:
        x: Left edge.
        y: Top edge.
        width: Horizontal extent (>= 0).
        height: Vertical extent (>= 0).
    """

    x: float = Field(..., description="Left edge in inches")
    y: float = Field(..., description="Top edge in inches")
    width: float = Field(..., ge=0, description="Width in inches")
    height: float = Field(..., ge=0, description="Height in inches")

    @property
    def right(self) -> float:
        """Return the X coordinate of the right edge."""
        return self.x + self.width

    @property
    def bottom(self) -> float:
        """Return the Y coordinate of the bottom edge."""
        return self.y + self.height

    @property
    def center(self) -> tuple[float, float]:
        """Return the center point as (x, y) tuple."""
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def area(self) -> float:
        """Calculate the area in square inches."""
        return self.width * self.height

    def to_tuple(self) -> tuple[float, float, float, float]:
        """Convert to (x, y, width, height) tuple."""
        return (self.x, self.y, self.width, self.height)

    @classmethod
    def from_tuple(cls, bbox: tuple[float, float, float, float]) -> Self:
        """Create Box from (x, y, width, height) tuple."""
        return cls(x=bbox[0], y=bbox[1], width=bbox[2], height=bbox[3])

    @classmethod
    def from_corners(
        cls,
        first: tuple[float, float],
        second: tuple[float, float],
    ) -> Self:
        """Create the Box spanning two opposite corners, in any order.

        Used for marquee rectangles, where the drag may go up or left.

        Args:
            first: (x, y) of one corner.
            second: (x, y) of the opposite corner.

        Returns:
            Box with non-negative width and height.
        """
        x1, y1 = first
        x2, y2 = second
        return cls(
            x=min(x1, x2),
            y=min(y1, y2),
            width=abs(x2 - x1),
            height=abs(y2 - y1),
        )

    def translate(self, dx: float, dy: float) -> Box:
        """Return a copy moved by (dx, dy)."""
        return Box(x=self.x + dx, y=self.y + dy, width=self.width, height=self.height)

    def contains_point(self, px: float, py: float) -> bool:
        """Check if a point is inside this box (inclusive of edges).

        Args:
            px: Point X coordinate.
            py: Point Y coordinate.

        Returns:
            True if point is within the box.
        """
        return self.x <= px <= self.right and self.y <= py <= self.bottom

    def intersects(self, other: Box) -> bool:
        """Check if this box overlaps another (shared edges do not count).

        Args:
            other: Another Box to check intersection with.

        Returns:
            True if the interiors overlap.
        """
        return (
            self.x < other.right - EPSILON
            and self.right > other.x + EPSILON
            and self.y < other.bottom - EPSILON
            and self.bottom > other.y + EPSILON
        )
