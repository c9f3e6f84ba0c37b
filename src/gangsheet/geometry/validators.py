"""Collision and bounds validation for gangsheet.

Every placement check in the engine goes through the padded bounding box
of an instance: the artwork rectangle grown by the deadspace margin on all
four sides. A quarter-turned instance pivots around the center of its own
artwork, so its padded box is centered on the same point with width and
height exchanged.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Protocol

from gangsheet.geometry.primitives import EPSILON, Box, Rotation


class Placeable(Protocol):
    """Anything positioned on the sheet like a placed instance."""

    @property
    def x_in(self) -> float: ...

    @property
    def y_in(self) -> float: ...

    @property
    def width_in(self) -> float: ...

    @property
    def height_in(self) -> float: ...

    @property
    def rotation(self) -> Rotation: ...


class LayoutViolation(Exception):
    """Raised when a proposed layout breaks a placement rule.

    Attributes:
        box: The offending padded box.
        sheet: (width, height) of the sheet it was checked against.
        other: The box it collided with, if the failure was an overlap.
    """

    def __init__(
        self,
        message: str,
        *,
        box: Box,
        sheet: tuple[float, float],
        other: Box | None = None,
    ) -> None:
        self.box = box
        self.sheet = sheet
        self.other = other
        detail = f"box={box.to_tuple()}, sheet={sheet}"
        if other is not None:
            detail += f", other={other.to_tuple()}"
        super().__init__(f"{message} ({detail})")


def within_bounds(
    x: float,
    y: float,
    width: float,
    height: float,
    sheet_width: float,
    sheet_height: float,
) -> bool:
    """Check that a rectangle lies fully inside [0, sheet_width] x [0, sheet_height]."""
    return (
        x >= -EPSILON
        and y >= -EPSILON
        and x + width <= sheet_width + EPSILON
        and y + height <= sheet_height + EPSILON
    )


def intersects(a: Box, b: Box) -> bool:
    """Open-rectangle overlap test; boxes sharing only an edge do not intersect."""
    return a.intersects(b)


def padded_box_for(
    x: float,
    y: float,
    width: float,
    height: float,
    rotation: Rotation,
    deadspace: float,
) -> Box:
    """Compute the padded bounding box of an artwork rectangle.

    Args:
        x: Left edge of the unrotated artwork.
        y: Top edge of the unrotated artwork.
        width: Artwork width.
        height: Artwork height.
        rotation: Rotation applied about the artwork's center.
        deadspace: Margin added on every side.

    Returns:
        The box used for all bounds and collision checks.
    """
    if rotation.swaps_axes:
        cx = x + width / 2
        cy = y + height / 2
        box_w = height + deadspace * 2
        box_h = width + deadspace * 2
        return Box(x=cx - box_w / 2, y=cy - box_h / 2, width=box_w, height=box_h)
    return Box(
        x=x - deadspace,
        y=y - deadspace,
        width=width + deadspace * 2,
        height=height + deadspace * 2,
    )


def padded_box(instance: Placeable, deadspace: float) -> Box:
    """Padded bounding box of a placed instance."""
    return padded_box_for(
        instance.x_in,
        instance.y_in,
        instance.width_in,
        instance.height_in,
        instance.rotation,
        deadspace,
    )


class LayoutValidator:
    """Checks padded boxes against the sheet and against each other.

    The validator is stateless; the Store uses it before committing any
    placement and the canvas controller uses it to probe candidate offsets
    during rotation.
    """

    def fits_sheet(self, box: Box, sheet_width: float, sheet_height: float) -> bool:
        """True if the box is inside the sheet rectangle."""
        return within_bounds(
            box.x, box.y, box.width, box.height, sheet_width, sheet_height
        )

    def first_violation(
        self,
        moving: Sequence[Box],
        stationary: Iterable[Box],
        sheet_width: float,
        sheet_height: float,
    ) -> LayoutViolation | None:
        """Find the first rule a group of proposed boxes breaks.

        Checks, in order: every moving box against the sheet bounds, every
        pair of moving boxes, then every moving box against the stationary
        boxes.

        Args:
            moving: Proposed padded boxes of the instances being changed.
            stationary: Padded boxes of every instance left untouched.
            sheet_width: Sheet width in inches.
            sheet_height: Sheet height in inches.

        Returns:
            A LayoutViolation describing the failure, or None if valid.
        """
        sheet = (sheet_width, sheet_height)
        for box in moving:
            if not self.fits_sheet(box, sheet_width, sheet_height):
                return LayoutViolation("Box exceeds sheet bounds", box=box, sheet=sheet)

        for i, box in enumerate(moving):
            for other in moving[i + 1 :]:
                if box.intersects(other):
                    return LayoutViolation(
                        "Boxes overlap within group", box=box, sheet=sheet, other=other
                    )

        for other in stationary:
            for box in moving:
                if box.intersects(other):
                    return LayoutViolation(
                        "Box overlaps a placed instance",
                        box=box,
                        sheet=sheet,
                        other=other,
                    )
        return None

    def validate(
        self,
        moving: Sequence[Box],
        stationary: Iterable[Box],
        sheet_width: float,
        sheet_height: float,
        *,
        strict: bool = True,
    ) -> bool:
        """Validate a group of proposed boxes.

        Args:
            moving: Proposed padded boxes.
            stationary: Padded boxes that stay where they are.
            sheet_width: Sheet width in inches.
            sheet_height: Sheet height in inches.
            strict: If True, raise LayoutViolation on failure.
                If False, return False instead.

        Returns:
            True if the group is valid.

        Raises:
            LayoutViolation: If strict=True and the group is invalid.
        """
        violation = self.first_violation(moving, stationary, sheet_width, sheet_height)
        if violation is not None and strict:
            raise violation
        return violation is None

    def is_valid(
        self,
        moving: Sequence[Box],
        stationary: Iterable[Box],
        sheet_width: float,
        sheet_height: float,
    ) -> bool:
        """Convenience wrapper around validate() with strict=False."""
        return self.validate(
            moving, stationary, sheet_width, sheet_height, strict=False
        )
