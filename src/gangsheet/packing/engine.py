"""Grid packing of one design onto a print sheet.

This module computes legal, non-overlapping placements for N copies of a
rectangular design. It implements two strategies:

Auto-pack:
    1. Cell size = design size + 2 x deadspace + padding.
    2. Tile the sheet row-major: cols = floor(W / cellW), rows = floor(H / cellH).
    3. Walk the cells in order and accept every cell whose padded box does
       not hit an already occupied box, until quantity is reached.
    4. If rotation is allowed and the request is still short, retile the
       *whole* sheet with width and height exchanged and accept rotated cells
       that hit neither the occupied boxes nor anything placed in step 3.

Capacity:
    The reported capacity is the unrotated grid size, plus the rotated grid
    size when rotation is allowed. It is a loose upper bound: both grids
    cover the same sheet area, so the sum can overstate what is actually
    achievable. Callers use it only to clamp requested quantities.

Manual placement:
    A square-ish block of ceil(sqrt(quantity)) columns on a fixed spacing,
    scanned row by row (and band by band across the sheet) for a bounded
    number of attempts. Each copy takes the first candidate that is in
    bounds and clear of everything else. Running out of space places fewer
    copies; it is not an error.
"""

from __future__ import annotations

import itertools
import math
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

from gangsheet.geometry import Box, LayoutValidator, Rotation, padded_box_for

# Defaults mirror the print process (4mm deadspace, 1/8" gutter)
DEFAULT_DEADSPACE_IN = 0.157
DEFAULT_PADDING_IN = 0.125
DEFAULT_MANUAL_SPACING_IN = 2.5
DEFAULT_MANUAL_MAX_ATTEMPTS = 500

_validator = LayoutValidator()


@dataclass(frozen=True)
class PackedPosition:
    """Top-left of the unrotated artwork and the rotation to apply."""

    x_in: float
    y_in: float
    rotation: Rotation = Rotation.DEG_0


@dataclass(frozen=True)
class PackResult:
    """Outcome of a packing request.

    Attributes:
        positions: Accepted positions in placement order.
        capacity: Theoretical grid capacity (see module docstring).
    """

    positions: tuple[PackedPosition, ...]
    capacity: int

    @property
    def placed(self) -> int:
        """Number of positions actually produced."""
        return len(self.positions)


@dataclass(frozen=True)
class _Grid:
    cols: int
    rows: int
    cell_w: float
    cell_h: float
    box_w: float
    box_h: float
    padding: float

    @property
    def capacity(self) -> int:
        return self.cols * self.rows

    def cells(self) -> Iterator[Box]:
        """Padded boxes of every cell, row 0 left-to-right, then row 1, ..."""
        for row in range(self.rows):
            for col in range(self.cols):
                yield Box(
                    x=col * self.cell_w + self.padding / 2,
                    y=row * self.cell_h + self.padding / 2,
                    width=self.box_w,
                    height=self.box_h,
                )


def _check_margins(padding: float, deadspace: float) -> None:
    if padding < 0:
        raise ValueError(f"padding must be non-negative, got {padding}")
    if deadspace < 0:
        raise ValueError(f"deadspace must be non-negative, got {deadspace}")


def _grid(
    sheet_w: float,
    sheet_h: float,
    box_w: float,
    box_h: float,
    padding: float,
) -> _Grid:
    cell_w = box_w + padding
    cell_h = box_h + padding
    cols = math.floor(sheet_w / cell_w) if cell_w > 0 else 0
    rows = math.floor(sheet_h / cell_h) if cell_h > 0 else 0
    return _Grid(
        cols=max(cols, 0),
        rows=max(rows, 0),
        cell_w=cell_w,
        cell_h=cell_h,
        box_w=box_w,
        box_h=box_h,
        padding=padding,
    )


def _grids(
    sheet_w: float,
    sheet_h: float,
    design_w: float,
    design_h: float,
    padding: float,
    deadspace: float,
) -> tuple[_Grid, _Grid]:
    """Unrotated and rotated grids for a design."""
    eff_w = design_w + deadspace * 2
    eff_h = design_h + deadspace * 2
    return (
        _grid(sheet_w, sheet_h, eff_w, eff_h, padding),
        _grid(sheet_w, sheet_h, eff_h, eff_w, padding),
    )


def grid_capacity(
    sheet_w: float,
    sheet_h: float,
    design_w: float,
    design_h: float,
    padding: float = DEFAULT_PADDING_IN,
    deadspace: float = DEFAULT_DEADSPACE_IN,
    allow_rotate: bool = False,
) -> int:
    """Theoretical number of copies the grid can hold, ignoring occupancy.

    Args:
        sheet_w: Sheet width in inches.
        sheet_h: Sheet height in inches.
        design_w: Artwork width in inches.
        design_h: Artwork height in inches.
        padding: Gap between cells in inches.
        deadspace: Margin around each artwork in inches.
        allow_rotate: Add the rotated grid's capacity.

    Returns:
        Upper bound on placeable copies (0 for non-positive sizes).
    """
    _check_margins(padding, deadspace)
    if design_w <= 0 or design_h <= 0 or sheet_w <= 0 or sheet_h <= 0:
        return 0
    upright, rotated = _grids(sheet_w, sheet_h, design_w, design_h, padding, deadspace)
    if allow_rotate:
        return upright.capacity + rotated.capacity
    return upright.capacity


def _position_from_cell(
    cell: Box,
    design_w: float,
    design_h: float,
    deadspace: float,
    rotation: Rotation,
) -> PackedPosition:
    if rotation.swaps_axes:
        cx, cy = cell.center
        return PackedPosition(
            x_in=cx - design_w / 2, y_in=cy - design_h / 2, rotation=rotation
        )
    return PackedPosition(x_in=cell.x + deadspace, y_in=cell.y + deadspace)


def _hits_any(box: Box, others: Iterable[Box]) -> bool:
    return any(box.intersects(other) for other in others)


def auto_pack(  # noqa: PLR0913
    sheet_w: float,
    sheet_h: float,
    design_w: float,
    design_h: float,
    quantity: int,
    padding: float = DEFAULT_PADDING_IN,
    deadspace: float = DEFAULT_DEADSPACE_IN,
    allow_rotate: bool = False,
    occupied_boxes: Sequence[Box] = (),
) -> PackResult:
    """Tile copies of a design onto the sheet.

    Args:
        sheet_w: Sheet width in inches.
        sheet_h: Sheet height in inches.
        design_w: Artwork width in inches.
        design_h: Artwork height in inches.
        quantity: Number of copies requested.
        padding: Gap between cells in inches (default 1/8").
        deadspace: Margin around each artwork in inches (default 4mm).
        allow_rotate: Fill remaining demand from a rotated retiling.
        occupied_boxes: Padded boxes already on the sheet to avoid.

    Returns:
        PackResult with deterministic positions and the capacity bound.

    Raises:
        ValueError: If padding or deadspace is negative.

    Example:
        >>> result = auto_pack(22, 12, 4, 4, quantity=20)
        >>> result.placed, result.capacity
        (8, 8)
    """
    _check_margins(padding, deadspace)
    if quantity <= 0 or design_w <= 0 or design_h <= 0:
        return PackResult(positions=(), capacity=0)

    upright, rotated = _grids(sheet_w, sheet_h, design_w, design_h, padding, deadspace)
    capacity = upright.capacity + (rotated.capacity if allow_rotate else 0)

    occupied = list(occupied_boxes)
    placed_boxes: list[Box] = []
    positions: list[PackedPosition] = []

    for cell in upright.cells():
        if len(positions) >= quantity:
            break
        if _hits_any(cell, occupied):
            continue
        positions.append(
            _position_from_cell(cell, design_w, design_h, deadspace, Rotation.DEG_0)
        )
        placed_boxes.append(cell)

    if allow_rotate and len(positions) < quantity:
        for cell in rotated.cells():
            if len(positions) >= quantity:
                break
            if _hits_any(cell, occupied) or _hits_any(cell, placed_boxes):
                continue
            positions.append(
                _position_from_cell(cell, design_w, design_h, deadspace, Rotation.DEG_90)
            )
            placed_boxes.append(cell)

    return PackResult(positions=tuple(positions), capacity=capacity)


def _manual_candidates(
    cols: int,
    spacing: float,
    deadspace: float,
    sheet_w: float,
    sheet_h: float,
) -> Iterator[tuple[float, float]]:
    """Candidate top-left corners, row by row within bands of `cols` columns."""
    band = 0
    while band * cols * spacing < sheet_w:
        band_x = band * cols * spacing
        row = 0
        while row * spacing < sheet_h:
            for col in range(cols):
                yield (
                    deadspace + band_x + col * spacing,
                    deadspace + row * spacing,
                )
            row += 1
        band += 1


def manual_pack(  # noqa: PLR0913
    sheet_w: float,
    sheet_h: float,
    design_w: float,
    design_h: float,
    quantity: int,
    deadspace: float = DEFAULT_DEADSPACE_IN,
    occupied_boxes: Sequence[Box] = (),
    spacing: float = DEFAULT_MANUAL_SPACING_IN,
    max_attempts: int = DEFAULT_MANUAL_MAX_ATTEMPTS,
    padding: float = DEFAULT_PADDING_IN,
) -> PackResult:
    """Loose placement for copies added without auto-pack.

    Args:
        sheet_w: Sheet width in inches.
        sheet_h: Sheet height in inches.
        design_w: Artwork width in inches.
        design_h: Artwork height in inches.
        quantity: Number of copies requested.
        deadspace: Margin around each artwork in inches.
        occupied_boxes: Padded boxes already on the sheet to avoid.
        spacing: Distance between candidate corners in inches.
        max_attempts: Upper bound on candidates examined.
        padding: Gutter used only for the reported capacity.

    Returns:
        PackResult; may hold fewer positions than requested.
    """
    _check_margins(padding, deadspace)
    if quantity <= 0 or design_w <= 0 or design_h <= 0 or spacing <= 0:
        return PackResult(positions=(), capacity=0)

    # each candidate yields at most one position
    quantity = min(quantity, max(max_attempts, 1))
    cols = math.ceil(math.sqrt(quantity))
    taken = list(occupied_boxes)
    positions: list[PackedPosition] = []

    candidates = itertools.islice(
        _manual_candidates(cols, spacing, deadspace, sheet_w, sheet_h),
        max_attempts,
    )
    for x, y in candidates:
        if len(positions) >= quantity:
            break
        box = padded_box_for(x, y, design_w, design_h, Rotation.DEG_0, deadspace)
        if not _validator.fits_sheet(box, sheet_w, sheet_h):
            continue
        if _hits_any(box, taken):
            continue
        positions.append(PackedPosition(x_in=x, y_in=y))
        taken.append(box)

    capacity = grid_capacity(
        sheet_w, sheet_h, design_w, design_h, padding, deadspace, allow_rotate=False
    )
    return PackResult(positions=tuple(positions), capacity=capacity)
