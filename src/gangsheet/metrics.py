"""Sheet usage statistics and print-quality hints.

Usage is a bounding-box approximation: the artwork area of every instance
summed and compared with the sheet area. Deadspace and rotation do not
change the figure.
"""

from __future__ import annotations

from pydantic import BaseModel

from gangsheet.packing import grid_capacity
from gangsheet.store.models import DesignFile, GangBuilderState

NEARLY_FULL_PCT = 95.0


class SheetUsage(BaseModel, frozen=True):
    """Usage figures for one sheet.

    Attributes:
        used_area_in: Sum of instance artwork areas, square inches.
        sheet_area_in: Sheet area, square inches (0 for an unknown sheet).
        usage_pct: used / sheet x 100, clamped to [0, 100].
        instance_count: Number of placed instances.
    """

    used_area_in: float = 0.0
    sheet_area_in: float = 0.0
    usage_pct: float = 0.0
    instance_count: int = 0


class DpiEstimate(BaseModel, frozen=True):
    """Effective print resolution of a design at a physical size."""

    dpi_x: float
    dpi_y: float

    @property
    def average(self) -> float:
        """Mean of the horizontal and vertical resolution."""
        return (self.dpi_x + self.dpi_y) / 2


def get_sheet_usage(state: GangBuilderState) -> SheetUsage:
    """Compute usage statistics for the selected sheet.

    Args:
        state: Builder snapshot.

    Returns:
        SheetUsage; all zeros when the sheet is unknown.
    """
    sheet = state.sheet_size
    if sheet is None:
        return SheetUsage()

    sheet_area = sheet.area_in
    if not state.instances:
        return SheetUsage(sheet_area_in=sheet_area)

    used = sum(inst.width_in * inst.height_in for inst in state.instances)
    pct = used / sheet_area * 100 if sheet_area > 0 else 0.0
    return SheetUsage(
        used_area_in=used,
        sheet_area_in=sheet_area,
        usage_pct=min(100.0, max(0.0, pct)),
        instance_count=len(state.instances),
    )


def quality_message(usage: SheetUsage) -> str:
    """Short status line for the stats panel."""
    if usage.instance_count == 0:
        return "No designs on sheet"
    if usage.usage_pct > NEARLY_FULL_PCT:
        return "Sheet nearly full"
    return "Resolution OK for 300 DPI"


def estimate_dpi(design: DesignFile, width_in: float, height_in: float) -> DpiEstimate | None:
    """Resolution a design would print at, or None for a non-positive size."""
    if width_in <= 0 or height_in <= 0:
        return None
    return DpiEstimate(
        dpi_x=design.natural_width_px / width_in,
        dpi_y=design.natural_height_px / height_in,
    )


def height_for_width(design: DesignFile, width_in: float) -> float:
    """Height that keeps the design's pixel aspect ratio at a given width."""
    return width_in / design.aspect_ratio


def width_for_height(design: DesignFile, height_in: float) -> float:
    """Width that keeps the design's pixel aspect ratio at a given height."""
    return height_in * design.aspect_ratio


def max_quantities(
    state: GangBuilderState,
    padding: float,
    deadspace: float,
    allow_rotate: bool = False,
) -> dict[str, int]:
    """Grid capacity of every design on the selected sheet.

    Controls use this to clamp the copy count a user can request; it is
    recomputed on every state change.

    Returns:
        Mapping of design id to capacity (empty for an unknown sheet).
    """
    sheet = state.sheet_size
    if sheet is None:
        return {}
    return {
        design.id: grid_capacity(
            sheet.width_in,
            sheet.height_in,
            design.width_in,
            design.height_in,
            padding=padding,
            deadspace=deadspace,
            allow_rotate=allow_rotate,
        )
        for design in state.design_files
    }
