"""Viewport math for the sheet canvas.

Three coordinate spaces are involved:

    sheet   physical inches, origin at the sheet's top-left corner
    screen  CSS pixels inside the canvas element (pointer events)
    backing device pixels of the raster frame (screen x device pixel ratio)

The sheet is drawn at PX_PER_INCH_UI, scaled to fit 95% of the container,
then multiplied by the zoom level. The canvas grows past the container when
the zoomed sheet plus padding needs more room.
"""

from __future__ import annotations

import math

from gangsheet.catalog import SheetSize
from gangsheet.config import Settings, settings
from gangsheet.geometry import Box

FIT_RATIO = 0.95

DEFAULT_ZOOM_BY_SHEET: dict[str, float] = {
    "22x12": 1.25,
    "22x24": 1.5,
    "22x60": 1.75,
    "22x120": 2.0,
    "22x180": 2.0,
}
FALLBACK_ZOOM = 1.25


def default_zoom_for(sheet_size_id: str) -> float:
    """Initial zoom for a sheet size (longer sheets start closer in)."""
    return DEFAULT_ZOOM_BY_SHEET.get(sheet_size_id, FALLBACK_ZOOM)


class Viewport:
    """Zoom, container size and coordinate transforms for one canvas.

    Attributes:
        sheet: Sheet being displayed.
        container_width: Available width in CSS pixels.
        container_height: Available height in CSS pixels.
        device_pixel_ratio: Backing pixels per CSS pixel.
        zoom: Current zoom factor, always within [min_zoom, max_zoom].
    """

    def __init__(
        self,
        sheet: SheetSize,
        container_width: float = 1000.0,
        container_height: float = 800.0,
        device_pixel_ratio: float = 1.0,
        *,
        zoom: float | None = None,
        config: Settings | None = None,
    ) -> None:
        self._settings = config or settings
        self.sheet = sheet
        self.container_width = max(0.0, container_width)
        self.container_height = max(0.0, container_height)
        self.device_pixel_ratio = device_pixel_ratio if device_pixel_ratio > 0 else 1.0
        self.zoom = self._clamp(default_zoom_for(sheet.id) if zoom is None else zoom)

    # ------------------------------------------------------------------
    # Zoom
    # ------------------------------------------------------------------

    @property
    def min_zoom(self) -> float:
        return self._settings.MIN_ZOOM

    @property
    def max_zoom(self) -> float:
        """Largest zoom at which the sheet still fits the container width.

        Capped at settings.MAX_ZOOM and never below min_zoom.
        """
        fitted_width = self._sheet_base_px()[0] * self.base_scale
        if fitted_width <= 0 or self.container_width <= 0:
            return self._settings.MAX_ZOOM
        limit = self.container_width / fitted_width
        return max(self.min_zoom, min(self._settings.MAX_ZOOM, limit))

    def _clamp(self, zoom: float) -> float:
        return max(self.min_zoom, min(self.max_zoom, zoom))

    def set_zoom(self, zoom: float) -> bool:
        """Set the zoom level (clamped). Returns True if it changed."""
        if not math.isfinite(zoom):
            return False
        new_zoom = self._clamp(zoom)
        if abs(new_zoom - self.zoom) < 1e-3:
            return False
        self.zoom = new_zoom
        return True

    def zoom_in(self) -> bool:
        return self.set_zoom(self.zoom + self._settings.ZOOM_STEP)

    def zoom_out(self) -> bool:
        return self.set_zoom(self.zoom - self._settings.ZOOM_STEP)

    def resize(
        self,
        container_width: float,
        container_height: float,
        device_pixel_ratio: float | None = None,
    ) -> None:
        """Update the container size, re-clamping zoom to the new limit."""
        self.container_width = max(0.0, container_width)
        self.container_height = max(0.0, container_height)
        if device_pixel_ratio is not None and device_pixel_ratio > 0:
            self.device_pixel_ratio = device_pixel_ratio
        self.zoom = self._clamp(self.zoom)

    def set_sheet(self, sheet: SheetSize) -> None:
        """Switch to another sheet and reset zoom to its default."""
        self.sheet = sheet
        self.zoom = self._clamp(default_zoom_for(sheet.id))

    # ------------------------------------------------------------------
    # Sizes
    # ------------------------------------------------------------------

    def _sheet_base_px(self) -> tuple[float, float]:
        ppi = self._settings.PX_PER_INCH_UI
        return self.sheet.width_in * ppi, self.sheet.height_in * ppi

    @property
    def base_scale(self) -> float:
        """Scale that fits the unzoomed sheet into 95% of the container."""
        base_w, base_h = self._sheet_base_px()
        if self.container_width <= 0 or self.container_height <= 0:
            return 1.0
        return min(
            self.container_width * FIT_RATIO / base_w,
            self.container_height * FIT_RATIO / base_h,
        )

    @property
    def scale(self) -> float:
        """Screen pixels per unzoomed UI pixel."""
        return self.base_scale * self.zoom

    @property
    def pixels_per_inch(self) -> float:
        """Screen pixels per sheet inch at the current zoom."""
        return self._settings.PX_PER_INCH_UI * self.scale

    @property
    def sheet_size_px(self) -> tuple[float, float]:
        """Rendered sheet size in screen pixels."""
        base_w, base_h = self._sheet_base_px()
        return base_w * self.scale, base_h * self.scale

    @property
    def canvas_size(self) -> tuple[float, float]:
        """Canvas size in screen pixels: container or zoomed sheet plus padding."""
        sheet_w, sheet_h = self.sheet_size_px
        pad = self._settings.CANVAS_PADDING_PX
        return (
            max(self.container_width, sheet_w + pad * 2),
            max(self.container_height, sheet_h + pad * 2),
        )

    @property
    def backing_size(self) -> tuple[int, int]:
        """Raster frame size in device pixels."""
        width, height = self.canvas_size
        dpr = self.device_pixel_ratio
        return max(1, math.ceil(width * dpr)), max(1, math.ceil(height * dpr))

    @property
    def sheet_origin(self) -> tuple[float, float]:
        """Screen position of the sheet's top-left corner.

        Centered horizontally (never closer than the padding); centered
        vertically when it fits, otherwise top-aligned for scrolling.
        """
        canvas_w, canvas_h = self.canvas_size
        sheet_w, sheet_h = self.sheet_size_px
        pad = self._settings.CANVAS_PADDING_PX
        offset_x = max(pad, (canvas_w - sheet_w) / 2)
        offset_y = (canvas_h - sheet_h) / 2 if sheet_h < canvas_h else pad
        return offset_x, offset_y

    # ------------------------------------------------------------------
    # Transforms
    # ------------------------------------------------------------------

    def to_sheet(self, screen_x: float, screen_y: float) -> tuple[float, float]:
        """Screen pixels -> sheet inches."""
        ox, oy = self.sheet_origin
        ppi = self.pixels_per_inch
        return (screen_x - ox) / ppi, (screen_y - oy) / ppi

    def to_screen(self, x_in: float, y_in: float) -> tuple[float, float]:
        """Sheet inches -> screen pixels."""
        ox, oy = self.sheet_origin
        ppi = self.pixels_per_inch
        return ox + x_in * ppi, oy + y_in * ppi

    def length_to_inches(self, pixels: float) -> float:
        """Convert a screen-pixel distance to inches."""
        return pixels / self.pixels_per_inch

    def box_to_screen(self, box: Box) -> Box:
        """Map a sheet-inch box into screen pixels."""
        x, y = self.to_screen(box.x, box.y)
        ppi = self.pixels_per_inch
        return Box(x=x, y=y, width=box.width * ppi, height=box.height * ppi)

    def box_to_sheet(self, box: Box) -> Box:
        """Map a screen-pixel box into sheet inches."""
        x, y = self.to_sheet(box.x, box.y)
        ppi = self.pixels_per_inch
        return Box(x=x, y=y, width=box.width / ppi, height=box.height / ppi)
