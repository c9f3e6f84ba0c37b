"""Raster rendering of a builder snapshot.

SheetRenderer turns (snapshot, viewport) into an RGBA frame the size of the
canvas backing store. It reads nothing else, so the same inputs always
draw the same frame; artwork that is still loading or failed to load is
drawn as a placeholder.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from PIL import Image, ImageDraw, ImageFont

from gangsheet.canvas.images import ImageCache
from gangsheet.canvas.viewport import Viewport
from gangsheet.geometry import Box, padded_box
from gangsheet.store.models import GangBuilderState, PlacedInstance

logger = logging.getLogger(__name__)

Color = tuple[int, int, int, int]

# Grid lines closer than this (device pixels) are skipped
MIN_GRID_SPACING_PX = 4.0


@dataclass(frozen=True)
class RenderStyle:
    """Colors and stroke widths for the sheet canvas.

    Attributes:
        canvas_color: Area around the sheet.
        sheet_color: Sheet background.
        sheet_border: Outer sheet border.
        sheet_inner_border: Subtle inner border.
        grid_color: Snap grid lines.
        label_color: Sheet label above the sheet.
        box_fill: Padded box fill.
        box_fill_selected: Padded box fill when selected.
        box_outline: Padded box outline.
        box_outline_selected: Padded box outline when selected.
        placeholder_color: Artwork placeholder fill.
        marquee_fill: Marquee rectangle fill.
        marquee_outline: Marquee rectangle outline.
        font_size: Label font size in CSS pixels.
    """

    canvas_color: Color = (0, 0, 0, 0)
    sheet_color: Color = (20, 22, 28, 242)
    sheet_border: Color = (255, 255, 255, 77)
    sheet_inner_border: Color = (255, 255, 255, 26)
    grid_color: Color = (255, 255, 255, 13)
    label_color: Color = (255, 255, 255, 153)
    box_fill: Color = (255, 255, 255, 20)
    box_fill_selected: Color = (255, 255, 255, 38)
    box_outline: Color = (255, 255, 255, 77)
    box_outline_selected: Color = (255, 255, 255, 153)
    placeholder_color: Color = (100, 100, 100, 77)
    marquee_fill: Color = (80, 160, 255, 40)
    marquee_outline: Color = (80, 160, 255, 200)
    font_size: int = 12


class SheetRenderer:
    """Draws the sheet, snap grid, instances and marquee with Pillow."""

    def __init__(self, style: RenderStyle | None = None, deadspace: float = 0.157) -> None:
        """Initialize the renderer.

        Args:
            style: Visual styling. Uses defaults if not provided.
            deadspace: Margin drawn around every instance, in inches.
        """
        self.style = style or RenderStyle()
        self.deadspace = deadspace
        self._font: ImageFont.FreeTypeFont | ImageFont.ImageFont | None = None

    def render(
        self,
        state: GangBuilderState,
        viewport: Viewport,
        *,
        marquee: Box | None = None,
        images: ImageCache | None = None,
    ) -> Image.Image:
        """Render one frame.

        Args:
            state: Snapshot to draw.
            viewport: Zoom, canvas size and transforms.
            marquee: In-progress selection rectangle in screen pixels.
            images: Artwork cache; None draws placeholders only.

        Returns:
            RGBA image of viewport.backing_size.
        """
        frame = Image.new("RGBA", viewport.backing_size, self.style.canvas_color)
        draw = ImageDraw.Draw(frame, "RGBA")
        dpr = viewport.device_pixel_ratio

        ox, oy = viewport.sheet_origin
        sheet_w, sheet_h = viewport.sheet_size_px
        sheet_rect = (ox * dpr, oy * dpr, (ox + sheet_w) * dpr, (oy + sheet_h) * dpr)

        draw.rectangle(sheet_rect, fill=self.style.sheet_color)
        self._draw_grid(draw, state, viewport, sheet_rect)
        draw.rectangle(sheet_rect, outline=self.style.sheet_border, width=max(1, round(2 * dpr)))
        inset = max(1, round(dpr))
        draw.rectangle(
            (
                sheet_rect[0] + inset,
                sheet_rect[1] + inset,
                sheet_rect[2] - inset,
                sheet_rect[3] - inset,
            ),
            outline=self.style.sheet_inner_border,
            width=1,
        )
        font = self._get_font()
        label = viewport.sheet.label
        label_w = draw.textlength(label, font=font)
        draw.text(
            (
                (sheet_rect[0] + sheet_rect[2] - label_w) / 2,
                sheet_rect[1] - 10 * dpr - self.style.font_size,
            ),
            label,
            fill=self.style.label_color,
            font=font,
        )

        selected = set(state.selected_instance_ids)
        for instance in state.instances:
            design = state.design(instance.design_id)
            if design is None:
                continue
            artwork = images.get(design.id, design.image_ref) if images is not None else None
            self._draw_instance(
                frame, draw, instance, viewport, instance.id in selected, artwork
            )

        if marquee is not None:
            draw.rectangle(
                (
                    marquee.x * dpr,
                    marquee.y * dpr,
                    marquee.right * dpr,
                    marquee.bottom * dpr,
                ),
                fill=self.style.marquee_fill,
                outline=self.style.marquee_outline,
                width=1,
            )
        return frame

    def _draw_grid(
        self,
        draw: ImageDraw.ImageDraw,
        state: GangBuilderState,
        viewport: Viewport,
        sheet_rect: tuple[float, float, float, float],
    ) -> None:
        if state.snap_increment <= 0:
            return
        spacing = state.snap_increment * viewport.pixels_per_inch * viewport.device_pixel_ratio
        if spacing < MIN_GRID_SPACING_PX:
            logger.debug("Snap grid too dense to draw (%.2f px)", spacing)
            return
        left, top, right, bottom = sheet_rect
        x = left
        while x < right:
            draw.line([(x, top), (x, bottom)], fill=self.style.grid_color, width=1)
            x += spacing
        y = top
        while y < bottom:
            draw.line([(left, y), (right, y)], fill=self.style.grid_color, width=1)
            y += spacing

    def _draw_instance(
        self,
        frame: Image.Image,
        draw: ImageDraw.ImageDraw,
        instance: PlacedInstance,
        viewport: Viewport,
        is_selected: bool,
        artwork: Image.Image | None,
    ) -> None:
        dpr = viewport.device_pixel_ratio
        box = viewport.box_to_screen(padded_box(instance, self.deadspace))
        draw.rectangle(
            (box.x * dpr, box.y * dpr, box.right * dpr, box.bottom * dpr),
            fill=self.style.box_fill_selected if is_selected else self.style.box_fill,
            outline=self.style.box_outline_selected if is_selected else self.style.box_outline,
            width=max(1, round((2 if is_selected else 1) * dpr)),
        )

        # Artwork rectangle after rotation, centered on the padded box
        cx, cy = box.center
        ppi = viewport.pixels_per_inch * dpr
        art_w = instance.width_in * ppi
        art_h = instance.height_in * ppi
        if instance.rotation.swaps_axes:
            art_w, art_h = art_h, art_w
        left = cx * dpr - art_w / 2
        top = cy * dpr - art_h / 2

        size = (max(1, round(art_w)), max(1, round(art_h)))
        if artwork is None:
            draw.rectangle(
                (left, top, left + art_w, top + art_h),
                fill=self.style.placeholder_color,
            )
            return

        if instance.rotation.swaps_axes:
            # Quarter turn clockwise on screen
            scaled = artwork.resize((size[1], size[0])).transpose(Image.Transpose.ROTATE_270)
        else:
            scaled = artwork.resize(size)
        frame.alpha_composite(scaled, dest=(round(left), round(top)))

    def _get_font(self) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
        """Get the label font, falling back to Pillow's default."""
        if self._font is not None:
            return self._font
        try:
            self._font = ImageFont.truetype("DejaVuSans.ttf", self.style.font_size)
        except OSError:
            try:
                self._font = ImageFont.truetype("Arial.ttf", self.style.font_size)
            except OSError:
                logger.debug("No TrueType font available; using default font")
                self._font = ImageFont.load_default()
        return self._font
