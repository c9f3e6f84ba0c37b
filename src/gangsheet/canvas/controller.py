"""Pointer and keyboard interaction for the sheet canvas.

The controller turns raw input events into store mutations and renders a
new frame after every committed snapshot. It owns only transient gesture
state (pointer origin, drag origins, marquee corner), which is discarded
when the gesture ends or the pointer leaves the canvas.

Gesture phases:
    IDLE -> POTENTIAL_DRAG     pointer down on an instance
    IDLE -> POTENTIAL_SELECT   pointer down on empty space
    POTENTIAL_DRAG -> DRAGGING once the pointer moves past the threshold
    POTENTIAL_SELECT -> SELECTING once the pointer moves past the threshold
    any -> IDLE                pointer up or pointer leave

A pointer up that never crossed the threshold is treated as a click.
"""

from __future__ import annotations

import math
from enum import Enum

from PIL import Image

from gangsheet.canvas.images import ImageCache
from gangsheet.canvas.renderer import SheetRenderer
from gangsheet.canvas.viewport import Viewport
from gangsheet.config import Settings
from gangsheet.geometry import EPSILON, Box, LayoutValidator, padded_box, padded_box_for, snap
from gangsheet.store import GangBuilderState, GangBuilderStore, InstanceUpdate
from gangsheet.utils.logging import (
    clear_gesture,
    get_logger,
    new_gesture,
    set_correlation_context,
)

logger = get_logger(__name__)

ARROW_KEYS: dict[str, tuple[int, int]] = {
    "ArrowLeft": (-1, 0),
    "ArrowRight": (1, 0),
    "ArrowUp": (0, -1),
    "ArrowDown": (0, 1),
}


class GesturePhase(Enum):
    """Where the current pointer gesture is."""

    IDLE = "idle"
    POTENTIAL_DRAG = "potential_drag"
    DRAGGING = "dragging"
    POTENTIAL_SELECT = "potential_select"
    SELECTING = "selecting"


def nudge_offsets(step: float, radius: float) -> list[tuple[float, float]]:
    """Grid offsets within a radius, nearest first.

    Ties are broken by (dy, dx) so the order is deterministic. The first
    entry is always (0, 0).
    """
    if step <= 0 or radius < 0:
        return [(0.0, 0.0)]
    n = int(math.floor(radius / step + 1e-9))
    offsets = [
        (i * step, j * step)
        for j in range(-n, n + 1)
        for i in range(-n, n + 1)
        if math.hypot(i * step, j * step) <= radius + 1e-9
    ]
    offsets.sort(key=lambda o: (math.hypot(o[0], o[1]), o[1], o[0]))
    return offsets


def _span_hits(lo: float, hi: float, start: float, end: float) -> bool:
    # A zero-length span is a line; it hits only by crossing the interior
    if hi - lo <= EPSILON:
        return start + EPSILON < lo < end - EPSILON
    return lo < end - EPSILON and hi > start + EPSILON


def _marquee_hits(box: Box, area: Box) -> bool:
    """True if the marquee overlaps the box interior; shared edges do not count."""
    return _span_hits(area.x, area.right, box.x, box.right) and _span_hits(
        area.y, area.bottom, box.y, box.bottom
    )


class InteractionController:
    """Drives a GangBuilderStore from pointer, keyboard and zoom input.

    Usage:
        controller = InteractionController(store, Viewport(store.state.sheet_size))
        controller.pointer_down(120, 80)
        controller.pointer_move(180, 80)
        controller.pointer_up(180, 80)
        frame = controller.last_frame
    """

    def __init__(
        self,
        store: GangBuilderStore,
        viewport: Viewport,
        *,
        config: Settings | None = None,
        image_cache: ImageCache | None = None,
        renderer: SheetRenderer | None = None,
    ) -> None:
        """Initialize the controller and subscribe to the store.

        Args:
            store: Store to mutate and observe.
            viewport: Canvas viewport (zoom, size, transforms).
            config: Interaction settings. Defaults to the store's settings.
            image_cache: Artwork cache; one is created if not provided.
            renderer: Frame renderer; one is created if not provided.
        """
        self.store = store
        self.viewport = viewport
        self._settings = config or store.settings
        self._validator = LayoutValidator()
        self.images = image_cache or ImageCache()
        if self.images.on_loaded is None:
            self.images.on_loaded = self._on_image_loaded
        self.renderer = renderer or SheetRenderer(deadspace=store.deadspace)
        self.last_frame: Image.Image | None = None
        self.frames_rendered = 0

        self._reset_gesture()
        self._sheet_id = store.state.selected_sheet_size_id
        set_correlation_context(session_id=store.session_id)
        self._subscription = store.subscribe(self._on_state)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    @property
    def state(self) -> GangBuilderState:
        return self.store.state

    @property
    def phase(self) -> GesturePhase:
        return self._phase

    @property
    def marquee(self) -> Box | None:
        """In-progress marquee in screen pixels, if selecting."""
        if self._phase is not GesturePhase.SELECTING or self._pointer is None:
            return None
        return Box.from_corners(self._down, self._pointer)

    def _on_state(self, state: GangBuilderState) -> None:
        if self._origins:
            # Instances deleted mid-drag stop taking part in it
            live = {inst.id for inst in state.instances}
            self._origins = {k: v for k, v in self._origins.items() if k in live}
        if state.selected_sheet_size_id != self._sheet_id:
            self._sheet_id = state.selected_sheet_size_id
            sheet = state.sheet_size
            if sheet is not None:
                self.viewport.set_sheet(sheet)
        self.images.retain(d.id for d in state.design_files)
        self.render()

    def _on_image_loaded(self, design_id: str) -> None:
        logger.debug("Artwork loaded", design_id=design_id)
        self.render()

    def render(self) -> Image.Image:
        """Draw the latest snapshot and keep it as last_frame."""
        self.last_frame = self.renderer.render(
            self.store.state,
            self.viewport,
            marquee=self.marquee,
            images=self.images,
        )
        self.frames_rendered += 1
        return self.last_frame

    def close(self) -> None:
        """Stop observing the store."""
        self._subscription.unsubscribe()

    # ------------------------------------------------------------------
    # Hit testing
    # ------------------------------------------------------------------

    def hit_test(self, screen_x: float, screen_y: float) -> str | None:
        """Id of the topmost instance whose padded box contains the point."""
        x_in, y_in = self.viewport.to_sheet(screen_x, screen_y)
        for instance in reversed(self.state.instances):
            if padded_box(instance, self.store.deadspace).contains_point(x_in, y_in):
                return instance.id
        return None

    # ------------------------------------------------------------------
    # Pointer gestures
    # ------------------------------------------------------------------

    def _reset_gesture(self) -> None:
        self._phase = GesturePhase.IDLE
        self._down: tuple[float, float] = (0.0, 0.0)
        self._pointer: tuple[float, float] | None = None
        self._hit_id: str | None = None
        self._additive = False
        self._origins: dict[str, tuple[float, float]] = {}

    def _end_gesture(self) -> None:
        had_marquee = self._phase is GesturePhase.SELECTING
        self._reset_gesture()
        clear_gesture()
        if had_marquee:
            self.render()

    def pointer_down(self, x: float, y: float, additive: bool = False) -> None:
        """Start a gesture at a screen position.

        Args:
            x: Screen x in CSS pixels.
            y: Screen y in CSS pixels.
            additive: Modifier held (shift/ctrl/cmd): clicks toggle instead
                of replacing the selection.
        """
        if self._phase is not GesturePhase.IDLE:
            self._end_gesture()
        new_gesture()
        self._down = (x, y)
        self._pointer = (x, y)
        self._additive = additive
        self._hit_id = self.hit_test(x, y)
        self._phase = (
            GesturePhase.POTENTIAL_DRAG
            if self._hit_id is not None
            else GesturePhase.POTENTIAL_SELECT
        )

    def _past_threshold(self, x: float, y: float) -> bool:
        dx = x - self._down[0]
        dy = y - self._down[1]
        return math.hypot(dx, dy) > self._settings.DRAG_THRESHOLD_PX

    def pointer_move(self, x: float, y: float) -> None:
        """Advance the current gesture; ignored when idle."""
        if self._phase is GesturePhase.IDLE:
            return
        self._pointer = (x, y)

        if self._phase is GesturePhase.POTENTIAL_DRAG and self._past_threshold(x, y):
            self._begin_drag()
        elif self._phase is GesturePhase.POTENTIAL_SELECT and self._past_threshold(x, y):
            self._phase = GesturePhase.SELECTING
            logger.debug("Marquee started")
            if not self.store.set_instance_selection([]):
                self.render()
            return

        if self._phase is GesturePhase.DRAGGING:
            self._drag_to(x, y)
        elif self._phase is GesturePhase.SELECTING:
            self.render()

    def _begin_drag(self) -> None:
        hit = self._hit_id
        if hit is None:
            return
        if hit not in self.state.selected_instance_ids:
            if self._additive:
                self.store.toggle_instance_selection(hit)
            else:
                self.store.set_selected_instance(hit)
        # Every delta is applied to these origins, never to live positions
        self._origins = {
            inst.id: (inst.x_in, inst.y_in) for inst in self.state.selected_instances()
        }
        self._phase = GesturePhase.DRAGGING
        logger.debug("Drag started", count=len(self._origins))

    def _drag_to(self, x: float, y: float) -> None:
        dx_in = self.viewport.length_to_inches(x - self._down[0])
        dy_in = self.viewport.length_to_inches(y - self._down[1])
        increment = self.state.snap_increment
        updates = []
        for instance_id, (ox, oy) in self._origins.items():
            new_x = ox + dx_in
            new_y = oy + dy_in
            if increment > 0:
                new_x = snap(new_x, increment)
                new_y = snap(new_y, increment)
            updates.append(InstanceUpdate(id=instance_id, x_in=new_x, y_in=new_y))
        # A rejected frame leaves the group at its last valid position
        self.store.update_instances(updates)

    def pointer_up(self, x: float, y: float) -> None:
        """Finish the gesture: click, drag end or marquee selection."""
        phase = self._phase
        if phase is GesturePhase.IDLE:
            return
        self._pointer = (x, y)

        if phase is GesturePhase.POTENTIAL_DRAG and self._hit_id is not None:
            if self._additive:
                self.store.toggle_instance_selection(self._hit_id)
            else:
                self.store.set_selected_instance(self._hit_id)
        elif phase is GesturePhase.POTENTIAL_SELECT and not self._additive:
            self.store.set_selected_instance(None)
        elif phase is GesturePhase.SELECTING:
            self._select_marquee(Box.from_corners(self._down, (x, y)))
        self._end_gesture()

    def _select_marquee(self, screen_rect: Box) -> None:
        area = self.viewport.box_to_sheet(screen_rect)
        deadspace = self.store.deadspace
        ids = [
            inst.id
            for inst in self.state.instances
            if _marquee_hits(padded_box(inst, deadspace), area)
        ]
        logger.debug("Marquee finished", selected=len(ids))
        self.store.set_instance_selection(ids)

    def pointer_leave(self) -> None:
        """Abandon the gesture without a click; committed moves stay."""
        if self._phase is not GesturePhase.IDLE:
            self._end_gesture()

    # ------------------------------------------------------------------
    # Rotation
    # ------------------------------------------------------------------

    def rotate_selected(self) -> bool:
        """Quarter-turn every selected instance about its own center.

        If the rotated group does not fit where it is, nearby offsets are
        tried nearest first, and the whole group moves by the first offset
        that is valid for all of it. If none is found, nothing changes.

        Returns:
            True if the rotation was committed.
        """
        selected = self.state.selected_instances()
        sheet = self.state.sheet_size
        if not selected or sheet is None:
            return False

        deadspace = self.store.deadspace
        chosen = set(self.state.selected_instance_ids)
        stationary = [
            padded_box(inst, deadspace)
            for inst in self.state.instances
            if inst.id not in chosen
        ]
        offsets = nudge_offsets(
            self._settings.ROTATE_NUDGE_STEP_IN, self._settings.ROTATE_NUDGE_RADIUS_IN
        )
        for dx, dy in offsets:
            moving = [
                padded_box_for(
                    inst.x_in + dx,
                    inst.y_in + dy,
                    inst.width_in,
                    inst.height_in,
                    inst.rotation.toggled(),
                    deadspace,
                )
                for inst in selected
            ]
            if not self._validator.is_valid(moving, stationary, sheet.width_in, sheet.height_in):
                continue
            updates = [
                InstanceUpdate(
                    id=inst.id,
                    x_in=inst.x_in + dx,
                    y_in=inst.y_in + dy,
                    rotation=inst.rotation.toggled(),
                )
                for inst in selected
            ]
            committed = self.store.update_instances(updates)
            logger.debug("Rotated selection", count=len(selected), dx=dx, dy=dy)
            return committed

        logger.debug("Rotation rejected", count=len(selected))
        return False

    # ------------------------------------------------------------------
    # Keyboard
    # ------------------------------------------------------------------

    def key_down(self, key: str) -> bool:
        """Handle a key press.

        Delete/Backspace remove the selection, "r" rotates it, Escape
        cancels the gesture and clears the selection, and arrow keys nudge
        the selection by one snap step (settings.KEY_NUDGE_IN when snapping
        is off).

        Returns:
            True if the key changed the state.
        """
        selected_ids = self.state.selected_instance_ids
        if key in ("Delete", "Backspace"):
            return self.store.delete_instances(selected_ids)
        if key in ("r", "R"):
            return self.rotate_selected()
        if key == "Escape":
            self.pointer_leave()
            return self.store.set_selected_instance(None)
        if key in ARROW_KEYS and selected_ids:
            return self._nudge(*ARROW_KEYS[key])
        return False

    def _nudge(self, sx: int, sy: int) -> bool:
        increment = self.state.snap_increment
        step = increment if increment > 0 else self._settings.KEY_NUDGE_IN
        updates = []
        for inst in self.state.selected_instances():
            new_x = inst.x_in + sx * step
            new_y = inst.y_in + sy * step
            if increment > 0:
                new_x = snap(new_x, increment)
                new_y = snap(new_y, increment)
            updates.append(InstanceUpdate(id=inst.id, x_in=new_x, y_in=new_y))
        before = self.state
        return self.store.update_instances(updates) and self.state is not before

    # ------------------------------------------------------------------
    # Zoom
    # ------------------------------------------------------------------

    def set_zoom(self, zoom: float) -> bool:
        """Set the zoom level; re-renders if it changed."""
        changed = self.viewport.set_zoom(zoom)
        if changed:
            self.render()
        return changed

    def zoom_in(self) -> bool:
        return self.set_zoom(self.viewport.zoom + self._settings.ZOOM_STEP)

    def zoom_out(self) -> bool:
        return self.set_zoom(self.viewport.zoom - self._settings.ZOOM_STEP)

    def resize(
        self,
        container_width: float,
        container_height: float,
        device_pixel_ratio: float | None = None,
    ) -> None:
        """Container resized: recompute the canvas and re-render."""
        self.viewport.resize(container_width, container_height, device_pixel_ratio)
        self.render()
