"""Interactive sheet canvas for gangsheet.

Key Components:
    - Viewport: zoom, canvas sizing and screen <-> sheet transforms
    - ImageCache: asynchronous artwork decoding keyed by design id
    - SheetRenderer: Pillow frame rendering of a snapshot
    - InteractionController: pointer/keyboard gestures driving the store
"""

from gangsheet.canvas.controller import GesturePhase, InteractionController, nudge_offsets
from gangsheet.canvas.images import AssetLoadError, ImageCache, decode_image_ref
from gangsheet.canvas.renderer import RenderStyle, SheetRenderer
from gangsheet.canvas.viewport import DEFAULT_ZOOM_BY_SHEET, Viewport, default_zoom_for

__all__ = [
    "DEFAULT_ZOOM_BY_SHEET",
    "AssetLoadError",
    "GesturePhase",
    "ImageCache",
    "InteractionController",
    "RenderStyle",
    "SheetRenderer",
    "Viewport",
    "decode_image_ref",
    "default_zoom_for",
    "nudge_offsets",
]
