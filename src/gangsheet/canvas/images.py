"""Asynchronous artwork cache for the sheet renderer.

Decoding is the only asynchronous step in the builder. A cache miss starts
an asyncio task that decodes the image in a worker thread; the renderer
draws a placeholder until the task finishes and the on_loaded callback
requests a fresh frame. Results for designs that are no longer referenced
are dropped.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import io
import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from urllib.parse import unquote_to_bytes

from PIL import Image

logger = logging.getLogger(__name__)


class AssetLoadError(Exception):
    """Raised when artwork cannot be read or decoded.

    Attributes:
        image_ref: The data URL or path that failed (truncated in messages).
        cause: Original exception.
    """

    def __init__(self, image_ref: str, cause: Exception | None = None) -> None:
        self.image_ref = image_ref
        self.cause = cause
        shown = image_ref if len(image_ref) <= 64 else image_ref[:61] + "..."
        message = f"Failed to load artwork {shown!r}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


def _data_url_bytes(image_ref: str) -> bytes:
    header, sep, payload = image_ref.partition(",")
    if not sep:
        raise ValueError("data URL has no payload")
    if header.endswith(";base64"):
        return base64.b64decode(payload, validate=True)
    return unquote_to_bytes(payload)


def decode_image_ref(image_ref: str) -> Image.Image:
    """Decode a ``data:`` URL or an image file path into an RGBA image.

    Args:
        image_ref: Data URL or filesystem path.

    Returns:
        Fully loaded RGBA image.

    Raises:
        AssetLoadError: If the reference cannot be read or decoded.
    """
    try:
        if image_ref.startswith("data:"):
            source: io.BytesIO | Path = io.BytesIO(_data_url_bytes(image_ref))
        else:
            source = Path(image_ref)
        with Image.open(source) as img:
            return img.convert("RGBA")
    except (OSError, ValueError, binascii.Error, Image.DecompressionBombError) as e:
        raise AssetLoadError(image_ref, e) from e


class ImageCache:
    """Decoded artwork keyed by design id.

    Usage:
        cache = ImageCache(on_loaded=lambda design_id: controller.render())
        cache.retain(d.id for d in state.design_files)
        image = cache.get(design.id, design.image_ref)  # None until loaded
    """

    def __init__(
        self,
        on_loaded: Callable[[str], None] | None = None,
        loader: Callable[[str], Image.Image] = decode_image_ref,
    ) -> None:
        """Initialize the cache.

        Args:
            on_loaded: Called with the design id after an image is stored.
            loader: Blocking decoder run in a worker thread.
        """
        self.on_loaded = on_loaded
        self._loader = loader
        self._images: dict[str, Image.Image] = {}
        self._failed: set[str] = set()
        self._pending: dict[str, asyncio.Task[None]] = {}
        self._referenced: set[str] = set()

    def __contains__(self, design_id: object) -> bool:
        return design_id in self._images

    def has_failed(self, design_id: str) -> bool:
        """True if loading this design's artwork failed."""
        return design_id in self._failed

    def is_pending(self, design_id: str) -> bool:
        return design_id in self._pending

    def retain(self, design_ids: Iterable[str]) -> None:
        """Set the designs still in use and evict everything else.

        Loads still in flight for evicted designs finish but are discarded.
        """
        self._referenced = set(design_ids)
        for design_id in list(self._images):
            if design_id not in self._referenced:
                del self._images[design_id]
        self._failed &= self._referenced

    def get(self, design_id: str, image_ref: str) -> Image.Image | None:
        """Return the decoded artwork, scheduling a load on a miss.

        Without a running event loop nothing is scheduled and the caller
        draws a placeholder.
        """
        image = self._images.get(design_id)
        if image is not None:
            return image
        if design_id in self._failed or design_id in self._pending:
            return None
        self._schedule(design_id, image_ref)
        return None

    def _schedule(self, design_id: str, image_ref: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; artwork %s not loaded", design_id)
            return
        self._referenced.add(design_id)
        self._pending[design_id] = loop.create_task(self._load(design_id, image_ref))

    async def _load(self, design_id: str, image_ref: str) -> None:
        try:
            image = await asyncio.to_thread(self._loader, image_ref)
        except Exception as e:
            error = e if isinstance(e, AssetLoadError) else AssetLoadError(image_ref, e)
            logger.warning("%s", error)
            if design_id in self._referenced:
                self._failed.add(design_id)
            return
        finally:
            self._pending.pop(design_id, None)

        if design_id not in self._referenced:
            logger.debug("Dropped artwork for removed design %s", design_id)
            return
        self._images[design_id] = image
        if self.on_loaded is not None:
            self.on_loaded(design_id)

    async def wait_idle(self) -> None:
        """Wait for every load in flight (including ones they trigger)."""
        while self._pending:
            await asyncio.gather(*self._pending.values(), return_exceptions=True)
