"""
Crop session: viewport state machine for one cropping run (Qt-free).

A session moves through EMPTY -> LOADING -> READY <-> DRAGGING -> CROPPED.
Image decoding is the only asynchronous step; the caller starts it with
``begin_loading()`` and reports completion with ``image_loaded()``, passing
the token it was given.  Completions for an older token, or arriving after
``close()``, are dropped, so a dismissed dialog is never updated by a late
loader.

Pan and zoom are only honoured in READY and DRAGGING, and ``crop()`` only in
READY.  Anything else is a logged no-op: no interaction here may abort the
user's session.
"""

import logging
from enum import Enum

from PIL import Image

from circle_crop_tool.config import CROP_SIZE
from circle_crop_tool.image_io import encode_jpeg, render_crop
from circle_crop_tool.models import (
    Container, CropRegion, SourceImage, SourceRect, ViewportState,
    calculate_min_scale, constrain_position, crop_source_rect, initial_scale, zoom_scale,
)
from circle_crop_tool.settings import CropSettings

logger = logging.getLogger(__name__)


class CropState(Enum):
    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"
    DRAGGING = "dragging"
    CROPPED = "cropped"


_INTERACTIVE = (CropState.READY, CropState.DRAGGING)


class CropSession:
    """Owns the viewport of one crop run."""

    def __init__(self, settings: CropSettings | None = None, crop_size: int = CROP_SIZE):
        self.settings = settings or CropSettings()
        self.region = CropRegion(crop_size)
        self.container = Container()
        self.source = SourceImage()
        self.viewport = ViewportState()
        self.state = CropState.EMPTY

        self._load_token = 0
        self._closed = False
        # Pointer minus image offset, captured at drag start
        self._drag_base = (0.0, 0.0)

    # --- Derived values ---

    @property
    def min_scale(self) -> float:
        return calculate_min_scale(self.source.width, self.source.height, self.region.diameter)

    @property
    def is_interactive(self) -> bool:
        return self.state in _INTERACTIVE

    @property
    def closed(self) -> bool:
        return self._closed

    # --- Loading ---

    def begin_loading(self) -> int:
        """Enter LOADING for a new source and return its load token."""
        self._load_token += 1
        self.source = SourceImage()
        self.viewport = ViewportState()
        self.state = CropState.LOADING
        return self._load_token

    def image_loaded(self, token: int, image: Image.Image) -> bool:
        """Install a decoded image.  Returns False if the load is no longer relevant."""
        if self._closed or token != self._load_token or self.state != CropState.LOADING:
            logger.debug("Ignoring stale image load (token %s, current %s)", token, self._load_token)
            return False

        self.source = SourceImage.from_image(image)
        if not self.source.width or not self.source.height:
            logger.warning("Image has degenerate dimensions %sx%s", self.source.width, self.source.height)

        min_scale = self.min_scale
        self.viewport = ViewportState(
            scale=initial_scale(min_scale, self.settings.zoom_margin, self.settings.max_zoom),
        )
        self.state = CropState.READY
        logger.debug(
            "Loaded %sx%s image, min scale %.4f, initial scale %.4f",
            self.source.width, self.source.height, min_scale, self.viewport.scale,
        )
        return True

    # --- Container ---

    def resize_container(self, width: int, height: int) -> None:
        self.container.width = width
        self.container.height = height

    # --- Pan ---

    def _set_position(self, x: float, y: float) -> None:
        self.viewport.x, self.viewport.y = constrain_position(
            x, y, self.viewport.scale,
            self.source.width, self.source.height, self.region.diameter,
        )

    def begin_drag(self, px: float, py: float) -> bool:
        if self.state != CropState.READY:
            logger.debug("Drag start ignored in state %s", self.state.name)
            return False
        self._drag_base = (px - self.viewport.x, py - self.viewport.y)
        self.state = CropState.DRAGGING
        return True

    def drag_to(self, px: float, py: float) -> bool:
        if self.state != CropState.DRAGGING:
            return False
        bx, by = self._drag_base
        self._set_position(px - bx, py - by)
        return True

    def end_drag(self) -> None:
        if self.state == CropState.DRAGGING:
            self.state = CropState.READY

    def pan_by(self, dx: float, dy: float) -> bool:
        """Move the image by a relative offset (keyboard nudges)."""
        if not self.is_interactive:
            logger.debug("Pan ignored in state %s", self.state.name)
            return False
        self._set_position(self.viewport.x + dx, self.viewport.y + dy)
        return True

    # --- Zoom ---

    def zoom(self, delta: float) -> bool:
        """One zoom step: positive *delta* zooms out, negative zooms in."""
        if not self.is_interactive:
            logger.debug("Zoom ignored in state %s", self.state.name)
            return False
        old = self.viewport.scale
        self.viewport.scale = zoom_scale(
            old, delta, self.min_scale, self.settings.zoom_step, self.settings.max_zoom,
        )
        if self.viewport.scale != old:
            # A smaller scale narrows the legal pan range
            self._set_position(self.viewport.x, self.viewport.y)
        return self.viewport.scale != old

    # --- Crop ---

    def source_rect(self) -> SourceRect:
        return crop_source_rect(
            self.viewport, self.container,
            self.source.width, self.source.height, self.region.diameter,
        )

    def crop(self) -> bytes | None:
        """Rasterize the crop circle's square to a JPEG blob, or None if not READY."""
        if self.state != CropState.READY or self.source.image is None:
            logger.warning("Crop rejected in state %s", self.state.name)
            return None
        rect = self.source_rect()
        raster = render_crop(self.source.image, rect, self.region.diameter)
        blob = encode_jpeg(raster, self.settings.jpeg_quality)
        self.state = CropState.CROPPED
        logger.info(
            "Cropped source rect (%.1f, %.1f, %.1f, %.1f) to %dx%d JPEG (%d bytes)",
            rect.x, rect.y, rect.w, rect.h, self.region.diameter, self.region.diameter, len(blob),
        )
        return blob

    # --- Teardown ---

    def close(self) -> None:
        """Dismiss the session; pending loads become stale."""
        self._closed = True
        self._load_token += 1
        self.source = SourceImage()
        self.viewport = ViewportState()
        self.state = CropState.EMPTY
