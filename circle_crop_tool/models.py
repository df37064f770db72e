"""
Data models and crop-geometry utilities.

The viewport transform places the source image centered in the container,
offset by ``(x, y)`` container pixels and scaled by ``scale`` (display pixels
per natural pixel).  The crop circle never moves: it is centered in the
container.  The helpers below keep that circle on image content and map it
back into source-pixel space for export.
"""

from dataclasses import dataclass, field

from PIL import Image

from circle_crop_tool.config import CROP_SIZE, DEFAULT_CONTAINER_HEIGHT, DEFAULT_CONTAINER_WIDTH


# =============================================================================
# Data classes
# =============================================================================
@dataclass(frozen=True)
class SourceImage:
    """A decoded bitmap and its natural dimensions."""
    width: int = 0
    height: int = 0
    image: Image.Image | None = field(default=None, compare=False, repr=False)

    @classmethod
    def from_image(cls, image: Image.Image) -> "SourceImage":
        return cls(image.width, image.height, image)


@dataclass
class ViewportState:
    """Display transform: scale plus image offset from the container center."""
    scale: float = 1.0
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class CropRegion:
    """The fixed crop circle, centered in the container."""
    diameter: int = CROP_SIZE

    @property
    def radius(self) -> float:
        return self.diameter / 2


@dataclass
class Container:
    """On-screen box hosting the image."""
    width: int = DEFAULT_CONTAINER_WIDTH
    height: int = DEFAULT_CONTAINER_HEIGHT

    @property
    def center(self) -> tuple[float, float]:
        return self.width / 2, self.height / 2


@dataclass
class SourceRect:
    """Sampling rectangle in source-image pixel coordinates."""
    x: float = 0.0
    y: float = 0.0
    w: float = 0.0
    h: float = 0.0

    @property
    def box(self) -> tuple[float, float, float, float]:
        """(left, upper, right, lower) as used by Pillow."""
        return self.x, self.y, self.x + self.w, self.y + self.h


# =============================================================================
# Geometry
# =============================================================================
def calculate_min_scale(img_w: int, img_h: int, crop_size: int = CROP_SIZE) -> float:
    """Smallest scale at which the crop circle fits the image's shorter side.

    Returns 1.0 while the natural dimensions are unknown (zero).
    """
    if not img_w or not img_h:
        return 1.0
    return crop_size / min(img_w, img_h)


def max_offsets(scale: float, img_w: int, img_h: int, crop_size: int = CROP_SIZE) -> tuple[float, float]:
    """Largest |x| and |y| that keep the crop circle inside the displayed image."""
    radius = crop_size / 2
    max_x = max(0.0, img_w * scale / 2 - radius)
    max_y = max(0.0, img_h * scale / 2 - radius)
    return max_x, max_y


def constrain_position(
    x: float, y: float, scale: float, img_w: int, img_h: int, crop_size: int = CROP_SIZE,
) -> tuple[float, float]:
    """Clamp a proposed image offset so the crop circle stays on the image."""
    if not img_w or not img_h:
        return x, y
    max_x, max_y = max_offsets(scale, img_w, img_h, crop_size)
    return max(-max_x, min(max_x, x)), max(-max_y, min(max_y, y))


def initial_scale(min_scale: float, margin: float, max_zoom: float) -> float:
    """Scale applied right after load: a margin above the minimum, within zoom limits."""
    return max(min_scale, min(max(min_scale, max_zoom), min_scale * margin))


def zoom_scale(scale: float, delta: float, min_scale: float, step: float, max_zoom: float) -> float:
    """Apply one zoom step.

    Positive *delta* zooms out, negative zooms in, zero leaves *scale* alone.
    The result stays in ``[min_scale, max(min_scale, max_zoom)]``.
    """
    if delta > 0:
        scale *= 1 - step
    elif delta < 0:
        scale *= 1 + step
    upper = max(min_scale, max_zoom)
    return max(min_scale, min(upper, scale))


def crop_source_rect(
    viewport: ViewportState, container: Container, img_w: int, img_h: int,
    crop_size: int = CROP_SIZE,
) -> SourceRect:
    """Map the crop circle's bounding square into source-pixel coordinates.

    The result is clamped to ``[0, img_w] x [0, img_h]``: the origin is shifted
    back inside the image first, then the size shrinks if it still overflows.
    """
    scale = viewport.scale
    cx, cy = container.center

    img_left = cx + viewport.x - img_w * scale / 2
    img_top = cy + viewport.y - img_h * scale / 2
    crop_left = cx - crop_size / 2
    crop_top = cy - crop_size / 2

    src_x = (crop_left - img_left) / scale
    src_y = (crop_top - img_top) / scale
    size = crop_size / scale

    x = max(0.0, min(img_w - size, src_x))
    y = max(0.0, min(img_h - size, src_y))
    w = max(0.0, min(size, img_w - x))
    h = max(0.0, min(size, img_h - y))
    return SourceRect(x, y, w, h)
