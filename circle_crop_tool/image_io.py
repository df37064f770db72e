"""
Qt-free image I/O utilities.

Provides helpers to open images (including PSD, file paths or in-memory
bytes), read dimensions without full loading, render and encode the crop,
and generate unique output file paths.
"""

import io
import time
from pathlib import Path

from PIL import Image, ImageDraw, ImageOps
from psd_tools import PSDImage

from circle_crop_tool.config import DEFAULT_JPEG_QUALITY, OUTPUT_PREFIX
from circle_crop_tool.models import SourceRect


def open_image(source: Path | bytes) -> Image.Image:
    """Open an image from a path or raw bytes.

    PSD files are composited with psd-tools; everything else goes through
    Pillow.  EXIF orientation is applied so the natural dimensions are the
    ones the user sees.
    """
    if isinstance(source, (bytes, bytearray)):
        img = Image.open(io.BytesIO(source))
    else:
        path = Path(source)
        if path.suffix.lower() == ".psd":
            return PSDImage.open(str(path)).composite()
        img = Image.open(path)
    img.load()
    return ImageOps.exif_transpose(img)


def get_image_size(path: Path) -> tuple[int, int]:
    """Get image dimensions without fully loading/compositing."""
    if path.suffix.lower() == ".psd":
        psd = PSDImage.open(str(path))
        return psd.width, psd.height
    with Image.open(path) as img:
        return img.size


def render_crop(image: Image.Image, rect: SourceRect, size: int) -> Image.Image:
    """Resample exactly *rect* of *image* into a ``size`` x ``size`` RGB raster.

    A zero-area rectangle (degenerate source) produces a blank raster.
    """
    if rect.w <= 0 or rect.h <= 0:
        return Image.new("RGB", (size, size), (255, 255, 255))
    rgb = image.convert("RGB")
    return rgb.resize((size, size), Image.Resampling.LANCZOS, box=rect.box)


def encode_jpeg(image: Image.Image, quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    """Encode a raster as a JPEG blob."""
    buf = io.BytesIO()
    image.convert("RGB").save(buf, "JPEG", quality=quality, optimize=True)
    return buf.getvalue()


def circular_mask(size: int) -> Image.Image:
    """An ``L`` mask that is opaque inside the inscribed circle."""
    mask = Image.new("L", (size, size), 0)
    ImageDraw.Draw(mask).ellipse((0, 0, size - 1, size - 1), fill=255)
    return mask


def cropped_filename() -> str:
    """File name for a freshly cropped photo, e.g. ``cropped-1760800000000.jpg``."""
    return f"{OUTPUT_PREFIX}-{int(time.time() * 1000)}.jpg"


def unique_path(out_path: Path) -> Path:
    """Return a unique path by appending -01, -02, etc. if file already exists."""
    if not out_path.exists():
        return out_path
    stem = out_path.stem
    suffix = out_path.suffix
    parent = out_path.parent
    counter = 1
    while True:
        candidate = parent / f"{stem}-{counter:02d}{suffix}"
        if not candidate.exists():
            return candidate
        counter += 1
