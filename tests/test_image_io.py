import io

import pytest
from PIL import Image

from circle_crop_tool.image_io import (
    circular_mask, cropped_filename, encode_jpeg, get_image_size, open_image, render_crop, unique_path,
)
from circle_crop_tool.models import SourceRect


def _png_bytes(img):
    buf = io.BytesIO()
    img.save(buf, "PNG")
    return buf.getvalue()


def test_open_image_from_path_and_bytes(tmp_path):
    src = Image.new("RGB", (64, 48), (10, 200, 10))
    path = tmp_path / "photo.png"
    src.save(path)
    assert open_image(path).size == (64, 48)
    assert open_image(_png_bytes(src)).size == (64, 48)
    assert get_image_size(path) == (64, 48)


def test_open_image_applies_exif_orientation():
    src = Image.new("RGB", (80, 40), (200, 10, 10))
    exif = Image.Exif()
    exif[0x0112] = 6  # rotated 90° clockwise
    buf = io.BytesIO()
    src.save(buf, "JPEG", exif=exif)
    assert open_image(buf.getvalue()).size == (40, 80)


def test_open_image_rejects_garbage():
    with pytest.raises(Exception):
        open_image(b"not an image")


def test_render_crop_samples_box():
    src = Image.new("RGB", (200, 100), (0, 0, 255))
    src.paste((255, 0, 0), (100, 0, 200, 100))
    out = render_crop(src, SourceRect(100, 0, 100, 100), 50)
    assert out.size == (50, 50)
    assert out.mode == "RGB"
    assert out.getpixel((25, 25)) == (255, 0, 0)


def test_render_crop_zero_area_is_blank():
    out = render_crop(Image.new("RGB", (10, 10)), SourceRect(0, 0, 0, 0), 30)
    assert out.size == (30, 30)


def test_encode_jpeg_handles_alpha():
    blob = encode_jpeg(Image.new("RGBA", (30, 30), (1, 2, 3, 128)), quality=82)
    assert blob[:2] == b"\xff\xd8"
    assert Image.open(io.BytesIO(blob)).size == (30, 30)


def test_circular_mask():
    mask = circular_mask(100)
    assert mask.mode == "L"
    assert mask.getpixel((50, 50)) == 255
    assert mask.getpixel((0, 0)) == 0


def test_cropped_filename():
    name = cropped_filename()
    assert name.startswith("cropped-") and name.endswith(".jpg")
    assert name[len("cropped-"):-len(".jpg")].isdigit()


def test_unique_path(tmp_path):
    target = tmp_path / "cropped-1.jpg"
    assert unique_path(target) == target
    target.write_bytes(b"x")
    assert unique_path(target) == tmp_path / "cropped-1-01.jpg"
    (tmp_path / "cropped-1-01.jpg").write_bytes(b"x")
    assert unique_path(target) == tmp_path / "cropped-1-02.jpg"
