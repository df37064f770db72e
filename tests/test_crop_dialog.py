import io
import os
import time

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PIL import Image
from PyQt6.QtCore import QEvent, QPoint, QPointF, Qt
from PyQt6.QtGui import QKeyEvent, QWheelEvent
from PyQt6.QtWidgets import QApplication, QWidget

from circle_crop_tool import main_window as main_window_module
from circle_crop_tool.crop_dialog import CropDialog
from circle_crop_tool.crop_widget import CircleCropWidget
from circle_crop_tool.main_window import MainWindow
from circle_crop_tool.session import CropSession, CropState
from circle_crop_tool.settings import CropSettings


@pytest.fixture(scope="module")
def qapp():
    return QApplication.instance() or QApplication([])


def _wait_until(condition, timeout=10.0):
    deadline = time.monotonic() + timeout
    while not condition():
        assert time.monotonic() < deadline, "timed out waiting for the image loader"
        QApplication.processEvents()
        time.sleep(0.01)


def _png_bytes(width, height):
    buf = io.BytesIO()
    Image.new("RGB", (width, height), (30, 120, 60)).save(buf, "PNG")
    return buf.getvalue()


def _ready_widget(width, height):
    session = CropSession(CropSettings())
    token = session.begin_loading()
    session.image_loaded(token, Image.new("RGB", (width, height)))
    return session, CircleCropWidget(session)


def _wheel(widget, dy):
    event = QWheelEvent(
        QPointF(10, 10), QPointF(10, 10), QPoint(0, 0), QPoint(0, dy),
        Qt.MouseButton.NoButton, Qt.KeyboardModifier.NoModifier,
        Qt.ScrollPhase.NoScrollPhase, False,
    )
    widget.wheelEvent(event)


def _key(widget, key, modifiers=Qt.KeyboardModifier.NoModifier):
    widget.keyPressEvent(QKeyEvent(QEvent.Type.KeyPress, key.value, modifiers))


# =============================================================================
# Dialog contract
# =============================================================================

def test_use_photo_emits_square_jpeg(qapp):
    dialog = CropDialog(_png_bytes(1200, 900), CropSettings())
    received, cancelled = [], []
    dialog.cropped.connect(received.append)
    dialog.cancelled.connect(lambda: cancelled.append(True))

    _wait_until(dialog._btn_use.isEnabled)
    dialog._btn_use.click()

    assert len(received) == 1 and not cancelled
    assert dialog.cropped_blob() == received[0]
    img = Image.open(io.BytesIO(received[0]))
    assert img.format == "JPEG"
    assert img.size == (300, 300)


def test_cancel_emits_cancelled_and_releases_image(qapp):
    host = QWidget()
    dialog = CropDialog(_png_bytes(4000, 3000), CropSettings(), host)
    received, cancelled = [], []
    dialog.cropped.connect(received.append)
    dialog.cancelled.connect(lambda: cancelled.append(True))

    _wait_until(dialog._crop_widget.has_image)
    dialog.reject()

    assert cancelled == [True] and not received
    assert dialog.cropped_blob() is None
    assert not dialog._crop_widget.has_image()
    assert dialog._session.state == CropState.EMPTY


def test_load_finishing_after_dismissal_is_ignored(qapp):
    dialog = CropDialog(_png_bytes(800, 600), CropSettings())
    dialog.reject()

    # The first load of a dialog carries token 1
    dialog._on_image_loaded(1, Image.new("RGB", (800, 600)))

    assert not dialog._crop_widget.has_image()
    assert not dialog._btn_use.isEnabled()
    assert dialog._session.state == CropState.EMPTY


def test_main_window_deletes_dismissed_dialogs(qapp, config_home, tmp_path, monkeypatch):
    class AutoCropDialog(CropDialog):
        def exec(self):
            _wait_until(self._btn_use.isEnabled)
            self._btn_use.click()
            return self.result()

    monkeypatch.setattr(main_window_module, "CropDialog", AutoCropDialog)
    photo = tmp_path / "photo.png"
    photo.write_bytes(_png_bytes(1000, 800))

    window = MainWindow()
    for _ in range(3):
        window.open_photo(photo)
    QApplication.sendPostedEvents(None, QEvent.Type.DeferredDelete.value)

    assert window.findChildren(CropDialog) == []
    saved = sorted(tmp_path.glob("cropped-*.jpg"))
    assert len(saved) == 3
    assert Image.open(saved[0]).size == (300, 300)


# =============================================================================
# Widget input
# =============================================================================

def test_wheel_up_zooms_in(qapp):
    session, widget = _ready_widget(1000, 800)
    start = session.viewport.scale
    _wheel(widget, 120)
    assert session.viewport.scale == pytest.approx(start * 1.05)
    _wheel(widget, -120)
    _wheel(widget, -120)
    assert session.viewport.scale < start


def test_horizontal_wheel_does_not_zoom(qapp):
    session, widget = _ready_widget(1000, 800)
    start = session.viewport.scale
    _wheel(widget, 0)
    assert session.viewport.scale == start


def test_keys_zoom_and_nudge_within_limits(qapp):
    session, widget = _ready_widget(800, 300)
    for _ in range(20):
        _key(widget, Qt.Key.Key_Minus)
    assert session.viewport.scale == session.min_scale == 1.0

    _key(widget, Qt.Key.Key_Left)
    assert session.viewport.x == 1
    for _ in range(40):
        _key(widget, Qt.Key.Key_Left, Qt.KeyboardModifier.ShiftModifier)
    assert session.viewport.x == 250
    _key(widget, Qt.Key.Key_Up)
    assert session.viewport.y == 0

    _key(widget, Qt.Key.Key_Plus)
    assert session.viewport.scale == pytest.approx(1.05)


def test_second_finger_ends_touch_drag(qapp):
    session, widget = _ready_widget(800, 300)
    widget._touch(QEvent.Type.TouchBegin, [QPointF(0, 0)])
    widget._touch(QEvent.Type.TouchUpdate, [QPointF(10, 0)])
    assert session.viewport.x == 10

    widget._touch(QEvent.Type.TouchUpdate, [QPointF(10, 0), QPointF(200, 100)])
    assert session.state == CropState.READY

    # Back to one finger: the drag restarts where that finger is
    widget._touch(QEvent.Type.TouchUpdate, [QPointF(50, 0)])
    assert session.viewport.x == 10
    widget._touch(QEvent.Type.TouchUpdate, [QPointF(55, 0)])
    assert session.viewport.x == 15

    widget._touch(QEvent.Type.TouchEnd, [])
    assert session.state == CropState.READY
