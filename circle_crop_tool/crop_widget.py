"""
Interactive circular crop widget and Qt image helpers.

This module contains everything that touches both Qt **and** image display:
``pil_to_qpixmap``, the background ``ImageLoaderThread``, and the
``CircleCropWidget`` editor.  All geometry lives in ``CropSession``; the
widget only translates input events and paints the session's state.
"""

from pathlib import Path

from PIL import Image
from PyQt6.QtWidgets import QWidget, QSizePolicy
from PyQt6.QtCore import Qt, QEvent, QRectF, QPointF, pyqtSignal, QThread
from PyQt6.QtGui import (
    QPainter, QPainterPath, QPixmap, QColor, QPen, QImage,
    QKeyEvent, QMouseEvent, QPaintEvent, QResizeEvent, QWheelEvent,
)

from circle_crop_tool.config import NUDGE_SMALL, NUDGE_LARGE
from circle_crop_tool.image_io import open_image
from circle_crop_tool.session import CropSession, CropState


# =============================================================================
# Qt ↔ PIL helpers
# =============================================================================

def pil_to_qpixmap(pil_img: Image.Image) -> QPixmap:
    """Convert a PIL Image to QPixmap."""
    img_rgba = pil_img.convert("RGBA")
    data = img_rgba.tobytes("raw", "RGBA")
    qimg = QImage(data, img_rgba.width, img_rgba.height, QImage.Format.Format_RGBA8888)
    # QImage does not own *data*; copy before it goes out of scope
    return QPixmap.fromImage(qimg.copy())


# =============================================================================
# Background image loader
# =============================================================================

class ImageLoaderThread(QThread):
    """Background thread that decodes an image from a path or bytes."""
    loaded = pyqtSignal(object)  # PIL.Image.Image
    error = pyqtSignal(str)

    def __init__(self, source: Path | bytes, parent=None):
        super().__init__(parent)
        self._source = source

    def run(self):
        try:
            self.loaded.emit(open_image(self._source))
        except Exception as e:
            self.error.emit(str(e))


# =============================================================================
# Circle Crop Widget — pan/zoom an image under a fixed crop circle
# =============================================================================

class CircleCropWidget(QWidget):
    """Displays the session's image under a fixed circular crop overlay."""

    viewport_changed = pyqtSignal()

    def __init__(self, session: CropSession, parent=None):
        super().__init__(parent)
        self.setMinimumSize(self._min_side(session), self._min_side(session))
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.setAttribute(Qt.WidgetAttribute.WA_AcceptTouchEvents)
        self.setCursor(Qt.CursorShape.SizeAllCursor)

        self._session = session
        self._pixmap: QPixmap | None = None
        self._message = "No image loaded"

    @staticmethod
    def _min_side(session: CropSession) -> int:
        return session.region.diameter + 20

    def set_image(self, pixmap: QPixmap):
        """Set the pixmap to display; the session must already be READY."""
        self._pixmap = pixmap
        self.update()

    def has_image(self) -> bool:
        return self._pixmap is not None

    def clear(self):
        """Drop the displayed pixmap."""
        self._pixmap = None
        self.update()

    def set_message(self, message: str):
        """Text shown while no image is displayed."""
        self._message = message
        self.update()

    # --- Pointer input (mouse and single-finger touch) ---

    def _pointer_pressed(self, pos: QPointF):
        self._session.begin_drag(pos.x(), pos.y())

    def _pointer_moved(self, pos: QPointF):
        if self._session.drag_to(pos.x(), pos.y()):
            self.viewport_changed.emit()
            self.update()

    def _pointer_released(self):
        self._session.end_drag()

    def mousePressEvent(self, event: QMouseEvent):
        if event.button() != Qt.MouseButton.LeftButton:
            return
        self._pointer_pressed(event.position())

    def mouseMoveEvent(self, event: QMouseEvent):
        self._pointer_moved(event.position())

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton:
            self._pointer_released()

    def leaveEvent(self, event):
        self._pointer_released()
        super().leaveEvent(event)

    def event(self, event: QEvent) -> bool:
        etype = event.type()
        if etype in (QEvent.Type.TouchBegin, QEvent.Type.TouchUpdate, QEvent.Type.TouchEnd):
            self._touch(etype, [p.position() for p in event.points()])
            event.accept()
            return True
        return super().event(event)

    def _touch(self, etype: QEvent.Type, positions: list[QPointF]):
        """Single-finger touch pans; a second finger ends the gesture."""
        if etype == QEvent.Type.TouchEnd or len(positions) != 1:
            self._pointer_released()
        elif etype == QEvent.Type.TouchBegin or self._session.state != CropState.DRAGGING:
            # Back to one finger after a multi-touch: restart from here
            self._pointer_pressed(positions[0])
        else:
            self._pointer_moved(positions[0])

    # --- Zoom ---

    def wheelEvent(self, event: QWheelEvent):
        # Wheel up zooms in
        dy = event.angleDelta().y()
        if dy and self._session.zoom(-dy):
            self.viewport_changed.emit()
            self.update()
        event.accept()

    # --- Keyboard nudge and zoom ---

    def keyPressEvent(self, event: QKeyEvent):
        if not self._session.is_interactive:
            super().keyPressEvent(event)
            return
        amount = NUDGE_LARGE if event.modifiers() & Qt.KeyboardModifier.ShiftModifier else NUDGE_SMALL
        key = event.key()
        # Arrows move the crop circle over the image, i.e. the image the other way
        if key == Qt.Key.Key_Left:
            changed = self._session.pan_by(amount, 0)
        elif key == Qt.Key.Key_Right:
            changed = self._session.pan_by(-amount, 0)
        elif key == Qt.Key.Key_Up:
            changed = self._session.pan_by(0, amount)
        elif key == Qt.Key.Key_Down:
            changed = self._session.pan_by(0, -amount)
        elif key in (Qt.Key.Key_Plus, Qt.Key.Key_Equal):
            changed = self._session.zoom(-1)
        elif key == Qt.Key.Key_Minus:
            changed = self._session.zoom(1)
        else:
            super().keyPressEvent(event)
            return

        if changed:
            self.viewport_changed.emit()
            self.update()

    # --- Geometry ---

    def resizeEvent(self, event: QResizeEvent):
        self._session.resize_container(self.width(), self.height())
        super().resizeEvent(event)

    def _image_display_rect(self) -> QRectF:
        session = self._session
        vp = session.viewport
        disp_w = session.source.width * vp.scale
        disp_h = session.source.height * vp.scale
        cx, cy = session.container.center
        return QRectF(cx + vp.x - disp_w / 2, cy + vp.y - disp_h / 2, disp_w, disp_h)

    def _crop_display_rect(self) -> QRectF:
        cx, cy = self._session.container.center
        r = self._session.region.radius
        return QRectF(cx - r, cy - r, 2 * r, 2 * r)

    # --- Painting ---

    def paintEvent(self, event: QPaintEvent):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.fillRect(self.rect(), QColor(30, 30, 30))

        if not self._pixmap or self._session.state not in (CropState.READY, CropState.DRAGGING):
            painter.setPen(QColor(128, 128, 128))
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, self._message)
            painter.end()
            return

        painter.drawPixmap(self._image_display_rect(), self._pixmap, QRectF(self._pixmap.rect()))

        # Dim everything outside the crop circle
        circle = self._crop_display_rect()
        outside = QPainterPath()
        outside.addRect(QRectF(self.rect()))
        hole = QPainterPath()
        hole.addEllipse(circle)
        painter.fillPath(outside.subtracted(hole), QColor(0, 0, 0, 140))

        painter.setPen(QPen(QColor(255, 255, 255), 2))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawEllipse(circle)

        painter.end()
