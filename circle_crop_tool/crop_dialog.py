"""
Crop dialog: the control a caller opens to turn a photo into a circular avatar.

Takes an image source (file path or in-memory bytes).  On *Use Photo* it
emits ``cropped(bytes)`` with a JPEG blob of ``CROP_SIZE`` x ``CROP_SIZE``
pixels and accepts; on *Cancel* (or closing the window) it emits
``cancelled()`` and rejects.  The blob is also available via
``cropped_blob()`` after ``exec()`` returns.
"""

import logging
from pathlib import Path

from PIL import Image
from PyQt6.QtWidgets import QDialog, QVBoxLayout, QHBoxLayout, QPushButton, QLabel, QWidget
from PyQt6.QtCore import Qt, pyqtSignal

from circle_crop_tool.crop_widget import CircleCropWidget, ImageLoaderThread, pil_to_qpixmap
from circle_crop_tool.session import CropSession, CropState
from circle_crop_tool.settings import CropSettings

logger = logging.getLogger(__name__)


class CropDialog(QDialog):
    """Modal pan/zoom cropper with Cancel / Use Photo buttons."""

    cropped = pyqtSignal(bytes)
    cancelled = pyqtSignal()

    def __init__(self, source: Path | bytes, settings: CropSettings | None = None,
                 parent: QWidget | None = None):
        super().__init__(parent)
        self.setWindowTitle("Crop Photo")
        self.setMinimumWidth(420)

        self._session = CropSession(settings)
        self._blob: bytes | None = None
        self._loader: ImageLoaderThread | None = None

        layout = QVBoxLayout(self)

        hint = QLabel("Drag to reposition • Scroll to zoom")
        hint.setAlignment(Qt.AlignmentFlag.AlignCenter)
        hint.setStyleSheet("color: #999;")
        layout.addWidget(hint)

        self._crop_widget = CircleCropWidget(self._session)
        self._crop_widget.set_message("Loading image…")
        layout.addWidget(self._crop_widget, stretch=1)

        buttons = QHBoxLayout()
        self._btn_cancel = QPushButton("Cancel")
        self._btn_cancel.clicked.connect(self.reject)
        buttons.addWidget(self._btn_cancel)
        self._btn_use = QPushButton("Use Photo")
        self._btn_use.setDefault(True)
        self._btn_use.setEnabled(False)
        self._btn_use.clicked.connect(self._on_use_photo)
        buttons.addWidget(self._btn_use)
        layout.addLayout(buttons)

        self._start_loading(source)

    def cropped_blob(self) -> bytes | None:
        return self._blob

    # =========================================================================
    # Loading
    # =========================================================================

    def _start_loading(self, source: Path | bytes):
        token = self._session.begin_loading()
        self._loader = ImageLoaderThread(source, self)
        self._loader.loaded.connect(lambda img, t=token: self._on_image_loaded(t, img))
        self._loader.error.connect(self._on_image_load_error)
        self._loader.start()

    def _on_image_loaded(self, token: int, image: Image.Image):
        """Called when background decoding completes."""
        if not self._session.image_loaded(token, image):
            return  # Dialog dismissed or a newer image replaced this one
        self._crop_widget.set_image(pil_to_qpixmap(image))
        self._btn_use.setEnabled(True)
        self._crop_widget.setFocus()

    def _on_image_load_error(self, error: str):
        """Called when background decoding fails; the dialog stays in its loading view."""
        if self._session.closed:
            return
        logger.warning("Failed to load image for cropping: %s", error)
        self._crop_widget.set_message(f"Failed to load image: {error}")

    # =========================================================================
    # Result
    # =========================================================================

    def _on_use_photo(self):
        if self._session.state != CropState.READY:
            return
        blob = self._session.crop()
        if blob is None:
            return
        self._blob = blob
        self.cropped.emit(blob)
        self.accept()

    def reject(self):
        self.cancelled.emit()
        super().reject()

    def done(self, result: int):
        self._session.close()
        self._crop_widget.clear()
        self._btn_use.setEnabled(False)
        if self._loader is not None:
            try:
                self._loader.loaded.disconnect()
                self._loader.error.disconnect()
            except (TypeError, RuntimeError):
                pass  # Already disconnected or destroyed
            # Must finish before its parent dialog is deleted
            self._loader.wait()
        super().done(result)
