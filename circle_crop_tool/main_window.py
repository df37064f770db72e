"""
Main application window.

Opens a photo, hands it to ``CropDialog``, previews the result as a round
avatar, and saves the JPEG blob into the output folder.  The current avatar
can be re-cropped from its own bytes, the way an existing profile photo is.
"""

from pathlib import Path

from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QLabel, QFileDialog,
    QMessageBox, QStatusBar, QToolBar,
)
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QKeySequence

from circle_crop_tool.config import CROP_SIZE, IMAGE_EXTENSIONS
from circle_crop_tool.crop_dialog import CropDialog
from circle_crop_tool.crop_widget import pil_to_qpixmap
from circle_crop_tool.image_io import circular_mask, cropped_filename, open_image, unique_path
from circle_crop_tool.settings import load_settings


class MainWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("Circle Crop Tool")
        self.setMinimumSize(480, 480)

        self._settings = load_settings()
        self._output_root: Path | None = None
        self._avatar_blob: bytes | None = None

        self._build_ui()
        self._update_button_states()

    # =========================================================================
    # UI construction
    # =========================================================================

    def _build_ui(self):
        toolbar = QToolBar("Main")
        toolbar.setMovable(False)
        self.addToolBar(toolbar)

        act_open = QAction("📂 Open Photo", self)
        act_open.setShortcut(QKeySequence.StandardKey.Open)
        act_open.triggered.connect(self._select_photo)
        toolbar.addAction(act_open)

        act_output = QAction("💾 Set Output Folder", self)
        act_output.triggered.connect(self._select_output_folder)
        toolbar.addAction(act_output)

        toolbar.addSeparator()

        self._act_recrop = QAction("✂ Re-crop", self)
        self._act_recrop.setToolTip("Crop the current photo again")
        self._act_recrop.triggered.connect(self._recrop_current)
        toolbar.addAction(self._act_recrop)

        central = QWidget()
        self.setCentralWidget(central)
        layout = QVBoxLayout(central)

        self._preview = QLabel("No photo yet")
        self._preview.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._preview.setMinimumSize(CROP_SIZE, CROP_SIZE)
        layout.addWidget(self._preview, stretch=1)

        self._status = QStatusBar()
        self.setStatusBar(self._status)
        self._status.showMessage("Open a photo to begin.")

    def _update_button_states(self):
        self._act_recrop.setEnabled(self._avatar_blob is not None)

    # =========================================================================
    # Folder / file selection
    # =========================================================================

    def _select_photo(self):
        patterns = " ".join(f"*{ext}" for ext in sorted(IMAGE_EXTENSIONS))
        path, _ = QFileDialog.getOpenFileName(self, "Open Photo", "", f"Images ({patterns})")
        if path:
            self.open_photo(Path(path))

    def open_photo(self, photo: Path):
        """Crop *photo*; the result is saved next to it unless an output folder is set."""
        self._crop_source(photo, default_output=photo.parent)

    def _select_output_folder(self):
        folder = QFileDialog.getExistingDirectory(self, "Select Output Folder")
        if folder:
            self._output_root = Path(folder)
            self._status.showMessage(f"Output folder: {self._output_root}")

    def _recrop_current(self):
        if self._avatar_blob is None:
            return
        self._crop_source(self._avatar_blob, default_output=None)

    # =========================================================================
    # Cropping
    # =========================================================================

    def _crop_source(self, source: Path | bytes, default_output: Path | None):
        if self._output_root is None and default_output is not None:
            self._output_root = default_output

        dialog = CropDialog(source, self._settings, self)
        dialog.resize(480, 420)
        dialog.exec()
        # Only an accepted dialog has a blob
        blob = dialog.cropped_blob()
        dialog.deleteLater()
        if blob is None:
            self._status.showMessage("Crop cancelled.")
            return

        self._avatar_blob = blob
        self._show_preview(blob)
        self._save_blob(blob)
        self._update_button_states()

    def _show_preview(self, blob: bytes):
        img = open_image(blob).convert("RGBA")
        img.putalpha(circular_mask(img.width))
        self._preview.setPixmap(pil_to_qpixmap(img))

    def _save_blob(self, blob: bytes):
        if self._output_root is None:
            self._status.showMessage("Cropped photo not saved: no output folder set.")
            return
        out_path = unique_path(self._output_root / cropped_filename())
        try:
            self._output_root.mkdir(parents=True, exist_ok=True)
            out_path.write_bytes(blob)
        except OSError as exc:
            QMessageBox.critical(self, "Save Failed", f"Could not save {out_path}:\n{exc}")
            return
        self._status.showMessage(f"Saved {out_path.name} ({len(blob) // 1024} KB) to {self._output_root}")
