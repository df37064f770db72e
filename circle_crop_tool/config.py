"""
Application constants and configuration.

CROP_SIZE is the fixed diameter of the crop circle and therefore the side
length of every exported image.  The zoom margin, zoom step, maximum zoom
and JPEG quality below are only the built-in defaults; runtime values are
loaded from settings.json via the settings module.

The ``config_dir()`` helper returns the platform-appropriate config
directory and is shared by all persistence modules.
"""

import os
import sys
from pathlib import Path

# =============================================================================
# APP IDENTITY & CONFIG DIRECTORY
# =============================================================================
APP_NAME = "circle-crop-tool"


def config_dir() -> Path:
    """Return the platform-appropriate config directory, creating it if needed."""
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    directory = base / APP_NAME
    directory.mkdir(parents=True, exist_ok=True)
    return directory

# =============================================================================
# CROP REGION — fixed for every image
# =============================================================================
# Diameter of the crop circle in container pixels, and output size in pixels
CROP_SIZE = 300

# =============================================================================
# TUNABLE DEFAULTS — fallback when settings.json is missing or corrupt
# =============================================================================
# Initial scale is this multiple of the minimum scale
DEFAULT_ZOOM_MARGIN = 1.2
# Fractional scale change per wheel notch
DEFAULT_ZOOM_STEP = 0.05
DEFAULT_MAX_ZOOM = 3.0

# JPEG export quality (Pillow scale, 1-100)
DEFAULT_JPEG_QUALITY = 82
JPEG_QUALITY_MIN = 1
JPEG_QUALITY_MAX = 100

# Container size assumed until the widget reports its real size
DEFAULT_CONTAINER_WIDTH = 400
DEFAULT_CONTAINER_HEIGHT = 256

# Nudge amounts (container pixels)
NUDGE_SMALL = 1
NUDGE_LARGE = 10

# Supported image extensions
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".tiff", ".tif", ".webp", ".psd"}

# Saved crops are named "<prefix>-<epoch ms>.jpg"
OUTPUT_PREFIX = "cropped"
