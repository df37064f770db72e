"""
Settings persistence: load, save, and validate the cropper's tunables.

The initial zoom margin, zoom step, maximum zoom and JPEG quality have no
derivation; they are empirical values that feel right in use.  They are kept
in a JSON file in the user's config directory (provided by
``config.config_dir()``) so they can be adjusted without a code change.  On
first launch (or if the file is missing/corrupt), the file is created from
the defaults in ``config``.  This module is Qt-free.

The on-disk format uses a versioned envelope::

    {"version": 1, "settings": {"zoom_margin": 1.2, ...}}
"""

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path

from circle_crop_tool.config import (
    DEFAULT_JPEG_QUALITY, DEFAULT_MAX_ZOOM, DEFAULT_ZOOM_MARGIN, DEFAULT_ZOOM_STEP,
    JPEG_QUALITY_MAX, JPEG_QUALITY_MIN, config_dir,
)

logger = logging.getLogger(__name__)

_SETTINGS_FILENAME = "settings.json"
_FORMAT_VERSION = 1


@dataclass(frozen=True)
class CropSettings:
    """Tunable behaviour of a crop session."""
    zoom_margin: float = DEFAULT_ZOOM_MARGIN
    zoom_step: float = DEFAULT_ZOOM_STEP
    max_zoom: float = DEFAULT_MAX_ZOOM
    jpeg_quality: int = DEFAULT_JPEG_QUALITY


_KNOWN_KEYS = set(asdict(CropSettings()))


def _settings_path() -> Path:
    """Return the full path to settings.json."""
    return config_dir() / _SETTINGS_FILENAME


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# =============================================================================
# Validation
# =============================================================================
def validate_settings(data: object) -> list[str]:
    """
    Validate a settings dict.  Keys may be omitted (defaults fill them in).

    Returns a list of error strings (empty means valid).
    """
    if not isinstance(data, dict):
        return ["Settings data must be a dict"]

    errors: list[str] = []

    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        errors.append(f"unknown keys: {', '.join(sorted(unknown))}")

    if "zoom_margin" in data:
        val = data["zoom_margin"]
        if not _is_number(val) or val < 1:
            errors.append(f"zoom_margin must be a number >= 1, got {val!r}")

    if "zoom_step" in data:
        val = data["zoom_step"]
        if not _is_number(val) or not 0 < val < 1:
            errors.append(f"zoom_step must be a number between 0 and 1, got {val!r}")

    if "max_zoom" in data:
        val = data["max_zoom"]
        if not _is_number(val) or val <= 0:
            errors.append(f"max_zoom must be a positive number, got {val!r}")

    if "jpeg_quality" in data:
        val = data["jpeg_quality"]
        if (not isinstance(val, int) or isinstance(val, bool)
                or not JPEG_QUALITY_MIN <= val <= JPEG_QUALITY_MAX):
            errors.append(
                f"jpeg_quality must be an integer in "
                f"[{JPEG_QUALITY_MIN}, {JPEG_QUALITY_MAX}], got {val!r}"
            )

    return errors


# =============================================================================
# Load / Save
# =============================================================================
def load_settings() -> CropSettings:
    """
    Load settings from settings.json.

    If the file is missing, corrupt, or fails validation, writes the
    defaults and returns them.  Keys missing from an otherwise valid file
    take their default values and are written back to it.
    """
    path = _settings_path()

    if not path.exists():
        logger.info("settings.json not found — creating with defaults at %s", path)
        _write_defaults(path)
        return CropSettings()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read settings.json (%s) — restoring defaults", exc)
        _write_defaults(path)
        return CropSettings()

    if not isinstance(raw, dict) or "version" not in raw or "settings" not in raw:
        logger.warning("settings.json missing version envelope — restoring defaults")
        _write_defaults(path)
        return CropSettings()

    data = raw["settings"]
    errors = validate_settings(data)
    if errors:
        logger.warning(
            "settings.json validation failed:\n  %s\nRestoring defaults.",
            "\n  ".join(errors),
        )
        _write_defaults(path)
        return CropSettings()

    settings = CropSettings(**data)
    if set(data) != _KNOWN_KEYS:
        # Fill in omitted keys on disk
        try:
            save_settings(settings)
        except OSError as exc:
            logger.error("Could not complete settings in %s: %s", path, exc)
    return settings


def save_settings(settings: CropSettings) -> None:
    """
    Validate and write settings to settings.json in versioned envelope.

    Raises ValueError if validation fails.
    Raises OSError if the file cannot be written.
    """
    data = asdict(settings)
    errors = validate_settings(data)
    if errors:
        raise ValueError("Invalid settings:\n  " + "\n  ".join(errors))

    envelope = {"version": _FORMAT_VERSION, "settings": data}
    path = _settings_path()
    path.write_text(json.dumps(envelope, indent=2), encoding="utf-8")
    logger.info("Saved settings to %s", path)


def _write_defaults(path: Path) -> None:
    """Write the default settings to the given path in versioned envelope."""
    try:
        envelope = {"version": _FORMAT_VERSION, "settings": asdict(CropSettings())}
        path.write_text(json.dumps(envelope, indent=2), encoding="utf-8")
    except OSError as exc:
        logger.error("Could not write default settings to %s: %s", path, exc)
