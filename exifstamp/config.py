from __future__ import annotations

import copy
import os
import platform
import sys
from pathlib import Path
from typing import Any

import yaml

from exifstamp.constants import DEFAULT_JPEG_QUALITY, DEFAULT_RENDER_TIMEOUT_S, LOGO_AUTO

APP_DIR_NAME = "ExifStamp"

DEFAULT_CONFIG: dict[str, Any] = {
    "banner_style": "white",
    "blur_intensity": 30,
    "logo": LOGO_AUTO,
    "logo_position": "left",
    "adaptive_text_color": False,
    # per-slot overrides, e.g. {"gps": {"side": "left", "line": 2, "order": 1}}
    "slots": {},
    "logo_dir": None,
    "font_path": None,
    "bold_font_path": None,
    "quality": DEFAULT_JPEG_QUALITY,
    "timeout": DEFAULT_RENDER_TIMEOUT_S,
    "use_exiftool": "auto",
    "place_lookup": False,
    "lang": "en",
    "name_template": "{stem}__stamp.{ext}",
    "skip_existing": True,
}


def get_app_dir() -> Path:
    """Return the application root directory.

    - Frozen (PyInstaller): directory containing the executable.
    - Development: project root (two levels up from this file).
    """
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parent.parent


def get_user_data_dir() -> Path:
    """Writable per-user data directory; development runs use the project root."""
    if not getattr(sys, "frozen", False) and os.environ.get("EXIFSTAMP_DEV"):
        return get_app_dir()

    system_name = platform.system().lower()
    if system_name == "windows":
        base = (
            os.environ.get("APPDATA")
            or os.environ.get("LOCALAPPDATA")
            or str(Path.home() / "AppData" / "Roaming")
        )
        return Path(base) / APP_DIR_NAME
    if system_name == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIR_NAME

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        return Path(xdg_config_home) / APP_DIR_NAME
    return Path.home() / ".config" / APP_DIR_NAME


def get_config_path() -> Path:
    return get_user_data_dir() / "Config" / "config.yaml"


def _deep_merge(base: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in incoming.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None) -> dict[str, Any]:
    cfg_path = path or get_config_path()
    if not cfg_path.exists():
        return copy.deepcopy(DEFAULT_CONFIG)

    text = cfg_path.read_text(encoding="utf-8")
    loaded = yaml.safe_load(text) or {}
    if not isinstance(loaded, dict):
        loaded = {}
    return _deep_merge(DEFAULT_CONFIG, loaded)


def write_default_config(path: Path | None = None, force: bool = False) -> Path:
    cfg_path = path or get_config_path()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    if cfg_path.exists() and not force:
        return cfg_path
    cfg_path.write_text(yaml.safe_dump(DEFAULT_CONFIG, sort_keys=False, allow_unicode=True), encoding="utf-8")
    return cfg_path
