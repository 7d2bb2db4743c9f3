from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from exifstamp.meta.exiftool import extract_many
from exifstamp.meta.pillow_fallback import extract_pillow_metadata

LOGGER = logging.getLogger(__name__)


def extract_raw_tags(path: Path, mode: str = "auto") -> dict[str, Any]:
    """Raw tag dictionary for one file: ExifTool first, Pillow EXIF otherwise."""
    resolved = path.resolve(strict=False)
    raw = extract_many([resolved], mode=mode).get(resolved)
    if raw:
        return raw
    LOGGER.debug("Using Pillow EXIF reader for %s", path.name)
    return extract_pillow_metadata(path)


def extract_raw_tags_many(paths: list[Path], mode: str = "auto") -> dict[Path, dict[str, Any]]:
    resolved = [p.resolve(strict=False) for p in paths]
    return extract_many(resolved, mode=mode)
