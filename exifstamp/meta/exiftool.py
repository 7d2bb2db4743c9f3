from __future__ import annotations

import json
import locale
import logging
import os
import subprocess
from pathlib import Path
from typing import Any, Iterable

from exifstamp.errors import MetadataExtractionError

LOGGER = logging.getLogger(__name__)
EXIFTOOL_BIN = os.environ.get("EXIFTOOL_BIN", "exiftool")
VALID_MODES = {"auto", "on", "off"}


def decode_output(data: bytes | None) -> str:
    if not data:
        return ""
    preferred = locale.getpreferredencoding(False) or "utf-8"
    for encoding in dict.fromkeys(["utf-8", preferred.lower(), "latin-1"]):
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    return data.decode("utf-8", errors="replace")


def is_exiftool_available() -> bool:
    try:
        result = subprocess.run(
            [EXIFTOOL_BIN, "-ver"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except FileNotFoundError:
        return False
    return result.returncode == 0


def _chunked(items: list[Path], size: int) -> Iterable[list[Path]]:
    for i in range(0, len(items), size):
        yield items[i : i + size]


def extract_many(paths: list[Path], mode: str = "auto", chunk_size: int = 64) -> dict[Path, dict[str, Any]]:
    """Run ExifTool in numeric mode (``-n``) and key the results by resolved path.

    ``mode`` is ``auto`` (use when installed), ``on`` (required) or ``off``.
    """
    mode = mode.lower()
    if mode not in VALID_MODES:
        raise ValueError(f"invalid use-exiftool mode: {mode}")
    if mode == "off" or not paths:
        return {}

    if not is_exiftool_available():
        if mode == "on":
            raise MetadataExtractionError("ExifTool is required but not found in PATH", stage="metadata")
        LOGGER.debug("ExifTool not found, Pillow EXIF reader will be used")
        return {}

    all_results: dict[Path, dict[str, Any]] = {}
    for chunk in _chunked(paths, chunk_size):
        cmd = [EXIFTOOL_BIN, "-j", "-n", "-api", "largefilesupport=1", *[str(p) for p in chunk]]
        result = subprocess.run(cmd, capture_output=True, check=False)
        stderr_text = decode_output(result.stderr).strip()
        if result.returncode != 0:
            message = stderr_text or "unknown error"
            if mode == "on":
                raise MetadataExtractionError(f"ExifTool extraction failed: {message}", stage="metadata")
            LOGGER.warning("ExifTool extraction failed for a chunk: %s", message)
            continue
        try:
            payload = json.loads(decode_output(result.stdout))
        except json.JSONDecodeError:
            if mode == "on":
                raise MetadataExtractionError("ExifTool returned invalid JSON", stage="metadata")
            LOGGER.warning("ExifTool returned invalid JSON, skipping chunk")
            continue
        if not isinstance(payload, list):
            continue
        for item in payload:
            if not isinstance(item, dict) or not item.get("SourceFile"):
                continue
            all_results[Path(str(item["SourceFile"])).resolve(strict=False)] = item
    return all_results
