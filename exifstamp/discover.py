from __future__ import annotations

from pathlib import Path
from typing import Iterable

from exifstamp.constants import SUPPORTED_EXTENSIONS


def _normalize_extensions(extensions: Iterable[str] | None) -> set[str]:
    if not extensions:
        return set(SUPPORTED_EXTENSIONS)
    return {ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in extensions if ext}


def _is_candidate(path: Path, exts: set[str]) -> bool:
    # macOS AppleDouble files ("._IMG_0001.JPG") share the photo's suffix
    return path.is_file() and not path.name.startswith(".") and path.suffix.lower() in exts


def discover_inputs(
    input_path: Path,
    recursive: bool = False,
    extensions: Iterable[str] | None = None,
    exclude: Iterable[Path] = (),
) -> list[Path]:
    """Photos under ``input_path``, sorted; anything inside ``exclude`` is skipped.

    The CLI excludes its output directory so rendered files are never picked
    up again on a recursive re-run.
    """
    exts = _normalize_extensions(extensions)
    if input_path.is_file():
        return [input_path] if _is_candidate(input_path, exts) else []
    if not input_path.is_dir():
        return []
    excluded = [p.resolve(strict=False) for p in exclude]
    candidates = input_path.rglob("*") if recursive else input_path.iterdir()
    files = [
        p
        for p in candidates
        if _is_candidate(p, exts) and not any(p.resolve(strict=False).is_relative_to(root) for root in excluded)
    ]
    return sorted(files)
