from __future__ import annotations

import re
from pathlib import Path

from exifstamp.meta.normalize import classify_brand
from exifstamp.models import CaptureMetadata

_UNSAFE = re.compile(r'[<>:"/\\|?*\x00-\x1F]')
_DIGITS = re.compile(r"\D")

NAME_TOKENS = ("stem", "date", "camera", "lens", "brand", "ext")


def _safe(value: str | None, fallback: str, *, spaces: bool) -> str:
    text = _UNSAFE.sub("_", (value or "").strip())
    if not spaces:
        text = re.sub(r"\s+", "_", text)
    text = text.strip(" ._" if not spaces else " .")
    return text or fallback


def _date_token(date_time: str) -> str:
    # "2024.05.01 14:30" -> "20240501_1430"
    digits = _DIGITS.sub("", date_time or "")
    if len(digits) < 12:
        return "unknown_date"
    return f"{digits[:8]}_{digits[8:12]}"


def name_tokens(source: Path, meta: CaptureMetadata, extension: str) -> dict[str, str]:
    return {
        "stem": _safe(source.stem, "image", spaces=False),
        "date": _date_token(meta.date_time),
        "camera": _safe(meta.model, "NA", spaces=False),
        "lens": _safe(meta.lens, "NA", spaces=False),
        "brand": classify_brand(meta.make),
        "ext": extension.lower().lstrip("."),
    }


def build_output_name(
    name_template: str,
    source: Path,
    meta: CaptureMetadata,
    extension: str = "jpg",
) -> str:
    """Fill ``name_template`` (``str.format`` syntax) with the tokens in ``NAME_TOKENS``."""
    tokens = name_tokens(source, meta, extension)
    try:
        rendered = name_template.format(**tokens)
    except KeyError as exc:
        raise ValueError(f"name template contains unknown key: {exc.args[0]}") from exc

    rendered = _safe(rendered, f"{tokens['stem']}__stamp.{tokens['ext']}", spaces=True)
    if not Path(rendered).suffix:
        rendered = f"{rendered}.{tokens['ext']}"
    return rendered
