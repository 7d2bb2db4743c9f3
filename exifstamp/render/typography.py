from __future__ import annotations

import logging
import platform
from pathlib import Path

from PIL import ImageFont

LOGGER = logging.getLogger(__name__)

FontLike = ImageFont.FreeTypeFont | ImageFont.ImageFont


def _system_font_candidates(bold: bool) -> list[Path]:
    system = platform.system().lower()
    if "windows" in system:
        if bold:
            return [
                Path(r"C:\Windows\Fonts\segoeuib.ttf"),
                Path(r"C:\Windows\Fonts\arialbd.ttf"),
                Path(r"C:\Windows\Fonts\msyhbd.ttc"),
            ]
        return [
            Path(r"C:\Windows\Fonts\segoeui.ttf"),
            Path(r"C:\Windows\Fonts\arial.ttf"),
            Path(r"C:\Windows\Fonts\msyh.ttc"),
        ]
    if "darwin" in system:
        if bold:
            return [
                Path("/System/Library/Fonts/Supplemental/Arial Bold.ttf"),
                Path("/Library/Fonts/Arial Bold.ttf"),
            ]
        return [
            Path("/System/Library/Fonts/Supplemental/Arial.ttf"),
            Path("/Library/Fonts/Arial.ttf"),
            Path("/System/Library/Fonts/Helvetica.ttc"),
        ]
    if bold:
        return [
            Path("/usr/share/fonts/truetype/inter/Inter-Bold.ttf"),
            Path("/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"),
            Path("/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf"),
            Path("/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf"),
        ]
    return [
        Path("/usr/share/fonts/truetype/inter/Inter-Regular.ttf"),
        Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
        Path("/usr/share/fonts/dejavu/DejaVuSans.ttf"),
        Path("/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf"),
    ]


def _load_truetype(candidates: list[Path], size: int) -> ImageFont.FreeTypeFont | None:
    for candidate in candidates:
        if candidate.exists():
            try:
                return ImageFont.truetype(str(candidate), size=size)
            except OSError:
                continue
    return None


def load_font(font_path: Path | None, size: int, bold: bool = False) -> tuple[FontLike, bool]:
    """Return ``(font, is_real_weight)``.

    ``is_real_weight`` is False when a bold face was asked for but only a
    regular face could be found; callers then embolden by double drawing.
    """
    size = max(1, int(size))
    candidates: list[Path] = [font_path] if font_path else []
    font = _load_truetype(candidates + _system_font_candidates(bold), size)
    if font is not None:
        return font, True
    if bold:
        font = _load_truetype(_system_font_candidates(False), size)
        if font is not None:
            return font, False
    # Pillow >= 10.1 ships a scalable default face
    return ImageFont.load_default(size=size), not bold


class FontSet:
    """Regular/bold fonts keyed by pixel size, plus width measurement."""

    def __init__(self, font_path: Path | None = None, bold_font_path: Path | None = None) -> None:
        self.font_path = font_path
        self.bold_font_path = bold_font_path
        self._cache: dict[tuple[int, bool], tuple[FontLike, bool]] = {}

    def _entry(self, size: float, bold: bool) -> tuple[FontLike, bool]:
        key = (max(1, int(size)), bold)
        entry = self._cache.get(key)
        if entry is None:
            path = self.bold_font_path if bold else self.font_path
            if bold and path is None and self.font_path is not None:
                entry = (load_font(self.font_path, key[0])[0], False)
            else:
                entry = load_font(path, key[0], bold=bold)
            self._cache[key] = entry
        return entry

    def font(self, size: float, bold: bool = False) -> FontLike:
        return self._entry(size, bold)[0]

    def synthetic_bold(self, size: float) -> bool:
        return not self._entry(size, True)[1]

    def measure(self, text: str, size: float, bold: bool = False) -> float:
        if not text:
            return 0.0
        width = float(self.font(size, bold).getlength(text))
        if bold and self.synthetic_bold(size):
            width += 1.0
        return width
