from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from io import BytesIO
from pathlib import Path
from typing import Callable

from PIL import Image, ImageDraw

from exifstamp.constants import DEFAULT_BRAND, LOGO_AUTO, LOGO_CUSTOM
from exifstamp.errors import LogoLoadError
from exifstamp.models import RGB, RenderSettings

LOGGER = logging.getLogger(__name__)

LOGO_KIND_SVG = "svg"
LOGO_KIND_RASTER = "raster"
# SVG logos are rasterized once at this height and resampled down per render.
SVG_RENDER_HEIGHT = 512
PLACEHOLDER_RADIUS_RATIO = 0.2


@dataclass(frozen=True, slots=True)
class LogoAsset:
    key: str
    data: bytes
    kind: str = LOGO_KIND_RASTER


LogoResolver = Callable[[str], LogoAsset | None]


def sniff_logo_kind(data: bytes) -> str:
    head = data[:2048].lstrip().lower()
    if head.startswith(b"<?xml") or b"<svg" in head:
        return LOGO_KIND_SVG
    return LOGO_KIND_RASTER


def logo_key_for(settings: RenderSettings, brand_key: str | None) -> str:
    selection = (settings.logo_selection or LOGO_AUTO).upper()
    if selection == LOGO_AUTO:
        return (brand_key or DEFAULT_BRAND).upper()
    return selection


def logo_file_stem(key: str) -> str:
    """``NIKON`` -> ``Nikon``, matching the bundled logo file names."""
    key = key or DEFAULT_BRAND
    return key[:1].upper() + key[1:].lower()


class LogoDirectoryResolver:
    """Resolve a logo key to ``<Name>.svg`` or ``<Name>.png`` inside one directory."""

    suffixes = (".svg", ".png", ".webp", ".jpg")

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def __call__(self, key: str) -> LogoAsset | None:
        stem = logo_file_stem(key)
        for suffix in self.suffixes:
            candidate = self.directory / f"{stem}{suffix}"
            if candidate.is_file():
                try:
                    data = candidate.read_bytes()
                except OSError as exc:
                    raise LogoLoadError(f"cannot read logo {candidate}: {exc}", stage="load_logo") from exc
                kind = LOGO_KIND_SVG if suffix == ".svg" else LOGO_KIND_RASTER
                return LogoAsset(key=key, data=data, kind=kind)
        LOGGER.debug("No logo file for %s in %s", key, self.directory)
        return None


def _rasterize_svg(data: bytes) -> Image.Image:
    try:
        import cairosvg
    except (ImportError, OSError) as exc:
        raise LogoLoadError(f"SVG logos need cairosvg: {exc}", stage="load_logo") from exc
    try:
        png_bytes = cairosvg.svg2png(bytestring=data, output_height=SVG_RENDER_HEIGHT)
    except Exception as exc:
        raise LogoLoadError(f"cannot rasterize SVG logo: {exc}", stage="load_logo") from exc
    return _decode_raster(png_bytes)


def _decode_raster(data: bytes) -> Image.Image:
    try:
        with Image.open(BytesIO(data)) as image:
            return image.convert("RGBA")
    except Exception as exc:
        raise LogoLoadError(f"cannot decode logo image: {exc}", stage="load_logo") from exc


def decode_logo(asset: LogoAsset) -> Image.Image:
    if asset.kind == LOGO_KIND_SVG:
        return _rasterize_svg(asset.data)
    return _decode_raster(asset.data)


def resolve_logo_asset(
    settings: RenderSettings,
    brand_key: str | None,
    resolver: LogoResolver | None,
) -> LogoAsset:
    if settings.logo_selection.upper() == LOGO_CUSTOM and settings.custom_logo_data:
        data = settings.custom_logo_data
        return LogoAsset(key=LOGO_CUSTOM, data=data, kind=sniff_logo_kind(data))
    key = logo_key_for(settings, brand_key)
    if resolver is None:
        raise LogoLoadError(f"no logo source configured for {key}", stage="load_logo")
    try:
        asset = resolver(key)
    except LogoLoadError:
        raise
    except Exception as exc:
        raise LogoLoadError(f"logo resolver failed for {key}: {exc}", stage="load_logo") from exc
    if asset is None:
        raise LogoLoadError(f"logo not found: {key}", stage="load_logo")
    if not asset.kind:
        asset = replace(asset, kind=sniff_logo_kind(asset.data))
    return asset


def load_logo(settings: RenderSettings, brand_key: str | None, resolver: LogoResolver | None) -> Image.Image:
    """Resolve and decode the selected logo; raises ``LogoLoadError`` on any failure."""
    return decode_logo(resolve_logo_asset(settings, brand_key, resolver))


def whiten_logo(logo: Image.Image) -> Image.Image:
    """Every visible pixel becomes white, alpha is kept."""
    rgba = logo.convert("RGBA")
    white = Image.new("L", rgba.size, 255)
    return Image.merge("RGBA", (white, white, white, rgba.getchannel("A")))


def draw_logo_placeholder(
    draw: ImageDraw.ImageDraw,
    box: tuple[float, float, float, float],
    color: RGB,
) -> None:
    left, top, right, bottom = box
    radius = min(right - left, bottom - top) * PLACEHOLDER_RADIUS_RATIO
    draw.rounded_rectangle(box, radius=max(0, int(radius)), fill=(*color, 255))
