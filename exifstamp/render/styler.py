from __future__ import annotations

from dataclasses import dataclass

from PIL import Image

from exifstamp.models import RGB, BannerStyle, ColorSample, RenderSettings
from exifstamp.render.color_sampler import BLACK, WHITE, perceived_brightness, sample_colors

ADAPTIVE_SAMPLE_RATIO = 0.15
ADAPTIVE_BRIGHTNESS_SPLIT = 128
BLUR_BRIGHTNESS_SPLIT = 160
SHADOW_OPACITY = 0.3
SHADOW_BLUR_RATIO = 0.8

_FIXED_STYLES: dict[BannerStyle, tuple[RGB, RGB, RGB]] = {
    # background, text, secondary text
    BannerStyle.BLACK: (BLACK, WHITE, (0xAA, 0xAA, 0xAA)),
    BannerStyle.WHITE: (WHITE, BLACK, (0x66, 0x66, 0x66)),
}


@dataclass(frozen=True, slots=True)
class ShadowPolicy:
    color: RGB
    opacity: float
    blur_radius: float

    @property
    def rgba(self) -> tuple[int, int, int, int]:
        return (*self.color, int(round(self.opacity * 255)))


@dataclass(frozen=True, slots=True)
class BannerAppearance:
    style: BannerStyle
    text_color: RGB
    secondary_text_color: RGB
    fill: RGB | None = None
    blur_radius: float = 0.0
    shadow: ShadowPolicy | None = None
    sample: ColorSample | None = None

    @property
    def uses_source_band(self) -> bool:
        return self.fill is None

    @property
    def invert_logo(self) -> bool:
        return self.text_color == WHITE


def shadow_for(text_color: RGB, main_font_size: float) -> ShadowPolicy:
    """Soft zero-offset halo: dark behind light text, light behind dark text."""
    color = BLACK if perceived_brightness(text_color) >= ADAPTIVE_BRIGHTNESS_SPLIT else WHITE
    return ShadowPolicy(color=color, opacity=SHADOW_OPACITY, blur_radius=main_font_size * SHADOW_BLUR_RATIO)


def style_banner(
    image: Image.Image,
    settings: RenderSettings,
    *,
    banner_height: float,
    main_font_size: float,
) -> BannerAppearance:
    style = settings.banner_style
    if style in _FIXED_STYLES:
        fill, text, secondary = _FIXED_STYLES[style]
        return BannerAppearance(style=style, text_color=text, secondary_text_color=secondary, fill=fill)

    if style is BannerStyle.BLUR:
        sample = sample_colors(image, image.height - banner_height, banner_height)
        if perceived_brightness(sample.dominant) >= BLUR_BRIGHTNESS_SPLIT:
            text, secondary = BLACK, (0x22, 0x22, 0x22)
        else:
            text, secondary = WHITE, (0xEE, 0xEE, 0xEE)
        return BannerAppearance(
            style=style,
            text_color=text,
            secondary_text_color=secondary,
            blur_radius=float(max(0, min(100, settings.blur_intensity))),
            shadow=shadow_for(text, main_font_size),
            sample=sample,
        )

    band = image.height * ADAPTIVE_SAMPLE_RATIO
    sample = sample_colors(image, image.height - band, band)
    if settings.use_adaptive_text_color:
        text = secondary = sample.secondary
    elif perceived_brightness(sample.dominant) >= ADAPTIVE_BRIGHTNESS_SPLIT:
        text, secondary = BLACK, (0x33, 0x33, 0x33)
    else:
        text, secondary = WHITE, (0xDD, 0xDD, 0xDD)
    return BannerAppearance(
        style=style,
        text_color=text,
        secondary_text_color=secondary,
        fill=sample.dominant,
        shadow=shadow_for(text, main_font_size),
        sample=sample,
    )
