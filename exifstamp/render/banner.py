from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from io import BytesIO
from typing import Callable

from PIL import Image, ImageDraw, ImageFilter

from exifstamp.constants import DEFAULT_JPEG_QUALITY
from exifstamp.models import RGB, LayoutPlan, LogoPosition, RenderSettings, Side
from exifstamp.render.color_sampler import WHITE
from exifstamp.render.layout import (
    LINE_GAP_RATIO,
    LOGO_GAP_RATIO,
    SEPARATOR,
    TextGroups,
    measure_layout,
    nominal_sizing,
    remeasure,
    resolve_fit,
    separator_gap,
)
from exifstamp.render.logo import draw_logo_placeholder, whiten_logo
from exifstamp.render.styler import BannerAppearance, style_banner
from exifstamp.render.typography import FontSet

LOGGER = logging.getLogger(__name__)


class RenderStage(str, Enum):
    LOAD_SOURCE = "load_source"
    LOAD_LOGO = "load_logo"
    MEASURE = "measure"
    RESOLVE_FIT = "resolve_fit"
    STYLE = "style"
    DRAW = "draw"
    ENCODE = "encode"
    DONE = "done"
    FAILED = "failed"


StageCallback = Callable[[RenderStage], None]


@dataclass(slots=True)
class ComposeResult:
    image: Image.Image
    plan: LayoutPlan
    appearance: BannerAppearance
    logo_placeholder: bool


def plan_layout(
    image_size: tuple[int, int],
    settings: RenderSettings,
    fonts: FontSet,
    logo_size: tuple[int, int] | None,
    on_stage: StageCallback | None = None,
) -> LayoutPlan:
    """Measure, correct overflow once, then re-measure at the final sizing."""
    width, height = image_size
    groups = TextGroups.from_slots(settings.slots)
    if on_stage:
        on_stage(RenderStage.MEASURE)
    plan = measure_layout(
        nominal_sizing(width, height),
        groups,
        measurer=fonts,
        logo_size=logo_size,
        logo_position=settings.logo_position,
    )
    if on_stage:
        on_stage(RenderStage.RESOLVE_FIT)
    fitted = resolve_fit(plan, width)
    if fitted is plan:
        return plan
    LOGGER.debug("Banner overflow: %.0fpx content in %dpx, scale %.3f", plan.left_total + plan.right_total, width, fitted.scale)
    return remeasure(fitted, groups, measurer=fonts, logo_size=logo_size, logo_position=settings.logo_position)


def _paste_clipped(layer: Image.Image, overlay: Image.Image, x: int, y: int) -> None:
    if x < 0 or y < 0:
        overlay = overlay.crop((max(0, -x), max(0, -y), overlay.width, overlay.height))
        x, y = max(0, x), max(0, y)
    if overlay.width <= 0 or overlay.height <= 0:
        return
    layer.alpha_composite(overlay, (x, y))


def _draw_blur_band(canvas: Image.Image, source: Image.Image, plan: LayoutPlan, radius: float) -> None:
    width, height = source.size
    banner_px = plan.banner_pixels
    top = max(0, int(round(height - plan.banner_height)))
    band = source.crop((0, top, width, height)).convert("RGB")
    # Blur a stretched band and keep its middle so the edges carry no dark fringe.
    extension = int(round(radius * 2))
    stretched = band.resize((width + extension * 2, banner_px + extension * 2), Image.Resampling.BILINEAR)
    if radius > 0:
        stretched = stretched.filter(ImageFilter.GaussianBlur(radius))
    canvas.paste(stretched.crop((extension, extension, extension + width, extension + banner_px)), (0, height))


class _BannerPainter:
    def __init__(
        self,
        layer: Image.Image,
        fonts: FontSet,
        plan: LayoutPlan,
        appearance: BannerAppearance,
        logo: Image.Image | None,
    ) -> None:
        self.layer = layer
        self.draw = ImageDraw.Draw(layer)
        self.fonts = fonts
        self.plan = plan
        self.appearance = appearance
        self.logo = logo
        self.center_y = plan.banner_height / 2

    def text(self, xy: tuple[float, float], text: str, size: float, bold: bool, color: RGB, anchor: str) -> None:
        font = self.fonts.font(size, bold)
        fill = (*color, 255)
        self.draw.text(xy, text, font=font, fill=fill, anchor=anchor)
        if bold and self.fonts.synthetic_bold(size):
            self.draw.text((xy[0] + 1, xy[1]), text, font=font, fill=fill, anchor=anchor)

    def separator(self, x: float, y: float, size: float, bold: bool) -> None:
        self.text((x, y), SEPARATOR, size, bold, self.appearance.secondary_text_color, anchor="mm")

    def sequence(self, x: float, y: float, texts: tuple[str, ...], *, primary: bool, rtl: bool) -> None:
        size = self.plan.main_font_size if primary else self.plan.sub_font_size
        color = self.appearance.text_color if primary else self.appearance.secondary_text_color
        gap = separator_gap(self.fonts, size, primary)
        step = -1 if rtl else 1
        cursor = x
        for index, item in enumerate(texts):
            item_width = self.fonts.measure(item, size, primary)
            self.text((cursor - item_width if rtl else cursor, y), item, size, primary, color, anchor="lm")
            cursor += step * item_width
            if index < len(texts) - 1:
                self.separator(cursor + step * gap / 2, y, size, primary)
                cursor += step * gap

    def lines(self, x: float, line1: tuple[str, ...], line2: tuple[str, ...], *, rtl: bool) -> None:
        main = self.plan.main_font_size
        sub = self.plan.sub_font_size
        gap_y = self.plan.banner_height * LINE_GAP_RATIO
        start_y = self.center_y - (main + gap_y + sub) / 2
        y1 = start_y + main / 2
        y2 = start_y + main + gap_y + sub / 2
        if line1:
            self.sequence(x, y1 if line2 else self.center_y, line1, primary=True, rtl=rtl)
        if line2:
            self.sequence(x, y2 if line1 else self.center_y, line2, primary=False, rtl=rtl)

    def logo_glyph(self, x: float, *, rtl: bool) -> None:
        width = self.plan.logo_width
        height = self.plan.logo_height
        left = x - width if rtl else x
        top = self.center_y - height / 2
        if self.logo is None:
            draw_logo_placeholder(self.draw, (left, top, left + width, top + height), self.appearance.text_color)
            return
        size = (max(1, int(round(width))), max(1, int(round(height))))
        glyph = self.logo.resize(size, Image.Resampling.LANCZOS)
        if self.appearance.invert_logo:
            glyph = whiten_logo(glyph)
        _paste_clipped(self.layer, glyph, int(round(left)), int(round(top)))


def _draw_content(
    painter: _BannerPainter,
    groups: TextGroups,
    plan: LayoutPlan,
    settings: RenderSettings,
    canvas_width: int,
) -> None:
    main = plan.main_font_size
    logo_gap = plan.banner_height * LOGO_GAP_RATIO
    logo_separator = separator_gap(painter.fonts, main, True)

    cursor = plan.padding
    if settings.logo_position is LogoPosition.LEFT:
        painter.logo_glyph(cursor, rtl=False)
        cursor += plan.logo_width + logo_gap
        if groups.has_text(Side.LEFT):
            painter.separator(cursor, painter.center_y, main, True)
            cursor += logo_separator
    painter.lines(cursor, groups.left_line1, groups.left_line2, rtl=False)

    cursor = canvas_width - plan.padding
    painter.lines(cursor, groups.right_line1, groups.right_line2, rtl=True)
    if settings.logo_position is LogoPosition.RIGHT:
        if groups.has_text(Side.RIGHT):
            cursor -= max(plan.right_line1, plan.right_line2)
            painter.separator(cursor - logo_separator / 2, painter.center_y, main, True)
            cursor -= logo_separator + logo_gap
        painter.logo_glyph(cursor, rtl=True)


def _apply_shadow(layer: Image.Image, appearance: BannerAppearance) -> Image.Image:
    shadow = appearance.shadow
    if shadow is None:
        return layer
    alpha = layer.getchannel("A")
    if shadow.blur_radius > 0:
        # a canvas shadow blur of b px is a gaussian with sigma b / 2
        alpha = alpha.filter(ImageFilter.GaussianBlur(shadow.blur_radius / 2))
    alpha = alpha.point(lambda value: int(value * shadow.opacity))
    halo = Image.new("RGBA", layer.size, (*shadow.color, 0))
    halo.putalpha(alpha)
    halo.alpha_composite(layer)
    return halo


def compose_banner(
    image: Image.Image,
    settings: RenderSettings,
    *,
    logo: Image.Image | None,
    fonts: FontSet | None = None,
    on_stage: StageCallback | None = None,
) -> ComposeResult:
    """Run Measure -> ResolveFit -> Style -> Draw on an already decoded source.

    ``logo=None`` draws the rounded placeholder in place of the logo.
    """
    fonts = fonts or FontSet()
    source = image.convert("RGB")
    width, height = source.size
    plan = plan_layout(source.size, settings, fonts, logo.size if logo is not None else None, on_stage=on_stage)

    if on_stage:
        on_stage(RenderStage.STYLE)
    appearance = style_banner(source, settings, banner_height=plan.banner_height, main_font_size=plan.main_font_size)

    if on_stage:
        on_stage(RenderStage.DRAW)
    banner_px = plan.banner_pixels
    canvas = Image.new("RGB", (width, height + banner_px), color=appearance.fill or WHITE)
    canvas.paste(source, (0, 0))
    if appearance.uses_source_band:
        _draw_blur_band(canvas, source, plan, appearance.blur_radius)

    layer = Image.new("RGBA", (width, banner_px), (0, 0, 0, 0))
    painter = _BannerPainter(layer, fonts, plan, appearance, logo)
    _draw_content(painter, TextGroups.from_slots(settings.slots), plan, settings, width)
    layer = _apply_shadow(layer, appearance)
    canvas.paste(layer, (0, height), layer)

    LOGGER.debug(
        "Composed %dx%d banner=%d style=%s scale=%.3f",
        canvas.width,
        canvas.height,
        banner_px,
        settings.banner_style.value,
        plan.scale,
    )
    return ComposeResult(image=canvas, plan=plan, appearance=appearance, logo_placeholder=logo is None)


def encode_jpeg(image: Image.Image, quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    buffer = BytesIO()
    image.convert("RGB").save(
        buffer,
        format="JPEG",
        quality=max(1, min(100, int(quality))),
        optimize=True,
        progressive=True,
    )
    return buffer.getvalue()
