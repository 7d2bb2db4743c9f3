from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Protocol

from exifstamp.models import FieldSlots, LayoutPlan, LogoPosition, Side, Sizing
from exifstamp.slots import grouped_texts

LOGGER = logging.getLogger(__name__)

BANNER_HEIGHT_RATIO = 0.12
MAIN_FONT_RATIO = 0.24
SUB_FONT_RATIO = 0.20
PADDING_RATIO = 0.35
LOGO_HEIGHT_RATIO = 0.38
LOGO_MAX_WIDTH_RATIO = 2.5
LOGO_GAP_RATIO = 0.2
CENTER_GAP_RATIO = 0.5
LINE_GAP_RATIO = 0.08

SEPARATOR = "|"
SEPARATOR_GAP_FACTOR = 2.5

SCALE_FLOOR = 0.6
# Float noise from re-measuring scaled sizes must not count as overflow.
FIT_TOLERANCE_PX = 0.5


class TextMeasurer(Protocol):
    def measure(self, text: str, size: float, bold: bool = False) -> float: ...


@dataclass(frozen=True, slots=True)
class TextGroups:
    left_line1: tuple[str, ...] = ()
    left_line2: tuple[str, ...] = ()
    right_line1: tuple[str, ...] = ()
    right_line2: tuple[str, ...] = ()

    @classmethod
    def from_slots(cls, slots: FieldSlots) -> TextGroups:
        return cls(
            left_line1=tuple(grouped_texts(slots, Side.LEFT, 1)),
            left_line2=tuple(grouped_texts(slots, Side.LEFT, 2)),
            right_line1=tuple(grouped_texts(slots, Side.RIGHT, 1)),
            right_line2=tuple(grouped_texts(slots, Side.RIGHT, 2)),
        )

    def has_text(self, side: Side) -> bool:
        if side is Side.LEFT:
            return bool(self.left_line1 or self.left_line2)
        if side is Side.RIGHT:
            return bool(self.right_line1 or self.right_line2)
        return False


def nominal_sizing(width: int, height: int) -> Sizing:
    """Banner proportions before any overflow correction, keyed to the short edge."""
    banner_height = min(width, height) * BANNER_HEIGHT_RATIO
    return Sizing(
        banner_height=banner_height,
        main_font_size=float(math.floor(banner_height * MAIN_FONT_RATIO)),
        sub_font_size=float(math.floor(banner_height * SUB_FONT_RATIO)),
        padding=banner_height * PADDING_RATIO,
        logo_height=banner_height * LOGO_HEIGHT_RATIO,
    )


def separator_gap(measurer: TextMeasurer, size: float, bold: bool) -> float:
    return measurer.measure(SEPARATOR, size, bold) * SEPARATOR_GAP_FACTOR


def group_width(measurer: TextMeasurer, texts: tuple[str, ...] | list[str], size: float, bold: bool) -> float:
    items = [text for text in texts if text]
    if not items:
        return 0.0
    width = sum(measurer.measure(text, size, bold) for text in items)
    return width + separator_gap(measurer, size, bold) * (len(items) - 1)


def logo_dimensions(
    natural_size: tuple[int, int] | None,
    logo_height: float,
    banner_height: float,
) -> tuple[float, float]:
    """Return ``(width, height)`` of the logo box; square when no logo image is available."""
    if not natural_size or natural_size[0] <= 0 or natural_size[1] <= 0:
        return logo_height, logo_height
    width = logo_height * (natural_size[0] / natural_size[1])
    max_width = banner_height * LOGO_MAX_WIDTH_RATIO
    if width > max_width:
        return max_width, logo_height * (max_width / width)
    return width, logo_height


def measure_layout(
    sizing: Sizing,
    groups: TextGroups,
    *,
    measurer: TextMeasurer,
    logo_size: tuple[int, int] | None,
    logo_position: LogoPosition,
    scale: float = 1.0,
) -> LayoutPlan:
    main = sizing.main_font_size
    sub = sizing.sub_font_size
    left_line1 = group_width(measurer, groups.left_line1, main, True)
    left_line2 = group_width(measurer, groups.left_line2, sub, False)
    right_line1 = group_width(measurer, groups.right_line1, main, True)
    right_line2 = group_width(measurer, groups.right_line2, sub, False)
    left_total = max(left_line1, left_line2)
    right_total = max(right_line1, right_line2)

    logo_width, logo_height = logo_dimensions(logo_size, sizing.logo_height, sizing.banner_height)
    logo_space = logo_width + sizing.banner_height * LOGO_GAP_RATIO
    logo_separator = separator_gap(measurer, main, True)
    if logo_position is LogoPosition.LEFT:
        if left_total > 0:
            left_total += logo_separator
        left_total += logo_space
    else:
        if right_total > 0:
            right_total += logo_separator
        right_total += logo_space

    return LayoutPlan(
        sizing=sizing,
        logo_width=logo_width,
        logo_height=logo_height,
        left_line1=left_line1,
        left_line2=left_line2,
        right_line1=right_line1,
        right_line2=right_line2,
        left_total=left_total,
        right_total=right_total,
        scale=scale,
    )


def required_width(plan: LayoutPlan) -> float:
    return plan.left_total + plan.right_total + (plan.padding * 2) + (plan.banner_height * CENTER_GAP_RATIO)


def fit_scale(plan: LayoutPlan, image_width: int) -> float:
    required = required_width(plan)
    if required <= image_width + FIT_TOLERANCE_PX:
        return 1.0
    return max(SCALE_FLOOR, image_width / required)


def resolve_fit(plan: LayoutPlan, image_width: int) -> LayoutPlan:
    """One corrective pass: shrink every sizing field uniformly when content overflows.

    The shrink never goes below ``SCALE_FLOOR``; content that still does not
    fit at the floor is left to clip.
    """
    scale = fit_scale(plan, image_width)
    if scale >= 1.0:
        return plan
    scaled = plan.scaled(scale)
    if required_width(scaled) > image_width + FIT_TOLERANCE_PX:
        LOGGER.debug("Banner content clips at scale floor %.2f", SCALE_FLOOR)
    return scaled


def remeasure(
    plan: LayoutPlan,
    groups: TextGroups,
    *,
    measurer: TextMeasurer,
    logo_size: tuple[int, int] | None,
    logo_position: LogoPosition,
) -> LayoutPlan:
    """Measure again at the plan's (possibly scaled) sizing, keeping its scale."""
    return measure_layout(
        plan.sizing,
        groups,
        measurer=measurer,
        logo_size=logo_size,
        logo_position=logo_position,
        scale=plan.scale,
    )
