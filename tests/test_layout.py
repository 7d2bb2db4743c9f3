import pytest

from exifstamp.models import LogoPosition, RenderSettings, Side
from exifstamp.render.banner import plan_layout
from exifstamp.render.layout import (
    SCALE_FLOOR,
    TextGroups,
    logo_dimensions,
    measure_layout,
    nominal_sizing,
    required_width,
    resolve_fit,
)
from exifstamp.slots import move_slot, set_slot_text

TYPICAL_TEXT = {
    "model": "NIKON Z 8",
    "lens": "NIKKOR Z 24-70mm f/2.8 S",
    "focal_length": "24mm",
    "f_number": "f/2.8",
    "iso": "ISO100",
    "exposure_time": "1/125s",
    "date": "2024.05.01 10:30",
    "gps": "40.75, -73.99",
}


def _settings(**overrides: str) -> RenderSettings:
    slots = RenderSettings().slots
    for slot_id, text in {**TYPICAL_TEXT, **overrides}.items():
        slots = set_slot_text(slots, slot_id, text)
    slots = move_slot(slots, "gps", Side.LEFT, 2)
    return RenderSettings(slots=slots)


def test_nominal_sizing_follows_short_edge() -> None:
    sizing = nominal_sizing(4000, 3000)
    assert sizing.banner_height == pytest.approx(360)
    assert sizing.main_font_size == 86
    assert sizing.sub_font_size == 72
    assert sizing.padding == pytest.approx(126)
    assert sizing.logo_height == pytest.approx(136.8)


def test_logo_dimensions_clip_wide_logos() -> None:
    assert logo_dimensions(None, 100, 200) == (100, 100)
    assert logo_dimensions((200, 100), 100, 200) == (200, 100)
    width, height = logo_dimensions((1000, 100), 100, 200)
    assert width == pytest.approx(500)
    assert height == pytest.approx(50)


def test_logo_side_adds_logo_gap_and_separator(fonts) -> None:
    groups = TextGroups.from_slots(_settings().slots)
    sizing = nominal_sizing(4000, 3000)
    left = measure_layout(sizing, groups, measurer=fonts, logo_size=None, logo_position=LogoPosition.LEFT)
    right = measure_layout(sizing, groups, measurer=fonts, logo_size=None, logo_position=LogoPosition.RIGHT)
    separator = 0.5 * 86 * 2.5
    logo_space = 136.8 + 360 * 0.2
    assert left.left_total == pytest.approx(max(left.left_line1, left.left_line2) + separator + logo_space)
    assert right.right_total == pytest.approx(max(right.right_line1, right.right_line2) + separator + logo_space)


def test_empty_logo_side_has_no_separator(fonts) -> None:
    slots = RenderSettings().slots
    groups = TextGroups.from_slots(slots)
    assert not groups.has_text(Side.LEFT)
    plan = measure_layout(
        nominal_sizing(4000, 3000), groups, measurer=fonts, logo_size=None, logo_position=LogoPosition.LEFT
    )
    assert plan.left_total == pytest.approx(136.8 + 72)


def test_typical_text_fits_without_scaling(fonts) -> None:
    plan = plan_layout((4000, 3000), _settings(), fonts, None)
    assert plan.scale == 1.0
    assert plan.banner_height == pytest.approx(360)
    assert required_width(plan) <= 4000


def test_long_text_scales_uniformly_and_clamps(fonts) -> None:
    plan = plan_layout((4000, 3000), _settings(model="X" * 200), fonts, None)
    assert plan.scale == pytest.approx(SCALE_FLOOR)
    assert plan.banner_height == pytest.approx(360 * SCALE_FLOOR)
    assert plan.main_font_size == pytest.approx(86 * SCALE_FLOOR)
    assert plan.sub_font_size == pytest.approx(72 * SCALE_FLOOR)
    assert plan.padding == pytest.approx(126 * SCALE_FLOOR)
    assert plan.logo_height == pytest.approx(136.8 * SCALE_FLOOR)


def test_fit_is_idempotent(fonts) -> None:
    plan = plan_layout((4000, 3000), _settings(model="M" * 70), fonts, None)
    assert SCALE_FLOOR < plan.scale < 1.0
    assert required_width(plan) <= 4000 + 0.5
    assert resolve_fit(plan, 4000) is plan
