import pytest

from exifstamp.models import CaptureMetadata, RenderSettings, Side, default_field_slots
from exifstamp.slots import (
    apply_metadata,
    grouped_slots,
    grouped_texts,
    hide_slot,
    move_slot,
    restore_slot,
    set_slot_text,
)


def _orders(slots, side: Side, line: int) -> list[int]:
    return [slot.order for slot in grouped_slots(slots, side, line)]


def test_default_placement() -> None:
    slots = default_field_slots()
    assert [slot.id for slot in grouped_slots(slots, Side.LEFT, 1)] == ["model", "lens"]
    assert [slot.id for slot in grouped_slots(slots, Side.RIGHT, 1)] == [
        "focal_length",
        "f_number",
        "iso",
        "exposure_time",
    ]
    assert [slot.id for slot in grouped_slots(slots, Side.RIGHT, 2)] == ["date"]
    assert not slots.gps.visible


def test_grouped_texts_skips_empty_and_hidden_slots() -> None:
    slots = set_slot_text(default_field_slots(), "model", "Z 8")
    slots = set_slot_text(slots, "gps", "40.75, -73.99")
    assert grouped_texts(slots, Side.LEFT, 1) == ["Z 8"]
    assert grouped_texts(slots, Side.LEFT, 2) == []


def test_move_slot_inserts_before_and_renumbers() -> None:
    slots = move_slot(default_field_slots(), "iso", Side.LEFT, 1, before="lens")
    assert [slot.id for slot in grouped_slots(slots, Side.LEFT, 1)] == ["model", "iso", "lens"]
    assert _orders(slots, Side.LEFT, 1) == [0, 1, 2]
    assert [slot.id for slot in grouped_slots(slots, Side.RIGHT, 1)] == [
        "focal_length",
        "f_number",
        "exposure_time",
    ]


def test_move_slot_rejects_invalid_line() -> None:
    with pytest.raises(ValueError):
        move_slot(default_field_slots(), "iso", Side.LEFT, 3)


def test_move_slot_is_immutable_update() -> None:
    original = default_field_slots()
    moved = move_slot(original, "date", Side.LEFT, 2)
    assert original.date.side is Side.RIGHT
    assert moved.date.side is Side.LEFT
    assert moved.date.line == 2


def test_hide_and_restore_slot() -> None:
    slots = hide_slot(default_field_slots(), "lens")
    assert not slots.lens.visible
    restored = restore_slot(slots, "lens")
    assert restored.lens.side is Side.LEFT
    assert restored.lens.line == 1
    assert [slot.id for slot in grouped_slots(restored, Side.LEFT, 1)] == ["model", "lens"]
    restored_gps = restore_slot(restored, "gps")
    assert _orders(restored_gps, Side.LEFT, 1) == [0, 1, 2]


def test_apply_metadata_fills_slot_text() -> None:
    metadata = CaptureMetadata(
        model="X-T5",
        lens="XF 23mm",
        focal_length="23mm",
        f_number="f/2",
        iso="ISO160",
        exposure_time="1/250s",
        date_time="2024.05.01 10:30",
    )
    settings = apply_metadata(RenderSettings(), metadata)
    assert settings.slots.model.text == "X-T5"
    assert settings.slots.date.text == "2024.05.01 10:30"
    assert settings.slots.gps.text == ""
