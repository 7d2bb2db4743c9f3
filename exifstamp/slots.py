from __future__ import annotations

from dataclasses import replace

from exifstamp.models import CaptureMetadata, FieldSlot, FieldSlots, RenderSettings, Side


def _group(slots: FieldSlots, side: Side, line: int, *, exclude: str | None = None) -> list[FieldSlot]:
    members = [slot for slot in slots if slot.side is side and slot.line == line and slot.id != exclude]
    return sorted(members, key=lambda slot: slot.order)


def grouped_slots(slots: FieldSlots, side: Side, line: int) -> list[FieldSlot]:
    if side is Side.OFF:
        return []
    return _group(slots, side, line)


def grouped_texts(slots: FieldSlots, side: Side, line: int) -> list[str]:
    """Non-empty texts of one (side, line) group in draw order."""
    return [slot.text for slot in grouped_slots(slots, side, line) if slot.text]


def set_slot_text(slots: FieldSlots, slot_id: str, text: str) -> FieldSlots:
    slot = slots.get(slot_id)
    return slots.with_slot(replace(slot, text=text or ""))


def move_slot(
    slots: FieldSlots,
    slot_id: str,
    side: Side,
    line: int,
    before: str | None = None,
) -> FieldSlots:
    """Insert ``slot_id`` into the (side, line) group, ahead of ``before`` when given.

    The target group is renumbered 0..n-1; the group the slot left keeps its
    remaining orders.
    """
    if line not in (1, 2):
        raise ValueError(f"line must be 1 or 2, got: {line!r}")
    moving = slots.get(slot_id)
    if side is Side.OFF:
        return hide_slot(slots, slot_id)
    if before == slot_id:
        return slots

    members = _group(slots, side, line, exclude=slot_id)
    insert_at = len(members)
    if before is not None:
        for index, member in enumerate(members):
            if member.id == before:
                insert_at = index
                break
    members.insert(insert_at, moving)

    updated = slots
    for index, member in enumerate(members):
        updated = updated.with_slot(replace(member, side=side, line=line, order=index))
    return updated


def hide_slot(slots: FieldSlots, slot_id: str) -> FieldSlots:
    slot = slots.get(slot_id)
    return slots.with_slot(replace(slot, side=Side.OFF))


def restore_slot(slots: FieldSlots, slot_id: str) -> FieldSlots:
    slot = slots.get(slot_id)
    if slot.visible:
        return slots
    return move_slot(slots, slot_id, Side.LEFT, 1)


def apply_metadata(settings: RenderSettings, metadata: CaptureMetadata) -> RenderSettings:
    texts = {
        "model": metadata.model,
        "lens": metadata.lens,
        "focal_length": metadata.focal_length,
        "f_number": metadata.f_number,
        "iso": metadata.iso,
        "exposure_time": metadata.exposure_time,
        "date": metadata.date_time,
        "gps": metadata.gps_label or "",
    }
    slots = settings.slots
    for slot_id, text in texts.items():
        slots = set_slot_text(slots, slot_id, text)
    return replace(settings, slots=slots)
