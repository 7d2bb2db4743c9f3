from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any

import yaml

from exifstamp.constants import LOGO_AUTO
from exifstamp.models import (
    SLOT_IDS,
    BannerStyle,
    FieldSlots,
    LogoPosition,
    RenderSettings,
    Side,
    default_field_slots,
)

LOGGER = logging.getLogger(__name__)


def _parse_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_enum(enum_type: type, value: Any, default: Any) -> Any:
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(str(value).strip().lower())
    except ValueError:
        LOGGER.warning("Unknown %s %r, using %s", enum_type.__name__, value, default.value)
        return default


def _clamp_int(value: Any, low: int, high: int, default: int) -> int:
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return default
    return min(high, max(low, number))


def _renumber(slots: FieldSlots) -> FieldSlots:
    """Make ``order`` unique and contiguous inside every (side, line) group."""
    rank = {slot_id: index for index, slot_id in enumerate(SLOT_IDS)}
    updated = slots
    for side in (Side.LEFT, Side.RIGHT):
        for line in (1, 2):
            members = [slot for slot in slots if slot.side is side and slot.line == line]
            members.sort(key=lambda slot: (slot.order, rank[slot.id]))
            for index, member in enumerate(members):
                updated = updated.with_slot(replace(member, order=index))
    return updated


def normalize_slots(data: dict[str, Any] | None) -> FieldSlots:
    slots = default_field_slots()
    for slot_id, override in (data or {}).items():
        if slot_id not in SLOT_IDS:
            LOGGER.warning("Ignoring unknown slot: %s", slot_id)
            continue
        if not isinstance(override, dict):
            continue
        slot = slots.get(slot_id)
        raw_side = override.get("side", slot.side)
        # YAML 1.1 reads a bare ``off`` as False
        side = Side.OFF if raw_side is False else _parse_enum(Side, raw_side, slot.side)
        line = _clamp_int(override.get("line", slot.line), 1, 2, slot.line)
        order = _clamp_int(override.get("order", slot.order), 0, len(SLOT_IDS), slot.order)
        text = override.get("text")
        slot = replace(slot, side=side, line=line, order=order, text=str(text) if text else slot.text)
        slots = slots.with_slot(slot)
    return _renumber(slots)


def normalize_settings_dict(data: dict[str, Any], *, custom_logo_data: bytes | None = None) -> RenderSettings:
    logo_selection = str(data.get("logo") or LOGO_AUTO).strip().upper() or LOGO_AUTO
    return RenderSettings(
        slots=normalize_slots(data.get("slots")),
        banner_style=_parse_enum(BannerStyle, data.get("banner_style", "white"), BannerStyle.WHITE),
        blur_intensity=_clamp_int(data.get("blur_intensity", 30), 0, 100, 30),
        logo_selection=logo_selection,
        custom_logo_data=custom_logo_data,
        logo_position=_parse_enum(LogoPosition, data.get("logo_position", "left"), LogoPosition.LEFT),
        use_adaptive_text_color=_parse_bool(data.get("adaptive_text_color"), False),
    )


def read_layout_file(path: Path) -> dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)
    if not isinstance(data, dict):
        raise ValueError(f"layout file is not a dict: {path}")
    return data


def load_settings_file(
    path: Path,
    base: dict[str, Any] | None = None,
    *,
    custom_logo_data: bytes | None = None,
) -> RenderSettings:
    """Read a YAML or JSON layout file; its keys override ``base`` (usually the user config)."""
    merged = dict(base or {})
    merged.update(read_layout_file(path))
    return normalize_settings_dict(merged, custom_logo_data=custom_logo_data)
