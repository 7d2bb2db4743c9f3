from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterator

from exifstamp.constants import DEFAULT_SLOT_PLACEMENT, LOGO_AUTO, SLOT_LABELS

RGB = tuple[int, int, int]

SLOT_IDS: tuple[str, ...] = tuple(slot_id for slot_id, *_ in DEFAULT_SLOT_PLACEMENT)


class Side(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    OFF = "off"


class BannerStyle(str, Enum):
    BLACK = "black"
    WHITE = "white"
    BLUR = "blur"
    ADAPTIVE = "adaptive"


class LogoPosition(str, Enum):
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True, slots=True)
class CaptureMetadata:
    make: str = ""
    model: str = ""
    lens: str = ""
    focal_length: str = ""
    f_number: str = ""
    iso: str = ""
    exposure_time: str = ""
    date_time: str = ""
    gps_label: str | None = None
    lat: float | None = None
    lon: float | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None

    def with_gps_label(self, label: str | None) -> CaptureMetadata:
        return replace(self, gps_label=label)

    def to_dict(self) -> dict[str, Any]:
        return {
            "make": self.make,
            "model": self.model,
            "lens": self.lens,
            "focal_length": self.focal_length,
            "f_number": self.f_number,
            "iso": self.iso,
            "exposure_time": self.exposure_time,
            "date_time": self.date_time,
            "gps_label": self.gps_label,
            "lat": self.lat,
            "lon": self.lon,
        }


@dataclass(frozen=True, slots=True)
class FieldSlot:
    id: str
    label: str
    text: str = ""
    side: Side = Side.OFF
    line: int = 1
    order: int = 0

    @property
    def visible(self) -> bool:
        return self.side is not Side.OFF


@dataclass(frozen=True, slots=True)
class FieldSlots:
    """The eight fixed slots. Slots are relocated, never added or removed."""

    model: FieldSlot
    lens: FieldSlot
    focal_length: FieldSlot
    f_number: FieldSlot
    iso: FieldSlot
    exposure_time: FieldSlot
    date: FieldSlot
    gps: FieldSlot

    def __iter__(self) -> Iterator[FieldSlot]:
        for slot_id in SLOT_IDS:
            yield getattr(self, slot_id)

    def get(self, slot_id: str) -> FieldSlot:
        if slot_id not in SLOT_IDS:
            raise KeyError(f"unknown slot: {slot_id}")
        return getattr(self, slot_id)

    def with_slot(self, slot: FieldSlot) -> FieldSlots:
        if slot.id not in SLOT_IDS:
            raise KeyError(f"unknown slot: {slot.id}")
        return replace(self, **{slot.id: slot})


def default_field_slots() -> FieldSlots:
    slots = {
        slot_id: FieldSlot(
            id=slot_id,
            label=SLOT_LABELS[slot_id],
            side=Side(side),
            line=line,
            order=order,
        )
        for slot_id, side, line, order in DEFAULT_SLOT_PLACEMENT
    }
    return FieldSlots(**slots)


@dataclass(frozen=True, slots=True)
class RenderSettings:
    slots: FieldSlots = field(default_factory=default_field_slots)
    banner_style: BannerStyle = BannerStyle.WHITE
    blur_intensity: int = 30
    logo_selection: str = LOGO_AUTO
    custom_logo_data: bytes | None = None
    logo_position: LogoPosition = LogoPosition.LEFT
    use_adaptive_text_color: bool = False


@dataclass(frozen=True, slots=True)
class ColorSample:
    dominant: RGB
    secondary: RGB


@dataclass(frozen=True, slots=True)
class Sizing:
    banner_height: float
    main_font_size: float
    sub_font_size: float
    padding: float
    logo_height: float

    def scaled(self, factor: float) -> Sizing:
        return Sizing(
            banner_height=self.banner_height * factor,
            main_font_size=self.main_font_size * factor,
            sub_font_size=self.sub_font_size * factor,
            padding=self.padding * factor,
            logo_height=self.logo_height * factor,
        )


@dataclass(frozen=True, slots=True)
class LayoutPlan:
    sizing: Sizing
    logo_width: float
    logo_height: float
    left_line1: float = 0.0
    left_line2: float = 0.0
    right_line1: float = 0.0
    right_line2: float = 0.0
    left_total: float = 0.0
    right_total: float = 0.0
    scale: float = 1.0

    @property
    def banner_height(self) -> float:
        return self.sizing.banner_height

    @property
    def main_font_size(self) -> float:
        return self.sizing.main_font_size

    @property
    def sub_font_size(self) -> float:
        return self.sizing.sub_font_size

    @property
    def padding(self) -> float:
        return self.sizing.padding

    @property
    def banner_pixels(self) -> int:
        return max(1, int(self.sizing.banner_height))

    def scaled(self, factor: float) -> LayoutPlan:
        return LayoutPlan(
            sizing=self.sizing.scaled(factor),
            logo_width=self.logo_width * factor,
            logo_height=self.logo_height * factor,
            left_line1=self.left_line1 * factor,
            left_line2=self.left_line2 * factor,
            right_line1=self.right_line1 * factor,
            right_line2=self.right_line2 * factor,
            left_total=self.left_total * factor,
            right_total=self.right_total * factor,
            scale=self.scale * factor,
        )
