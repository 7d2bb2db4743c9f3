from __future__ import annotations

import logging
import math
import re
from datetime import datetime
from typing import Any

from exifstamp.constants import BRAND_TABLE, DEFAULT_BRAND, DISPLAY_DATE_FORMAT, GPS_PLACEHOLDER_LABEL
from exifstamp.errors import GPSResolutionError
from exifstamp.models import CaptureMetadata

LOGGER = logging.getLogger(__name__)


def _normalize_lookup(raw: dict[str, Any]) -> dict[str, Any]:
    lookup: dict[str, Any] = {}
    for key, value in raw.items():
        k = str(key).strip().lower()
        if not k:
            continue
        lookup.setdefault(k, value)
        if ":" in k:
            lookup.setdefault(k.split(":")[-1], value)
    return lookup


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    if isinstance(value, (list, tuple)):
        value = " ".join(str(v).strip() for v in value if str(v).strip())
    text = str(value).replace("\x00", " ").strip()
    return re.sub(r"\s+", " ", text)


def _pick(lookup: dict[str, Any], candidates: list[str]) -> Any | None:
    for key in candidates:
        value = lookup.get(key.lower())
        if value in (None, "", " "):
            continue
        return value
    return None


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    # Pillow's IFDRational and fractions expose numerator/denominator
    return hasattr(value, "numerator") and hasattr(value, "denominator")


def _to_float(value: Any) -> float | None:
    if value is None:
        return None
    if _is_number(value):
        try:
            number = float(value)
        except (TypeError, ValueError, ZeroDivisionError):
            return None
        # IFDRational(0, 0) converts to nan without raising
        return number if math.isfinite(number) else None
    match = re.search(r"[-+]?\d+(\.\d+)?", _clean_text(value))
    if not match:
        return None
    return float(match.group(0))


def _first(value: Any) -> Any:
    if isinstance(value, (list, tuple)) and value:
        return value[0]
    return value


def format_focal_length(value: Any) -> str:
    if value is None:
        return ""
    if _is_number(value):
        number = _to_float(value)
        return f"{number:g}mm" if number else ""
    return re.sub(r"\s+", "", _clean_text(value))


def format_f_number(value: Any) -> str:
    if value is None:
        return ""
    if _is_number(value):
        number = _to_float(value)
        text = f"{number:g}" if number else ""
    else:
        text = _clean_text(value)
    if text and not text.startswith("f/"):
        text = f"f/{text}"
    return text


def format_exposure_time(value: Any) -> str:
    if value is None:
        return ""
    if _is_number(value):
        seconds = _to_float(value)
        if not seconds or seconds <= 0:
            return ""
        if seconds < 1:
            denominator = round(1 / seconds)
            if denominator > 0:
                return f"1/{denominator}s"
        return f"{seconds:g}s"
    text = _clean_text(value)
    if text and not text.endswith("s"):
        text = f"{text}s"
    return text


def format_iso(value: Any) -> str:
    value = _first(value)
    if value is None:
        return ""
    if _is_number(value):
        number = _to_float(value)
        text = f"{number:g}" if number is not None else ""
    else:
        text = _clean_text(value)
    if not text:
        return ""
    if text.upper().startswith("ISO"):
        return "ISO" + text[3:].strip()
    return f"ISO{text}"


def format_capture_date(value: Any, now: datetime | None = None) -> str:
    """``2024:05:01 10:30:00`` -> ``2024.05.01 10:30``; the current time when absent."""
    text = _clean_text(value)
    if not text:
        return (now or datetime.now()).strftime(DISPLAY_DATE_FORMAT)
    parts = text.replace("T", " ").split(" ")
    date_part = parts[0].replace(":", ".").replace("-", ".")
    if len(parts) < 2:
        return date_part
    return f"{date_part} {parts[1][:5]}"


def _ratio_to_float(value: Any) -> float:
    if isinstance(value, tuple) and len(value) == 2:
        numerator, denominator = value
        number = float(numerator) / float(denominator)
    else:
        number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"non-finite ratio: {value!r}")
    return number


def dms_to_decimal(values: Any, ref: str | None) -> float:
    if not isinstance(values, (list, tuple)) or len(values) < 3:
        raise GPSResolutionError(f"not a DMS triple: {values!r}", stage="gps")
    try:
        degrees = _ratio_to_float(values[0])
        minutes = _ratio_to_float(values[1])
        seconds = _ratio_to_float(values[2])
    except (TypeError, ValueError, ZeroDivisionError) as exc:
        raise GPSResolutionError(f"invalid DMS value: {values!r}", stage="gps") from exc
    decimal = degrees + (minutes / 60.0) + (seconds / 3600.0)
    if _hemisphere(ref) in {"S", "W"}:
        decimal = -decimal
    return decimal


def _hemisphere(ref: Any) -> str:
    text = _clean_text(ref).upper()
    return text[:1]


def _coordinate(value: Any, ref: Any) -> float:
    if isinstance(value, (list, tuple)):
        return dms_to_decimal(value, _clean_text(ref))
    number = _to_float(value)
    if number is None:
        raise GPSResolutionError(f"cannot parse coordinate: {value!r}", stage="gps")
    if number > 0 and _hemisphere(ref) in {"S", "W"}:
        number = -number
    return number


def resolve_gps(lookup: dict[str, Any]) -> tuple[str | None, float | None, float | None]:
    lat_value = _pick(lookup, ["GPSLatitude"])
    lon_value = _pick(lookup, ["GPSLongitude"])
    if lat_value is None or lon_value is None:
        return None, None, None
    try:
        lat = _coordinate(lat_value, lookup.get("gpslatituderef", "N"))
        lon = _coordinate(lon_value, lookup.get("gpslongituderef", "E"))
    except GPSResolutionError as exc:
        LOGGER.debug("GPS tags present but unresolved: %s", exc)
        return GPS_PLACEHOLDER_LABEL, None, None
    return f"{lat:.2f}, {lon:.2f}", lat, lon


def classify_brand(make: str | None) -> str:
    lowered = (make or "").lower()
    for brand, needles in BRAND_TABLE:
        if any(needle in lowered for needle in needles):
            return brand
    return DEFAULT_BRAND


def normalize_metadata(raw_metadata: dict[str, Any] | None, *, now: datetime | None = None) -> CaptureMetadata:
    lookup = _normalize_lookup(raw_metadata or {})

    gps_label, lat, lon = resolve_gps(lookup)
    return CaptureMetadata(
        make=_clean_text(_pick(lookup, ["Make"])),
        model=_clean_text(_pick(lookup, ["Model", "CameraModelName"])),
        lens=_clean_text(_pick(lookup, ["LensModel", "Lens", "LensID"])),
        focal_length=format_focal_length(_pick(lookup, ["FocalLength"])),
        f_number=format_f_number(_pick(lookup, ["FNumber", "Aperture"])),
        iso=format_iso(_pick(lookup, ["ISOSpeedRatings", "PhotographicSensitivity", "ISO"])),
        exposure_time=format_exposure_time(_pick(lookup, ["ExposureTime", "ShutterSpeed"])),
        date_time=format_capture_date(_pick(lookup, ["DateTimeOriginal", "CreateDate", "DateTime"]), now=now),
        gps_label=gps_label,
        lat=lat,
        lon=lon,
    )


def fallback_metadata(now: datetime | None = None) -> CaptureMetadata:
    """Stand-in record for when tag extraction fails outright."""
    return CaptureMetadata(
        make="Camera",
        model="Unknown",
        date_time=(now or datetime.now()).strftime(DISPLAY_DATE_FORMAT),
    )
