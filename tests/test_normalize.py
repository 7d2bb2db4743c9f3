from datetime import datetime

import pytest
from PIL.TiffImagePlugin import IFDRational

from exifstamp.errors import GPSResolutionError
from exifstamp.meta.normalize import (
    classify_brand,
    dms_to_decimal,
    fallback_metadata,
    format_exposure_time,
    format_f_number,
    format_focal_length,
    format_iso,
    normalize_metadata,
)


def test_normalize_metadata_formats_display_strings() -> None:
    raw = {
        "Make": "NIKON CORPORATION",
        "Model": "NIKON Z 8",
        "LensModel": "NIKKOR Z 24-70mm f/2.8 S",
        "FocalLength": "24 mm",
        "FNumber": "1.8",
        "ExposureTime": "1/125",
        "ISO": "400",
        "DateTimeOriginal": "2024:05:01 10:30:00",
    }
    metadata = normalize_metadata(raw)
    assert metadata.model == "NIKON Z 8"
    assert metadata.lens == "NIKKOR Z 24-70mm f/2.8 S"
    assert metadata.focal_length == "24mm"
    assert metadata.f_number == "f/1.8"
    assert metadata.exposure_time == "1/125s"
    assert metadata.iso == "ISO400"
    assert metadata.date_time == "2024.05.01 10:30"
    assert metadata.gps_label is None


def test_normalize_metadata_accepts_numeric_exiftool_values() -> None:
    raw = {
        "EXIF:FocalLength": 600,
        "EXIF:FNumber": 4.0,
        "EXIF:ExposureTime": 0.0005,
        "EXIF:ISO": 800,
        "EXIF:GPSLatitude": 39.12345,
        "EXIF:GPSLongitude": 116.12345,
    }
    metadata = normalize_metadata(raw)
    assert metadata.focal_length == "600mm"
    assert metadata.f_number == "f/4"
    assert metadata.exposure_time == "1/2000s"
    assert metadata.iso == "ISO800"
    assert metadata.gps_label == "39.12, 116.12"
    assert metadata.lat == pytest.approx(39.12345)


def test_normalize_metadata_tolerates_missing_keys() -> None:
    now = datetime(2025, 1, 2, 3, 4, 5)
    metadata = normalize_metadata({}, now=now)
    assert metadata.model == ""
    assert metadata.f_number == ""
    assert metadata.iso == ""
    assert metadata.date_time == "2025.01.02 03:04"
    assert metadata.gps_label is None


def test_formatters_do_not_double_prefixes() -> None:
    assert format_f_number("f/2.8") == "f/2.8"
    assert format_exposure_time("2s") == "2s"
    assert format_iso("ISO 100") == "ISO100"
    assert format_focal_length("35 mm") == "35mm"
    assert format_exposure_time(2) == "2s"


def test_dms_conversion_honours_hemisphere() -> None:
    assert dms_to_decimal((40, 44, 54.36), "N") == pytest.approx(40.7484, abs=1e-4)
    assert dms_to_decimal((40, 44, 54.36), "S") == pytest.approx(-40.7484, abs=1e-4)
    assert dms_to_decimal(((40, 1), (44, 1), (5436, 100)), "W") == pytest.approx(-40.7484, abs=1e-4)


def test_dms_conversion_rejects_short_values() -> None:
    with pytest.raises(GPSResolutionError):
        dms_to_decimal((40, 44), "N")


def test_gps_dms_tags_produce_two_decimal_label() -> None:
    raw = {
        "GPSLatitude": (40, 44, 54.36),
        "GPSLatitudeRef": "N",
        "GPSLongitude": (73, 59, 8.5),
        "GPSLongitudeRef": "W",
    }
    metadata = normalize_metadata(raw)
    assert metadata.gps_label == "40.75, -73.99"
    assert metadata.has_coordinates


def test_unresolvable_gps_tags_use_placeholder_label() -> None:
    metadata = normalize_metadata({"GPSLatitude": "somewhere", "GPSLongitude": "else"})
    assert metadata.gps_label == "Location Data"
    assert not metadata.has_coordinates


def test_zero_over_zero_gps_rationals_use_placeholder_label() -> None:
    empty = (IFDRational(0, 0),) * 3
    metadata = normalize_metadata({"GPSLatitude": empty, "GPSLatitudeRef": "N", "GPSLongitude": empty})
    assert metadata.gps_label == "Location Data"
    assert metadata.lat is None
    assert not metadata.has_coordinates
    with pytest.raises(GPSResolutionError):
        dms_to_decimal(empty, "N")


def test_zero_over_zero_rationals_format_as_absent() -> None:
    assert format_focal_length(IFDRational(0, 0)) == ""
    assert format_exposure_time(IFDRational(0, 0)) == ""
    assert format_f_number(IFDRational(0, 0)) == ""
    assert format_iso(float("nan")) == ""
    metadata = normalize_metadata({"FocalLength": IFDRational(0, 0), "ExposureTime": IFDRational(0, 0)})
    assert metadata.focal_length == ""
    assert metadata.exposure_time == ""


def test_classify_brand() -> None:
    assert classify_brand("NIKON CORPORATION") == "NIKON"
    assert classify_brand("FUJIFILM") == "FUJIFILM"
    assert classify_brand("OM Digital Solutions") == "OLYMPUS"
    assert classify_brand("Acme Optics") == "DEFAULT"
    assert classify_brand(None) == "DEFAULT"


def test_fallback_metadata_uses_placeholder_model() -> None:
    metadata = fallback_metadata(now=datetime(2024, 5, 1, 10, 30))
    assert metadata.make == "Camera"
    assert metadata.model == "Unknown"
    assert metadata.date_time == "2024.05.01 10:30"
