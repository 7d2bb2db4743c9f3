from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import Any

from PIL import ExifTags, Image

from exifstamp.errors import MetadataExtractionError

LOGGER = logging.getLogger(__name__)

_EXIF_IFD_POINTER = 0x8769
_GPS_IFD_POINTER = 0x8825


def _rational_value(value: Any) -> Any:
    if isinstance(value, tuple):
        return tuple(_rational_value(item) for item in value)
    if isinstance(value, bytes):
        return value.rstrip(b"\x00").decode("utf-8", errors="ignore")
    return value


def _collect_tags(exif: Image.Exif) -> dict[str, Any]:
    tags: dict[str, Any] = {}
    for tag_id, value in exif.items():
        tags[ExifTags.TAGS.get(tag_id, str(tag_id))] = _rational_value(value)
    for tag_id, value in exif.get_ifd(_EXIF_IFD_POINTER).items():
        tags[ExifTags.TAGS.get(tag_id, str(tag_id))] = _rational_value(value)
    # DMS triples and hemisphere refs are kept as-is for the normalizer.
    for tag_id, value in exif.get_ifd(_GPS_IFD_POINTER).items():
        tags[ExifTags.GPSTAGS.get(tag_id, str(tag_id))] = _rational_value(value)
    tags.pop("ExifOffset", None)
    tags.pop("GPSInfo", None)
    return tags


def extract_pillow_metadata(source: Path | bytes) -> dict[str, Any]:
    """Read EXIF tags through Pillow into a flat, string-keyed dictionary.

    Raises ``MetadataExtractionError`` when the file cannot be opened at all;
    an image without EXIF yields an (almost) empty dictionary.
    """
    metadata: dict[str, Any] = {}
    if isinstance(source, Path):
        metadata["SourceFile"] = str(source)
        opener: Any = source
    else:
        opener = BytesIO(source)
    try:
        with Image.open(opener) as image:
            exif = image.getexif()
            if exif:
                metadata.update(_collect_tags(exif))
    except Exception as exc:
        LOGGER.debug("Pillow metadata read failed for %s: %s", metadata.get("SourceFile", "<bytes>"), exc)
        raise MetadataExtractionError(f"cannot read EXIF: {exc}", stage="metadata") from exc
    return metadata
