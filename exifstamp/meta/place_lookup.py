"""Reverse place-name lookup for the GPS slot using OpenStreetMap Nominatim.

The lookup is optional and never blocks a render: callers upgrade the GPS
label on a CaptureMetadata and re-render with the new record.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from typing import Any, Callable

import requests

from exifstamp.errors import PlaceLookupError
from exifstamp.models import CaptureMetadata

LOGGER = logging.getLogger(__name__)

NOMINATIM_BASE_URL = "https://nominatim.openstreetmap.org/reverse"
NOMINATIM_USER_AGENT = os.getenv("NOMINATIM_USER_AGENT", "exifstamp/0.1 (photo banner tool)")
NOMINATIM_HEADERS = {"User-Agent": NOMINATIM_USER_AGENT}
_MIN_INTERVAL_SEC = float(os.getenv("NOMINATIM_MIN_INTERVAL", "1.1"))
_REQUEST_TIMEOUT_SEC = 10.0

_session = requests.Session()
_lock = threading.Lock()
_last_request_ts: float = 0.0

PlaceLookup = Callable[[float, float, str], str | None]


def _throttled_get(params: dict[str, Any]) -> requests.Response:
    global _last_request_ts
    with _lock:
        wait = _MIN_INTERVAL_SEC - (time.monotonic() - _last_request_ts)
        if wait > 0:
            time.sleep(wait)
        try:
            return _session.get(
                NOMINATIM_BASE_URL,
                params=params,
                headers=NOMINATIM_HEADERS,
                timeout=_REQUEST_TIMEOUT_SEC,
            )
        finally:
            _last_request_ts = time.monotonic()


def place_label_from_address(address: dict[str, Any]) -> str | None:
    city = (
        address.get("city")
        or address.get("town")
        or address.get("village")
        or address.get("county")
        or ""
    )
    country = address.get("country") or ""
    parts = [city] if city else []
    if country and country != city:
        parts.append(country)
    return ", ".join(parts) or None


def lookup_place_label(lat: float, lon: float, lang: str = "en") -> str | None:
    params = {
        "format": "json",
        "lat": f"{lat:.6f}",
        "lon": f"{lon:.6f}",
        "zoom": 10,
        "accept-language": lang,
    }
    try:
        response = _throttled_get(params)
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as exc:
        raise PlaceLookupError(f"reverse lookup failed: {exc}", stage="place_lookup") from exc
    if not isinstance(payload, dict):
        raise PlaceLookupError("unexpected reverse lookup payload", stage="place_lookup")
    address = payload.get("address")
    if not isinstance(address, dict):
        return None
    return place_label_from_address(address)


def upgrade_gps_label(
    metadata: CaptureMetadata,
    lang: str = "en",
    lookup: PlaceLookup = lookup_place_label,
) -> CaptureMetadata:
    """Return ``metadata`` with a place-name label, or unchanged when the lookup fails."""
    if not metadata.has_coordinates:
        return metadata
    try:
        label = lookup(metadata.lat, metadata.lon, lang)  # type: ignore[arg-type]
    except PlaceLookupError as exc:
        LOGGER.warning("Place lookup failed, keeping %r: %s", metadata.gps_label, exc)
        return metadata
    if not label:
        return metadata
    return metadata.with_gps_label(label)
