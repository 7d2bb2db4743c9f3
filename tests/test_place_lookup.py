import pytest
import requests

from exifstamp.errors import PlaceLookupError
from exifstamp.meta import place_lookup
from exifstamp.models import CaptureMetadata


class _FakeResponse:
    def __init__(self, payload, status: int = 200) -> None:
        self._payload = payload
        self.status_code = status

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"status {self.status_code}")

    def json(self):
        return self._payload


@pytest.fixture(autouse=True)
def _no_throttle(monkeypatch) -> None:
    monkeypatch.setattr(place_lookup, "_MIN_INTERVAL_SEC", 0.0)


def test_place_label_from_address() -> None:
    assert place_lookup.place_label_from_address({"city": "Paris", "country": "France"}) == "Paris, France"
    assert place_lookup.place_label_from_address({"village": "Hallstatt", "country": "Austria"}) == "Hallstatt, Austria"
    assert place_lookup.place_label_from_address({"country": "Monaco", "city": "Monaco"}) == "Monaco"
    assert place_lookup.place_label_from_address({}) is None


def test_lookup_sends_language_and_zoom(monkeypatch) -> None:
    captured = {}

    def fake_get(url, params=None, headers=None, timeout=None):
        captured.update(params=params, headers=headers)
        return _FakeResponse({"address": {"town": "Zermatt", "country": "Switzerland"}})

    monkeypatch.setattr(place_lookup._session, "get", fake_get)
    label = place_lookup.lookup_place_label(46.02, 7.75, lang="de")
    assert label == "Zermatt, Switzerland"
    assert captured["params"]["accept-language"] == "de"
    assert captured["params"]["zoom"] == 10
    assert "User-Agent" in captured["headers"]


def test_lookup_failure_raises_place_lookup_error(monkeypatch) -> None:
    def fake_get(*args, **kwargs):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(place_lookup._session, "get", fake_get)
    with pytest.raises(PlaceLookupError):
        place_lookup.lookup_place_label(1.0, 2.0)


def test_upgrade_keeps_prior_label_on_failure() -> None:
    metadata = CaptureMetadata(gps_label="1.00, 2.00", lat=1.0, lon=2.0)

    def failing(lat: float, lon: float, lang: str) -> str | None:
        raise PlaceLookupError("boom")

    assert place_lookup.upgrade_gps_label(metadata, lookup=failing) is metadata


def test_upgrade_replaces_label() -> None:
    metadata = CaptureMetadata(gps_label="1.00, 2.00", lat=1.0, lon=2.0)
    upgraded = place_lookup.upgrade_gps_label(metadata, lookup=lambda lat, lon, lang: "Somewhere, Earth")
    assert upgraded.gps_label == "Somewhere, Earth"
    assert metadata.gps_label == "1.00, 2.00"


def test_upgrade_skips_records_without_coordinates() -> None:
    metadata = CaptureMetadata(gps_label="Location Data")

    def unexpected(lat: float, lon: float, lang: str) -> str | None:
        raise AssertionError("lookup must not run")

    assert place_lookup.upgrade_gps_label(metadata, lookup=unexpected) is metadata
