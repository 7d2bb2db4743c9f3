import time
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

from exifstamp.errors import RenderTimeoutError, SourceDecodeError
from exifstamp.models import BannerStyle, CaptureMetadata, RenderSettings
from exifstamp.render import pipeline
from exifstamp.render.banner import RenderStage
from exifstamp.render.logo import LogoAsset


def _jpeg(size: tuple[int, int] = (640, 480), color: tuple[int, int, int] = (120, 160, 200)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format="JPEG")
    return buffer.getvalue()


def _png_asset(key: str) -> LogoAsset:
    buffer = BytesIO()
    Image.new("RGBA", (80, 40), (0, 0, 0, 255)).save(buffer, format="PNG")
    return LogoAsset(key=key, data=buffer.getvalue())


METADATA = CaptureMetadata(
    make="NIKON CORPORATION",
    model="NIKON Z 8",
    lens="NIKKOR Z 24-70mm f/2.8 S",
    focal_length="24mm",
    f_number="f/2.8",
    iso="ISO100",
    exposure_time="1/125s",
    date_time="2024.05.01 10:30",
)


def test_render_with_missing_logo_uses_placeholder(fonts) -> None:
    result = pipeline.render_watermark(
        _jpeg(),
        RenderSettings(),
        metadata=METADATA,
        logo_resolver=lambda key: None,
        fonts=fonts,
    )
    assert result.logo_placeholder
    banner = result.plan.banner_pixels
    assert (result.width, result.height) == (640, 480 + banner)
    with Image.open(BytesIO(result.data)) as decoded:
        assert decoded.format == "JPEG"
        assert decoded.size == (640, 480 + banner)


def test_render_with_failing_resolver_uses_placeholder(fonts) -> None:
    def resolver(key: str) -> LogoAsset:
        raise PermissionError(f"permission denied: {key}.svg")

    result = pipeline.render_watermark(
        _jpeg(),
        RenderSettings(),
        metadata=METADATA,
        logo_resolver=resolver,
        fonts=fonts,
    )
    assert result.logo_placeholder
    assert result.height == 480 + result.plan.banner_pixels


def test_render_resolves_brand_logo_from_make(fonts) -> None:
    requested: list[str] = []

    def resolver(key: str) -> LogoAsset:
        requested.append(key)
        return _png_asset(key)

    result = pipeline.render_watermark(
        _jpeg(),
        RenderSettings(banner_style=BannerStyle.ADAPTIVE),
        metadata=METADATA,
        logo_resolver=resolver,
        fonts=fonts,
    )
    assert requested == ["NIKON"]
    assert not result.logo_placeholder
    assert result.plan.left_line1 > 0


def test_render_accepts_path_source(tmp_path: Path, fonts) -> None:
    source = tmp_path / "photo.jpg"
    source.write_bytes(_jpeg((300, 500)))
    result = pipeline.render_watermark(source, RenderSettings(), fonts=fonts)
    assert result.width == 300
    assert result.height == 500 + result.plan.banner_pixels


def test_undecodable_source_fails_with_stage(fonts) -> None:
    with pytest.raises(SourceDecodeError) as exc_info:
        pipeline.render_watermark(b"definitely not an image", RenderSettings(), fonts=fonts)
    assert "load_source" in str(exc_info.value)


def test_slow_decode_times_out(monkeypatch, fonts) -> None:
    real_load = pipeline._load_source

    def slow_load(source):
        time.sleep(0.5)
        return real_load(source)

    monkeypatch.setattr(pipeline, "_load_source", slow_load)
    stages: list[RenderStage] = []
    with pytest.raises(RenderTimeoutError) as exc_info:
        pipeline.render_watermark(_jpeg(), RenderSettings(), fonts=fonts, timeout=0.05, on_stage=stages.append)
    assert exc_info.value.stage is RenderStage.LOAD_SOURCE
    assert stages[-1] is RenderStage.FAILED


def test_stages_progress_in_order(fonts) -> None:
    stages: list[RenderStage] = []
    pipeline.render_watermark(_jpeg(), RenderSettings(), fonts=fonts, on_stage=stages.append)
    assert stages == [
        RenderStage.LOAD_SOURCE,
        RenderStage.LOAD_LOGO,
        RenderStage.MEASURE,
        RenderStage.RESOLVE_FIT,
        RenderStage.STYLE,
        RenderStage.DRAW,
        RenderStage.ENCODE,
        RenderStage.DONE,
    ]
