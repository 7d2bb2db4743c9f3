from __future__ import annotations

import concurrent.futures
import logging
import time
from dataclasses import dataclass
from pathlib import Path

from PIL import Image

from exifstamp.constants import DEFAULT_JPEG_QUALITY, DEFAULT_RENDER_TIMEOUT_S
from exifstamp.decoders.image_decoder import decode_image, decode_image_bytes
from exifstamp.errors import LogoLoadError, RenderTimeoutError, SourceDecodeError
from exifstamp.meta.normalize import classify_brand
from exifstamp.models import CaptureMetadata, LayoutPlan, RenderSettings
from exifstamp.render.banner import RenderStage, StageCallback, compose_banner, encode_jpeg
from exifstamp.render.logo import LogoResolver, load_logo
from exifstamp.render.typography import FontSet
from exifstamp.slots import apply_metadata

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class RenderResult:
    data: bytes
    width: int
    height: int
    plan: LayoutPlan
    logo_placeholder: bool


class _StageTracker:
    """Remembers the stage in flight so a timeout can name it."""

    def __init__(self, forward: StageCallback | None) -> None:
        self.stage = RenderStage.LOAD_SOURCE
        self.forward = forward

    def __call__(self, stage: RenderStage) -> None:
        self.stage = stage
        LOGGER.debug("Render stage: %s", stage.value)
        if self.forward:
            self.forward(stage)


def _load_source(source: bytes | Path | str) -> Image.Image:
    if isinstance(source, (bytes, bytearray)):
        return decode_image_bytes(bytes(source))
    return decode_image(Path(source))


def _close_when_done(future: concurrent.futures.Future) -> None:
    """Release an image that finishes decoding after the render was abandoned."""

    def _close(done: concurrent.futures.Future) -> None:
        if done.cancelled() or done.exception() is not None:
            return
        result = done.result()
        if isinstance(result, Image.Image):
            result.close()

    future.add_done_callback(_close)


def _remaining(deadline: float) -> float:
    return max(0.0, deadline - time.monotonic())


def _compose_and_encode(
    image: Image.Image,
    settings: RenderSettings,
    logo: Image.Image | None,
    fonts: FontSet | None,
    quality: int,
    tracker: _StageTracker,
) -> RenderResult:
    composed = compose_banner(image, settings, logo=logo, fonts=fonts, on_stage=tracker)
    tracker(RenderStage.ENCODE)
    try:
        data = encode_jpeg(composed.image, quality=quality)
        width, height = composed.image.size
    finally:
        composed.image.close()
    return RenderResult(
        data=data,
        width=width,
        height=height,
        plan=composed.plan,
        logo_placeholder=composed.logo_placeholder,
    )


def render_watermark(
    source: bytes | Path | str,
    settings: RenderSettings,
    *,
    metadata: CaptureMetadata | None = None,
    logo_resolver: LogoResolver | None = None,
    fonts: FontSet | None = None,
    timeout: float = DEFAULT_RENDER_TIMEOUT_S,
    quality: int = DEFAULT_JPEG_QUALITY,
    on_stage: StageCallback | None = None,
) -> RenderResult:
    """Render the source photo with its caption banner and return JPEG bytes.

    Source and logo decode concurrently; drawing starts once both resolved.
    One wall-clock deadline covers everything up to the encoded bytes. A logo
    that cannot be loaded degrades to the placeholder shape instead of failing.

    Raises:
        SourceDecodeError: the source could not be decoded.
        RenderTimeoutError: the deadline expired; ``stage`` names the pending stage.
    """
    deadline = time.monotonic() + max(0.0, float(timeout))
    tracker = _StageTracker(on_stage)
    if metadata is not None:
        settings = apply_metadata(settings, metadata)
    brand_key = classify_brand(metadata.make if metadata else None)

    executor = concurrent.futures.ThreadPoolExecutor(max_workers=2, thread_name_prefix="exifstamp-render")
    pending: list[concurrent.futures.Future] = []
    try:
        tracker(RenderStage.LOAD_SOURCE)
        source_future = executor.submit(_load_source, source)
        logo_future = executor.submit(load_logo, settings, brand_key, logo_resolver)
        pending = [source_future, logo_future]

        try:
            image = source_future.result(timeout=_remaining(deadline))
        except concurrent.futures.TimeoutError as exc:
            raise RenderTimeoutError(f"source decode exceeded {timeout:.1f}s", stage=RenderStage.LOAD_SOURCE) from exc
        except SourceDecodeError:
            tracker(RenderStage.FAILED)
            raise
        except Exception as exc:
            tracker(RenderStage.FAILED)
            raise SourceDecodeError(f"cannot decode source: {exc}", stage=RenderStage.LOAD_SOURCE) from exc
        pending.remove(source_future)

        tracker(RenderStage.LOAD_LOGO)
        try:
            logo = logo_future.result(timeout=_remaining(deadline))
        except concurrent.futures.TimeoutError as exc:
            image.close()
            raise RenderTimeoutError(f"logo decode exceeded {timeout:.1f}s", stage=RenderStage.LOAD_LOGO) from exc
        except LogoLoadError as exc:
            LOGGER.warning("Logo unavailable, drawing placeholder: %s", exc)
            logo = None
        pending.remove(logo_future)

        draw_future = executor.submit(_compose_and_encode, image, settings, logo, fonts, quality, tracker)
        try:
            result = draw_future.result(timeout=_remaining(deadline))
        except concurrent.futures.TimeoutError as exc:
            raise RenderTimeoutError(f"render exceeded {timeout:.1f}s", stage=tracker.stage) from exc
        finally:
            if draw_future.done():
                image.close()
                if logo is not None:
                    logo.close()
            else:
                draw_future.add_done_callback(lambda _: image.close())
    except RenderTimeoutError:
        for future in pending:
            _close_when_done(future)
        tracker(RenderStage.FAILED)
        raise
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    tracker(RenderStage.DONE)
    LOGGER.debug(
        "Rendered %dx%d (%d bytes, scale %.3f, placeholder=%s)",
        result.width,
        result.height,
        len(result.data),
        result.plan.scale,
        result.logo_placeholder,
    )
    return result
