from __future__ import annotations

import math

from PIL import Image

from exifstamp.models import RGB, ColorSample

SAMPLE_GRID = (100, 10)
QUANTIZATION_DIVISOR = 32
SECONDARY_MIN_DISTANCE = 60.0
BRIGHTNESS_SPLIT = 128

WHITE: RGB = (255, 255, 255)
BLACK: RGB = (0, 0, 0)


def perceived_brightness(color: RGB) -> float:
    r, g, b = color[:3]
    return (r * 299 + g * 587 + b * 114) / 1000


def color_distance(a: RGB, b: RGB) -> float:
    return math.sqrt(sum((int(x) - int(y)) ** 2 for x, y in zip(a[:3], b[:3])))


def _sample_band(image: Image.Image, y: float, height: float) -> Image.Image | None:
    top = max(0, int(round(y)))
    bottom = min(image.height, int(round(y + height)))
    if bottom <= top or image.width <= 0:
        return None
    band = image.crop((0, top, image.width, bottom))
    return band.convert("RGB").resize(SAMPLE_GRID, Image.Resampling.BILINEAR)


def sample_colors(
    image: Image.Image,
    y: float,
    height: float,
    divisor: int = QUANTIZATION_DIVISOR,
) -> ColorSample:
    """Dominant and contrasting secondary color of a horizontal band.

    The band is resampled to a fixed grid and each pixel is bucketed by its
    quantized RGB triple; the most populated bucket's mean is the dominant
    color, the first further bucket more than ``SECONDARY_MIN_DISTANCE``
    away from it is the secondary. Without such a bucket the secondary is
    black or white depending on the dominant brightness.
    """
    grid = _sample_band(image, y, height)
    if grid is None:
        return ColorSample(dominant=WHITE, secondary=BLACK)

    divisor = max(1, int(divisor))
    buckets: dict[tuple[int, int, int], list[int]] = {}
    for r, g, b in grid.getdata():
        key = (r // divisor, g // divisor, b // divisor)
        acc = buckets.get(key)
        if acc is None:
            acc = buckets[key] = [0, 0, 0, 0]
        acc[0] += 1
        acc[1] += r
        acc[2] += g
        acc[3] += b

    # sorted() is stable, so equal counts keep first-seen order
    ranked = sorted(buckets.values(), key=lambda acc: acc[0], reverse=True)
    averages: list[RGB] = [
        (round(acc[1] / acc[0]), round(acc[2] / acc[0]), round(acc[3] / acc[0])) for acc in ranked
    ]

    dominant = averages[0]
    for candidate in averages[1:]:
        if color_distance(candidate, dominant) > SECONDARY_MIN_DISTANCE:
            return ColorSample(dominant=dominant, secondary=candidate)
    secondary = BLACK if perceived_brightness(dominant) >= BRIGHTNESS_SPLIT else WHITE
    return ColorSample(dominant=dominant, secondary=secondary)
