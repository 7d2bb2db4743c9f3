from __future__ import annotations

from io import BytesIO
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from exifstamp.constants import HEIF_EXTENSIONS, RAW_EXTENSIONS, STANDARD_EXTENSIONS
from exifstamp.errors import SourceDecodeError

_HEIF_REGISTERED = False


def _register_heif_opener() -> bool:
    global _HEIF_REGISTERED
    if _HEIF_REGISTERED:
        return True
    try:
        from pillow_heif import register_heif_opener
    except ImportError:
        return False
    register_heif_opener()
    _HEIF_REGISTERED = True
    return True


def _open_oriented(source: Path | BytesIO) -> Image.Image:
    with Image.open(source) as image:
        return ImageOps.exif_transpose(image).convert("RGB").copy()


def _decode_raw(path: Path) -> Image.Image:
    try:
        import rawpy
    except ImportError as exc:
        raise SourceDecodeError("rawpy is required to decode RAW files", stage="load_source") from exc

    with rawpy.imread(str(path)) as raw:
        rgb = raw.postprocess(
            use_camera_wb=True,
            no_auto_bright=False,
            output_bps=8,
        )
    return Image.fromarray(rgb).convert("RGB")


def decode_image(path: Path) -> Image.Image:
    """Decode a photo file into an orientation-corrected RGB image."""
    ext = path.suffix.lower()
    try:
        if ext in RAW_EXTENSIONS:
            return _decode_raw(path)
        if ext in HEIF_EXTENSIONS and not _register_heif_opener():
            raise SourceDecodeError("pillow-heif is required to decode HEIF/HEIC/HIF", stage="load_source")
        if ext and ext not in STANDARD_EXTENSIONS | HEIF_EXTENSIONS:
            raise SourceDecodeError(f"unsupported image format: {path.suffix}", stage="load_source")
        return _open_oriented(path)
    except SourceDecodeError:
        raise
    except (OSError, UnidentifiedImageError, ValueError) as exc:
        raise SourceDecodeError(f"cannot decode {path.name}: {exc}", stage="load_source") from exc


def decode_image_bytes(data: bytes) -> Image.Image:
    if not data:
        raise SourceDecodeError("empty image data", stage="load_source")
    _register_heif_opener()
    try:
        return _open_oriented(BytesIO(data))
    except (OSError, UnidentifiedImageError, ValueError) as exc:
        raise SourceDecodeError(f"cannot decode image data: {exc}", stage="load_source") from exc
