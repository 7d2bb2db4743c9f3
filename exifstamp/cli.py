from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import typer
import yaml

from exifstamp.config import load_config, write_default_config
from exifstamp.discover import discover_inputs
from exifstamp.errors import MetadataExtractionError, StampError
from exifstamp.meta.exiftool import VALID_MODES
from exifstamp.meta.extract import extract_raw_tags, extract_raw_tags_many
from exifstamp.meta.normalize import classify_brand, fallback_metadata, normalize_metadata
from exifstamp.meta.place_lookup import upgrade_gps_label
from exifstamp.models import CaptureMetadata, RenderSettings
from exifstamp.naming import build_output_name
from exifstamp.render.logo import LogoDirectoryResolver
from exifstamp.render.pipeline import render_watermark
from exifstamp.render.typography import FontSet
from exifstamp.settings_loader import normalize_settings_dict, read_layout_file

app = typer.Typer(add_completion=False, no_args_is_help=True, help="EXIF caption banner CLI.")
LOGGER = logging.getLogger("exifstamp")


@dataclass(slots=True)
class _Result:
    source: Path
    status: str          # ok | skipped | failed
    output: Path | None = None
    elapsed: float = 0.0
    error: str | None = None


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _optional_path(value: Any) -> Path | None:
    return Path(str(value)).expanduser() if value else None


def build_settings(
    cfg: dict[str, Any],
    *,
    layout: Path | None = None,
    overrides: dict[str, Any] | None = None,
    custom_logo_data: bytes | None = None,
) -> RenderSettings:
    """Config, then layout file, then command-line flags; later sources win."""
    data = dict(cfg)
    if layout is not None:
        data.update(read_layout_file(layout))
    data.update({key: value for key, value in (overrides or {}).items() if value is not None})
    return normalize_settings_dict(data, custom_logo_data=custom_logo_data)


def _metadata_for(source: Path, raw: dict[str, Any] | None, mode: str) -> CaptureMetadata:
    if raw is None:
        try:
            raw = extract_raw_tags(source, mode=mode)
        except MetadataExtractionError as exc:
            LOGGER.warning("Metadata unavailable for %s, using fallback: %s", source.name, exc)
            return fallback_metadata()
    return normalize_metadata(raw)


@app.command()
def render(
    input_path: Path = typer.Argument(..., exists=True, resolve_path=True),
    out: Path | None = typer.Option(None, "--out", help="Output directory."),
    recursive: bool = typer.Option(False, "--recursive", help="Recursively scan input directories."),
    style: str | None = typer.Option(None, "--style", help="Banner style: black|white|blur|adaptive"),
    blur: int | None = typer.Option(None, "--blur", min=0, max=100, help="Blur intensity for the blur style."),
    logo: str | None = typer.Option(None, "--logo", help="Logo key: AUTO, a brand name such as NIKON, or CUSTOM."),
    logo_file: Path | None = typer.Option(None, "--logo-file", exists=True, dir_okay=False, help="Custom SVG/PNG logo."),
    logo_position: str | None = typer.Option(None, "--logo-position", help="left|right"),
    logo_dir: Path | None = typer.Option(None, "--logo-dir", file_okay=False, help="Directory of brand logo files."),
    adaptive_text: bool | None = typer.Option(None, "--adaptive-text/--no-adaptive-text"),
    layout: Path | None = typer.Option(None, "--layout", exists=True, dir_okay=False, help="YAML/JSON layout file."),
    quality: int | None = typer.Option(None, "--quality", min=1, max=100),
    timeout: float | None = typer.Option(None, "--timeout", min=0.1, help="Per-image render timeout in seconds."),
    name_template: str | None = typer.Option(None, "--name", help='Output filename template, e.g. "{stem}__stamp.{ext}"'),
    use_exiftool: str | None = typer.Option(None, "--use-exiftool", help="auto|on|off"),
    place_lookup: bool | None = typer.Option(None, "--place-lookup/--no-place-lookup"),
    skip_existing: bool | None = typer.Option(None, "--skip-existing/--no-skip-existing"),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Render a caption banner below each photo."""
    _setup_logging(log_level)
    cfg = load_config()

    exiftool_mode = (use_exiftool or str(cfg.get("use_exiftool", "auto"))).lower()
    if exiftool_mode not in VALID_MODES:
        typer.secho(f"--use-exiftool must be one of auto/on/off, got: {exiftool_mode!r}", err=True, fg=typer.colors.RED)
        raise typer.Exit(1)

    custom_logo_data = logo_file.read_bytes() if logo_file else None
    if custom_logo_data is not None and logo is None:
        logo = "CUSTOM"
    try:
        settings = build_settings(
            cfg,
            layout=layout,
            overrides={
                "banner_style": style,
                "blur_intensity": blur,
                "logo": logo,
                "logo_position": logo_position,
                "adaptive_text_color": adaptive_text,
            },
            custom_logo_data=custom_logo_data,
        )
    except (OSError, ValueError, yaml.YAMLError) as exc:
        typer.secho(f"Layout load failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(1)

    quality_val = int(quality if quality is not None else cfg.get("quality", 95))
    timeout_val = float(timeout if timeout is not None else cfg.get("timeout", 15.0))
    name_tmpl = name_template or str(cfg.get("name_template", "{stem}__stamp.{ext}"))
    lookup_places = place_lookup if place_lookup is not None else bool(cfg.get("place_lookup", False))
    skip = skip_existing if skip_existing is not None else bool(cfg.get("skip_existing", True))
    lang = str(cfg.get("lang") or "en")

    logo_root = logo_dir or _optional_path(cfg.get("logo_dir"))
    resolver = LogoDirectoryResolver(logo_root) if logo_root else None
    fonts = FontSet(_optional_path(cfg.get("font_path")), _optional_path(cfg.get("bold_font_path")))

    out_dir = out
    if out_dir is None:
        out_dir = (input_path / "output") if input_path.is_dir() else (input_path.parent / "output")

    files = discover_inputs(input_path, recursive=recursive, exclude=[out_dir])
    if not files:
        typer.echo("No supported image files found.")
        raise typer.Exit(0)
    out_dir.mkdir(parents=True, exist_ok=True)

    try:
        raw_meta_map = extract_raw_tags_many(files, mode=exiftool_mode)
    except MetadataExtractionError as exc:
        typer.secho(f"Metadata extraction setup failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(1)

    def process_one(source: Path) -> _Result:
        t0 = time.perf_counter()
        metadata = _metadata_for(source, raw_meta_map.get(source.resolve(strict=False)), exiftool_mode)
        output_file = out_dir / build_output_name(name_tmpl, source, metadata, extension="jpg")
        if skip and output_file.exists():
            return _Result(source=source, status="skipped", output=output_file, elapsed=time.perf_counter() - t0)
        if lookup_places:
            metadata = upgrade_gps_label(metadata, lang=lang)
        try:
            result = render_watermark(
                source,
                settings,
                metadata=metadata,
                logo_resolver=resolver,
                fonts=fonts,
                timeout=timeout_val,
                quality=quality_val,
            )
        except StampError as exc:
            return _Result(source=source, status="failed", error=str(exc), elapsed=time.perf_counter() - t0)
        output_file.write_bytes(result.data)
        if result.logo_placeholder:
            LOGGER.info("Logo placeholder used for %s", source.name)
        return _Result(source=source, status="ok", output=output_file, elapsed=time.perf_counter() - t0)

    results: list[_Result] = []
    for f in files:
        r = process_one(f)
        results.append(r)
        if r.status == "ok":
            LOGGER.info("OK   %s -> %s  (%.2fs)", r.source.name, r.output.name if r.output else "-", r.elapsed)
        elif r.status == "skipped":
            LOGGER.info("SKIP %s (exists)", r.source.name)
        else:
            LOGGER.error("FAIL %s  %s", r.source.name, r.error)

    ok = sum(1 for r in results if r.status == "ok")
    skipped = sum(1 for r in results if r.status == "skipped")
    failed = [r for r in results if r.status == "failed"]
    typer.echo(f"Done. success={ok} skipped={skipped} failed={len(failed)}")
    if failed:
        typer.secho("Failures:", fg=typer.colors.RED)
        for r in failed:
            typer.secho(f"  {r.source}: {r.error}", fg=typer.colors.RED)
        raise typer.Exit(1)


@app.command("inspect")
def inspect_file(
    file: Path = typer.Argument(..., exists=True, resolve_path=True, dir_okay=False),
    use_exiftool: str = typer.Option("auto", "--use-exiftool", help="auto|on|off"),
    raw: bool = typer.Option(False, "--raw", help="Include raw metadata payload."),
) -> None:
    """Print the normalized capture metadata of one file as JSON."""
    mode = use_exiftool.lower()
    try:
        raw_metadata = extract_raw_tags(file, mode=mode)
    except MetadataExtractionError as exc:
        typer.secho(f"Metadata extraction failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(1)
    metadata = normalize_metadata(raw_metadata)
    payload = metadata.to_dict()
    payload["brand"] = classify_brand(metadata.make)
    if raw:
        payload["raw_metadata"] = raw_metadata
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


@app.command("init-config")
def init_config(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config file."),
) -> None:
    path = write_default_config(force=force)
    typer.echo(f"Config initialized: {path}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
