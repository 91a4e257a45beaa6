"""Typer CLI: scene detection, chroma-key background removal, page watermark removal, photo editing and resizing."""

import asyncio
import json
import logging
from pathlib import Path

import typer
from PIL import Image, ImageColor
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn, TimeRemainingColumn
from rich.table import Table
from rich.text import Text

from src.core.config import get_config
from src.core.errors import FluxError
from src.core.file_extensions import ALPHA_EXTENSIONS, IMAGE_EXTENSIONS, VIDEO_EXTENSIONS
from src.core.logging import get_flight_logger, setup_logging
from src.core.raster import decode_data_url, load_surface, save_surface
from src.image.background_remover import pick_color, remove_background
from src.image.editor import EXPORT_FORMATS, FILTER_PRESETS, Adjustments, CropRect, apply_adjustments, apply_crop, export_image
from src.image.resizer import DEFAULT_RESIZE_QUALITY, RESIZE_FORMATS, ResizeOptions, locked_size, resize_image, scaled_size
from src.models.entities import DetectionOptions, SceneChange, Sensitivity
from src.pdf.watermark import detect_watermark, remove_watermark
from src.video.scene_segmenter import detect_scene_changes
from src.video.thumbnail import format_timestamp

_log = logging.getLogger(__name__)

app = typer.Typer(no_args_is_help=True)


@app.callback()
def main_options(
    config: Path | None = typer.Option(None, "--config", help="Path to flux_config.yml (overrides FLUX_CONFIG)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log INFO and above to stderr."),
) -> None:
    """Local media tools: video scene detection, background removal, PDF page watermark removal, photo edits."""
    if config is not None:
        get_config(config)
    setup_logging(verbose=verbose)


def _fail(message: str, run_id: str) -> None:
    """Print the error, dump the flight log for forensics, exit 1."""
    typer.secho(message, fg=typer.colors.RED, err=True)
    fl = get_flight_logger()
    if fl is not None:
        path = fl.dump(run_id)
        typer.echo(f"Flight log written to {path}", err=True)
    raise typer.Exit(1)


def _warn_extension(path: Path, allowed: set[str], kind: str) -> None:
    if path.suffix.lower() not in allowed:
        typer.secho(
            f"Warning: '{path.suffix}' is not a typical {kind} extension ({', '.join(sorted(allowed))}).",
            fg=typer.colors.YELLOW,
            err=True,
        )


def _confidence_cell(confidence: int) -> Text:
    s = f"{confidence}%"
    if confidence > 50:
        return Text(s, style="green")
    if confidence > 20:
        return Text(s, style="yellow")
    return Text(s, style="red")


def _write_thumbnails(scenes: list[SceneChange], out_dir: Path) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    for scene in scenes:
        _, payload = decode_data_url(scene.thumbnail_url)
        (out_dir / f"scene_{int(scene.id):03d}_{scene.timestamp:.3f}.jpg").write_bytes(payload)


@app.command("scenes")
def scenes(
    video: Path = typer.Argument(..., help="Video file (MP4, WebM, MOV, or anything the backend decodes)."),
    sensitivity: Sensitivity = typer.Option(Sensitivity.medium, "--sensitivity", "-s", help="low, medium or high."),
    backend: str | None = typer.Option(None, "--backend", help="Decoder backend: opencv or ffmpeg (default from config)."),
    thumbnails_dir: Path | None = typer.Option(None, "--thumbnails-dir", help="Write one JPEG per scene here."),
    as_json: bool = typer.Option(False, "--json", help="Print scenes as JSON instead of a table."),
) -> None:
    """Detect scene changes and list their timestamps."""
    _warn_extension(video, VIDEO_EXTENSIONS, "video")
    console = Console(stderr=True)
    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TimeRemainingColumn(),
        console=console,
        disable=as_json,
    ) as progress:
        task = progress.add_task(f"Scanning {video.name}", total=None)

        def on_progress(current: float, total: float) -> None:
            progress.update(task, completed=current, total=total)

        try:
            result = asyncio.run(
                detect_scene_changes(video, DetectionOptions(sensitivity=sensitivity), on_progress, backend=backend)
            )
        except FluxError as e:
            _fail(str(e), "scenes")
            return

    if thumbnails_dir is not None:
        _write_thumbnails(result, thumbnails_dir)

    if as_json:
        typer.echo(json.dumps([{k: v for k, v in s.to_dict().items() if k != "thumbnailUrl"} for s in result], indent=2))
        return

    table = Table(title=f"{len(result)} scene(s) in {video.name}")
    table.add_column("#")
    table.add_column("Timestamp")
    table.add_column("Seconds")
    table.add_column("Confidence")
    for scene in result:
        table.add_row(scene.id, format_timestamp(scene.timestamp), f"{scene.timestamp:.2f}", _confidence_cell(scene.confidence))
    Console().print(table)


def _parse_point(value: str) -> tuple[int, int]:
    try:
        x_str, y_str = value.split(",")
        return int(x_str), int(y_str)
    except ValueError as e:
        raise typer.BadParameter(f"expected X,Y, got {value!r}") from e


@app.command("bg-remove")
def bg_remove(
    image: Path = typer.Argument(..., help="Input image."),
    output: Path = typer.Argument(..., help="Output image (PNG or WebP keeps transparency)."),
    color: str | None = typer.Option(None, "--color", help="Background color, e.g. '#00ff00' or 'rgb(0,255,0)'."),
    pick: str | None = typer.Option(None, "--pick", help="Pick the background color at X,Y instead of --color."),
    tolerance: float = typer.Option(30.0, "--tolerance", "-t", min=0.0, max=100.0, help="Color distance tolerance in percent."),
) -> None:
    """Make pixels near the background color transparent."""
    if (color is None) == (pick is None):
        typer.echo("Pass exactly one of --color or --pick.", err=True)
        raise typer.Exit(1)
    _warn_extension(image, IMAGE_EXTENSIONS, "image")
    if output.suffix.lower() not in ALPHA_EXTENSIONS:
        typer.secho("Warning: output format has no alpha channel; transparency will be lost.", fg=typer.colors.YELLOW, err=True)
    try:
        canvas = load_surface(image)
    except OSError as e:
        _fail(f"Cannot read image: {e}", "bg-remove")
        return
    if pick is not None:
        x, y = _parse_point(pick)
        target = pick_color(canvas, x, y)
    else:
        try:
            target = ImageColor.getrgb(color)[:3]
        except ValueError as e:
            raise typer.BadParameter(str(e)) from e
    remove_background(canvas, target, tolerance)
    save_surface(canvas, output)
    typer.secho(f"Removed background rgb{tuple(target)} -> {output}", fg=typer.colors.GREEN)


@app.command("watermark")
def watermark(
    pages: list[Path] = typer.Argument(..., help="Rendered page images."),
    out_dir: Path = typer.Option(..., "--out-dir", "-o", help="Directory for cleaned pages."),
    scale: float = typer.Option(2.0, "--scale", min=0.1, help="Render scale the pages were rasterized at."),
    force: bool = typer.Option(False, "--force", help="Erase the region even when no watermark is detected."),
) -> None:
    """Detect and erase the bottom-right watermark on rendered PDF pages."""
    table = Table(title=None)
    table.add_column("Page")
    table.add_column("Detected")
    table.add_column("Confidence")
    table.add_column("Output")
    for page in pages:
        _warn_extension(page, IMAGE_EXTENSIONS, "image")
        try:
            canvas = load_surface(page)
        except OSError as e:
            _fail(f"Cannot read page {page}: {e}", "watermark")
            return
        detection = detect_watermark(canvas, scale)
        dest = out_dir / page.name
        if detection.detected or force:
            remove_watermark(canvas, scale)
        save_surface(canvas, dest)
        _log.info("Page %s: detected=%s confidence=%.2f", page, detection.detected, detection.confidence)
        table.add_row(
            page.name,
            "yes" if detection.detected else "no",
            f"{detection.confidence:.2f}",
            str(dest),
        )
    Console().print(table)


_SUFFIX_FORMATS = {".jpg": "JPEG", ".jpeg": "JPEG", ".png": "PNG", ".webp": "WEBP"}


def _output_format(output: Path, allowed: tuple[str, ...], run_id: str) -> str:
    fmt = _SUFFIX_FORMATS.get(output.suffix.lower())
    if fmt is None or fmt not in allowed:
        _fail(f"Unsupported output format '{output.suffix}' (use {', '.join(allowed)}).", run_id)
    return fmt


def _parse_crop(value: str) -> CropRect:
    try:
        x, y, w, h = (int(part) for part in value.split(","))
        return CropRect(x, y, w, h)
    except ValueError as e:
        raise typer.BadParameter(f"expected X,Y,WIDTH,HEIGHT with positive size, got {value!r}") from e


def _open_image(path: Path, run_id: str) -> Image.Image:
    try:
        with Image.open(path) as img:
            img.load()
            return img.copy()
    except OSError as e:
        _fail(f"Cannot read image: {e}", run_id)
        raise


@app.command("edit")
def edit(
    image: Path = typer.Argument(..., help="Input image."),
    output: Path = typer.Argument(..., help="Output image (.jpg or .png)."),
    preset: str = typer.Option("original", "--preset", "-p", help="Filter preset name."),
    brightness: float = typer.Option(100.0, "--brightness", min=0.0, max=200.0),
    contrast: float = typer.Option(100.0, "--contrast", min=0.0, max=200.0),
    saturation: float = typer.Option(100.0, "--saturation", min=0.0, max=200.0),
    temperature: float = typer.Option(0.0, "--temperature", min=-100.0, max=100.0),
    vignette: float = typer.Option(0.0, "--vignette", min=0.0, max=100.0),
    crop: str | None = typer.Option(None, "--crop", help="Crop X,Y,WIDTH,HEIGHT after adjusting."),
    quality: float = typer.Option(0.92, "--quality", min=0.1, max=1.0, help="JPEG quality (0.1-1)."),
) -> None:
    """Apply a filter preset and adjustments, optionally crop, and export."""
    filter_preset = FILTER_PRESETS.get(preset)
    if filter_preset is None:
        raise typer.BadParameter(f"unknown preset {preset!r}; choose from {', '.join(FILTER_PRESETS)}", param_hint="--preset")
    crop_rect = _parse_crop(crop) if crop is not None else None
    _warn_extension(image, IMAGE_EXTENSIONS, "image")
    fmt = _output_format(output, EXPORT_FORMATS, "edit")
    img = _open_image(image, "edit")

    adjustments = Adjustments(
        brightness=brightness,
        contrast=contrast,
        saturation=saturation,
        temperature=temperature,
        vignette=vignette,
    )
    edited = apply_adjustments(img, adjustments, filter_preset)
    if crop_rect is not None:
        edited = apply_crop(edited, crop_rect)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(export_image(edited, fmt, quality))
    _log.info("Edited %s with preset %s -> %s", image, preset, output)
    typer.secho(f"{filter_preset.name} {edited.width}x{edited.height} -> {output}", fg=typer.colors.GREEN)


@app.command("resize")
def resize(
    image: Path = typer.Argument(..., help="Input image."),
    output: Path = typer.Argument(..., help="Output image (.jpg, .png or .webp)."),
    width: int | None = typer.Option(None, "--width", "-w", min=1),
    height: int | None = typer.Option(None, "--height", min=1),
    percent: float | None = typer.Option(None, "--percent", min=1.0, help="Scale both sides, e.g. 25, 50, 75."),
    quality: float = typer.Option(DEFAULT_RESIZE_QUALITY, "--quality", min=0.1, max=1.0),
) -> None:
    """Resize an image. Giving only one of --width/--height keeps the aspect ratio."""
    if percent is not None and (width is not None or height is not None):
        typer.echo("Pass either --percent or --width/--height, not both.", err=True)
        raise typer.Exit(1)
    if percent is None and width is None and height is None:
        typer.echo("Pass --width, --height or --percent.", err=True)
        raise typer.Exit(1)
    _warn_extension(image, IMAGE_EXTENSIONS, "image")
    fmt = _output_format(output, RESIZE_FORMATS, "resize")
    img = _open_image(image, "resize")

    if percent is not None:
        size = scaled_size(img.width, img.height, percent)
    elif width is not None and height is not None:
        size = (width, height)
    else:
        size = locked_size(img.width, img.height, width=width, height=height)
    result = resize_image(img, ResizeOptions(width=size[0], height=size[1], format=fmt, quality=quality))
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(result.payload)
    typer.secho(f"{img.width}x{img.height} -> {result.width}x{result.height} {output}", fg=typer.colors.GREEN)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
