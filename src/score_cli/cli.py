"""Main CLI entry point."""

import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from score_cli.config import Config
from score_cli.errors import DecodeFailed, InvalidSettings
from score_cli.ingest import read_sources
from score_cli.session import ItemStatus, Session, download_name
from score_cli.settings import (
    PROFILES,
    SCALE_STEP,
    Algorithm,
    PaddingMode,
    ProcessingSettings,
    default_settings,
    expand_padding,
    parse_hex_color,
)

logger = logging.getLogger(__name__)
console = Console(stderr=True)
load_dotenv()


@click.command()
@click.argument(
    "input_paths",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--profile",
    type=click.Choice(sorted(PROFILES), case_sensitive=False),
    default=None,
    help="Default settings profile (overrides SCORE_CLI_PROFILE).",
)
@click.option(
    "--algorithm", "-a",
    type=click.Choice([a.value for a in Algorithm], case_sensitive=False),
    default=Algorithm.ADAPTIVE.value,
    show_default=True,
    help="adaptive removes shadows and uneven lighting; classic uses one global cutoff.",
)
@click.option(
    "--threshold", "-t",
    type=int,
    default=None,
    help="Adaptive: sensitivity 0-100 (higher = bolder strokes). Classic: cutoff 50-220.",
)
@click.option(
    "--contrast-boost",
    type=int,
    default=None,
    help="Classic only: darken near-threshold ink by this percent (0-60).",
)
@click.option(
    "--scale", "-s",
    type=float,
    default=None,
    help=f"Upsampling factor, 1.0-3.0 in steps of {SCALE_STEP}.",
)
@click.option(
    "--smoothness",
    type=int,
    default=None,
    help="Edge softening half-width, 0-20. 0 gives pure black and white.",
)
@click.option(
    "--auto-crop/--no-auto-crop",
    default=True,
    show_default=True,
    help="Trim the page to its content and add margins.",
)
@click.option("--padding", type=int, default=None, help="Margin on all four sides (0-300).")
@click.option("--padding-x", type=int, default=None, help="Left and right margin.")
@click.option("--padding-y", type=int, default=None, help="Top and bottom margin.")
@click.option("--padding-top", type=int, default=None)
@click.option("--padding-right", type=int, default=None)
@click.option("--padding-bottom", type=int, default=None)
@click.option("--padding-left", type=int, default=None)
@click.option(
    "--background", "-b",
    default="#FFFFFF",
    show_default=True,
    help="Background colour as #RRGGBB (ignored with --transparent).",
)
@click.option(
    "--transparent/--opaque",
    default=False,
    show_default=True,
    help="Write black ink on a transparent background.",
)
@click.option(
    "--output-dir", "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for the results. Defaults to SCORE_CLI_OUTPUT_DIR or the current directory.",
)
@click.option(
    "--compare/--no-compare",
    default=False,
    show_default=True,
    help="Also write the matching crop of the upscaled original.",
)
@click.option(
    "--dpi",
    default=150,
    show_default=True,
    help="DPI for PDF rendering.",
)
@click.option("--verbose", "-v", is_flag=True, help="Log each pipeline stage.")
@click.version_option(package_name="score-cli")
def main(input_paths, profile, algorithm, threshold, contrast_boost, scale, smoothness,
         auto_crop, padding, padding_x, padding_y, padding_top, padding_right,
         padding_bottom, padding_left, background, transparent, output_dir, compare,
         dpi, verbose):
    """Clean up photographed or scanned score pages for printing.

    INPUT_PATHS can be images (.png, .jpg, .jpeg, .webp, .gif, .bmp, .tif)
    or PDFs; every PDF page is processed on its own.  Each result is written
    as <name>_<algorithm>.png in the output directory.
    """
    _configure_logging(verbose)

    try:
        config = Config.from_env(profile_override=profile, output_dir_override=output_dir)
    except RuntimeError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    try:
        settings = _build_settings(
            config.profile, algorithm, threshold, contrast_boost, scale, smoothness,
            auto_crop, background, transparent,
            padding, padding_x, padding_y,
            (padding_top, padding_right, padding_bottom, padding_left),
        )
    except InvalidSettings as e:
        console.print(f"[red]Invalid settings:[/red] {e}")
        sys.exit(1)

    failed = 0
    sources = []
    for path in input_paths:
        try:
            sources.extend(read_sources(path, dpi=dpi))
        except ValueError as e:
            console.print(f"[red]Unsupported file type:[/red] {path.suffix or path.name}")
            logger.debug("%s", e)
            failed += 1
        except DecodeFailed as e:
            console.print(f"[red]Failed:[/red] {e}")
            failed += 1

    config.output_dir.mkdir(parents=True, exist_ok=True)
    with Session(settings=settings, delay=config.debounce_seconds, workers=config.workers) as session:
        with console.status(f"[cyan]Processing {len(sources)} image(s)..."):
            for filename, data in sources:
                session.ingest(filename, data)
            session.join()

        # History is newest first; report in input order.
        taken: set[str] = set()
        for item in reversed(session.items()):
            if item.status is not ItemStatus.DONE:
                console.print(f"[red]Failed:[/red] {item.name}: {item.error or 'processing failed'}")
                failed += 1
                continue
            written = _write_outputs(item, config.output_dir, compare, taken)
            console.print(f"[green]Written to {written}[/green]")

    if failed:
        sys.exit(1)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _build_settings(profile, algorithm, threshold, contrast_boost, scale, smoothness,
                    auto_crop, background, transparent,
                    padding, padding_x, padding_y, sides) -> ProcessingSettings:
    base = default_settings(profile, Algorithm(algorithm.lower()))

    top, right, bottom, left = base.paddings
    if padding is not None:
        top, right, bottom, left = expand_padding(PaddingMode.UNIFORM, padding)
    if padding_x is not None or padding_y is not None:
        top, right, bottom, left = expand_padding(
            PaddingMode.AXIS,
            padding_y if padding_y is not None else top,
            padding_x if padding_x is not None else left,
        )
    top, right, bottom, left = (
        value if value is not None else current
        for value, current in zip(sides, (top, right, bottom, left))
    )

    return ProcessingSettings(
        algorithm=base.algorithm,
        threshold=threshold if threshold is not None else base.threshold,
        contrast_boost=contrast_boost if contrast_boost is not None else base.contrast_boost,
        scale_multiplier=scale if scale is not None else base.scale_multiplier,
        smoothness=smoothness if smoothness is not None else base.smoothness,
        auto_crop=auto_crop,
        padding_top=top,
        padding_right=right,
        padding_bottom=bottom,
        padding_left=left,
        background_color=parse_hex_color(background),
        is_transparent=transparent,
    )


def _unique_name(filename: str, taken: set[str]) -> str:
    """Return *filename*, or its first free `_2`, `_3`, ... variant, and claim it."""
    stem, suffix = Path(filename).stem, Path(filename).suffix
    candidate, n = filename, 1
    while candidate in taken:
        n += 1
        candidate = f"{stem}_{n}{suffix}"
    taken.add(candidate)
    return candidate


def _write_outputs(item, output_dir: Path, compare: bool, taken: set[str]) -> Path:
    path = output_dir / _unique_name(download_name(item), taken)
    path.write_bytes(item.result.processed.to_png())
    if compare:
        original_path = path.with_name(f"{path.stem}_original.png")
        original_path.write_bytes(item.result.cropped_original.to_png())
    return path
