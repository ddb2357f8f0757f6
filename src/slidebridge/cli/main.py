"""slidebridge CLI.

Command-line access to slide inspection and region extraction.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer

from slidebridge import __version__
from slidebridge.config import ConfigError, settings
from slidebridge.exceptions import SlideError
from slidebridge.slide import Slide, detect_vendor, library_version
from slidebridge.utils.logging import configure_logging, get_logger, slide_context

app = typer.Typer(
    name="slidebridge",
    help="slidebridge: inspect and read whole-slide images through OpenSlide",
    add_completion=False,
)

SlidePath = Annotated[
    Path,
    typer.Argument(
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        help="Path to slide file (.svs, .ndpi, .mrxs, .tiff, ...)",
    ),
]
JsonOption = Annotated[bool, typer.Option("--json", help="Output as JSON")]
VerboseOption = Annotated[
    int,
    typer.Option("--verbose", "-v", count=True, help="Increase verbosity (-v, -vv)"),
]


def _fail(error: Exception, json_output: bool = False) -> typer.Exit:
    if json_output:
        typer.echo(json.dumps({"error": str(error)}))
    else:
        typer.echo(f"Error: {error}", err=True)
    return typer.Exit(1)


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version(json_output: JsonOption = False) -> None:
    """Show slidebridge and OpenSlide versions."""
    try:
        native = library_version()
    except (SlideError, ConfigError):
        native = None

    if json_output:
        typer.echo(json.dumps({"version": __version__, "openslide": native}))
    else:
        typer.echo(f"slidebridge {__version__}")
        typer.echo(f"openslide {native or 'unavailable'}")


@app.command()
def vendor(slide_path: SlidePath, verbose: VerboseOption = 0) -> None:
    """Print the vendor OpenSlide detects for a file, without opening it."""
    _configure_logging(verbose)
    try:
        typer.echo(detect_vendor(slide_path))
    except (SlideError, ConfigError) as e:
        raise _fail(e) from None


@app.command()
def info(
    slide_path: SlidePath,
    thumbnail: Annotated[
        Path | None,
        typer.Option("--thumbnail", "-t", help="Also save a thumbnail image here"),
    ] = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = 0,
) -> None:
    """Show the pyramid geometry of a slide."""
    _configure_logging(verbose)
    logger = get_logger(__name__)
    try:
        with slide_context(str(slide_path), "info"), Slide(slide_path) as slide:
            metadata = slide.get_metadata()
            if thumbnail is not None:
                size = settings.THUMBNAIL_SIZE
                slide.get_thumbnail((size, size)).save(thumbnail)
                logger.info("Thumbnail saved", path=str(thumbnail))
    except (SlideError, ConfigError) as e:
        raise _fail(e, json_output) from None

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "path": metadata.path,
                    "vendor": metadata.vendor,
                    "dimensions": list(metadata.dimensions),
                    "level_count": metadata.level_count,
                    "level_dimensions": [list(d) for d in metadata.level_dimensions],
                    "level_downsamples": list(metadata.level_downsamples),
                    "mpp_x": metadata.mpp_x,
                    "mpp_y": metadata.mpp_y,
                },
                indent=2,
            )
        )
        return

    typer.echo(f"Path: {metadata.path}")
    typer.echo(f"Vendor: {metadata.vendor}")
    typer.echo(f"Dimensions: {metadata.width} x {metadata.height}")
    typer.echo(f"Levels: {metadata.level_count}")
    for level, ((w, h), ds) in enumerate(
        zip(metadata.level_dimensions, metadata.level_downsamples, strict=True)
    ):
        typer.echo(f"  Level {level}: {w} x {h} (downsample {ds:g})")
    if metadata.mpp_x is not None and metadata.mpp_y is not None:
        typer.echo(f"MPP: {metadata.mpp_x} x {metadata.mpp_y}")


@app.command()
def properties(
    slide_path: SlidePath,
    json_output: JsonOption = False,
    verbose: VerboseOption = 0,
) -> None:
    """List every property of a slide."""
    _configure_logging(verbose)
    try:
        with Slide(slide_path) as slide:
            props = dict(slide.properties())
    except (SlideError, ConfigError) as e:
        raise _fail(e, json_output) from None

    if json_output:
        typer.echo(json.dumps(props, indent=2, sort_keys=True))
        return

    typer.echo(f"{'Property key':<40} Property value")
    for name in sorted(props):
        typer.echo(f"{name:<40} {props[name]}")


@app.command()
def region(  # noqa: PLR0913
    slide_path: SlidePath,
    output: Annotated[
        Path, typer.Option("--output", "-o", help="Image file to write (PNG, TIFF)")
    ],
    x: Annotated[int, typer.Option("--x", help="Left edge, Level-0 pixels")] = 0,
    y: Annotated[int, typer.Option("--y", help="Top edge, Level-0 pixels")] = 0,
    level: Annotated[int, typer.Option("--level", "-l", help="Pyramid level")] = 0,
    width: Annotated[
        int, typer.Option("--width", "-W", help="Width at the chosen level")
    ] = 512,
    height: Annotated[
        int, typer.Option("--height", "-H", help="Height at the chosen level")
    ] = 512,
    verbose: VerboseOption = 0,
) -> None:
    """Read one region of a slide and save it as an RGBA image."""
    _configure_logging(verbose)
    logger = get_logger(__name__)
    with slide_context(str(slide_path), "region"):
        try:
            with Slide(slide_path) as slide:
                pixels = slide.read_region((x, y), level, (width, height))
        except (SlideError, ConfigError) as e:
            raise _fail(e) from None

        pixels.to_image().save(output)
        logger.info("Region saved", path=str(output), size=pixels.size)
    typer.echo(f"Wrote {pixels.width} x {pixels.height} region to {output}")


@app.command()
def associated(
    slide_path: SlidePath,
    output_dir: Annotated[
        Path, typer.Option("--output-dir", "-o", help="Directory for the images")
    ],
    verbose: VerboseOption = 0,
) -> None:
    """Save every associated image (label, macro, thumbnail, ...) as PNG."""
    _configure_logging(verbose)
    try:
        with Slide(slide_path) as slide:
            images = dict(slide.associated_images())
    except (SlideError, ConfigError) as e:
        raise _fail(e) from None

    output_dir.mkdir(parents=True, exist_ok=True)
    for name, pixels in sorted(images.items()):
        target = output_dir / f"{name}.png"
        pixels.to_image().save(target)
        typer.echo(f"{name}: {pixels.width} x {pixels.height} -> {target}")
    if not images:
        typer.echo("No associated images")


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """slidebridge: inspect and read whole-slide images through OpenSlide."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


def _configure_logging(verbose: int) -> None:
    """Configure logging based on verbosity level."""
    if verbose == 0:
        level = "WARNING"
    elif verbose == 1:
        level = "INFO"
    else:  # verbose >= 2
        level = "DEBUG"

    configure_logging(level=level)


if __name__ == "__main__":  # pragma: no cover
    app()
