"""
Command-line interface for the fractal explorer.

The CLI is a thin adapter over ``FractalSession``: it turns options into
session calls and prints the structured results.
"""

import click
import json
import sys
from pathlib import Path
from typing import Optional
import logging

from .. import __version__
from ..api import FractalSession, failure_payload
from ..core.errors import FractalError
from ..core.viewport import Viewport
from ..io.config import ConfigManager, Settings, load_settings
from ..rendering.coloring import get_builtin_palette, list_builtin_palettes
from ..rendering.histogram import Histogram, plot_histogram

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(verbose: bool, quiet: bool, log_file: Optional[str]) -> None:
    """Configure root logging from the global flags."""
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG, format=LOG_FORMAT)
    else:
        logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding='utf-8')
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(handler)


def parse_complex(value: str) -> complex:
    """Parse 'real,imag' into a complex number."""
    try:
        real, imag = (float(part.strip()) for part in value.split(','))
    except ValueError:
        raise click.BadParameter(f"Expected 'real,imag', got {value!r}")
    return complex(real, imag)


def fail(error: FractalError) -> None:
    payload = failure_payload(error)
    click.echo(f"Error: {payload['error']} (after {payload['time']})", err=True)
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--config', type=click.Path(exists=True), help='Settings file (YAML or JSON)')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress most output')
@click.option('--log-file', type=click.Path(), help='Also write logs to this file')
@click.pass_context
def main(ctx, version, config, verbose, quiet, log_file):
    """
    Fractal Explorer - interactive escape-time fractal rendering.

    Generate Mandelbrot images, recenter them, re-render them with other
    palettes and inspect their iteration histograms.
    """
    if version:
        click.echo(f"Fractal Explorer v{__version__}")
        click.echo(f"Python: {sys.version}")
        if ctx.invoked_subcommand is None:
            sys.exit(0)

    try:
        settings = load_settings(config)
    except (OSError, ValueError, TypeError) as e:
        click.echo(f"Error: invalid configuration: {e}", err=True)
        sys.exit(1)

    setup_logging(verbose, quiet, log_file or settings.log_file)
    logger.info(f"Application started: {settings.program_name} v({settings.program_version})")

    ctx.ensure_object(dict)
    ctx.obj['settings'] = settings
    ctx.obj['verbose'] = verbose

    if ctx.invoked_subcommand is None and not version:
        click.echo(ctx.get_help())


@main.command()
@click.option('--rows', type=int, help='Image height in pixels')
@click.option('--cols', type=int, help='Image width in pixels')
@click.option('--center-re', type=float, help='Real part of the center point')
@click.option('--center-im', type=float, help='Imaginary part of the center point')
@click.option('--pitch', type=float, help='Complex-plane distance between pixels')
@click.option('--max-iter', type=int, help='Maximum iterations')
@click.option('--palette', help='Palette file name in the palette folder')
@click.option('--recenter', 'recenters', multiple=True, help='Recenter to "real,imag" afterwards (repeatable)')
@click.option('--rerender', 'rerenders', multiple=True, type=click.Path(exists=True, dir_okay=False),
              help='Load this palette file and re-render (repeatable)')
@click.option('--histogram', 'show_histogram', is_flag=True, help='Print the iteration histogram as JSON')
@click.option('--histogram-plot', type=click.Path(), help='Write a histogram chart to this path')
@click.pass_context
def generate(ctx, rows, cols, center_re, center_im, pitch, max_iter, palette,
             recenters, rerenders, show_histogram, histogram_plot):
    """Generate a fractal image, optionally recentering and re-rendering it."""
    settings: Settings = ctx.obj['settings']
    for value, name in ((rows, 'rows'), (cols, 'cols'), (pitch, 'pitch'), (max_iter, 'max-iter')):
        if value is not None and value <= 0:
            click.echo(f"Error: --{name} must be positive", err=True)
            sys.exit(1)

    try:
        session = FractalSession(settings)

        result = session.generate(rows=rows, cols=cols, center_re=center_re, center_im=center_im,
                                  pixel_pitch=pitch, max_iterations=max_iter, palette_file=palette)
        click.echo(f"Generated {result.image_filename} in {result.duration:.3f}s")

        for value in recenters:
            center = parse_complex(value)
            current = session.viewport
            viewport = Viewport(rows=current['rows'], cols=current['cols'],
                                center=complex(current['center_re'], current['center_im']),
                                pixel_pitch=current['pixel_pitch'],
                                max_iterations=current['max_iterations'])
            row, col = viewport.complex_to_pixel(center)
            result = session.recenter(row, col, center.real, center.imag)
            click.echo(f"Recentred to {center}: {result.image_filename} in {result.duration:.3f}s")

        for palette_path in rerenders:
            palette_path = Path(palette_path)
            session.load_palette(palette_path.read_bytes(), palette_path.name)
            result = session.render()
            click.echo(f"Re-rendered with {palette_path.name}: {result.image_filename} "
                       f"in {result.duration:.3f}s")

        if show_histogram or histogram_plot:
            hist = session.histogram()
            if show_histogram:
                click.echo(json.dumps(hist.to_payload()))
            if histogram_plot:
                plot_histogram(Histogram(hist.bins, hist.counts), histogram_plot)
                click.echo(f"Saved histogram chart: {histogram_plot}")

    except FractalError as e:
        fail(e)


@main.command('load-palette')
@click.argument('palette_file', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def load_palette(ctx, palette_file):
    """
    Validate a palette file and copy it into the palette folder.

    PALETTE_FILE: YAML or GPL palette definition
    """
    palette_file = Path(palette_file)
    try:
        session = FractalSession(ctx.obj['settings'])
        result = session.load_palette(palette_file.read_bytes(), palette_file.name)
    except FractalError as e:
        fail(e)
    click.echo(f"Palette accepted: {result.active_filename}")


@main.command('list-palettes')
@click.pass_context
def list_palettes(ctx):
    """List built-in palettes and palette files."""
    settings: Settings = ctx.obj['settings']
    click.echo("Built-in palettes:")
    for name in list_builtin_palettes():
        palette = get_builtin_palette(name)
        click.echo(f"  {name:10s} {palette.name} ({len(palette)} colors)")

    folder = Path(settings.palette_folder)
    files = sorted(p.name for p in folder.iterdir() if p.is_file()) if folder.is_dir() else []
    click.echo(f"\nPalette files in {folder}:")
    for name in files:
        marker = '*' if name == settings.default_palette else ' '
        click.echo(f" {marker}{name}")
    if not files:
        click.echo("  (none)")


@main.command('export-palette')
@click.argument('name', type=click.Choice(list_builtin_palettes()))
@click.option('--output', '-o', type=click.Path(), help='Output path (defaults to the palette folder)')
@click.pass_context
def export_palette(ctx, name, output):
    """Write a built-in palette to a file (.gpl for GIMP format)."""
    settings: Settings = ctx.obj['settings']
    if output is None:
        folder = Path(settings.palette_folder)
        folder.mkdir(parents=True, exist_ok=True)
        output = folder / f"{name}.palette"
    try:
        get_builtin_palette(name).save_to_file(output)
    except FractalError as e:
        fail(e)
    click.echo(f"Saved palette: {output}")


@main.command('init-config')
@click.option('--output', '-o', type=click.Path(), default='settings.yml',
              help='Output configuration file')
@click.pass_context
def init_config(ctx, output):
    """Write the current settings as a configuration template."""
    ConfigManager().save_config(ctx.obj['settings'], output)
    click.echo(f"Configuration template saved: {output}")


if __name__ == '__main__':
    main()
