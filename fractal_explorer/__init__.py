"""
Interactive escape-time fractal explorer.

This library samples a viewport over the complex plane, measures the smoothed
escape time of every pixel in parallel, maps the result through a
boundary-keyed colour palette and writes collision-safe image files.

Key Features:
- Smooth (fractional) Mandelbrot escape times in float64
- Numba-compiled row kernels evaluated on a thread pool
- YAML and GIMP palettes scaled to the iteration cap
- Iteration histograms for tuning palette boundaries
- A locked session object for generate / recenter / render workflows

Example usage:
    >>> from fractal_explorer import FractalSession, Settings
    >>> session = FractalSession(Settings(fractal_folder="out"))
    >>> result = session.generate(rows=300, cols=400, max_iterations=500)
    >>> result.image_filename
    'fractal-001.png'
"""

__version__ = "1.0.0"
__author__ = "Fractal Explorer Team"

from fractal_explorer.core.errors import (
    FractalError,
    FractalIOError,
    NotGeneratedError,
    PaletteFormatError,
)
from fractal_explorer.core.viewport import Viewport
from fractal_explorer.core.escape_time import EscapeGrid, EscapeTimeEngine, escape_value
from fractal_explorer.rendering.coloring import Palette, PaletteEntry
from fractal_explorer.rendering.image_output import ImageRenderer
from fractal_explorer.rendering.histogram import Histogram, HistogramAnalyzer
from fractal_explorer.io.config import ConfigManager, Settings

# Main API classes
from fractal_explorer.api import FractalSession, OperationResult, SessionState

__all__ = [
    "FractalSession",
    "OperationResult",
    "SessionState",
    "Settings",
    "ConfigManager",
    "Viewport",
    "EscapeGrid",
    "EscapeTimeEngine",
    "escape_value",
    "Palette",
    "PaletteEntry",
    "ImageRenderer",
    "Histogram",
    "HistogramAnalyzer",
    "FractalError",
    "FractalIOError",
    "NotGeneratedError",
    "PaletteFormatError",
]
