"""
Main API for interactive fractal exploration.

A ``FractalSession`` owns the current viewport, the active palette and the
last computed escape grid, and exposes the generate / recenter / render /
histogram / load_palette operations used by front ends. Every public
operation holds the session lock for its whole duration, so operations are
serialised against each other while the row work inside a generation still
runs in parallel.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional
import copy
import logging
import threading
import time

from . import __version__
from .acceleration.numba_backend import compile_kernels
from .core.errors import FractalError, FractalIOError, NotGeneratedError, PaletteFormatError
from .core.escape_time import EscapeGrid, EscapeTimeEngine
from .core.viewport import Viewport
from .io.config import Settings
from .rendering.coloring import GPL_SUFFIX, Palette, get_builtin_palette
from .rendering.histogram import Histogram, HistogramAnalyzer
from .rendering.image_output import ImageRenderer, RenderMetadata

logger = logging.getLogger(__name__)

# Success flag reported by each image-producing operation
SUCCESS_KEYS = {
    'generate': 'grid_ready',
    'recenter': 'recentered',
    'render': 'rendered',
}


class SessionState(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    STALE = "stale"


@dataclass
class OperationResult:
    """Outcome of a generate, recenter or render operation."""
    operation: str
    success: bool
    duration: float
    image_filename: str = ""
    params: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        """Response body for front ends; only the bare image name leaves the core."""
        return {
            'operation': self.operation,
            'success': self.success,
            SUCCESS_KEYS[self.operation]: self.success,
            'time': f"{self.duration:.3f} sec",
            'image': self.image_filename,
            'params': dict(self.params),
        }


@dataclass
class HistogramResult:
    """Outcome of a histogram operation."""
    bins: List[int]
    counts: List[int]
    duration: float

    def to_payload(self) -> Dict[str, Any]:
        return {
            'success': True,
            'time': f"{self.duration:.3f} sec",
            'chart': {'bins': list(self.bins), 'counts': list(self.counts)},
        }


@dataclass
class PaletteResult:
    """Outcome of a load_palette operation."""
    accepted: bool
    active_filename: str


def failure_payload(error: FractalError) -> Dict[str, Any]:
    """Structured failure response carrying the message and elapsed time."""
    return {
        'success': False,
        'time': f"{(error.duration or 0.0):.3f} sec",
        'error': error.message,
    }


class FractalSession:
    """Interactive fractal session."""

    def __init__(self, settings: Settings, engine: Optional[EscapeTimeEngine] = None,
                 renderer: Optional[ImageRenderer] = None,
                 analyzer: Optional[HistogramAnalyzer] = None):
        """
        Initialize session.

        Args:
            settings: Immutable configuration (validated here)
            engine: Escape-time engine (created from settings if None)
            renderer: Image renderer (default if None)
            analyzer: Histogram analyzer (default if None)
        """
        settings.validate()
        self.settings = settings
        self.engine = engine or EscapeTimeEngine(settings.num_workers)
        self.renderer = renderer or ImageRenderer()
        self.analyzer = analyzer or HistogramAnalyzer()

        self._lock = threading.Lock()
        self._viewport = Viewport.from_settings(settings)
        self._grid: Optional[EscapeGrid] = None
        self._grid_viewport: Optional[Dict[str, Any]] = None
        self._image_path: Optional[Path] = None
        self.active_palette_file = settings.default_palette
        self.durations: Dict[str, float] = {}

        self._ensure_default_palette()
        compile_kernels()
        logger.info(f"{settings.program_name} v{settings.program_version} session ready "
                    f"({self.engine.pool.num_workers} workers)")

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        if self._grid is None:
            return SessionState.UNINITIALIZED
        if self._grid_viewport != self._viewport.to_dict():
            return SessionState.STALE
        return SessionState.READY

    @property
    def viewport(self) -> Dict[str, Any]:
        return self._viewport.to_dict()

    @property
    def image_filename(self) -> str:
        """Bare name of the last written image."""
        return self._image_path.name if self._image_path else ""

    @property
    def image_path(self) -> Optional[Path]:
        return self._image_path

    def grid_snapshot(self) -> Optional[EscapeGrid]:
        """Copy of the current grid, taken under the session lock."""
        with self._lock:
            if self._grid is None:
                return None
            return EscapeGrid(self._grid.values.copy(), self._grid.max_iterations)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def generate(self, rows: Optional[int] = None, cols: Optional[int] = None,
                 center_re: Optional[float] = None, center_im: Optional[float] = None,
                 pixel_pitch: Optional[float] = None, max_iterations: Optional[int] = None,
                 palette_file: Optional[str] = None) -> OperationResult:
        """
        Compute and render a new fractal image.

        Unset parameters keep their current values.

        Returns:
            OperationResult with the image filename and the parameters used

        Raises:
            ValueError: If the overrides describe invalid geometry
            PaletteFormatError, FractalIOError, NotGeneratedError: On failure,
                with ``duration`` set to the elapsed time
        """
        with self._lock:
            with self._timed('generate'):
                logger.info("Generating fractal")
                viewport = copy.copy(self._viewport)
                viewport.apply_overrides(rows=rows, cols=cols, center_re=center_re,
                                         center_im=center_im, pixel_pitch=pixel_pitch,
                                         max_iterations=max_iterations)
                palette_name = Path(palette_file).name if palette_file else self.active_palette_file
                self._generate_pipeline(viewport, palette_name)
            return self._result('generate')

    def recenter(self, center_row_hint: int, center_col_hint: int,
                 new_center_re: float, new_center_im: float) -> OperationResult:
        """
        Move the viewport center and regenerate.

        The row/column hints name the pixel that becomes the new center. The
        whole grid is recomputed; the hints are only logged.

        Raises:
            NotGeneratedError: If no grid has been generated yet
        """
        with self._lock:
            with self._timed('recenter'):
                self._require_grid("recenter")
                logger.info(f"Recentring to x:{new_center_re} y:{new_center_im} "
                            f"(pixel row {center_row_hint}, col {center_col_hint})")
                viewport = copy.copy(self._viewport)
                viewport.recenter(complex(new_center_re, new_center_im))
                self._generate_pipeline(viewport, self.active_palette_file)
            return self._result('recenter')

    def render(self) -> OperationResult:
        """
        Re-render the last grid with the active palette, without recomputing.

        Raises:
            NotGeneratedError: If no grid has been generated yet
        """
        with self._lock:
            with self._timed('render'):
                self._require_grid("render")
                logger.info("Re-rendering fractal image with active palette")
                palette = self._load_palette(self.active_palette_file, self._grid.max_iterations)
                self._write_image(palette)
            return self._result('render')

    def histogram(self) -> HistogramResult:
        """
        Iteration-count histogram of the last grid.

        Raises:
            NotGeneratedError: If no grid has been generated yet
        """
        with self._lock:
            with self._timed('histogram'):
                self._require_grid("histogram")
                result: Histogram = self.analyzer.histogram(self._grid, self._grid.max_iterations)
            return HistogramResult(result.bins, result.counts, self.durations['histogram'])

    def load_palette(self, raw_bytes: bytes, suggested_filename: str) -> PaletteResult:
        """
        Store a palette definition and make it the active palette.

        The content is validated before it is written. Only the final path
        component of the suggested name is used; an existing file with that
        name is overwritten.

        Raises:
            PaletteFormatError: If name or content is missing or malformed
            FractalIOError: If the palette cannot be written
        """
        with self._lock:
            with self._timed('load_palette'):
                filename = Path(suggested_filename or "").name
                if not filename or not raw_bytes:
                    raise PaletteFormatError("No palette file provided")

                fmt = 'gpl' if filename.lower().endswith(GPL_SUFFIX) else 'yaml'
                palette = Palette.load(raw_bytes, name=Path(filename).stem, fmt=fmt)

                folder = Path(self.settings.palette_folder)
                try:
                    folder.mkdir(parents=True, exist_ok=True)
                    (folder / filename).write_bytes(raw_bytes)
                except OSError as e:
                    raise FractalIOError(f"Could not store palette {filename}: {e}") from e

                self.active_palette_file = filename
                logger.info(f"Active palette is now {filename} ('{palette.name}')")
            return PaletteResult(accepted=True, active_filename=filename)

    # ------------------------------------------------------------------
    # Internals (called with the lock held)
    # ------------------------------------------------------------------

    @contextmanager
    def _timed(self, operation: str) -> Iterator[None]:
        """Record the operation's duration, stamping it onto failures."""
        start_time = time.time()
        try:
            yield
        except FractalError as e:
            e.duration = time.time() - start_time
            self.durations[operation] = e.duration
            logger.error(f"{operation} failed after {e.duration:.3f}s: {e.message}")
            raise
        self.durations[operation] = time.time() - start_time
        logger.info(f"Time to {operation}: {self.durations[operation]:.3f}s")

    def _require_grid(self, operation: str) -> None:
        if self._grid is None:
            raise NotGeneratedError(f"Cannot {operation}: no fractal has been generated yet.")

    def _generate_pipeline(self, viewport: Viewport, palette_name: str) -> None:
        """
        Compute and render ``viewport`` with the named palette.

        Nothing is committed until the palette has loaded. After that the
        viewport and palette become current, so a failed computation leaves
        the session stale, and a failed image write keeps the new grid.
        """
        palette = self._load_palette(palette_name, viewport.max_iterations)
        self._viewport = viewport
        self.active_palette_file = palette_name

        grid = self.engine.compute(viewport)
        if not grid.matches(viewport):
            raise NotGeneratedError(
                f"Computed grid {grid.shape} does not match viewport {viewport.shape}")

        self._grid = grid
        self._grid_viewport = viewport.to_dict()
        self._write_image(palette)

    def _load_palette(self, palette_name: str, max_iterations: int) -> Palette:
        path = Path(self.settings.palette_folder) / palette_name
        palette = Palette.load_from_file(path)
        palette.rescale(max_iterations)
        return palette

    def _write_image(self, palette: Palette) -> None:
        params = self._grid_viewport or self._viewport.to_dict()
        metadata = RenderMetadata(palette=palette.name, software_version=__version__, **params)
        self._image_path = self.renderer.render(self._grid, palette, self.settings.fractal_folder,
                                                self.settings.fractal_filename, metadata)

    def _result(self, operation: str) -> OperationResult:
        return OperationResult(operation=operation, success=True,
                               duration=self.durations[operation],
                               image_filename=self.image_filename,
                               params=dict(self._grid_viewport or self._viewport.to_dict()))

    def _ensure_default_palette(self) -> None:
        """Write the built-in default palette if the palette folder lacks it."""
        folder = Path(self.settings.palette_folder)
        path = folder / self.settings.default_palette
        if path.exists():
            return
        try:
            folder.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FractalIOError(f"Could not create palette folder {folder}: {e}") from e
        get_builtin_palette('default').save_to_file(path)
        logger.info(f"Created default palette {path}")
