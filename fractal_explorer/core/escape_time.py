"""
Escape-time computation for the Mandelbrot set.

For every pixel of a viewport the engine iterates ``z <- z^2 + c`` from
``z = 0`` until ``|z| >= 2`` or the iteration cap is reached, then stores the
floor of the smoothed (fractional) iteration count. The smoothing term
``ln(ln|z|) / ln 2`` removes the visible banding between integer escape
times; bounded points keep the raw cap because the term is undefined there.
"""

from typing import Optional, Tuple
import logging
import time

import numpy as np

from .viewport import Viewport
from ..acceleration.numba_backend import escape_time_point, escape_time_row
from ..acceleration.parallel import RowPool, create_row_specs

logger = logging.getLogger(__name__)


class EscapeGrid:
    """Container for one generation's escape-time values."""

    def __init__(self, values: np.ndarray, max_iterations: int):
        """
        Initialize escape grid.

        Args:
            values: Row-major uint32 array of shape (rows, cols)
            max_iterations: Iteration cap the values were computed with
        """
        self.values = values
        self.max_iterations = max_iterations

    @property
    def shape(self) -> Tuple[int, int]:
        return self.values.shape

    @property
    def rows(self) -> int:
        return self.values.shape[0]

    @property
    def cols(self) -> int:
        return self.values.shape[1]

    def __getitem__(self, index: Tuple[int, int]) -> int:
        row, col = index
        return int(self.values[row, col])

    def matches(self, viewport: Viewport) -> bool:
        """Whether the grid dimensions agree with the viewport."""
        return (self.shape == viewport.shape
                and self.max_iterations == viewport.max_iterations)


class EscapeTimeEngine:
    """Computes escape-time grids for viewports."""

    def __init__(self, num_workers: Optional[int] = None):
        """
        Initialize engine.

        Args:
            num_workers: Row pool size (None for available CPU count)
        """
        self.pool = RowPool(num_workers)

    def compute(self, viewport: Viewport) -> EscapeGrid:
        """
        Compute the escape-time grid for a viewport.

        The viewport must not be mutated while the call runs.

        Args:
            viewport: Viewport with up-to-date limits

        Returns:
            EscapeGrid of shape (viewport.rows, viewport.cols)
        """
        start_time = time.time()
        logger.info(f"Computing {viewport.cols}x{viewport.rows} grid at {viewport.center}, "
                    f"pitch={viewport.pixel_pitch}, max_iterations={viewport.max_iterations}")

        specs = create_row_specs(viewport)
        values = self.pool.run(escape_time_row, specs, viewport.cols)
        grid = EscapeGrid(values, viewport.max_iterations)
        logger.info(f"Grid computed in {time.time() - start_time:.3f}s")
        return grid


def escape_value(c: complex, max_iterations: int) -> int:
    """Smoothed escape time of a single point."""
    c = complex(c)
    return int(escape_time_point(c.real, c.imag, int(max_iterations)))
