"""
Row-parallel evaluation of escape-time grids.

Every pixel row is an independent task: it reads only the viewport geometry
and writes only its own slice of a preallocated output array. Rows never
alias, so the workers share the buffer without any locking and the final grid
does not depend on scheduling order.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, List, Optional
import logging
import os
import time

import numpy as np

logger = logging.getLogger(__name__)

RowKernel = Callable[[np.ndarray, float, float, float, int], None]


@dataclass(frozen=True)
class RowSpec:
    """Specification for a single row task."""
    row: int
    left: float
    imag: float
    pitch: float
    max_iterations: int


def create_row_specs(viewport) -> List[RowSpec]:
    """
    Split a viewport into one task specification per pixel row.

    Row coordinates are computed from the row index rather than accumulated,
    so every row sees the same value no matter which worker evaluates it.
    """
    top_left = viewport.top_left
    return [
        RowSpec(row=row,
                left=top_left.real,
                imag=top_left.imag - row * viewport.pixel_pitch,
                pitch=viewport.pixel_pitch,
                max_iterations=viewport.max_iterations)
        for row in range(viewport.rows)
    ]


def get_optimal_worker_count() -> int:
    """Number of workers matching the available hardware parallelism."""
    return max(1, os.cpu_count() or 1)


class RowPool:
    """Bounded worker pool executing one task per grid row."""

    def __init__(self, num_workers: Optional[int] = None):
        """
        Initialize the row pool.

        Args:
            num_workers: Number of worker threads (None for CPU count)
        """
        if num_workers is None:
            self.num_workers = get_optimal_worker_count()
        else:
            self.num_workers = max(1, int(num_workers))
        logger.info(f"Row pool: {self.num_workers} workers")

    def run(self, kernel: RowKernel, specs: List[RowSpec], cols: int) -> np.ndarray:
        """
        Evaluate every row and assemble the grid.

        Args:
            kernel: Row kernel filling a 1-D output slice
            specs: One RowSpec per row, in row order
            cols: Number of columns per row

        Returns:
            uint32 array of shape (len(specs), cols)
        """
        start_time = time.time()
        grid = np.zeros((len(specs), cols), dtype=np.uint32)

        if self.num_workers == 1 or len(specs) <= 1:
            for spec in specs:
                kernel(grid[spec.row], spec.left, spec.imag, spec.pitch, spec.max_iterations)
        else:
            with ThreadPoolExecutor(max_workers=self.num_workers) as executor:
                future_to_row = {
                    executor.submit(kernel, grid[spec.row], spec.left, spec.imag,
                                    spec.pitch, spec.max_iterations): spec.row
                    for spec in specs
                }

                completed = 0
                for future in as_completed(future_to_row):
                    # Re-raises kernel failures
                    future.result()
                    completed += 1
                    if completed % max(1, len(specs) // 4) == 0:
                        logger.debug(f"Completed {completed}/{len(specs)} rows")

        logger.info(f"Computed {len(specs)} rows with {self.num_workers} workers "
                    f"in {time.time() - start_time:.3f}s")
        return grid
