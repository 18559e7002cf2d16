"""
Iteration-count histograms.

The distribution of escape times is the main guide when placing palette
boundaries: colour stops belong where most pixels actually land.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union
import logging

import numpy as np

from ..core.errors import FractalIOError

logger = logging.getLogger(__name__)


@dataclass
class Histogram:
    """Dense iteration-count series."""
    bins: List[int] = field(default_factory=list)
    counts: List[int] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(self.counts)

    def to_dict(self) -> Dict[str, Any]:
        return {'bins': list(self.bins), 'counts': list(self.counts)}


class HistogramAnalyzer:
    """Summarises escape grids into histograms."""

    def histogram(self, grid, max_iterations: int) -> Histogram:
        """
        Count grid cells for every iteration value.

        Every integer value from 0 to max_iterations inclusive gets a bin,
        including empty ones, so charts keep a fixed x-axis.

        Args:
            grid: EscapeGrid to summarise
            max_iterations: Iteration cap the grid was computed with

        Returns:
            Histogram with ascending bins
        """
        counts = np.bincount(grid.values.ravel(), minlength=max_iterations + 1)
        counts = counts[:max_iterations + 1]
        logger.debug(f"Histogram over {grid.values.size} cells, {max_iterations + 1} bins")
        return Histogram(bins=list(range(max_iterations + 1)),
                         counts=[int(c) for c in counts])


def plot_histogram(histogram: Histogram, filepath: Union[str, Path], log_scale: bool = True) -> Path:
    """
    Write a bar chart of a histogram.

    Args:
        histogram: Histogram to plot
        filepath: Output image path
        log_scale: Use a logarithmic count axis

    Returns:
        The written path
    """
    import matplotlib
    matplotlib.use('Agg')
    import matplotlib.pyplot as plt

    filepath = Path(filepath)
    fig, ax = plt.subplots(figsize=(10, 4))
    try:
        ax.bar(histogram.bins, histogram.counts, width=1.0, color='steelblue')
        ax.set_xlabel("Iterations")
        ax.set_ylabel("Pixels")
        ax.set_title("Divergence histogram")
        if log_scale:
            ax.set_yscale('symlog')
        fig.tight_layout()
        fig.savefig(filepath)
    except OSError as e:
        raise FractalIOError(f"Could not write histogram chart {filepath}: {e}") from e
    finally:
        plt.close(fig)

    logger.info(f"Saved histogram chart to: {filepath}")
    return filepath
