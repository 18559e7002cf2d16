"""Tests for iteration histograms."""

from __future__ import annotations

import numpy as np

from fractal_explorer.core.escape_time import EscapeGrid, EscapeTimeEngine
from fractal_explorer.rendering.histogram import Histogram, HistogramAnalyzer, plot_histogram


def test_counts_every_value_including_empty_bins():
    grid = EscapeGrid(np.array([[0, 2, 2], [5, 5, 5]], dtype=np.uint32), 5)
    hist = HistogramAnalyzer().histogram(grid, 5)
    assert hist.bins == [0, 1, 2, 3, 4, 5]
    assert hist.counts == [1, 0, 2, 0, 0, 3]
    assert hist.total == 6


def test_total_matches_grid_size(origin_viewport):
    grid = EscapeTimeEngine(num_workers=2).compute(origin_viewport)
    hist = HistogramAnalyzer().histogram(grid, origin_viewport.max_iterations)
    assert len(hist.bins) == origin_viewport.max_iterations + 1
    assert hist.total == origin_viewport.rows * origin_viewport.cols
    assert all(isinstance(c, int) for c in hist.counts)
    # Interior points land in the last bin
    assert hist.counts[-1] > 0


def test_to_dict():
    assert Histogram([0, 1], [3, 4]).to_dict() == {'bins': [0, 1], 'counts': [3, 4]}


def test_plot_histogram(tmp_path):
    path = plot_histogram(Histogram([0, 1, 2], [5, 0, 12]), tmp_path / "hist.png")
    assert path.exists()
    assert path.stat().st_size > 0
