"""Shared fixtures for the fractal explorer tests."""

from __future__ import annotations

import pytest
import yaml

from fractal_explorer.api import FractalSession
from fractal_explorer.core.viewport import Viewport
from fractal_explorer.io.config import Settings


@pytest.fixture
def settings(tmp_path):
    return Settings(
        fractal_folder=str(tmp_path / "fractals"),
        palette_folder=str(tmp_path / "palettes"),
        init_rows=40,
        init_cols=60,
        init_center_re=-0.5,
        init_center_im=0.0,
        init_pixel_pitch=0.05,
        init_max_iterations=50,
        num_workers=2,
    )


@pytest.fixture
def session(settings):
    return FractalSession(settings)


@pytest.fixture
def origin_viewport():
    """100x100 viewport over [-2, 2] x [-2, 2] with the origin at pixel (50, 50)."""
    return Viewport(rows=100, cols=100, center=0j, pixel_pitch=0.04, max_iterations=50)


@pytest.fixture
def two_stop_definition():
    return {
        'name': 'Two stop',
        'palette': [
            {'position': 0.0, 'index': 0, 'label': 'Black', 'color': [0, 0, 0]},
            {'position': 1.0, 'index': 1, 'label': 'Orange', 'color': [100, 200, 50]},
        ],
    }


@pytest.fixture
def palette_bytes(two_stop_definition):
    return yaml.safe_dump(two_stop_definition).encode('utf-8')
