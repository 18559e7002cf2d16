"""
Viewport over the complex plane.

A viewport is a pixel grid of ``rows x cols`` samples centred on a complex
point, with a fixed distance (the pixel pitch) between neighbouring samples.
Row coordinates decrease downward and column coordinates increase rightward,
so pixel ``(0, 0)`` sits at the top-left corner of the region.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


@dataclass
class Viewport:
    """Sampling region and resolution for one fractal generation."""

    rows: int
    cols: int
    center: complex
    pixel_pitch: float
    max_iterations: int
    top_left: complex = 0j

    def __post_init__(self):
        self.center = complex(self.center)
        self.recompute_limits()

    @classmethod
    def from_settings(cls, settings) -> 'Viewport':
        """
        Create the initial viewport from configuration defaults.

        Args:
            settings: Settings instance carrying the ``init_*`` defaults

        Returns:
            Viewport with limits already derived
        """
        logger.info("Initialising viewport from settings defaults")
        return cls(
            rows=settings.init_rows,
            cols=settings.init_cols,
            center=complex(settings.init_center_re, settings.init_center_im),
            pixel_pitch=settings.init_pixel_pitch,
            max_iterations=settings.init_max_iterations,
        )

    def recompute_limits(self) -> None:
        """
        Derive the top-left sample coordinate from center, pitch and size.

        Raises:
            ValueError: If the geometry is invalid. Callers validate upstream;
                the engine never corrects bad geometry on its own.
        """
        if self.rows <= 0 or self.cols <= 0:
            raise ValueError("Viewport rows and cols must be positive")
        if self.pixel_pitch <= 0:
            raise ValueError("Viewport pixel_pitch must be positive")
        if self.max_iterations < 1:
            raise ValueError("Viewport max_iterations must be at least 1")

        left = self.center.real - (self.cols / 2.0) * self.pixel_pitch
        top = self.center.imag + (self.rows / 2.0) * self.pixel_pitch
        self.top_left = complex(left, top)
        logger.debug(f"Viewport limits: top_left={self.top_left}, "
                     f"{self.cols}x{self.rows} @ {self.pixel_pitch}")

    def recenter(self, new_center: complex) -> None:
        """Move the viewport center, keeping size and pitch."""
        self.center = complex(new_center)
        self.recompute_limits()

    def apply_overrides(self, rows: Optional[int] = None, cols: Optional[int] = None,
                        center_re: Optional[float] = None, center_im: Optional[float] = None,
                        pixel_pitch: Optional[float] = None,
                        max_iterations: Optional[int] = None) -> None:
        """
        Apply parameter overrides; unset values keep their current value.

        Args:
            rows, cols: Grid dimensions in pixels
            center_re, center_im: New center components
            pixel_pitch: Distance between neighbouring samples
            max_iterations: Iteration cap
        """
        if rows is not None:
            self.rows = int(rows)
        if cols is not None:
            self.cols = int(cols)
        if center_re is not None or center_im is not None:
            re = self.center.real if center_re is None else float(center_re)
            im = self.center.imag if center_im is None else float(center_im)
            self.center = complex(re, im)
        if pixel_pitch is not None:
            self.pixel_pitch = float(pixel_pitch)
        if max_iterations is not None:
            self.max_iterations = int(max_iterations)
        self.recompute_limits()

    def pixel_to_complex(self, row: int, col: int) -> complex:
        """Convert pixel coordinates to the sampled complex number."""
        return complex(self.top_left.real + col * self.pixel_pitch,
                       self.top_left.imag - row * self.pixel_pitch)

    def complex_to_pixel(self, c: complex) -> Tuple[int, int]:
        """Convert a complex number to the nearest (row, col) pixel."""
        col = int(round((c.real - self.top_left.real) / self.pixel_pitch))
        row = int(round((self.top_left.imag - c.imag) / self.pixel_pitch))
        return row, col

    @property
    def shape(self) -> Tuple[int, int]:
        return self.rows, self.cols

    def to_dict(self) -> Dict[str, Any]:
        """Parameters as reported back to callers."""
        return {
            'rows': self.rows,
            'cols': self.cols,
            'center_re': self.center.real,
            'center_im': self.center.imag,
            'pixel_pitch': self.pixel_pitch,
            'max_iterations': self.max_iterations,
        }
