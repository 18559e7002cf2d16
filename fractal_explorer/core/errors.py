"""
Exception types raised by the fractal engine.

Geometry problems (non-positive dimensions or pitch) are programming errors
and surface as plain ``ValueError``. Everything here is a recoverable failure
that the calling layer is expected to report back to the user.
"""

from typing import Optional


class FractalError(Exception):
    """Base class for fractal engine failures."""

    def __init__(self, message: str, duration: Optional[float] = None):
        super().__init__(message)
        self.message = message
        # Seconds spent in the failing operation, stamped by the session
        self.duration = duration


class NotGeneratedError(FractalError):
    """An operation needed a computed grid that does not exist."""

    def __init__(self, message: str = "Failed to generate fractal image.",
                 duration: Optional[float] = None):
        super().__init__(message, duration)


class PaletteFormatError(FractalError):
    """A palette definition could not be parsed or failed validation."""


class FractalIOError(FractalError):
    """Filesystem failure while reading or writing images and palettes."""
