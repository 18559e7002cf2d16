"""
Colour palettes keyed by iteration-count boundaries.

A palette is an ordered list of colour stops. Each stop has a relative
position in [0, 1] which is scaled by the iteration cap of the current
generation to give its absolute boundary. Iteration values falling between
two boundaries are coloured by linear interpolation of the neighbouring
stops.

Palettes are stored as YAML::

    name: Default
    palette:
      - position: 0.0
        index: 0
        label: Deep blue
        color: [0, 7, 100]
      - position: 1.0
        index: 1
        label: Black
        color: [0, 0, 0]

GIMP ``.gpl`` palettes are accepted too; their colours are spread evenly
over the relative range.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
import logging
import math

import numpy as np
import yaml

from ..core.errors import FractalIOError, PaletteFormatError

logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]

# Colour for values at or below the first boundary
BACKGROUND_COLOR: RGB = (0, 0, 0)

GPL_SUFFIX = '.gpl'


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass
class PaletteEntry:
    """A single colour stop."""

    relative_position: float
    color: RGB
    label: str = ""
    index: int = 0
    absolute_boundary: int = 0

    def __post_init__(self):
        """Validate position and colour channels."""
        position = self.relative_position
        if isinstance(position, bool) or not isinstance(position, (int, float)):
            raise PaletteFormatError(f"Palette position must be a number, got {position!r}")
        if not 0.0 <= position <= 1.0:
            raise PaletteFormatError(f"Palette position {position} outside [0, 1]")
        self.relative_position = float(position)

        if not isinstance(self.color, (list, tuple)) or len(self.color) != 3:
            raise PaletteFormatError(f"Palette color must be an RGB triple, got {self.color!r}")
        for channel in self.color:
            if isinstance(channel, bool) or not isinstance(channel, int) or not 0 <= channel <= 255:
                raise PaletteFormatError(f"Palette color channel {channel!r} outside 0..255")
        self.color = tuple(self.color)

    def rescale(self, max_iterations: int) -> None:
        self.absolute_boundary = _round_half_up(self.relative_position * max_iterations)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'position': self.relative_position,
            'index': self.index,
            'label': self.label,
            'color': list(self.color),
        }


class Palette:
    """Boundary-keyed colour palette with piecewise-linear interpolation."""

    def __init__(self, entries: Sequence[PaletteEntry], name: str = "Custom"):
        """
        Initialize palette.

        Args:
            entries: Colour stops, in any order
            name: Human-readable name for the palette

        Raises:
            PaletteFormatError: If there are no entries
        """
        if not entries:
            raise PaletteFormatError(f"Palette '{name}' has no entries")

        self.name = name
        # Stable sort keeps file order for stops sharing a position
        self.entries: List[PaletteEntry] = sorted(entries, key=lambda e: e.relative_position)
        self.max_iterations: Optional[int] = None

        if len(self.entries) < 2:
            logger.warning(f"Palette '{name}' has a single entry; "
                           f"only values above its boundary will be coloured")

    def __len__(self) -> int:
        return len(self.entries)

    def rescale(self, max_iterations: int) -> None:
        """
        Recompute every absolute boundary for a new iteration cap.

        Must run once per generation, boundaries are stale otherwise.
        """
        for entry in self.entries:
            entry.rescale(max_iterations)
        self.entries.sort(key=lambda e: e.absolute_boundary)
        self.max_iterations = max_iterations
        logger.debug(f"Palette '{self.name}' boundaries: "
                     f"{[e.absolute_boundary for e in self.entries]}")

    @property
    def boundaries(self) -> List[int]:
        return [entry.absolute_boundary for entry in self.entries]

    def color_for(self, value: int) -> RGB:
        """
        Colour for an iteration value.

        Args:
            value: Iteration value from an escape grid

        Returns:
            Interpolated RGB colour; the last colour above the last boundary;
            the background colour at or below the first boundary.
        """
        entries = self.entries
        for lower, upper in zip(entries, entries[1:]):
            if lower.absolute_boundary < value <= upper.absolute_boundary:
                t = (value - lower.absolute_boundary) / (upper.absolute_boundary - lower.absolute_boundary)
                return tuple(
                    _round_half_up((1.0 - t) * lo + t * hi)
                    for lo, hi in zip(lower.color, upper.color)
                )

        if value > entries[-1].absolute_boundary:
            return entries[-1].color

        return BACKGROUND_COLOR

    def lookup_table(self, max_iterations: int) -> np.ndarray:
        """
        Colours for every iteration value 0..max_iterations.

        Returns:
            uint8 array of shape (max_iterations + 1, 3)
        """
        table = np.empty((max_iterations + 1, 3), dtype=np.uint8)
        for value in range(max_iterations + 1):
            table[value] = self.color_for(value)
        return table

    def colorize(self, values: np.ndarray, max_iterations: int) -> np.ndarray:
        """
        Map an array of iteration values to an RGB image.

        Args:
            values: Integer array with entries in [0, max_iterations]
            max_iterations: Iteration cap of the values

        Returns:
            uint8 array of shape values.shape + (3,)
        """
        return self.lookup_table(max_iterations)[values]

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'palette': [entry.to_dict() for entry in self.entries],
        }

    def save_to_file(self, filepath: Union[str, Path]) -> None:
        """Save palette as YAML, or GIMP format for a ``.gpl`` path."""
        filepath = Path(filepath)
        try:
            with open(filepath, 'w', encoding='utf-8') as f:
                if filepath.suffix.lower() == GPL_SUFFIX:
                    f.write("GIMP Palette\n")
                    f.write(f"Name: {self.name}\n")
                    f.write("#\n")
                    for entry in self.entries:
                        r, g, b = entry.color
                        f.write(f"{r:3d} {g:3d} {b:3d} {entry.label}\n")
                else:
                    yaml.safe_dump(self.to_dict(), f, sort_keys=False)
        except OSError as e:
            raise FractalIOError(f"Could not write palette {filepath}: {e}") from e
        logger.info(f"Saved palette '{self.name}' to {filepath}")

    @classmethod
    def load(cls, definition: Union[str, bytes, Dict[str, Any]],
             name: Optional[str] = None, fmt: str = 'yaml') -> 'Palette':
        """
        Parse a palette definition.

        Args:
            definition: YAML or GPL text, or an already parsed mapping
            name: Fallback name when the definition does not carry one
            fmt: 'yaml' or 'gpl'

        Returns:
            Parsed palette (boundaries not yet scaled)

        Raises:
            PaletteFormatError: If the definition cannot be parsed or validated
        """
        if isinstance(definition, bytes):
            try:
                definition = definition.decode('utf-8')
            except UnicodeDecodeError as e:
                raise PaletteFormatError(f"Palette is not valid UTF-8: {e}") from e

        if fmt == 'gpl':
            return cls._parse_gpl(definition, name)

        if isinstance(definition, str):
            try:
                definition = yaml.safe_load(definition)
            except yaml.YAMLError as e:
                raise PaletteFormatError(f"Could not parse palette: {e}") from e

        if not isinstance(definition, dict) or not isinstance(definition.get('palette'), list):
            raise PaletteFormatError("Palette definition needs a 'palette' list")

        entries = []
        for i, raw in enumerate(definition['palette']):
            if not isinstance(raw, dict):
                raise PaletteFormatError(f"Palette entry {i} is not a mapping")
            missing = [key for key in ('position', 'index', 'label', 'color') if key not in raw]
            if missing:
                raise PaletteFormatError(f"Palette entry {i} is missing {', '.join(missing)}")
            if isinstance(raw['index'], bool) or not isinstance(raw['index'], int):
                raise PaletteFormatError(f"Palette entry {i} index must be an integer")
            entries.append(PaletteEntry(
                relative_position=raw['position'],
                color=raw['color'],
                label=str(raw['label']),
                index=raw['index'],
            ))

        return cls(entries, name=str(definition.get('name') or name or "Custom"))

    @classmethod
    def _parse_gpl(cls, text: str, name: Optional[str]) -> 'Palette':
        lines = [line.strip() for line in text.splitlines()]
        if not lines or not lines[0].startswith("GIMP Palette"):
            raise PaletteFormatError("GPL palette must start with 'GIMP Palette'")

        colors = []
        for line in lines[1:]:
            if not line or line.startswith('#') or line.startswith('Columns:'):
                continue
            if line.startswith("Name:"):
                name = line.split(":", 1)[1].strip()
                continue
            parts = line.split(None, 3)
            if len(parts) < 3:
                raise PaletteFormatError(f"Malformed GPL colour line: {line!r}")
            try:
                rgb = (int(parts[0]), int(parts[1]), int(parts[2]))
            except ValueError as e:
                raise PaletteFormatError(f"Malformed GPL colour line: {line!r}") from e
            colors.append((rgb, parts[3] if len(parts) > 3 else f"Color_{len(colors)}"))

        if not colors:
            raise PaletteFormatError("GPL palette contains no colours")

        step = 1.0 / (len(colors) - 1) if len(colors) > 1 else 0.0
        entries = [PaletteEntry(relative_position=min(1.0, i * step), color=rgb, label=label, index=i)
                   for i, (rgb, label) in enumerate(colors)]
        return cls(entries, name=name or "Loaded_Palette")

    @classmethod
    def load_from_file(cls, filepath: Union[str, Path]) -> 'Palette':
        """
        Load palette from a YAML or GPL file.

        Raises:
            FractalIOError: If the file cannot be read
            PaletteFormatError: If the content is malformed
        """
        filepath = Path(filepath)
        try:
            text = filepath.read_text(encoding='utf-8')
        except OSError as e:
            raise FractalIOError(f"Could not read palette {filepath}: {e}") from e
        except UnicodeDecodeError as e:
            raise PaletteFormatError(f"Palette {filepath} is not valid UTF-8: {e}") from e

        fmt = 'gpl' if filepath.suffix.lower() == GPL_SUFFIX else 'yaml'
        palette = cls.load(text, name=filepath.stem, fmt=fmt)
        logger.info(f"Loaded palette '{palette.name}' ({len(palette)} entries) from {filepath}")
        return palette

    @classmethod
    def from_colors(cls, colors: Sequence[Tuple[str, RGB]], name: str) -> 'Palette':
        """Create a palette with labelled colours spread evenly over [0, 1]."""
        step = 1.0 / (len(colors) - 1) if len(colors) > 1 else 0.0
        entries = [PaletteEntry(relative_position=min(1.0, i * step), color=rgb, label=label, index=i)
                   for i, (label, rgb) in enumerate(colors)]
        return cls(entries, name=name)


def _create_builtin_palettes() -> Dict[str, Palette]:
    """Create built-in colour palettes."""
    palettes = {}

    # Blue-gold sweep with a black interior
    palettes['default'] = Palette([
        PaletteEntry(0.0, (0, 7, 100), "Deep blue", 0),
        PaletteEntry(0.16, (32, 107, 203), "Blue", 1),
        PaletteEntry(0.42, (237, 255, 255), "White", 2),
        PaletteEntry(0.6425, (255, 170, 0), "Orange", 3),
        PaletteEntry(0.8575, (0, 2, 0), "Near black", 4),
        PaletteEntry(1.0, (0, 0, 0), "Black", 5),
    ], name="Default")

    palettes['hot'] = Palette.from_colors([
        ("Black", (0, 0, 0)),
        ("Red", (255, 0, 0)),
        ("Yellow", (255, 255, 0)),
        ("White", (255, 255, 255)),
    ], name="Hot")

    palettes['cool'] = Palette.from_colors([
        ("Black", (0, 0, 0)),
        ("Blue", (0, 0, 255)),
        ("Cyan", (0, 255, 255)),
        ("White", (255, 255, 255)),
    ], name="Cool")

    palettes['gray'] = Palette.from_colors([
        ("Black", (0, 0, 0)),
        ("White", (255, 255, 255)),
    ], name="Grayscale")

    palettes['fire'] = Palette.from_colors([
        ("Black", (0, 0, 0)),
        ("Dark red", (128, 0, 0)),
        ("Red", (255, 0, 0)),
        ("Orange", (255, 128, 0)),
        ("Yellow", (255, 255, 0)),
        ("White", (255, 255, 255)),
    ], name="Fire")

    palettes['ocean'] = Palette.from_colors([
        ("Deep blue", (0, 0, 51)),
        ("Blue", (0, 0, 204)),
        ("Light blue", (0, 128, 255)),
        ("Cyan", (0, 255, 255)),
        ("Light cyan", (128, 255, 255)),
        ("White", (255, 255, 255)),
    ], name="Ocean")

    palettes['rainbow'] = Palette.from_colors([
        ("Red", (255, 0, 0)),
        ("Orange", (255, 128, 0)),
        ("Yellow", (255, 255, 0)),
        ("Green", (0, 255, 0)),
        ("Cyan", (0, 255, 255)),
        ("Blue", (0, 0, 255)),
        ("Purple", (128, 0, 255)),
    ], name="Rainbow")

    return palettes


def list_builtin_palettes() -> List[str]:
    """Names of the built-in palettes."""
    return list(_create_builtin_palettes().keys())


def get_builtin_palette(name: str) -> Palette:
    """
    Get a fresh copy of a built-in palette.

    Raises:
        ValueError: If the name is unknown
    """
    palettes = _create_builtin_palettes()
    if name not in palettes:
        available = ', '.join(palettes.keys())
        raise ValueError(f"Unknown color palette '{name}'. Available: {available}")
    return palettes[name]
