"""
Image export for escape-time grids.

Rendered images are never overwritten: every render claims a fresh
``<stem>-<NNN>.<ext>`` name in the output directory, so each generation
leaves a stable artifact behind.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union
import io
import json
import logging

import numpy as np
from PIL import Image, PngImagePlugin

from .coloring import Palette
from ..core.errors import FractalIOError

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = 'PNG'


@dataclass
class RenderMetadata:
    """Metadata embedded in rendered images."""

    rows: int
    cols: int
    center_re: float
    center_im: float
    pixel_pitch: float
    max_iterations: int
    palette: str
    timestamp: str = ""
    software_version: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Set default timestamp if not provided."""
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> 'RenderMetadata':
        return cls(**json.loads(json_str))


def split_filename(base_filename: str) -> Tuple[str, str]:
    """
    Split a filename at its last '.' into stem and extension.

    The extension keeps its leading dot and is empty when there is no dot.
    """
    idx = base_filename.rfind('.')
    if idx < 0:
        return base_filename, ''
    return base_filename[:idx], base_filename[idx:]


def numbered_filename(base_filename: str, suffix: int) -> str:
    stem, extension = split_filename(base_filename)
    return f"{stem}-{suffix:03d}{extension}"


def image_format_for(filename: str) -> str:
    """Pillow format name for a filename, PNG when the extension is unknown."""
    _, extension = split_filename(filename)
    return Image.registered_extensions().get(extension.lower(), DEFAULT_FORMAT)


class ImageRenderer:
    """Colours escape grids and writes them under collision-safe names."""

    def render(self, grid, palette: Palette, output_directory: Union[str, Path],
               base_filename: str, metadata: Optional[RenderMetadata] = None) -> Path:
        """
        Render a grid through a palette and write it to disk.

        Args:
            grid: EscapeGrid to render
            palette: Palette rescaled to the grid's iteration cap
            output_directory: Directory receiving the image (created if absent)
            base_filename: Name the numbered filename is derived from
            metadata: Optional metadata to embed in PNG output

        Returns:
            Full path of the written image

        Raises:
            FractalIOError: If the directory cannot be created or the image
                cannot be written
        """
        output_directory = Path(output_directory)
        try:
            output_directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FractalIOError(f"Could not create image folder {output_directory}: {e}") from e

        rgb = palette.colorize(grid.values, grid.max_iterations)
        pil_image = Image.fromarray(np.ascontiguousarray(rgb))

        filepath, handle = self._claim_filename(output_directory, base_filename)
        image_format = image_format_for(filepath.name)
        try:
            with handle:
                self._save(pil_image, handle, image_format, metadata)
        except Exception as e:
            # Remove the partial file
            filepath.unlink(missing_ok=True)
            raise FractalIOError(f"Could not write image {filepath}: {e}") from e

        logger.info(f"Saved fractal image to: {filepath} ({grid.cols}x{grid.rows}, {image_format})")
        return filepath

    def _claim_filename(self, output_directory: Path, base_filename: str) -> Tuple[Path, io.BufferedWriter]:
        """Find the first numbered name that does not exist and create it exclusively."""
        suffix = 1
        while True:
            filepath = output_directory / numbered_filename(base_filename, suffix)
            try:
                return filepath, open(filepath, 'xb')
            except FileExistsError:
                suffix += 1
            except OSError as e:
                raise FractalIOError(f"Could not create image {filepath}: {e}") from e

    def _save(self, pil_image: Image.Image, handle, image_format: str,
              metadata: Optional[RenderMetadata]) -> None:
        if image_format == 'PNG':
            pnginfo = PngImagePlugin.PngInfo()
            if metadata:
                pnginfo.add_text("Title", "Fractal: Mandelbrot")
                pnginfo.add_text("Software", f"Fractal Explorer v{metadata.software_version}")
                pnginfo.add_text("Creation Time", metadata.timestamp)
                pnginfo.add_text("FractalMetadata", metadata.to_json())
            pil_image.save(handle, format='PNG', pnginfo=pnginfo)
        elif image_format == 'JPEG':
            pil_image.save(handle, format='JPEG', quality=95, optimize=True)
        else:
            pil_image.save(handle, format=image_format)


def extract_metadata(filepath: Union[str, Path]) -> Optional[RenderMetadata]:
    """Read embedded fractal metadata back from a PNG image."""
    with Image.open(filepath) as img:
        text = getattr(img, 'text', {})
        if 'FractalMetadata' in text:
            return RenderMetadata.from_json(text['FractalMetadata'])
    return None
