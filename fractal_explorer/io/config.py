"""
Configuration loading for the fractal explorer.

Settings are read once from a YAML or JSON file, optionally overridden from
``FRACTAL_EXPLORER_*`` environment variables, and then handed to the session
as an immutable value.
"""

from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union
import json
import logging
import os

import yaml

from .. import __version__

logger = logging.getLogger(__name__)

ENV_PREFIX = "FRACTAL_EXPLORER_"


@dataclass(frozen=True)
class Settings:
    """Process-wide settings for a fractal session."""

    program_name: str = "Fractal Explorer"
    program_version: str = __version__
    program_devs: List[str] = field(default_factory=list)
    program_web: str = ""

    # Storage
    fractal_folder: str = "./fractals"
    palette_folder: str = "./palettes"
    fractal_filename: str = "fractal.png"
    default_palette: str = "default.palette"

    # Initial viewport
    init_rows: int = 600
    init_cols: int = 800
    init_center_re: float = -0.5
    init_center_im: float = 0.0
    init_pixel_pitch: float = 0.004
    init_max_iterations: int = 255

    # Performance
    num_workers: Optional[int] = None

    # Logging
    log_file: Optional[str] = None

    def validate(self) -> None:
        """Validate configuration parameters."""
        if self.init_rows <= 0 or self.init_cols <= 0:
            raise ValueError("init_rows and init_cols must be positive")
        if self.init_pixel_pitch <= 0:
            raise ValueError("init_pixel_pitch must be positive")
        if self.init_max_iterations < 1:
            raise ValueError("init_max_iterations must be at least 1")
        if self.num_workers is not None and self.num_workers < 1:
            raise ValueError("num_workers must be at least 1")
        if not self.fractal_filename:
            raise ValueError("fractal_filename must not be empty")
        if not self.default_palette:
            raise ValueError("default_palette must not be empty")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ConfigManager:
    """Reads and writes settings files."""

    def load_config(self, filepath: Union[str, Path]) -> Dict[str, Any]:
        """
        Load a raw configuration mapping.

        Args:
            filepath: YAML (.yml/.yaml) or JSON (.json) file

        Returns:
            Parsed mapping (empty for an empty file)
        """
        filepath = Path(filepath)
        with open(filepath, 'r', encoding='utf-8') as f:
            if filepath.suffix.lower() == '.json':
                data = json.load(f)
            else:
                data = yaml.safe_load(f)

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {filepath} must contain a mapping")
        logger.info(f"Loaded configuration from {filepath}")
        return data

    def create_settings(self, data: Mapping[str, Any]) -> Settings:
        """
        Build validated settings from a mapping.

        Raises:
            ValueError: On unknown keys or invalid values
        """
        known = {f.name for f in fields(Settings)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

        settings = Settings(**data)
        settings.validate()
        return settings

    def save_config(self, settings: Settings, filepath: Union[str, Path]) -> None:
        """Write settings as YAML or JSON depending on the extension."""
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, 'w', encoding='utf-8') as f:
            if filepath.suffix.lower() == '.json':
                json.dump(settings.to_dict(), f, indent=2)
            else:
                yaml.safe_dump(settings.to_dict(), f, sort_keys=False)
        logger.info(f"Saved configuration to {filepath}")


def _coerce(value: str, current: Any, name: str) -> Any:
    if isinstance(current, bool):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    if isinstance(current, int) or name == 'num_workers':
        return int(value)
    if isinstance(current, float):
        return float(value)
    if isinstance(current, list):
        return [item.strip() for item in value.split(',') if item.strip()]
    return value


def apply_environment(settings: Settings, env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Override settings from ``FRACTAL_EXPLORER_<FIELD>`` environment variables.

    Args:
        settings: Base settings
        env: Environment mapping (defaults to os.environ)

    Returns:
        New settings with overrides applied
    """
    env = os.environ if env is None else env
    overrides = {}
    for f in fields(Settings):
        key = ENV_PREFIX + f.name.upper()
        if key in env:
            overrides[f.name] = _coerce(env[key], getattr(settings, f.name), f.name)

    if not overrides:
        return settings

    logger.info(f"Environment overrides: {', '.join(sorted(overrides))}")
    updated = replace(settings, **overrides)
    updated.validate()
    return updated


def load_settings(filepath: Optional[Union[str, Path]] = None,
                  env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Load settings from an optional file plus environment overrides.

    Args:
        filepath: Settings file; defaults are used when None
        env: Environment mapping (defaults to os.environ)
    """
    manager = ConfigManager()
    data = manager.load_config(filepath) if filepath else {}
    return apply_environment(manager.create_settings(data), env)
