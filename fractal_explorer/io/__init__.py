"""Configuration input/output."""

from .config import ConfigManager, Settings, apply_environment, load_settings

__all__ = ["ConfigManager", "Settings", "apply_environment", "load_settings"]
