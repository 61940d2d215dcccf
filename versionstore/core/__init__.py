"""Configuration and logging."""

from .config import Settings, settings
from .logging_config import setup_logging

__all__ = ["Settings", "settings", "setup_logging"]
