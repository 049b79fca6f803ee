"""Utility functions for configuration and logging."""

from image_dedup.utils.config import Config
from image_dedup.utils.logger import set_verbosity, setup_logger

__all__ = ["Config", "set_verbosity", "setup_logger"]
