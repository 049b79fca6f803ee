"""Configuration management for image-dedup."""

import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional

from image_dedup.utils.logger import setup_logger

logger = setup_logger(__name__)


class Config:
    """Manages user configuration and settings."""

    DEFAULT_CONFIG_DIR = Path.home() / ".image-dedup"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"
    OPERATIONS_LOG_NAME = "operations.log"

    DEFAULT_SETTINGS = {
        "similarity_threshold": 0.9,  # Fraction of identical samples
        "recursive": False,
        "skip_hidden": False,
        "largest_dimension": 1000,  # Compare window size in pixels
        "safety": {
            "use_recycle_bin": False,
        },
    }

    def __init__(self, config_file: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            config_file: Path to config file (default: ~/.image-dedup/config.json)
        """
        self.config_file = config_file or self.DEFAULT_CONFIG_FILE
        self.settings: Dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        """Load configuration from file or create with defaults."""
        if self.config_file.exists():
            try:
                with open(self.config_file, "r", encoding="utf-8") as f:
                    self.settings = json.load(f)
                logger.debug(f"Loaded configuration from {self.config_file}")
            except json.JSONDecodeError as e:
                logger.warning(f"Invalid config file: {e}. Using defaults.")
                self.settings = copy.deepcopy(self.DEFAULT_SETTINGS)
        else:
            logger.debug("No config file found. Creating with defaults.")
            self.settings = copy.deepcopy(self.DEFAULT_SETTINGS)
            self.save()

    def save(self) -> None:
        """Save configuration to file."""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w", encoding="utf-8") as f:
            json.dump(self.settings, f, indent=2)
        logger.debug(f"Saved configuration to {self.config_file}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key (supports dot notation, e.g., 'safety.use_recycle_bin')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self.settings
        for k in key.split("."):
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value.

        Args:
            key: Configuration key (supports dot notation)
            value: Value to set
        """
        keys = key.split(".")
        target = self.settings
        for k in keys[:-1]:
            if k not in target or not isinstance(target[k], dict):
                target[k] = {}
            target = target[k]
        target[keys[-1]] = value
        self.save()

    def get_operations_log(self) -> Path:
        """Get the operations log file path (kept beside the config file)."""
        return self.config_file.parent / self.OPERATIONS_LOG_NAME
