# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Configuration loading and validation for the component tracker."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".component_tracker.yml"


class Config:
    """Configuration for the component tracker.

    Loads configuration from .component_tracker.yml with validation and defaults.
    """

    DEFAULTS = {
        "ignore_file": ".gitignore",
        "ignore_patterns": [],
        "dist_dirname": "dist",
        "bitmap_filename": ".bitmap",
        "max_workers": 4,
        "case_sensitive_paths": False,
        # Files with these extensions get link files, never placeholder symlinks
        "supported_extensions": [
            ".js",
            ".jsx",
            ".ts",
            ".tsx",
            ".mjs",
            ".vue",
            ".css",
            ".scss",
            ".sass",
            ".less",
            ".styl",
        ],
        "auto_generated_stamp": "BIT-AUTO-GENERATED",
        "track_dir_feature": False,
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_path: Path to configuration file. If None, uses default location.
        """
        if config_path is None:
            config_path = Path.cwd() / CONFIG_FILENAME

        self.config_path = config_path
        self._config: Dict[str, Any] = {}
        self._load_config()

    @classmethod
    def for_workspace(cls, root: Path) -> "Config":
        """Load the configuration stored at a workspace root."""
        return cls(config_path=Path(root) / CONFIG_FILENAME)

    def _load_config(self) -> None:
        """Load and validate configuration from file."""
        if not self.config_path.exists():
            logger.info(f"Configuration file not found at {self.config_path}, using defaults")
            self._config = self._defaults()
            return

        try:
            with open(self.config_path, encoding="utf-8") as f:
                loaded_config = yaml.safe_load(f)

            if loaded_config is None:
                logger.warning("Configuration file is empty, using defaults")
                self._config = self._defaults()
                return

            if not isinstance(loaded_config, dict):
                logger.warning(
                    f"Configuration file must contain a YAML dictionary, "
                    f"got {type(loaded_config)}, using defaults"
                )
                self._config = self._defaults()
                return

            self._config = self._defaults()
            self._validate_and_merge(loaded_config)

        except yaml.YAMLError as e:
            logger.warning(
                f"Error parsing configuration file {self.config_path}: {e}, using defaults"
            )
            self._config = self._defaults()
        except OSError as e:
            logger.warning(
                f"Unable to read configuration file {self.config_path}: {e}, using defaults"
            )
            self._config = self._defaults()

    def _defaults(self) -> Dict[str, Any]:
        # Lists are copied per instance
        return {
            key: list(value) if isinstance(value, list) else value
            for key, value in self.DEFAULTS.items()
        }

    def _validate_and_merge(self, loaded_config: Dict[str, Any]) -> None:
        """Validate loaded configuration and merge with defaults.

        Invalid parameters are logged as warnings and defaults are used.
        """
        for key, value in loaded_config.items():
            if key not in self.DEFAULTS:
                logger.warning(f"Unknown configuration parameter '{key}', ignoring")
                continue

            if not self._validate_parameter(key, value):
                logger.warning(
                    f"Invalid value for '{key}': {value}, using default {self.DEFAULTS[key]}"
                )
                continue

            self._config[key] = value

    def _validate_parameter(self, key: str, value: Any) -> bool:
        """Validate a configuration parameter.

        Returns:
            True if valid, False if invalid
        """
        expected_type = type(self.DEFAULTS[key])
        if not isinstance(value, expected_type):
            return False
        # bool is a subclass of int
        if expected_type is int and isinstance(value, bool):
            return False

        if key == "max_workers":
            return 0 < value <= 64
        elif key in ("ignore_patterns", "supported_extensions"):
            return all(isinstance(item, str) for item in value)
        elif key in ("ignore_file", "dist_dirname", "bitmap_filename", "auto_generated_stamp"):
            return bool(value.strip())

        return True

    @property
    def ignore_file(self) -> str:
        """Name of the project ignore file at the workspace root."""
        value = self._config["ignore_file"]
        assert isinstance(value, str)
        return value

    @property
    def ignore_patterns(self) -> List[str]:
        """Additional patterns to ignore beyond the project ignore file."""
        value = self._config["ignore_patterns"]
        assert isinstance(value, list)
        return value

    @property
    def dist_dirname(self) -> str:
        """Directory name of generated output inside imported components."""
        value = self._config["dist_dirname"]
        assert isinstance(value, str)
        return value

    @property
    def bitmap_filename(self) -> str:
        """File name of the persisted tracking index."""
        value = self._config["bitmap_filename"]
        assert isinstance(value, str)
        return value

    @property
    def max_workers(self) -> int:
        """Worker count for concurrent component resolution."""
        value = self._config["max_workers"]
        assert isinstance(value, int)
        return value

    @property
    def case_sensitive_paths(self) -> bool:
        """Whether file-owner lookups in the index are case sensitive."""
        value = self._config["case_sensitive_paths"]
        assert isinstance(value, bool)
        return value

    @property
    def supported_extensions(self) -> List[str]:
        """Extensions of source files that are linked rather than symlinked."""
        value = self._config["supported_extensions"]
        assert isinstance(value, list)
        return value

    @property
    def auto_generated_stamp(self) -> str:
        """Marker found on the first line of generated link files."""
        value = self._config["auto_generated_stamp"]
        assert isinstance(value, str)
        return value

    @property
    def track_dir_feature(self) -> bool:
        """Default track-directory mode for requests that don't set it."""
        value = self._config["track_dir_feature"]
        assert isinstance(value, bool)
        return value
