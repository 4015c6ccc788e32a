# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Configuration loading and validation for the topic graph."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".minidosis_graph.yml"
GRAPH_DIR_ENV = "MINIDOSIS_GRAPH"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigurationError(Exception):
    """Raised when configuration validation fails critically."""

    pass


class Config:
    """Configuration for the topic graph.

    Loads configuration from .minidosis_graph.yml with validation and defaults.
    The graph root falls back to the MINIDOSIS_GRAPH environment variable.
    """

    DEFAULTS: Dict[str, Any] = {
        "graph_dir": "",
        "content_extension": ".minidosis",
        "hidden_prefix": ".",
        "watch_enabled": False,
        "watch_debounce_seconds": 0.5,
        "log_level": "INFO",
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

    def _load_config(self) -> None:
        """Load and validate configuration from file."""
        if not self.config_path.exists():
            logger.info(f"Configuration file not found at {self.config_path}, using defaults")
            self._config = self.DEFAULTS.copy()
            return

        try:
            with open(self.config_path, encoding="utf-8") as f:
                loaded_config = yaml.safe_load(f)

            if loaded_config is None:
                logger.warning("Configuration file is empty, using defaults")
                self._config = self.DEFAULTS.copy()
                return

            if not isinstance(loaded_config, dict):
                logger.warning(
                    f"Configuration file must contain a YAML dictionary, "
                    f"got {type(loaded_config)}, using defaults"
                )
                self._config = self.DEFAULTS.copy()
                return

            self._config = self.DEFAULTS.copy()
            self._validate_and_merge(loaded_config)

        except yaml.YAMLError as e:
            logger.warning(
                f"Error parsing configuration file {self.config_path}: {e}, using defaults"
            )
            self._config = self.DEFAULTS.copy()
        except OSError as e:
            logger.warning(
                f"Error reading configuration file {self.config_path}: {e}, using defaults"
            )
            self._config = self.DEFAULTS.copy()

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

            self._config[key] = self._normalize(key, value)

    def _normalize(self, key: str, value: Any) -> Any:
        if key == "watch_debounce_seconds":
            return float(value)
        if key == "log_level":
            return value.upper()
        return value

    def _validate_parameter(self, key: str, value: Any) -> bool:
        """Validate a configuration parameter.

        Returns:
            True if valid, False if invalid
        """
        if key == "watch_debounce_seconds":
            # bool is an int subclass
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return False
            return value >= 0

        expected_type = type(self.DEFAULTS[key])
        if not isinstance(value, expected_type):
            return False

        if key == "content_extension":
            return len(value) > 1 and value.startswith(".")
        elif key == "hidden_prefix":
            return len(value) > 0
        elif key == "log_level":
            return value.upper() in _LOG_LEVELS

        return True

    def resolve_graph_dir(self) -> str:
        """Return the absolute graph root directory.

        Uses graph_dir from the config file, else $MINIDOSIS_GRAPH.

        Raises:
            ConfigurationError: If neither is set.
        """
        graph_dir = self.graph_dir or os.environ.get(GRAPH_DIR_ENV, "")
        if not graph_dir:
            raise ConfigurationError(
                f"Graph directory not defined: set 'graph_dir' in {self.config_path} "
                f"or the {GRAPH_DIR_ENV} environment variable"
            )
        return os.path.abspath(os.path.expanduser(graph_dir))

    def set_override(self, key: str, value: Any) -> None:
        """Override a value after loading (e.g. from the command line).

        Raises:
            ConfigurationError: If key is unknown or value is invalid.
        """
        if key not in self.DEFAULTS:
            raise ConfigurationError(f"Unknown configuration parameter '{key}'")
        if not self._validate_parameter(key, value):
            raise ConfigurationError(f"Invalid value for '{key}': {value}")
        self._config[key] = self._normalize(key, value)

    @property
    def graph_dir(self) -> str:
        """Graph root as configured (may be empty; see resolve_graph_dir)."""
        value = self._config["graph_dir"]
        assert isinstance(value, str)
        return value

    @property
    def content_extension(self) -> str:
        """Extension of content files, including the dot."""
        value = self._config["content_extension"]
        assert isinstance(value, str)
        return value

    @property
    def hidden_prefix(self) -> str:
        """Directories whose names start with this are skipped."""
        value = self._config["hidden_prefix"]
        assert isinstance(value, str)
        return value

    @property
    def watch_enabled(self) -> bool:
        """Whether to keep watching the tree after the initial load."""
        value = self._config["watch_enabled"]
        assert isinstance(value, bool)
        return value

    @property
    def watch_debounce_seconds(self) -> float:
        """Quiet period after the last change before rebuilding."""
        value = self._config["watch_debounce_seconds"]
        assert isinstance(value, (int, float))
        return float(value)

    @property
    def log_level(self) -> str:
        value = self._config["log_level"]
        assert isinstance(value, str)
        return value
