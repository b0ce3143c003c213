"""
Configuration management for InkSync.

This module handles loading and accessing configuration values from config.yaml.
Every value has a built-in default, so the engine runs without a config file.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


class ConfigManager:
    """
    Manages configuration loading and access for InkSync.
    """

    def __init__(self, config_path: str = "config.yaml"):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file
        """
        self.config_path = Path(config_path)
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML file, falling back to defaults."""
        defaults = self._get_default_config()
        try:
            if not self.config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

            with open(self.config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f) or {}

            self._config = self._merge(defaults, loaded)
            logging.info(f"Configuration loaded from {self.config_path}")

        except (OSError, yaml.YAMLError) as e:
            logging.warning(f"Using default configuration: {e}")
            self._config = defaults

    @classmethod
    def _merge(cls, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        merged = dict(base)
        for key, value in override.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = cls._merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration values as fallback."""
        return {
            "storage": {
                "chunk_size": 800,
                "section_header": "## Raw Stroke Data"
            },
            "matching": {
                "tolerance": 5.0
            },
            "transcript": {
                "section_header": "## Transcribed Content #Display_No_Properties"
            },
            "logseq": {
                "host": "http://127.0.0.1:12315",
                "token": "",
                "timeout": 30.0
            },
            "database": {
                "filename": "inksync.db"
            },
            "paths": {
                "log_file": None
            },
            "logging": {
                "level": "INFO",
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            }
        }

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Args:
            key_path: Dot-separated path to the configuration value (e.g., "matching.tolerance")
            default: Default value if key is not found

        Returns:
            The configuration value

        Examples:
            config.get("storage.chunk_size")  # Returns 800
            config.get("logseq.host")  # Returns "http://127.0.0.1:12315"
        """
        keys = key_path.split('.')
        value = self._config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def get_section(self, section: str) -> Dict[str, Any]:
        """
        Get an entire configuration section.

        Args:
            section: Name of the configuration section

        Returns:
            Dictionary containing the section configuration
        """
        return self._config.get(section, {})

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    # Convenience properties for commonly used values

    @property
    def chunk_size(self) -> int:
        """Strokes per persisted chunk record."""
        return int(self.get("storage.chunk_size", 800))

    @property
    def stroke_section_header(self) -> str:
        return self.get("storage.section_header", "## Raw Stroke Data")

    @property
    def match_tolerance(self) -> float:
        """Vertical slack added around line bounds when matching strokes."""
        return float(self.get("matching.tolerance", 5.0))

    @property
    def transcript_section_header(self) -> str:
        return self.get("transcript.section_header", "## Transcribed Content #Display_No_Properties")

    @property
    def logseq_host(self) -> str:
        """Get Logseq HTTP API host URL."""
        return self.get("logseq.host", "http://127.0.0.1:12315")

    @property
    def logseq_token(self) -> str:
        return self.get("logseq.token", "") or ""

    @property
    def logseq_timeout(self) -> float:
        return float(self.get("logseq.timeout", 30.0))

    @property
    def database_filename(self) -> str:
        """Get database filename."""
        return self.get("database.filename", "inksync.db")

    @property
    def log_filename(self) -> Optional[str]:
        return self.get("paths.log_file")


# Global configuration instance
config = ConfigManager()


def get_config() -> ConfigManager:
    """
    Get the global configuration instance.

    Returns:
        The global ConfigManager instance
    """
    return config


def setup_logging(manager: Optional[ConfigManager] = None) -> None:
    """Configure root logging from the logging section of the configuration."""
    manager = manager or config
    level = getattr(logging, str(manager.get("logging.level", "INFO")).upper(), logging.INFO)
    format_str = manager.get("logging.format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handlers = [logging.StreamHandler(sys.stdout)]
    if manager.log_filename:
        handlers.append(logging.FileHandler(manager.log_filename))

    logging.basicConfig(level=level, format=format_str, handlers=handlers)
