"""Configuration management for aliasflow."""

import json
from typing import Dict, Any, Optional
from pathlib import Path

from aliasflow.utils import ConfigError


class ConfigLoader:
    """Loads configuration from JSON files."""

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize config loader.

        Args:
            config_dir: Directory containing config files. If None, uses default config directory.
        """
        if config_dir is None:
            # Get the directory where this __init__.py file is located
            self.config_dir = Path(__file__).parent
        else:
            self.config_dir = Path(config_dir)

    def load_config(self, config_name: str) -> Dict[str, Any]:
        """Load configuration from a JSON file.

        Args:
            config_name: Name of the config file (without .json extension)

        Returns:
            Dictionary containing the configuration data

        Raises:
            ConfigError: If the config file is missing or is not a JSON object
        """
        return load_config_file(self.config_dir / f"{config_name}.json")

    def get_analysis_config(self) -> Dict[str, Any]:
        """Load the points-to analysis defaults."""
        return self.load_config("analysis")


def load_config_file(config_path) -> Dict[str, Any]:
    """Load a JSON object from an explicit path."""
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in configuration file {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {config_path} must contain a JSON object")
    return data


# Global config loader instance
_config_loader = None


def get_config_loader() -> ConfigLoader:
    """Get the global configuration loader instance."""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader


def load_analysis_config(override_path: Optional[str] = None) -> Dict[str, Any]:
    """Packaged analysis defaults, updated with the keys of ``override_path``."""
    config = get_config_loader().get_analysis_config()
    if override_path is not None:
        config.update(load_config_file(override_path))
    return config
