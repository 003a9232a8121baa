"""Study configuration for the dendroclim analysis"""

import yaml
from pathlib import Path
from typing import Any, Dict, Optional


PROJECT_ROOT = Path(__file__).parent.parent.parent
DEFAULT_CONFIG = "config/config.yaml"


class ConfigLoader:
    """
    Load a study configuration from YAML

    Nested keys are read with dot notation, e.g.
    config.get('releases.forward_window', default=10).

    Relative paths in the file belong to the study: they are resolved
    against the directory holding a config/ folder when the file sits in
    one, otherwise against the file's own directory.
    """

    def __init__(self, config_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration loader

        Args:
            config_path: Path to YAML configuration file
                (defaults to config/config.yaml)
            overrides: Dot-notation values applied on top of the file, e.g.
                {'crossdating.seg_length': 40}; None values are ignored
        """
        if config_path is None:
            config_path = DEFAULT_CONFIG

        self.config_path = Path(config_path)

        if not self.config_path.exists() and not self.config_path.is_absolute():
            self.config_path = PROJECT_ROOT / config_path

        self.overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
        self.config = self._load_config()

    @property
    def base_path(self) -> Path:
        """Directory that relative study paths are resolved against"""
        folder = self.config_path.resolve().parent
        return folder.parent if folder.name == 'config' else folder

    def _load_config(self) -> dict:
        if not self.config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {self.config_path}\n"
                f"Please create {DEFAULT_CONFIG}"
            )

        with open(self.config_path, 'r') as f:
            self.config = yaml.safe_load(f) or {}

        for key, value in self.overrides.items():
            self.set(key, value)

        return self.config

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key (supports dot notation)

        Examples:
            >>> config = ConfigLoader()
            >>> config.get('crossdating.seg_length')
            50
            >>> config.get('crossdating.invalid_key', default='fallback')
            'fallback'
        """
        value = self.config

        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def get_path(self, key: str, default: Optional[Path] = None) -> Path:
        """
        Get a study path (relative values resolved against base_path)

        Raises:
            ValueError: Key missing and no default given
        """
        value = self.get(key, default)

        if value is None:
            raise ValueError(f"Configuration key '{key}' not found and no default provided")

        path = Path(value)
        return path if path.is_absolute() else self.base_path / path

    def set(self, key: str, value: Any):
        """
        Override a configuration value in memory (dot notation)

        Missing intermediate sections are created. The file is not changed
        and reload() discards values set here.
        """
        keys = key.split('.')
        section = self.config

        for k in keys[:-1]:
            if not isinstance(section.get(k), dict):
                section[k] = {}
            section = section[k]

        section[keys[-1]] = value

    def reload(self):
        """Re-read the file and re-apply constructor overrides"""
        self._load_config()

    def __repr__(self) -> str:
        return f"ConfigLoader(config_path='{self.config_path}')"
