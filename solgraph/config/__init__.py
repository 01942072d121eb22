"""Analyzer vocabularies shipped as JSON next to this module.

``dataflow.json`` holds the names, call vocabularies and environment globals
used by the data flow analyzer; ``callsites.json`` holds the interface
prefixes, built-in types and keywords used by call-site detection. Setting
``SOLGRAPH_CONFIG_DIR`` points the global loader at a different directory.
"""

import json
import os
from typing import Dict, Any, List, Optional
from pathlib import Path


CONFIG_DIR_ENV = "SOLGRAPH_CONFIG_DIR"


class ConfigLoader:
    """Loads and caches vocabulary files from a config directory."""

    def __init__(self, config_dir: Optional[str] = None):
        if config_dir is None:
            config_dir = os.environ.get(CONFIG_DIR_ENV)
        self.config_dir = Path(config_dir) if config_dir else Path(__file__).parent
        self._cache: Dict[str, Dict[str, Any]] = {}

    def available_configs(self) -> List[str]:
        """Names of the JSON files in the config directory, without extension."""
        return sorted(p.stem for p in self.config_dir.glob("*.json"))

    def load_config(self, config_name: str) -> Dict[str, Any]:
        """Load ``<config_name>.json``, reading each file at most once.

        Raises:
            FileNotFoundError: If the config file doesn't exist
            json.JSONDecodeError: If the config file contains invalid JSON
        """
        if config_name in self._cache:
            return self._cache[config_name]

        config_path = self.config_dir / f"{config_name}.json"
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)
        self._cache[config_name] = config
        return config

    def get_dataflow_config(self) -> Dict[str, Any]:
        return self.load_config("dataflow")

    def get_callsites_config(self) -> Dict[str, Any]:
        return self.load_config("callsites")


_config_loader = None


def get_config_loader() -> ConfigLoader:
    """Get the global configuration loader instance."""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader


def load_dataflow_config() -> Dict[str, Any]:
    return get_config_loader().get_dataflow_config()


def load_callsites_config() -> Dict[str, Any]:
    return get_config_loader().get_callsites_config()
