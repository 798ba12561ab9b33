"""Gateway: YAML configuration loader — implements ConfigLoader port.

Produces the user layer of the settings: the first config file found (explicit
path or the per-user config dir), with CLI overrides merged on top. Built-in
defaults and validation are applied by the caller, which also splits provider
sections (``whisper``, ``llama``, ``models_dir``) away from the domain config.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

import yaml

from pocket_scribe.l3_interface_adapters.gateways.paths import DEFAULT_CONFIG_PATHS

log = logging.getLogger('scribe.config')


class YamlConfigLoader:
    def __init__(self, search_paths: Sequence[Path] | None = None) -> None:
        self._search_paths = list(search_paths) if search_paths is not None else list(DEFAULT_CONFIG_PATHS)

    def locate(self, config_path: str | None = None) -> Path | None:
        """Explicit *config_path* (must exist), else the first existing search path."""
        if config_path is not None:
            path = Path(config_path)
            if not path.exists():
                raise FileNotFoundError(f'Config file not found: {path}')
            return path
        return next((p for p in self._search_paths if p.exists()), None)

    def load(self, config_path: str | None = None, overrides: dict | None = None) -> dict:
        path = self.locate(config_path)
        data: dict = {}
        if path is not None:
            data = yaml.safe_load(path.read_text(encoding='utf-8')) or {}
            if not isinstance(data, dict):
                raise ValueError(f'Config root must be a mapping in {path}, got {type(data).__name__}')
            log.info('Config loaded from %s', path)
        else:
            log.debug('No config file found; using built-in defaults')
        if overrides:
            deep_merge(data, overrides)
        return data


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base
