"""Shared path constants for configuration, user templates and bundled models."""

from __future__ import annotations

from platformdirs import user_config_path, user_data_path

APP_NAME = 'pocket-scribe'

CONFIG_DIR = user_config_path(APP_NAME)
USER_TEMPLATES_DIR = CONFIG_DIR / 'templates'
MODELS_DIR = user_data_path(APP_NAME) / 'models'

DEFAULT_CONFIG_PATHS = [
    CONFIG_DIR / 'config.yaml',
    CONFIG_DIR / 'config.yml',
]
