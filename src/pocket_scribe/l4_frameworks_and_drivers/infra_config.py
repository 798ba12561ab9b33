"""Infrastructure provider configs — lives in L4, not domain."""

from __future__ import annotations

import copy
from pathlib import Path

from pydantic import BaseModel, Field

from pocket_scribe.l1_entities.config import AppConfig
from pocket_scribe.l2_use_cases.ports.config_loader import ConfigLoader
from pocket_scribe.l3_interface_adapters.gateways.paths import MODELS_DIR
from pocket_scribe.l3_interface_adapters.gateways.yaml_config_loader import deep_merge

APP_CONFIG_DEFAULTS: dict = {
    'transcription': {
        'model': 'large-v3-turbo-q8_0',
        'language': 'ru',
        'temperature': 0.0,
        'best_of': 5,
        'no_speech_threshold': 0.25,
        'logprob_threshold': -1.5,
        'entropy_threshold': 2.8,
    },
    'summarization': {
        'engine': 'llm',
        'model': 'qwen2.5-1.5b-instruct-q4_k_m',
        'n_ctx': 2048,
        'n_batch': 512,
        'max_new_tokens': 200,
        'top_k': 40,
        'top_p': 0.9,
        'temperature': 0.3,
        'seed': None,
        'renormalize_top_p': True,
        'max_sentences': 3,
    },
    'audio': {
        'frames_per_chunk': 8192,
    },
    'template': 'summary_ru',
    'output': {
        'directory': './output',
    },
}


def build_app_config(raw: dict) -> AppConfig:
    """Merge *raw* user overrides on top of defaults, then validate."""
    merged = copy.deepcopy(APP_CONFIG_DEFAULTS)
    deep_merge(merged, raw)
    return AppConfig.model_validate(merged)


class WhisperProviderConfig(BaseModel):
    n_threads: int | None = None  # None → pywhispercpp default


class LlamaProviderConfig(BaseModel):
    n_gpu_layers: int = 0
    n_threads: int | None = None  # None → llama.cpp default


class InfraConfig(BaseModel):
    """Groups all provider-specific settings outside the domain layer."""

    models_dir: Path = MODELS_DIR
    whisper: WhisperProviderConfig = Field(default_factory=WhisperProviderConfig)
    llama: LlamaProviderConfig = Field(default_factory=LlamaProviderConfig)


def load_settings(
    loader: ConfigLoader,
    config_path: str | None = None,
    overrides: dict | None = None,
) -> tuple[AppConfig, InfraConfig]:
    """Read the user layer once; split it into validated domain and provider configs."""
    raw = loader.load(config_path, overrides=overrides)
    return build_app_config(raw), InfraConfig.model_validate(raw)
