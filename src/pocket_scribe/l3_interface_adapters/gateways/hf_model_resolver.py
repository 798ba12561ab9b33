"""Gateway: HuggingFace model resolver — implements ModelResolver port.

Resolution is strictly offline: bundled files and the local Hugging Face cache
are consulted, nothing is ever downloaded.
"""

from __future__ import annotations

import logging
from pathlib import Path

from huggingface_hub import hf_hub_download
from huggingface_hub.errors import LocalEntryNotFoundError
from pywhispercpp.constants import MODELS_DIR

from pocket_scribe.l1_entities.errors import ModelNotFoundError

log = logging.getLogger('scribe.models')

WHISPER_CPP_REPO = 'ggerganov/whisper.cpp'
WHISPER_CPP_MODELS = {
    'large-v3-turbo-q8_0': 'ggml-large-v3-turbo-q8_0.bin',
    'large-v3-turbo-q5_0': 'ggml-large-v3-turbo-q5_0.bin',
    'large-v3-turbo': 'ggml-large-v3-turbo.bin',
    'large-v3-q5_0': 'ggml-large-v3-q5_0.bin',
    'large-v3': 'ggml-large-v3.bin',
    'medium-q8_0': 'ggml-medium-q8_0.bin',
    'medium-q5_0': 'ggml-medium-q5_0.bin',
    'small-q8_0': 'ggml-small-q8_0.bin',
    'small-q5_1': 'ggml-small-q5_1.bin',
    'base-q8_0': 'ggml-base-q8_0.bin',
    'tiny-q8_0': 'ggml-tiny-q8_0.bin',
}

# short name -> (repo_id, filename)
LLM_MODELS = {
    'qwen2.5-0.5b-instruct-q4_k_m': ('Qwen/Qwen2.5-0.5B-Instruct-GGUF', 'qwen2.5-0.5b-instruct-q4_k_m.gguf'),
    'qwen2.5-1.5b-instruct-q4_k_m': ('Qwen/Qwen2.5-1.5B-Instruct-GGUF', 'qwen2.5-1.5b-instruct-q4_k_m.gguf'),
    'qwen2.5-1.5b-instruct-q8_0': ('Qwen/Qwen2.5-1.5B-Instruct-GGUF', 'qwen2.5-1.5b-instruct-q8_0.gguf'),
    'qwen2.5-3b-instruct-q4_k_m': ('Qwen/Qwen2.5-3B-Instruct-GGUF', 'qwen2.5-3b-instruct-q4_k_m.gguf'),
}


def known_artifact(model_name: str) -> tuple[str, str] | None:
    """Return ``(repo_id, filename)`` for a known short name, else None."""
    if model_name in WHISPER_CPP_MODELS:
        return WHISPER_CPP_REPO, WHISPER_CPP_MODELS[model_name]
    return LLM_MODELS.get(model_name)


class HfModelResolver:
    """Resolves model names to local file paths.

    Lookup order: absolute path, file inside ``models_dir``, known short name
    (bundled copy, pywhispercpp's model directory, then the HF cache).
    """

    def __init__(self, models_dir: Path | None = None) -> None:
        self._models_dir = models_dir

    def resolve(self, model_name: str) -> str:
        path = Path(model_name).expanduser()
        if path.is_absolute():
            if not path.is_file():
                raise ModelNotFoundError(f'Model file not found: {model_name}')
            return str(path)

        bundled = self._bundled(model_name)
        if bundled is not None:
            return str(bundled)

        artifact = known_artifact(model_name)
        if artifact is None:
            raise ModelNotFoundError(
                f"Unknown model '{model_name}': not an absolute path, not in {self._models_dir}, not a known name"
            )
        repo_id, filename = artifact

        for candidate in self._local_candidates(filename, repo_id):
            if candidate.is_file():
                log.debug('Resolved %s to local file %s', model_name, candidate)
                return str(candidate)

        try:
            cached = hf_hub_download(repo_id=repo_id, filename=filename, local_files_only=True)
        except (LocalEntryNotFoundError, OSError) as exc:
            raise ModelNotFoundError(
                f"Model '{model_name}' ({repo_id}/{filename}) is not available offline. "
                f'Place {filename} in {self._models_dir} or pre-fetch it into the Hugging Face cache.'
            ) from exc
        log.debug('Resolved %s from HF cache: %s', model_name, cached)
        return cached

    def _bundled(self, model_name: str) -> Path | None:
        if self._models_dir is None:
            return None
        candidate = self._models_dir / model_name
        return candidate if candidate.is_file() else None

    def _local_candidates(self, filename: str, repo_id: str) -> list[Path]:
        candidates: list[Path] = []
        if self._models_dir is not None:
            candidates.append(self._models_dir / filename)
        if repo_id == WHISPER_CPP_REPO:
            candidates.append(Path(MODELS_DIR) / 'whisper-cpp' / filename)
            candidates.append(Path(MODELS_DIR) / filename)
        return candidates
