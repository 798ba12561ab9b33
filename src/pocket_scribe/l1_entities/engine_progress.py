"""Engine-local progress events, re-mapped by the orchestrator."""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass


class EngineStep(enum.Enum):
    MODEL_LOADING = 'model_loading'
    PREPROCESSING = 'preprocessing'
    TRANSCRIBING = 'transcribing'
    TOKENIZING = 'tokenizing'
    EVALUATING_PROMPT = 'evaluating_prompt'
    GENERATING = 'generating'
    DONE = 'done'


@dataclass(frozen=True)
class EngineProgress:
    """Progress inside one engine step; ``fraction`` is local to that step."""

    step: EngineStep
    fraction: float
    message: str = ''


ProgressCallback = Callable[[EngineProgress], None]
