"""Pipeline progress entities."""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field


class Stage(enum.Enum):
    IDLE = 'idle'
    LOADING_MODELS = 'loadingModels'
    PREPROCESSING_AUDIO = 'preprocessingAudio'
    TRANSCRIBING = 'transcribing'
    SUMMARIZING = 'summarizing'
    DONE = 'done'
    ERROR = 'error'

    @property
    def is_terminal(self) -> bool:
        return self in (Stage.DONE, Stage.ERROR)


class ProgressEvent(BaseModel):
    """A single unified progress update published by the orchestrator."""

    model_config = ConfigDict(frozen=True)

    stage: Stage
    fraction: float = Field(ge=0.0, le=1.0)
    message: str = ''
