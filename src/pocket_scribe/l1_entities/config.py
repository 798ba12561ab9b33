"""Configuration Pydantic models — pure schema, no infrastructure defaults."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator


class TranscriptionConfig(BaseModel):
    model: str
    language: str
    temperature: float = Field(ge=0)
    best_of: int = Field(ge=1)  # greedy candidates per segment
    no_speech_threshold: float
    logprob_threshold: float
    entropy_threshold: float


class SummarizationConfig(BaseModel):
    engine: Literal['llm', 'extractive'] = 'llm'
    model: str
    n_ctx: int = Field(ge=1)
    n_batch: int = Field(ge=1)
    max_new_tokens: int = Field(ge=1)
    top_k: int = Field(ge=1)
    top_p: float = Field(gt=0, le=1)
    temperature: float = Field(ge=0)
    seed: int | None = None
    renormalize_top_p: bool = True  # False reproduces the un-renormalized nucleus draw
    max_sentences: int = Field(default=3, ge=1)  # extractive engine only

    @model_validator(mode='after')
    def _batch_fits_context(self) -> SummarizationConfig:
        if self.n_batch > self.n_ctx:
            raise ValueError(f'n_batch ({self.n_batch}) must not exceed n_ctx ({self.n_ctx})')
        return self


class AudioConfig(BaseModel):
    frames_per_chunk: int = Field(ge=1)


class OutputConfig(BaseModel):
    directory: str


class AppConfig(BaseModel):
    transcription: TranscriptionConfig
    summarization: SummarizationConfig
    audio: AudioConfig
    output: OutputConfig
    template: str
