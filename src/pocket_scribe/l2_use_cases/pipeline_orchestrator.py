"""Use case: sequence normalization, transcription and summarization into one progress stream."""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from pathlib import Path
from typing import TypeVar

from pocket_scribe.l1_entities.engine_progress import EngineProgress, EngineStep
from pocket_scribe.l1_entities.errors import EmptySummaryResultError, EmptyTranscriptionResultError
from pocket_scribe.l1_entities.progress import ProgressEvent, Stage
from pocket_scribe.l1_entities.transcript import PipelineResult
from pocket_scribe.l2_use_cases.ports.summarizer import Summarizer
from pocket_scribe.l2_use_cases.progress_bus import ProgressBus
from pocket_scribe.l2_use_cases.transcription_engine import TranscriptionEngine

log = logging.getLogger('scribe.pipeline')

T = TypeVar('T')

# Slices of the ``summarizing`` stage owned by each engine step.
_SUMMARY_SLICES: dict[EngineStep, tuple[float, float]] = {
    EngineStep.TOKENIZING: (0.0, 0.05),
    EngineStep.EVALUATING_PROMPT: (0.05, 0.5),
    EngineStep.GENERATING: (0.5, 1.0),
    EngineStep.DONE: (1.0, 1.0),
}


def remap(fraction: float, lo: float, hi: float) -> float:
    """Project a step-local fraction in [0, 1] onto [lo, hi]."""
    return lo + min(1.0, max(0.0, fraction)) * (hi - lo)


class PipelineOrchestrator:
    """Drives both engines and republishes their progress as ``ProgressEvent``s.

    Stage order: idle -> loadingModels -> preprocessingAudio -> transcribing
    -> summarizing -> done, or error from anywhere. Within one stage the
    published fraction never decreases. Loading is split in two halves: the
    speech model fills [0, 0.5], the language model [0.5, 1].
    """

    def __init__(
        self,
        transcription: TranscriptionEngine,
        summarizer: Summarizer,
        bus: ProgressBus | None = None,
    ) -> None:
        self._transcription = transcription
        self._summarizer = summarizer
        self.bus = bus or ProgressBus()
        self._stage: Stage | None = None
        self._floor = 0.0
        self.reset_progress()

    @property
    def stage(self) -> Stage | None:
        return self._stage

    def reset_progress(self) -> None:
        self._emit(Stage.IDLE, 0.0, '')

    async def load_models(self) -> None:
        await self._guarded(self._load_models())
        self._emit(Stage.DONE, 1.0, 'Models ready')

    async def load_summarizer(self) -> None:
        """Load only the summarization model, for text-only runs."""

        async def _run() -> None:
            self._emit(Stage.LOADING_MODELS, 0.0, 'Loading language model')
            await self._summarizer.load_model(progress=self._on_summary_event)

        await self._guarded(_run())

    async def transcribe(self, audio_path: Path, language: str | None = None) -> str:
        return await self._guarded(self._transcribe(audio_path, language))

    async def summarize(self, text: str) -> str:
        summary = await self._guarded(self._summarize(text))
        self._emit(Stage.DONE, 1.0, 'Summary ready')
        return summary

    async def process(self, audio_path: Path, language: str | None = None) -> PipelineResult:
        """Load models, transcribe *audio_path*, summarize the transcript."""

        async def _run() -> PipelineResult:
            await self._load_models()
            transcript = await self._transcribe(audio_path, language)
            summary = await self._summarize(transcript)
            return PipelineResult(transcript=transcript, summary=summary)

        result = await self._guarded(_run())
        self._emit(Stage.DONE, 1.0, 'Done')
        return result

    async def _load_models(self) -> None:
        self._emit(Stage.LOADING_MODELS, 0.0, 'Loading speech model')
        await self._transcription.load_model(progress=self._on_speech_event)
        self._emit(Stage.LOADING_MODELS, 0.5, 'Loading language model')
        await self._summarizer.load_model(progress=self._on_summary_event)

    async def _transcribe(self, audio_path: Path, language: str | None) -> str:
        text = await self._transcription.transcribe(audio_path, language, progress=self._on_speech_event)
        if not text.strip():
            raise EmptyTranscriptionResultError(f'Empty transcription for: {audio_path}')
        return text

    async def _summarize(self, text: str) -> str:
        self._emit(Stage.SUMMARIZING, 0.0, 'Summarizing')
        summary = await self._summarizer.summarize(text, progress=self._on_summary_event)
        if not summary.strip():
            raise EmptySummaryResultError('Empty summary')
        return summary

    async def _guarded(self, work: Awaitable[T]) -> T:
        try:
            return await work
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            log.error('Pipeline failed in stage %s: %s', self._stage, message, exc_info=True)
            self._emit(Stage.ERROR, 1.0, message)
            raise

    def _on_speech_event(self, ev: EngineProgress) -> None:
        if ev.step is EngineStep.MODEL_LOADING:
            self._emit(Stage.LOADING_MODELS, remap(ev.fraction, 0.0, 0.5), ev.message)
        elif ev.step is EngineStep.PREPROCESSING:
            self._emit(Stage.PREPROCESSING_AUDIO, ev.fraction, ev.message)
        elif ev.step is EngineStep.DONE:
            self._emit(Stage.TRANSCRIBING, 1.0, ev.message)
        else:
            self._emit(Stage.TRANSCRIBING, ev.fraction, ev.message)

    def _on_summary_event(self, ev: EngineProgress) -> None:
        if ev.step is EngineStep.MODEL_LOADING:
            self._emit(Stage.LOADING_MODELS, remap(ev.fraction, 0.5, 1.0), ev.message)
            return
        lo, hi = _SUMMARY_SLICES.get(ev.step, (0.0, 1.0))
        self._emit(Stage.SUMMARIZING, remap(ev.fraction, lo, hi), ev.message)

    def _emit(self, stage: Stage, fraction: float, message: str) -> None:
        if stage is not self._stage:
            self._stage = stage
            self._floor = 0.0
        fraction = max(self._floor, min(1.0, max(0.0, fraction)))
        self._floor = fraction
        self.bus.publish(ProgressEvent(stage=stage, fraction=fraction, message=message))
