"""Use case: speech model lifecycle and file-to-text transcription."""

from __future__ import annotations

import asyncio
import logging
import tempfile
import uuid
from pathlib import Path

import numpy as np

from pocket_scribe.l1_entities.audio import NormalizedAudio
from pocket_scribe.l1_entities.audio_constants import SAMPLE_RATE
from pocket_scribe.l1_entities.config import TranscriptionConfig
from pocket_scribe.l1_entities.engine_progress import EngineProgress, EngineStep, ProgressCallback
from pocket_scribe.l1_entities.engine_state import EngineState
from pocket_scribe.l1_entities.errors import EmptyTranscriptionResultError
from pocket_scribe.l1_entities.transcript import TranscriptSegment, format_wall_time
from pocket_scribe.l2_use_cases.normalize_audio_use_case import NormalizeAudioUseCase
from pocket_scribe.l2_use_cases.ports.audio_io import AudioReader
from pocket_scribe.l2_use_cases.ports.model_resolver import ModelResolver
from pocket_scribe.l2_use_cases.ports.speech_model import SpeechModel
from pocket_scribe.l2_use_cases.utils.resampler import downmix
from pocket_scribe.l2_use_cases.utils.transcript_cleanup import join_segments

log = logging.getLogger('scribe.asr')

_READ_FRAMES = SAMPLE_RATE * 60


class TranscriptionEngine:
    """Serialized owner of one speech model handle.

    ``load_model`` and ``transcribe`` share one FIFO lock, so calls on the same
    instance never interleave; a second ``load_model`` issued while the first
    is in flight waits for it and then returns without loading again.
    """

    def __init__(
        self,
        speech_model: SpeechModel,
        resolver: ModelResolver,
        reader: AudioReader,
        normalizer: NormalizeAudioUseCase,
        config: TranscriptionConfig,
        work_dir: Path | None = None,
    ) -> None:
        self._model = speech_model
        self._resolver = resolver
        self._reader = reader
        self._normalizer = normalizer
        self._config = config
        self._work_dir = work_dir or Path(tempfile.gettempdir())
        self._state = EngineState.UNLOADED
        self._lock = asyncio.Lock()

    @property
    def state(self) -> EngineState:
        return self._state

    async def load_model(self, progress: ProgressCallback | None = None) -> None:
        async with self._lock:
            await self._load_locked(progress)

    async def transcribe(
        self,
        audio_path: Path,
        language: str | None = None,
        progress: ProgressCallback | None = None,
    ) -> str:
        """Normalize *audio_path* if needed, decode it in one recognizer pass, return cleaned text."""
        async with self._lock:
            if self._state is not EngineState.READY:
                await self._load_locked(progress)

            lang = language or self._config.language
            normalized = await self._prepare(audio_path, progress)
            try:
                _emit(progress, EngineStep.TRANSCRIBING, 0.0, 'Recognizing speech')
                segments = await self._decode(normalized, lang, progress)
            finally:
                if normalized.temporary:
                    normalized.path.unlink(missing_ok=True)

            _emit(progress, EngineStep.TRANSCRIBING, 0.9, 'Collecting result')
            text = join_segments(segments)
            if not text:
                raise EmptyTranscriptionResultError(f'No speech recognized in: {audio_path}')

            log.info('Transcribed %s: %d segments, %d chars', audio_path.name, len(segments), len(text))
            _emit(progress, EngineStep.DONE, 1.0, 'Transcription ready')
            return text

    def close(self) -> None:
        """Release the speech model handle."""
        self._model.close()
        self._state = EngineState.UNLOADED

    async def _load_locked(self, progress: ProgressCallback | None) -> None:
        if self._state is EngineState.READY:
            return
        self._state = EngineState.LOADING
        try:
            _emit(progress, EngineStep.MODEL_LOADING, 0.05, 'Resolving speech model')
            model_path = await asyncio.to_thread(self._resolver.resolve, self._config.model)
            _emit(progress, EngineStep.MODEL_LOADING, 0.35, 'Loading speech model')
            await asyncio.to_thread(self._model.load, model_path)
        except BaseException:
            self._state = EngineState.UNLOADED
            raise
        self._state = EngineState.READY
        log.info('Speech model ready: %s', model_path)
        _emit(progress, EngineStep.MODEL_LOADING, 1.0, 'Speech model ready')

    async def _prepare(self, audio_path: Path, progress: ProgressCallback | None) -> NormalizedAudio:
        fmt = await asyncio.to_thread(self._reader.inspect, audio_path)
        if fmt.is_canonical:
            log.debug('Input already canonical, skipping conversion: %s', audio_path)
            _emit(progress, EngineStep.PREPROCESSING, 1.0, 'Audio ready')
            return NormalizedAudio(path=audio_path, frame_count=fmt.frames, temporary=False)
        output = self._work_dir / f'whisper_{uuid.uuid4().hex}.wav'
        return await self._normalizer.execute(audio_path, output, progress)

    async def _decode(
        self,
        normalized: NormalizedAudio,
        language: str,
        progress: ProgressCallback | None,
    ) -> list[TranscriptSegment]:
        """One recognizer call over the whole recording; whisper.cpp does its own windowing."""
        audio = await asyncio.to_thread(self._read_samples, normalized.path)
        duration = len(audio) / SAMPLE_RATE

        def on_segment(seg: TranscriptSegment) -> None:
            if duration > 0:
                frac = 0.9 * min(1.0, seg.end / duration)
                _emit(progress, EngineStep.TRANSCRIBING, frac, f'Decoded {format_wall_time(seg.end)}')

        return await asyncio.to_thread(self._model.transcribe, audio, language, on_segment)

    def _read_samples(self, path: Path) -> np.ndarray:
        blocks: list[np.ndarray] = []
        with self._reader.open(path) as stream:
            while True:
                block = stream.read(_READ_FRAMES)
                if len(block) == 0:
                    break
                blocks.append(downmix(block))
        if not blocks:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate(blocks)


def _emit(progress: ProgressCallback | None, step: EngineStep, fraction: float, message: str) -> None:
    if progress is not None:
        progress(EngineProgress(step, fraction, message))
