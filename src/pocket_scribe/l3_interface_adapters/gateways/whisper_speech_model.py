"""Gateway: whisper.cpp speech model — implements SpeechModel port."""

from __future__ import annotations

import logging
from collections.abc import Callable

import numpy as np
from pywhispercpp.model import Model

from pocket_scribe.l1_entities.config import TranscriptionConfig
from pocket_scribe.l1_entities.errors import ModelLoadFailedError, ModelNotLoadedError
from pocket_scribe.l1_entities.transcript import TranscriptSegment
from pocket_scribe.l3_interface_adapters.gateways.native_output import suppress_c_stdout

log = logging.getLogger('scribe.asr')


class WhisperSpeechModel:
    """pywhispercpp adapter. Handles model loading, C stdout suppression,
    the fixed decoding configuration, and centisecond-to-seconds conversion."""

    def __init__(self, config: TranscriptionConfig, n_threads: int | None = None) -> None:
        self._config = config
        self._n_threads = n_threads
        self._model: Model | None = None

    def close(self) -> None:
        """Explicitly release the model, suppressing C-level teardown noise."""
        if self._model is not None:
            with suppress_c_stdout():
                del self._model
                self._model = None

    def load(self, model_path: str) -> None:
        kwargs: dict = {'print_progress': False, 'print_realtime': False}
        if self._n_threads:
            kwargs['n_threads'] = self._n_threads
        try:
            with suppress_c_stdout():
                self._model = Model(model_path, **kwargs)
        except Exception as exc:
            raise ModelLoadFailedError(f'Failed to load speech model at {model_path}: {exc}') from exc
        log.debug('whisper.cpp model loaded from %s', model_path)

    def decoding_params(self, language: str) -> dict:
        """Greedy low-temperature decoding over a few candidates, with no-speech and
        low-confidence rejection. whisper.cpp seeks through long input in its own
        30 s windows, carrying text context and timestamps across them."""
        cfg = self._config
        return {
            'language': language,
            'translate': False,
            'temperature': cfg.temperature,
            'greedy': {'best_of': cfg.best_of},
            'no_speech_thold': cfg.no_speech_threshold,
            'logprob_thold': cfg.logprob_threshold,
            'entropy_thold': cfg.entropy_threshold,
        }

    def transcribe(
        self,
        audio: np.ndarray,
        language: str,
        on_segment: Callable[[TranscriptSegment], None] | None = None,
    ) -> list[TranscriptSegment]:
        if self._model is None:
            raise ModelNotLoadedError('Speech model not loaded. Call load() first.')

        def _forward(seg) -> None:
            converted = _convert(seg)
            if converted is not None and on_segment is not None:
                on_segment(converted)

        with suppress_c_stdout():
            raw_segments = self._model.transcribe(
                audio.astype(np.float32, copy=False),
                new_segment_callback=_forward if on_segment is not None else None,
                **self.decoding_params(language),
            )

        return [seg for seg in map(_convert, raw_segments) if seg is not None]


def _convert(seg) -> TranscriptSegment | None:
    """pywhispercpp segment (centisecond t0/t1) → TranscriptSegment; None when blank."""
    text = seg.text.strip()
    if not text:
        return None
    return TranscriptSegment(text=text, start=seg.t0 / 100.0, end=seg.t1 / 100.0)
