"""Gateway: canonical WAV writer — implements PcmWriter port with the stdlib ``wave`` module."""

from __future__ import annotations

import logging
import wave
from pathlib import Path

import numpy as np

from pocket_scribe.l1_entities.audio_constants import SAMPLE_WIDTH

log = logging.getLogger('scribe.audio')


class WavPcmSink:
    """Appends int16 frames to an open WAV file."""

    def __init__(self, path: Path, sample_rate: int, channels: int) -> None:
        self._path = path
        self._channels = channels
        path.parent.mkdir(parents=True, exist_ok=True)
        self._wf = wave.open(str(path), 'wb')
        self._wf.setnchannels(channels)
        self._wf.setsampwidth(SAMPLE_WIDTH)  # int16
        self._wf.setframerate(sample_rate)
        self.frames_written = 0

    @property
    def path(self) -> Path:
        return self._path

    def write(self, samples: np.ndarray) -> None:
        pcm = np.ascontiguousarray(samples, dtype=np.int16)
        self._wf.writeframes(pcm.tobytes())
        self.frames_written += pcm.size // self._channels

    def finalize(self) -> None:
        if self._wf is not None:
            self._wf.close()
            self._wf = None

    def abort(self) -> None:
        self.finalize()
        self._path.unlink(missing_ok=True)
        log.debug('Discarded partial output %s', self._path)


class WavPcmWriter:
    def open(self, path: Path, sample_rate: int, channels: int) -> WavPcmSink:
        return WavPcmSink(path, sample_rate, channels)
