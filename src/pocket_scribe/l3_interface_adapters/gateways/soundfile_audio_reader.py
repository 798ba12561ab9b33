"""Gateway: libsndfile audio reader — implements AudioReader port."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import soundfile as sf

from pocket_scribe.l1_entities.audio import AudioFormat
from pocket_scribe.l1_entities.errors import ConversionFailedError, NoAudioTrackError, UnsupportedFormatError

log = logging.getLogger('scribe.audio')


class SoundFileStream:
    """Sequential float32 reader over an open ``sf.SoundFile``."""

    def __init__(self, handle: sf.SoundFile) -> None:
        self._handle = handle
        self.sample_rate: int = handle.samplerate
        self.channels: int = handle.channels
        self.frames: int = max(0, handle.frames)

    def __enter__(self) -> SoundFileStream:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def read(self, frames: int) -> np.ndarray:
        try:
            return self._handle.read(frames, dtype='float32', always_2d=True)
        except sf.SoundFileError as exc:
            raise ConversionFailedError(f'Failed to decode {self._handle.name}: {exc}') from exc

    def close(self) -> None:
        if not self._handle.closed:
            self._handle.close()


class SoundFileAudioReader:
    """Decodes anything libsndfile understands (WAV, FLAC, OGG, MP3 on libsndfile >= 1.1)."""

    def inspect(self, path: Path) -> AudioFormat:
        if not path.exists():
            raise FileNotFoundError(f'Audio file not found: {path}')
        try:
            info = sf.info(str(path))
        except sf.SoundFileError as exc:
            raise UnsupportedFormatError(f'Unsupported audio format: {path} ({exc})') from exc
        if info.channels < 1 or info.frames == 0:
            raise NoAudioTrackError(f'No audio track in: {path}')
        return AudioFormat(
            container=info.format,
            subtype=info.subtype,
            sample_rate=info.samplerate,
            channels=info.channels,
            frames=info.frames,
        )

    def open(self, path: Path) -> SoundFileStream:
        if not path.exists():
            raise FileNotFoundError(f'Audio file not found: {path}')
        try:
            handle = sf.SoundFile(str(path))
        except sf.SoundFileError as exc:
            raise UnsupportedFormatError(f'Unsupported audio format: {path} ({exc})') from exc
        log.debug('libsndfile opened %s (%s/%s)', path.name, handle.format, handle.subtype)
        return SoundFileStream(handle)
