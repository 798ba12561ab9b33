"""Ports: streamed audio decoding and canonical PCM writing."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import numpy as np

from pocket_scribe.l1_entities.audio import AudioFormat


class AudioStream(Protocol):
    """An open source file being read sequentially."""

    sample_rate: int
    channels: int
    frames: int  # estimated total frames; 0 when unknown

    def read(self, frames: int) -> np.ndarray:
        """Return up to *frames* float32 frames shaped (n, channels); empty at end of stream."""
        ...

    def close(self) -> None: ...

    def __enter__(self) -> AudioStream: ...

    def __exit__(self, *exc: object) -> None: ...


class AudioReader(Protocol):
    """Abstract audio decoder. Zero framework types leak through."""

    def inspect(self, path: Path) -> AudioFormat:
        """Describe *path* without decoding it. Raises UnsupportedFormatError / NoAudioTrackError."""
        ...

    def open(self, path: Path) -> AudioStream:
        """Open *path* for streamed reading."""
        ...


class PcmSink(Protocol):
    """A destination accepting int16 mono frames."""

    frames_written: int

    def write(self, samples: np.ndarray) -> None: ...

    def finalize(self) -> None:
        """Close the container so the file is complete and readable."""
        ...

    def abort(self) -> None:
        """Close and delete any partial output."""
        ...


class PcmWriter(Protocol):
    """Factory for canonical PCM destinations."""

    def open(self, path: Path, sample_rate: int, channels: int) -> PcmSink: ...
