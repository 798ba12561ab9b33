"""Audio format and normalized buffer entities."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict

from pocket_scribe.l1_entities.audio_constants import CHANNELS, SAMPLE_RATE, SAMPLE_WIDTH


class AudioFormat(BaseModel):
    """Container and sample layout of an audio file as reported by the reader."""

    model_config = ConfigDict(frozen=True)

    container: str
    subtype: str
    sample_rate: int
    channels: int
    frames: int

    @property
    def is_canonical(self) -> bool:
        """True for WAV, mono, 16 kHz, 16-bit signed PCM."""
        return (
            self.container.upper() == 'WAV'
            and self.subtype.upper() == 'PCM_16'
            and self.sample_rate == SAMPLE_RATE
            and self.channels == CHANNELS
        )


class NormalizedAudio(BaseModel):
    """Canonical PCM audio persisted as a WAV file.

    ``temporary`` is True when the file was produced by the normalizer and must
    be deleted once consumed; False when the caller supplied canonical audio.
    """

    model_config = ConfigDict(frozen=True)

    path: Path
    frame_count: int
    sample_rate: int = SAMPLE_RATE
    channels: int = CHANNELS
    sample_width: int = SAMPLE_WIDTH
    temporary: bool = True

    @property
    def duration(self) -> float:
        return self.frame_count / self.sample_rate
