"""Port: native speech-to-text model."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

import numpy as np

from pocket_scribe.l1_entities.transcript import TranscriptSegment


class SpeechModel(Protocol):
    """Abstract speech recognizer. Zero framework types leak through."""

    def load(self, model_path: str) -> None:
        """Load weights from *model_path*. Raises ModelLoadFailedError."""
        ...

    def transcribe(
        self,
        audio: np.ndarray,
        language: str,
        on_segment: Callable[[TranscriptSegment], None] | None = None,
    ) -> list[TranscriptSegment]:
        """Decode a whole float32 mono 16 kHz recording into segments.

        The recognizer windows long input itself; *on_segment* is invoked for each
        segment as soon as it is decoded.
        """
        ...

    def close(self) -> None:
        """Release the model handle."""
        ...
