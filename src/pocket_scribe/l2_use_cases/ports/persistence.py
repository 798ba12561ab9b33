"""Port: output persistence."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol


class PersistenceGateway(Protocol):
    """Abstract persistence for pipeline outputs."""

    def save_transcript(self, text: str) -> Path:
        """Write the transcript. Returns the file path."""
        ...

    def save_summary(self, markdown: str) -> Path:
        """Write the summary. Returns the file path."""
        ...
