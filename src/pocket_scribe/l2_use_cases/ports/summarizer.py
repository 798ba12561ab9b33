"""Port: text summarizer as seen by the pipeline orchestrator."""

from __future__ import annotations

from typing import Protocol

from pocket_scribe.l1_entities.engine_progress import ProgressCallback
from pocket_scribe.l1_entities.engine_state import EngineState


class Summarizer(Protocol):
    """Anything that can turn a transcript into a summary."""

    @property
    def state(self) -> EngineState: ...

    async def load_model(self, progress: ProgressCallback | None = None) -> None: ...

    async def summarize(self, text: str, progress: ProgressCallback | None = None) -> str: ...

    def close(self) -> None:
        """Release any model handle held by the summarizer."""
        ...
