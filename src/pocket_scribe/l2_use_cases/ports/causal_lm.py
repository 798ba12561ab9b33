"""Port: native causal language model and its per-call generation context."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

import numpy as np


class GenerationContext(Protocol):
    """Bounded attention state for exactly one summarization call.

    Used as a context manager; ``close()`` releases native memory and is
    safe to call more than once.
    """

    def decode(self, tokens: Sequence[int], start_pos: int, *, logits_last: bool) -> None:
        """Evaluate *tokens* at positions ``start_pos..``. Raises DecodeStepFailedError."""
        ...

    def logits(self) -> np.ndarray:
        """Logits of the last token that requested output, shape (n_vocab,)."""
        ...

    def close(self) -> None: ...

    def __enter__(self) -> GenerationContext: ...

    def __exit__(self, *exc: object) -> None: ...


class CausalLM(Protocol):
    """Loaded model weights plus vocabulary (the model handle)."""

    @property
    def loaded(self) -> bool: ...

    @property
    def eos_token(self) -> int: ...

    def load(self, model_path: str) -> None:
        """Load weights. Raises ModelLoadFailedError."""
        ...

    def tokenize(self, text: str) -> list[int]:
        """Tokenize *text*, parsing template control tokens. Raises TokenizationFailedError."""
        ...

    def token_to_piece(self, token: int) -> bytes:
        """Raw UTF-8 bytes for *token*; may be a partial character."""
        ...

    def create_context(self, n_ctx: int, n_batch: int) -> GenerationContext:
        """Allocate a fresh context. Raises ContextCreationFailedError."""
        ...

    def close(self) -> None: ...
