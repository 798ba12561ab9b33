"""Use case: model-free extractive summary by sentence scoring."""

from __future__ import annotations

import re
from collections import Counter

from pocket_scribe.l1_entities.engine_progress import EngineProgress, EngineStep, ProgressCallback
from pocket_scribe.l1_entities.engine_state import EngineState
from pocket_scribe.l1_entities.errors import EmptySummaryResultError

_SENTENCE_END = re.compile(r'(?<=[.!?…])\s+')
_WORD = re.compile(r'\w+', re.UNICODE)
_MIN_CONTENT_WORD = 4  # shorter words are mostly function words


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_END.split(text) if s.strip()]


def content_words(text: str) -> list[str]:
    words = (m.group().lower() for m in _WORD.finditer(text))
    return [w for w in words if len(w) >= _MIN_CONTENT_WORD and not w.isdigit()]


def score_sentence(sentence: str, frequencies: Counter[str]) -> float:
    """Mean corpus frequency of the sentence's content words."""
    words = content_words(sentence)
    if not words:
        return 0.0
    return sum(frequencies[w] for w in words) / len(words)


def extract_summary(text: str, max_sentences: int = 3) -> str:
    """Return the *max_sentences* highest-scoring sentences in their original order."""
    cleaned = ' '.join(text.split())
    if not cleaned:
        return ''
    sentences = split_sentences(cleaned)
    if len(sentences) <= max_sentences:
        return cleaned

    frequencies = Counter(content_words(cleaned))
    ranked = sorted(
        range(len(sentences)),
        key=lambda i: score_sentence(sentences[i], frequencies),
        reverse=True,
    )
    keep = sorted(ranked[:max_sentences])
    return ' '.join(sentences[i] for i in keep)


class ExtractiveSummarizer:
    """Summarizer with no model to load; always ready."""

    def __init__(self, max_sentences: int = 3) -> None:
        self._max_sentences = max_sentences

    @property
    def state(self) -> EngineState:
        return EngineState.READY

    async def load_model(self, progress: ProgressCallback | None = None) -> None:
        if progress is not None:
            progress(EngineProgress(EngineStep.MODEL_LOADING, 1.0, 'Extractive summarizer ready'))

    async def summarize(self, text: str, progress: ProgressCallback | None = None) -> str:
        summary = extract_summary(text, self._max_sentences)
        if not summary:
            raise EmptySummaryResultError('Nothing to summarize: input text is empty')
        if progress is not None:
            progress(EngineProgress(EngineStep.DONE, 1.0, 'Summary ready'))
        return summary

    def close(self) -> None:
        pass
