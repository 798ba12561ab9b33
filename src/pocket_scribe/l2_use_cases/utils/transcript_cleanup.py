"""Pure functions for assembling recognizer output into one transcript string."""

from __future__ import annotations

import re

from pocket_scribe.l1_entities.transcript import TranscriptSegment

_MULTI_SPACE = re.compile(r' {2,}')
_SPACE_BEFORE_PUNCT = re.compile(r' +([.,!?:;])')


def clean_transcript(text: str) -> str:
    """Collapse repeated spaces and remove spaces before punctuation."""
    text = _MULTI_SPACE.sub(' ', text)
    text = _SPACE_BEFORE_PUNCT.sub(r'\1', text)
    return text.strip()


def join_segments(segments: list[TranscriptSegment]) -> str:
    """Join non-empty segment texts with single spaces and clean the result."""
    parts = [seg.text.strip() for seg in segments]
    return clean_transcript(' '.join(p for p in parts if p))
