"""Pure functions for temperature / top-k / top-p token sampling."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class SamplingParams:
    temperature: float = 0.3
    top_k: int = 40
    top_p: float = 0.9
    renormalize_top_p: bool = True


@dataclass(frozen=True)
class Candidates:
    """Candidate tokens in descending-probability order."""

    tokens: np.ndarray
    probs: np.ndarray

    def __len__(self) -> int:
        return len(self.tokens)


def scale_logits(logits: np.ndarray, temperature: float) -> np.ndarray:
    """Divide by *temperature* when positive; otherwise return logits unchanged."""
    logits = np.asarray(logits, dtype=np.float64)
    if temperature > 0:
        return logits / temperature
    return logits


def top_k(logits: np.ndarray, k: int) -> tuple[np.ndarray, np.ndarray]:
    """Return (token_ids, logits) of the *k* highest logits, sorted descending."""
    k = min(k, logits.size)
    if k < logits.size:
        idx = np.argpartition(-logits, k - 1)[:k]
    else:
        idx = np.arange(logits.size)
    order = np.argsort(-logits[idx], kind='stable')
    idx = idx[order]
    return idx, logits[idx]


def softmax(values: np.ndarray) -> np.ndarray:
    """Max-subtracted softmax; the result sums to 1 within float epsilon."""
    shifted = np.exp(values - np.max(values))
    total = shifted.sum()
    if total > 0:
        return shifted / total
    return shifted


def top_p_cutoff(probs: np.ndarray, p: float) -> int:
    """Length of the shortest descending prefix whose cumulative probability reaches *p*.

    Returns ``len(probs)`` when rounding keeps the cumulative sum below *p*.
    """
    cumulative = np.cumsum(probs)
    hits = np.nonzero(cumulative >= p)[0]
    if hits.size == 0:
        return len(probs)
    return int(hits[0]) + 1


def build_candidates(logits: np.ndarray, params: SamplingParams) -> Candidates:
    """Temperature, top-k, softmax and top-p truncation in one pass."""
    scaled = scale_logits(logits, params.temperature)
    tokens, kept = top_k(scaled, params.top_k)
    probs = softmax(kept)
    cut = top_p_cutoff(probs, params.top_p)
    tokens, probs = tokens[:cut], probs[:cut]
    if params.renormalize_top_p:
        probs = probs / probs.sum()
    return Candidates(tokens=tokens, probs=probs)


def draw(candidates: Candidates, r: float) -> int:
    """Walk the candidates subtracting probabilities from *r* until it drops to <= 0.

    Falls back to the last candidate when rounding exhausts the list.
    """
    for token, prob in zip(candidates.tokens, candidates.probs):
        r -= prob
        if r <= 0:
            return int(token)
    return int(candidates.tokens[-1])


class TokenSampler:
    """Samples the next token id from a logits vector with an injected RNG."""

    def __init__(self, params: SamplingParams, rng: np.random.Generator | None = None) -> None:
        self._params = params
        self._rng = rng if rng is not None else np.random.default_rng()

    @property
    def params(self) -> SamplingParams:
        return self._params

    def sample(self, logits: np.ndarray) -> int:
        candidates = build_candidates(logits, self._params)
        return draw(candidates, float(self._rng.random()))
