"""Use case: causal-LM summarization with chunked prompt evaluation and token sampling."""

from __future__ import annotations

import asyncio
import codecs
import logging

from pocket_scribe.l1_entities.config import SummarizationConfig
from pocket_scribe.l1_entities.engine_progress import EngineProgress, EngineStep, ProgressCallback
from pocket_scribe.l1_entities.engine_state import EngineState
from pocket_scribe.l1_entities.errors import (
    DecodeStepFailedError,
    EmptySummaryResultError,
    ModelNotLoadedError,
)
from pocket_scribe.l1_entities.template import SummaryTemplate
from pocket_scribe.l2_use_cases.ports.causal_lm import CausalLM, GenerationContext
from pocket_scribe.l2_use_cases.ports.model_resolver import ModelResolver
from pocket_scribe.l2_use_cases.utils.prompt_builder import END_OF_TURN, build_summary_prompt, strip_end_of_turn
from pocket_scribe.l2_use_cases.utils.sampling import TokenSampler

log = logging.getLogger('scribe.llm')


def plan_chunks(n_tokens: int, n_batch: int) -> list[tuple[int, int]]:
    """Split ``range(n_tokens)`` into consecutive (start, end) slices of at most *n_batch*."""
    return [(start, min(start + n_batch, n_tokens)) for start in range(0, n_tokens, n_batch)]


class SummarizationEngine:
    """Serialized owner of one causal-LM handle.

    The handle is loaded once and shared read-only; every ``summarize`` call
    allocates its own generation context and releases it before returning,
    whether generation finished, stopped early, or raised.
    """

    def __init__(
        self,
        model: CausalLM,
        resolver: ModelResolver,
        config: SummarizationConfig,
        template: SummaryTemplate,
        sampler: TokenSampler,
    ) -> None:
        self._model = model
        self._resolver = resolver
        self._config = config
        self._template = template
        self._sampler = sampler
        self._state = EngineState.UNLOADED
        self._lock = asyncio.Lock()

    @property
    def state(self) -> EngineState:
        return self._state

    async def load_model(self, progress: ProgressCallback | None = None) -> None:
        async with self._lock:
            if self._state is EngineState.READY:
                return
            self._state = EngineState.LOADING
            try:
                _emit(progress, EngineStep.MODEL_LOADING, 0.01, 'Resolving language model')
                model_path = await asyncio.to_thread(self._resolver.resolve, self._config.model)
                _emit(progress, EngineStep.MODEL_LOADING, 0.10, 'Reading model weights')
                await asyncio.to_thread(self._model.load, model_path)
            except BaseException:
                self._state = EngineState.UNLOADED
                raise
            self._state = EngineState.READY
            log.info('Language model ready: %s', model_path)
            _emit(progress, EngineStep.MODEL_LOADING, 1.0, 'Language model ready')

    async def summarize(self, text: str, progress: ProgressCallback | None = None) -> str:
        async with self._lock:
            if not text.strip():
                raise EmptySummaryResultError('Nothing to summarize: input text is empty')
            if self._state is not EngineState.READY or not self._model.loaded:
                raise ModelNotLoadedError('Language model is not loaded')

            _emit(progress, EngineStep.TOKENIZING, 0.0, 'Preparing prompt')
            cfg = self._config
            context = await asyncio.to_thread(self._model.create_context, cfg.n_ctx, cfg.n_batch)
            with context:
                prompt = build_summary_prompt(self._template, text)
                tokens = await asyncio.to_thread(self._model.tokenize, prompt)
                _emit(progress, EngineStep.TOKENIZING, 1.0, f'Tokens: {len(tokens)}')
                if len(tokens) >= cfg.n_ctx:
                    raise DecodeStepFailedError(
                        f'Prompt of {len(tokens)} tokens does not fit the {cfg.n_ctx}-token context window'
                    )

                n_past = await self._evaluate_prompt(context, tokens, progress)
                raw = await self._generate(context, n_past, progress)

        summary = strip_end_of_turn(raw)
        if not summary:
            raise EmptySummaryResultError('Language model returned an empty summary')
        log.info('Summary: %d prompt tokens -> %d chars', len(tokens), len(summary))
        _emit(progress, EngineStep.DONE, 1.0, 'Summary ready')
        return summary

    def close(self) -> None:
        """Release the model handle."""
        self._model.close()
        self._state = EngineState.UNLOADED

    async def _evaluate_prompt(
        self,
        context: GenerationContext,
        tokens: list[int],
        progress: ProgressCallback | None,
    ) -> int:
        """Feed the prompt in ``n_batch`` chunks; return the next free position."""
        total = len(tokens)
        chunks = plan_chunks(total, self._config.n_batch)
        n_past = 0
        for start, end in chunks:
            chunk = tokens[start:end]
            await asyncio.to_thread(context.decode, chunk, n_past, logits_last=end == total)
            n_past += len(chunk)
            _emit(progress, EngineStep.EVALUATING_PROMPT, n_past / total, f'Prompt: {n_past}/{total} tokens')
        log.debug('Prompt evaluated: %d tokens in %d chunks', total, len(chunks))
        return n_past

    async def _generate(
        self,
        context: GenerationContext,
        n_past: int,
        progress: ProgressCallback | None,
    ) -> str:
        cfg = self._config
        eos = self._model.eos_token
        decoder = codecs.getincrementaldecoder('utf-8')(errors='replace')
        out = ''
        pos = n_past

        _emit(progress, EngineStep.GENERATING, 0.0, 'Generating answer')
        for i in range(cfg.max_new_tokens):
            if pos >= cfg.n_ctx:
                log.warning('Context window full at position %d, stopping generation', pos)
                break

            token, piece = await asyncio.to_thread(self._next_token, context, eos)
            if token == eos:
                break

            out += decoder.decode(piece)
            await asyncio.to_thread(context.decode, [token], pos, logits_last=True)
            pos += 1

            if END_OF_TURN in out:
                break
            _emit(
                progress,
                EngineStep.GENERATING,
                (i + 1) / cfg.max_new_tokens,
                f'Tokens: {i + 1}/{cfg.max_new_tokens}',
            )

        out += decoder.decode(b'', final=True)
        log.debug('Generated %d tokens (stopped at position %d)', pos - n_past, pos)
        return out

    def _next_token(self, context: GenerationContext, eos: int) -> tuple[int, bytes]:
        """Sample from the last logits and look up the token's bytes (worker thread)."""
        token = self._sampler.sample(context.logits())
        if token == eos:
            return token, b''
        return token, self._model.token_to_piece(token)


def _emit(progress: ProgressCallback | None, step: EngineStep, fraction: float, message: str) -> None:
    if progress is not None:
        progress(EngineProgress(step, fraction, message))
