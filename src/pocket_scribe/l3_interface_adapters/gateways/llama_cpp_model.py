"""Gateway: llama.cpp causal LM — implements CausalLM and GenerationContext ports.

Talks to the low-level ``llama_cpp`` bindings directly so that the model handle
(weights + vocabulary) is loaded once, while every summarization call gets its
own context and batch that are freed exactly once.
"""

from __future__ import annotations

import ctypes
import logging
from collections.abc import Sequence

import llama_cpp
import numpy as np

from pocket_scribe.l1_entities.errors import (
    ContextCreationFailedError,
    DecodeStepFailedError,
    ModelLoadFailedError,
    ModelNotLoadedError,
    TokenizationFailedError,
)
from pocket_scribe.l3_interface_adapters.gateways.native_output import suppress_c_stdout

log = logging.getLogger('scribe.llm')

_PIECE_BUFFER = 256
_TOKENIZE_SLACK = 32


class LlamaCppContext:
    """One llama.cpp context plus a reusable batch sized to ``n_batch``."""

    def __init__(self, ctx, n_batch: int, n_vocab: int) -> None:
        self._ctx = ctx
        self._n_batch = n_batch
        self._n_vocab = n_vocab
        self._batch = llama_cpp.llama_batch_init(n_batch, 0, 1)

    def __enter__(self) -> LlamaCppContext:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._ctx is None

    def decode(self, tokens: Sequence[int], start_pos: int, *, logits_last: bool) -> None:
        if self._ctx is None:
            raise DecodeStepFailedError('Generation context already released')
        n = len(tokens)
        if n == 0 or n > self._n_batch:
            raise DecodeStepFailedError(f'Batch of {n} tokens outside 1..{self._n_batch}')

        batch = self._batch
        batch.n_tokens = n
        for i, token in enumerate(tokens):
            batch.token[i] = token
            batch.pos[i] = start_pos + i
            batch.n_seq_id[i] = 1
            batch.seq_id[i][0] = 0
            batch.logits[i] = False
        if logits_last:
            batch.logits[n - 1] = True

        rc = llama_cpp.llama_decode(self._ctx, batch)
        if rc != 0:
            raise DecodeStepFailedError(f'llama_decode failed with code {rc} at position {start_pos} ({n} tokens)')

    def logits(self) -> np.ndarray:
        if self._ctx is None:
            raise DecodeStepFailedError('Generation context already released')
        ptr = llama_cpp.llama_get_logits_ith(self._ctx, -1)
        if not ptr:
            raise DecodeStepFailedError('Failed to get logits')
        return np.ctypeslib.as_array(ptr, shape=(self._n_vocab,)).copy()

    def close(self) -> None:
        if self._ctx is None:
            return
        llama_cpp.llama_batch_free(self._batch)
        llama_cpp.llama_free(self._ctx)
        self._batch = None
        self._ctx = None
        log.debug('Generation context released')


class LlamaCppModel:
    """Owns the llama.cpp model and vocabulary pointers for the process lifetime."""

    def __init__(self, n_gpu_layers: int = 0, n_threads: int | None = None) -> None:
        self._n_gpu_layers = n_gpu_layers
        self._n_threads = n_threads
        self._model = None
        self._vocab = None

    @property
    def loaded(self) -> bool:
        return self._model is not None

    @property
    def eos_token(self) -> int:
        return int(llama_cpp.llama_vocab_eos(self._require_vocab()))

    @property
    def n_vocab(self) -> int:
        return int(llama_cpp.llama_vocab_n_tokens(self._require_vocab()))

    def load(self, model_path: str) -> None:
        llama_cpp.llama_backend_init()
        params = llama_cpp.llama_model_default_params()
        params.n_gpu_layers = self._n_gpu_layers
        with suppress_c_stdout():
            model = llama_cpp.llama_model_load_from_file(model_path.encode('utf-8'), params)
        if not model:
            raise ModelLoadFailedError(f'Failed to load model at: {model_path}')
        self._model = model
        self._vocab = llama_cpp.llama_model_get_vocab(model)
        log.debug('llama.cpp model loaded from %s (n_vocab=%d)', model_path, self.n_vocab)

    def tokenize(self, text: str) -> list[int]:
        vocab = self._require_vocab()
        data = text.encode('utf-8')
        capacity = len(data) + _TOKENIZE_SLACK
        for _ in range(2):
            buf = (ctypes.c_int32 * capacity)()
            n = llama_cpp.llama_tokenize(vocab, data, len(data), buf, capacity, True, True)
            if n > 0:
                return list(buf[:n])
            if n == 0:
                break
            capacity = -n
        raise TokenizationFailedError(f'Tokenization failed for a prompt of {len(data)} bytes')

    def token_to_piece(self, token: int) -> bytes:
        buf = ctypes.create_string_buffer(_PIECE_BUFFER)
        n = llama_cpp.llama_token_to_piece(self._require_vocab(), token, buf, _PIECE_BUFFER, 0, True)
        if n <= 0:
            return b''
        return buf.raw[:n]

    def create_context(self, n_ctx: int, n_batch: int) -> LlamaCppContext:
        if self._model is None:
            raise ModelNotLoadedError('Language model not loaded')
        params = llama_cpp.llama_context_default_params()
        params.n_ctx = n_ctx
        params.n_batch = n_batch
        if self._n_threads:
            params.n_threads = self._n_threads
            params.n_threads_batch = self._n_threads
        with suppress_c_stdout():
            ctx = llama_cpp.llama_init_from_model(self._model, params)
        if not ctx:
            raise ContextCreationFailedError(f'Failed to create context (n_ctx={n_ctx}, n_batch={n_batch})')
        return LlamaCppContext(ctx, n_batch, self.n_vocab)

    def close(self) -> None:
        if self._model is not None:
            with suppress_c_stdout():
                llama_cpp.llama_model_free(self._model)
            self._model = None
            self._vocab = None

    def _require_vocab(self):
        if self._vocab is None:
            raise ModelNotLoadedError('Language model not loaded')
        return self._vocab
