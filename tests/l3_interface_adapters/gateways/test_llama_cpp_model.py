"""Tests for the llama.cpp gateway — patches the llama_cpp module."""

from __future__ import annotations

import ctypes
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from pocket_scribe.l1_entities.errors import (
    ContextCreationFailedError,
    DecodeStepFailedError,
    ModelLoadFailedError,
    ModelNotLoadedError,
    TokenizationFailedError,
)
from pocket_scribe.l3_interface_adapters.gateways.llama_cpp_model import LlamaCppContext, LlamaCppModel

MODULE = 'pocket_scribe.l3_interface_adapters.gateways.llama_cpp_model'


def _batch(n: int) -> SimpleNamespace:
    return SimpleNamespace(
        n_tokens=0,
        token=[0] * n,
        pos=[0] * n,
        n_seq_id=[0] * n,
        seq_id=[[0] for _ in range(n)],
        logits=[False] * n,
    )


@pytest.fixture
def llama():
    with patch(f'{MODULE}.llama_cpp') as mock_llama, patch(f'{MODULE}.suppress_c_stdout'):
        mock_llama.llama_batch_init.side_effect = lambda n, embd, n_seq: _batch(n)
        mock_llama.llama_decode.return_value = 0
        mock_llama.llama_model_load_from_file.return_value = object()
        mock_llama.llama_init_from_model.return_value = object()
        mock_llama.llama_vocab_n_tokens.return_value = 4
        mock_llama.llama_vocab_eos.return_value = 2
        yield mock_llama


@pytest.fixture
def loaded_model(llama) -> LlamaCppModel:
    model = LlamaCppModel(n_gpu_layers=0, n_threads=2)
    model.load('/models/qwen.gguf')
    return model


class TestLoad:
    def test_load_sets_vocab(self, llama, loaded_model):
        llama.llama_backend_init.assert_called_once()
        assert llama.llama_model_load_from_file.call_args.args[0] == b'/models/qwen.gguf'
        assert loaded_model.loaded
        assert loaded_model.eos_token == 2
        assert loaded_model.n_vocab == 4

    def test_null_handle_raises(self, llama):
        llama.llama_model_load_from_file.return_value = None
        model = LlamaCppModel()
        with pytest.raises(ModelLoadFailedError):
            model.load('/models/broken.gguf')
        assert not model.loaded

    def test_vocab_before_load_raises(self, llama):
        with pytest.raises(ModelNotLoadedError):
            _ = LlamaCppModel().eos_token

    def test_close_frees_once(self, llama, loaded_model):
        loaded_model.close()
        loaded_model.close()
        llama.llama_model_free.assert_called_once()
        assert not loaded_model.loaded


class TestTokenize:
    def test_returns_tokens(self, llama, loaded_model):
        def _tokenize(vocab, data, n, buf, capacity, add_special, parse_special):
            for i, tok in enumerate([5, 6, 7]):
                buf[i] = tok
            return 3

        llama.llama_tokenize.side_effect = _tokenize
        assert loaded_model.tokenize('hello') == [5, 6, 7]

    def test_retries_with_reported_size(self, llama, loaded_model):
        capacities = []

        def _tokenize(vocab, data, n, buf, capacity, add_special, parse_special):
            capacities.append(capacity)
            if len(capacities) == 1:
                return -100
            buf[0] = 9
            return 1

        llama.llama_tokenize.side_effect = _tokenize
        assert loaded_model.tokenize('hi') == [9]
        assert capacities[1] == 100

    def test_zero_tokens_raises(self, llama, loaded_model):
        llama.llama_tokenize.return_value = 0
        with pytest.raises(TokenizationFailedError):
            loaded_model.tokenize('')


class TestTokenToPiece:
    def test_returns_raw_bytes(self, llama, loaded_model):
        def _piece(vocab, token, buf, length, lstrip, special):
            buf.raw = b'\xd0\x9f'
            return 2

        llama.llama_token_to_piece.side_effect = _piece
        assert loaded_model.token_to_piece(42) == b'\xd0\x9f'

    def test_negative_length_is_empty(self, llama, loaded_model):
        llama.llama_token_to_piece.return_value = -1
        assert loaded_model.token_to_piece(42) == b''


class TestCreateContext:
    def test_applies_params(self, llama, loaded_model):
        params = SimpleNamespace(n_ctx=0, n_batch=0, n_threads=0, n_threads_batch=0)
        llama.llama_context_default_params.return_value = params

        ctx = loaded_model.create_context(2048, 512)

        assert (params.n_ctx, params.n_batch, params.n_threads, params.n_threads_batch) == (2048, 512, 2, 2)
        llama.llama_batch_init.assert_called_once_with(512, 0, 1)
        assert not ctx.closed

    def test_null_context_raises(self, llama, loaded_model):
        llama.llama_init_from_model.return_value = None
        with pytest.raises(ContextCreationFailedError):
            loaded_model.create_context(2048, 512)

    def test_requires_loaded_model(self, llama):
        with pytest.raises(ModelNotLoadedError):
            LlamaCppModel().create_context(2048, 512)


class TestLlamaCppContext:
    def test_decode_fills_batch(self, llama):
        ctx = LlamaCppContext(MagicMock(), n_batch=4, n_vocab=4)

        ctx.decode([11, 12, 13], 100, logits_last=True)

        batch = llama.llama_decode.call_args.args[1]
        assert batch.n_tokens == 3
        assert batch.token[:3] == [11, 12, 13]
        assert batch.pos[:3] == [100, 101, 102]
        assert batch.n_seq_id[:3] == [1, 1, 1]
        assert batch.logits[:3] == [False, False, True]

    def test_decode_without_logits(self, llama):
        ctx = LlamaCppContext(MagicMock(), n_batch=4, n_vocab=4)
        ctx.decode([1, 2], 0, logits_last=False)
        assert llama.llama_decode.call_args.args[1].logits[:2] == [False, False]

    def test_decode_error_code_raises(self, llama):
        llama.llama_decode.return_value = 1
        ctx = LlamaCppContext(MagicMock(), n_batch=4, n_vocab=4)
        with pytest.raises(DecodeStepFailedError, match='position 7'):
            ctx.decode([1], 7, logits_last=True)

    @pytest.mark.parametrize('n_tokens', [0, 5])
    def test_decode_rejects_bad_batch_size(self, llama, n_tokens):
        ctx = LlamaCppContext(MagicMock(), n_batch=4, n_vocab=4)
        with pytest.raises(DecodeStepFailedError):
            ctx.decode([1] * n_tokens, 0, logits_last=True)
        llama.llama_decode.assert_not_called()

    def test_logits_copied_from_native_buffer(self, llama):
        values = (ctypes.c_float * 4)(0.5, 1.5, -2.0, 3.0)
        llama.llama_get_logits_ith.return_value = ctypes.cast(values, ctypes.POINTER(ctypes.c_float))
        ctx = LlamaCppContext(MagicMock(), n_batch=4, n_vocab=4)

        logits = ctx.logits()
        values[0] = 99.0

        np.testing.assert_array_equal(logits, np.array([0.5, 1.5, -2.0, 3.0], dtype=np.float32))

    def test_null_logits_raise(self, llama):
        llama.llama_get_logits_ith.return_value = None
        with pytest.raises(DecodeStepFailedError):
            LlamaCppContext(MagicMock(), n_batch=4, n_vocab=4).logits()

    def test_close_is_idempotent(self, llama):
        ctx = LlamaCppContext(MagicMock(), n_batch=4, n_vocab=4)
        with ctx:
            pass
        ctx.close()

        llama.llama_batch_free.assert_called_once()
        llama.llama_free.assert_called_once()
        assert ctx.closed

    def test_decode_after_close_raises(self, llama):
        ctx = LlamaCppContext(MagicMock(), n_batch=4, n_vocab=4)
        ctx.close()
        with pytest.raises(DecodeStepFailedError):
            ctx.decode([1], 0, logits_last=True)
