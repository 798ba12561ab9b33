"""Shared test fixtures and protocol-conforming fakes."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Sequence
from pathlib import Path

import numpy as np
import pytest
import soundfile as sf

from pocket_scribe.l1_entities.config import AppConfig
from pocket_scribe.l1_entities.engine_progress import EngineProgress, EngineStep, ProgressCallback
from pocket_scribe.l1_entities.engine_state import EngineState
from pocket_scribe.l1_entities.errors import DecodeStepFailedError, ModelNotLoadedError
from pocket_scribe.l1_entities.template import SummaryTemplate
from pocket_scribe.l1_entities.transcript import TranscriptSegment
from pocket_scribe.l3_interface_adapters.gateways.yaml_template_loader import YamlTemplateLoader
from pocket_scribe.l4_frameworks_and_drivers.infra_config import build_app_config

# --- Protocol-conforming Fakes ---


class FakeResolver:
    """Fake model resolver; echoes the name back as a path."""

    def __init__(self, error: Exception | None = None) -> None:
        self._error = error
        self.calls: list[str] = []

    def resolve(self, model_name: str) -> str:
        self.calls.append(model_name)
        if self._error is not None:
            raise self._error
        return f'/models/{model_name}'


class FakeSpeechModel:
    """Fake speech model for L2 engine tests."""

    def __init__(self, segments: list[TranscriptSegment] | None = None, load_delay: float = 0.0):
        if segments is None:
            segments = [TranscriptSegment(text='Привет мир', start=0.0, end=1.0)]
        self._segments = segments
        self._load_delay = load_delay
        self.load_calls: list[str] = []
        self.transcribe_calls: list[tuple[int, str]] = []
        self.close_calls = 0

    def load(self, model_path: str) -> None:
        if self._load_delay:
            time.sleep(self._load_delay)
        self.load_calls.append(model_path)

    def transcribe(
        self,
        audio: np.ndarray,
        language: str,
        on_segment: Callable[[TranscriptSegment], None] | None = None,
    ) -> list[TranscriptSegment]:
        if not self.load_calls:
            raise ModelNotLoadedError('Speech model not loaded')
        self.transcribe_calls.append((len(audio), language))
        if on_segment is not None:
            for seg in self._segments:
                on_segment(seg)
        return list(self._segments)

    def close(self) -> None:
        self.close_calls += 1

    def set_segments(self, segments: list[TranscriptSegment]) -> None:
        self._segments = segments


class FakeGenerationContext:
    """Fake generation context: records decode calls and replays scripted logits."""

    def __init__(self, lm: FakeCausalLM, n_ctx: int, n_batch: int) -> None:
        self._lm = lm
        self.n_ctx = n_ctx
        self.n_batch = n_batch
        self.decode_calls: list[tuple[int, int, bool]] = []  # (n_tokens, start_pos, logits_last)
        self.close_calls = 0
        self._step = 0

    def __enter__(self) -> FakeGenerationContext:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def decode(self, tokens: Sequence[int], start_pos: int, *, logits_last: bool) -> None:
        if len(tokens) > self.n_batch:
            raise DecodeStepFailedError(f'batch of {len(tokens)} exceeds n_batch={self.n_batch}')
        if self._lm.fail_decode_at is not None and start_pos >= self._lm.fail_decode_at:
            raise DecodeStepFailedError(f'decode failed at position {start_pos}')
        self.decode_calls.append((len(tokens), start_pos, logits_last))

    def logits(self) -> np.ndarray:
        script = self._lm.script
        token = script[self._step] if self._step < len(script) else self._lm.eos_token
        self._step += 1
        logits = np.zeros(self._lm.n_vocab, dtype=np.float32)
        logits[token] = 50.0
        return logits

    def close(self) -> None:
        self.close_calls += 1


class FakeCausalLM:
    """Fake causal LM whose generation is a fixed sequence of byte pieces.

    Token ids ``FIRST_PIECE..`` map to *pieces* in order; the sampler sees a
    one-hot-ish logits vector for each of them, then the EOS token.
    """

    EOS = 2
    FIRST_PIECE = 10

    def __init__(
        self,
        pieces: list[bytes] | None = None,
        prompt_tokens: int | None = None,
        load_delay: float = 0.0,
        fail_decode_at: int | None = None,
    ) -> None:
        self._pieces = list(pieces if pieces is not None else [b'Hello', b' world'])
        self._prompt_tokens = prompt_tokens
        self._load_delay = load_delay
        self._loaded = False
        self._guard = threading.Lock()
        self.fail_decode_at = fail_decode_at
        self.load_calls: list[str] = []
        self.contexts: list[FakeGenerationContext] = []
        self.tokenized: list[str] = []
        self.close_calls = 0

    @property
    def script(self) -> list[int]:
        return [self.FIRST_PIECE + i for i in range(len(self._pieces))]

    @property
    def n_vocab(self) -> int:
        return self.FIRST_PIECE + len(self._pieces) + 1

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def eos_token(self) -> int:
        return self.EOS

    def load(self, model_path: str) -> None:
        if self._load_delay:
            time.sleep(self._load_delay)
        with self._guard:
            self.load_calls.append(model_path)
        self._loaded = True

    def tokenize(self, text: str) -> list[int]:
        self.tokenized.append(text)
        n = self._prompt_tokens if self._prompt_tokens is not None else len(text.split())
        return [3] * n

    def token_to_piece(self, token: int) -> bytes:
        index = token - self.FIRST_PIECE
        if 0 <= index < len(self._pieces):
            return self._pieces[index]
        return b''

    def create_context(self, n_ctx: int, n_batch: int) -> FakeGenerationContext:
        if not self._loaded:
            raise ModelNotLoadedError('Language model not loaded')
        ctx = FakeGenerationContext(self, n_ctx, n_batch)
        self.contexts.append(ctx)
        return ctx

    def close(self) -> None:
        self.close_calls += 1
        self._loaded = False


class FakeSummarizer:
    """Fake summarizer for orchestrator tests."""

    def __init__(self, summary: str = 'Краткое резюме', error: Exception | None = None) -> None:
        self._summary = summary
        self._error = error
        self._state = EngineState.UNLOADED
        self.load_calls = 0
        self.summarize_calls: list[str] = []
        self.close_calls = 0

    @property
    def state(self) -> EngineState:
        return self._state

    async def load_model(self, progress: ProgressCallback | None = None) -> None:
        self.load_calls += 1
        if progress is not None:
            progress(EngineProgress(EngineStep.MODEL_LOADING, 0.5, 'half'))
            progress(EngineProgress(EngineStep.MODEL_LOADING, 1.0, 'ready'))
        self._state = EngineState.READY

    async def summarize(self, text: str, progress: ProgressCallback | None = None) -> str:
        self.summarize_calls.append(text)
        if self._error is not None:
            raise self._error
        if progress is not None:
            progress(EngineProgress(EngineStep.TOKENIZING, 1.0, 'tokens'))
            progress(EngineProgress(EngineStep.EVALUATING_PROMPT, 1.0, 'prompt'))
            progress(EngineProgress(EngineStep.GENERATING, 0.5, 'half'))
            progress(EngineProgress(EngineStep.DONE, 1.0, 'done'))
        return self._summary

    def close(self) -> None:
        self.close_calls += 1


class FakePersistence:
    """Fake persistence gateway for L4 tests."""

    def __init__(self, output_dir: Path | None = None):
        self._output_dir = output_dir or Path('/fake/output')
        self.transcripts: list[str] = []
        self.summaries: list[str] = []

    def save_transcript(self, text: str) -> Path:
        self.transcripts.append(text)
        return self._output_dir / 'transcript.txt'

    def save_summary(self, markdown: str) -> Path:
        self.summaries.append(markdown)
        return self._output_dir / 'summary.md'


def write_tone(path: Path, seconds: float, sample_rate: int, channels: int = 1, subtype: str = 'PCM_16') -> int:
    """Write a 440 Hz sine tone; returns the frame count."""
    frames = int(seconds * sample_rate)
    t = np.arange(frames) / sample_rate
    tone = 0.3 * np.sin(2 * np.pi * 440.0 * t).astype(np.float32)
    data = np.repeat(tone[:, None], channels, axis=1)
    sf.write(str(path), data, sample_rate, subtype=subtype)
    return frames


# --- Standard Fixtures ---


@pytest.fixture
def tmp_output_dir(tmp_path: Path) -> Path:
    d = tmp_path / 'output'
    d.mkdir()
    return d


@pytest.fixture
def default_config() -> AppConfig:
    return build_app_config({})


@pytest.fixture
def default_template() -> SummaryTemplate:
    return YamlTemplateLoader().load('summary_ru')


@pytest.fixture
def sample_config_yaml(tmp_path: Path) -> Path:
    content = """\
transcription:
  model: "small-q8_0"
  language: "en"
  best_of: 3
summarization:
  n_ctx: 1024
  n_batch: 256
  max_new_tokens: 64
  seed: 7
template: "summary_en"
output:
  directory: "./test_output"
llama:
  n_gpu_layers: 0
  n_threads: 2
"""
    p = tmp_path / 'config.yaml'
    p.write_text(content, encoding='utf-8')
    return p


@pytest.fixture
def tone_wav(tmp_path: Path) -> Path:
    """One second of 44.1 kHz mono 16-bit tone."""
    path = tmp_path / 'tone_44k.wav'
    write_tone(path, 1.0, 44100)
    return path


@pytest.fixture
def canonical_wav(tmp_path: Path) -> Path:
    """Two seconds of 16 kHz mono 16-bit tone, already in the recognizer's format."""
    path = tmp_path / 'tone_16k.wav'
    write_tone(path, 2.0, 16000)
    return path


@pytest.fixture
def fake_speech_model() -> FakeSpeechModel:
    return FakeSpeechModel()


@pytest.fixture
def fake_lm() -> FakeCausalLM:
    return FakeCausalLM()


@pytest.fixture
def fake_persistence(tmp_output_dir: Path) -> FakePersistence:
    return FakePersistence(tmp_output_dir)
