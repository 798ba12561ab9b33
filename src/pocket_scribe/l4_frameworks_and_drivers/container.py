"""Dependency container — composition root for wiring all layers together."""

from __future__ import annotations

import tempfile
from pathlib import Path

import numpy as np

from pocket_scribe.l1_entities.config import AppConfig
from pocket_scribe.l1_entities.template import SummaryTemplate
from pocket_scribe.l2_use_cases.extractive_summarizer import ExtractiveSummarizer
from pocket_scribe.l2_use_cases.normalize_audio_use_case import NormalizeAudioUseCase
from pocket_scribe.l2_use_cases.pipeline_orchestrator import PipelineOrchestrator
from pocket_scribe.l2_use_cases.ports.audio_io import AudioReader, PcmWriter
from pocket_scribe.l2_use_cases.ports.model_resolver import ModelResolver
from pocket_scribe.l2_use_cases.ports.summarizer import Summarizer
from pocket_scribe.l2_use_cases.progress_bus import ProgressBus
from pocket_scribe.l2_use_cases.summarization_engine import SummarizationEngine
from pocket_scribe.l2_use_cases.transcription_engine import TranscriptionEngine
from pocket_scribe.l2_use_cases.utils.sampling import SamplingParams, TokenSampler
from pocket_scribe.l3_interface_adapters.gateways.fallback_audio_reader import FallbackAudioReader
from pocket_scribe.l3_interface_adapters.gateways.ffmpeg_audio_reader import FfmpegAudioReader
from pocket_scribe.l3_interface_adapters.gateways.hf_model_resolver import HfModelResolver
from pocket_scribe.l3_interface_adapters.gateways.llama_cpp_model import LlamaCppModel
from pocket_scribe.l3_interface_adapters.gateways.soundfile_audio_reader import SoundFileAudioReader
from pocket_scribe.l3_interface_adapters.gateways.wav_pcm_writer import WavPcmWriter
from pocket_scribe.l3_interface_adapters.gateways.whisper_speech_model import WhisperSpeechModel
from pocket_scribe.l3_interface_adapters.gateways.yaml_config_loader import YamlConfigLoader
from pocket_scribe.l3_interface_adapters.gateways.yaml_template_loader import YamlTemplateLoader
from pocket_scribe.l4_frameworks_and_drivers.infra_config import InfraConfig


def build_sampler(config: AppConfig) -> TokenSampler:
    sc = config.summarization
    params = SamplingParams(
        temperature=sc.temperature,
        top_k=sc.top_k,
        top_p=sc.top_p,
        renormalize_top_p=sc.renormalize_top_p,
    )
    return TokenSampler(params, rng=np.random.default_rng(sc.seed))


class DependencyContainer:
    """Creates and wires all concrete instances. Easy to override for testing."""

    def __init__(
        self,
        config: AppConfig,
        template: SummaryTemplate,
        infra: InfraConfig | None = None,
        work_dir: Path | None = None,
    ) -> None:
        self.config = config
        self.template = template

        _infra = infra or InfraConfig()
        self.model_resolver: ModelResolver = HfModelResolver(models_dir=_infra.models_dir)
        self.audio_reader: AudioReader = FallbackAudioReader(SoundFileAudioReader(), FfmpegAudioReader())
        self.pcm_writer: PcmWriter = WavPcmWriter()
        self.normalizer = NormalizeAudioUseCase(
            self.audio_reader,
            self.pcm_writer,
            frames_per_chunk=config.audio.frames_per_chunk,
        )

        self.transcription = TranscriptionEngine(
            speech_model=WhisperSpeechModel(config.transcription, n_threads=_infra.whisper.n_threads),
            resolver=self.model_resolver,
            reader=self.audio_reader,
            normalizer=self.normalizer,
            config=config.transcription,
            work_dir=work_dir or Path(tempfile.gettempdir()),
        )
        self.summarizer: Summarizer = self._build_summarizer(config, template, _infra)
        self.orchestrator = PipelineOrchestrator(self.transcription, self.summarizer, bus=ProgressBus())

    def _build_summarizer(self, config: AppConfig, template: SummaryTemplate, infra: InfraConfig) -> Summarizer:
        sc = config.summarization
        if sc.engine == 'extractive':
            return ExtractiveSummarizer(max_sentences=sc.max_sentences)
        return SummarizationEngine(
            model=LlamaCppModel(n_gpu_layers=infra.llama.n_gpu_layers, n_threads=infra.llama.n_threads),
            resolver=self.model_resolver,
            config=sc,
            template=template,
            sampler=build_sampler(config),
        )

    def close(self) -> None:
        """Release both native model handles."""
        self.transcription.close()
        self.summarizer.close()

    @staticmethod
    def config_loader() -> YamlConfigLoader:
        return YamlConfigLoader()

    @staticmethod
    def template_loader() -> YamlTemplateLoader:
        return YamlTemplateLoader()
