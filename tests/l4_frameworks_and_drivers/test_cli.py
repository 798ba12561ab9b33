"""Tests for CLI entry point — patches deferred imports at source module level."""

from __future__ import annotations

import re
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from pocket_scribe import __version__
from pocket_scribe.l1_entities.audio import NormalizedAudio
from pocket_scribe.l1_entities.errors import EmptyTranscriptionResultError, MicrophonePermissionDeniedError
from pocket_scribe.l3_interface_adapters.gateways.file_persistence import FilePersistenceGateway
from pocket_scribe.l3_interface_adapters.gateways.yaml_config_loader import YamlConfigLoader
from pocket_scribe.l3_interface_adapters.gateways.yaml_template_loader import YamlTemplateLoader
from pocket_scribe.l4_frameworks_and_drivers.cli import (
    _make_session_dir,  # noqa: PLC2701 -- testing private helper
    cli,
)

# Patch targets at SOURCE module level (not cli module) because commands use
# deferred `from X import Y` which creates local bindings that bypass
# module-level attribute patches.
_CONTAINER = 'pocket_scribe.l4_frameworks_and_drivers.container.DependencyContainer'
_LOGGING = 'pocket_scribe.l4_frameworks_and_drivers.logging_setup.setup_file_logging'
_BATCH = 'pocket_scribe.l4_frameworks_and_drivers.batch_runner'
_RECORDER = 'pocket_scribe.l3_interface_adapters.gateways.sounddevice_recorder.SounddeviceRecorder'


@pytest.fixture
def container_cls():
    with patch(_CONTAINER) as mock_cls, patch(_LOGGING):
        mock_cls.config_loader.return_value = YamlConfigLoader()
        mock_cls.template_loader.return_value = YamlTemplateLoader()
        yield mock_cls


@pytest.fixture
def audio_file(tmp_path: Path) -> Path:
    path = tmp_path / 'memo.wav'
    path.write_bytes(b'RIFF')
    return path


class TestMakeSessionDir:
    def test_creates_dir_with_timestamp(self, tmp_path: Path):
        result = _make_session_dir(tmp_path, label=None)
        assert result.exists()
        assert re.match(r'\d{4}-\d{2}-\d{2}_\d{6}', result.name)

    def test_appends_sanitized_label(self, tmp_path: Path):
        result = _make_session_dir(tmp_path, label='weekly sync!')
        assert 'weekly_sync_' in result.name

    def test_creates_parents(self, tmp_path: Path):
        assert _make_session_dir(tmp_path / 'a' / 'b', label=None).exists()


class TestGroup:
    def test_version(self):
        result = CliRunner().invoke(cli, ['--version'])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self):
        result = CliRunner().invoke(cli, ['--help'])
        assert result.exit_code == 0
        for command in ('run', 'transcribe', 'summarize', 'record'):
            assert command in result.output


class TestRun:
    def test_runs_pipeline_in_session_dir(self, container_cls, audio_file, tmp_path):
        with patch(f'{_BATCH}.run_pipeline') as mock_run:
            result = CliRunner().invoke(cli, ['run', str(audio_file), '-o', str(tmp_path / 'out'), '-l', 'standup'])

        assert result.exit_code == 0, result.output
        orchestrator, path, persistence, language = mock_run.call_args.args
        assert orchestrator is container_cls.return_value.orchestrator
        assert path == audio_file
        assert isinstance(persistence, FilePersistenceGateway)
        assert persistence.output_dir.parent == tmp_path / 'out'
        assert persistence.output_dir.name.endswith('_standup')
        assert language is None
        container_cls.return_value.close.assert_called_once()

    def test_language_and_template_overrides(self, container_cls, audio_file, tmp_path):
        with patch(f'{_BATCH}.run_pipeline'):
            result = CliRunner().invoke(
                cli,
                ['run', str(audio_file), '-o', str(tmp_path), '--language', 'en', '-t', 'summary_en'],
            )

        assert result.exit_code == 0, result.output
        config, template = container_cls.call_args.args
        assert config.transcription.language == 'en'
        assert template.metadata.key == 'summary_en'

    def test_config_file(self, container_cls, audio_file, sample_config_yaml, tmp_path):
        with patch(f'{_BATCH}.run_pipeline'):
            result = CliRunner().invoke(cli, ['run', str(audio_file), '-c', str(sample_config_yaml), '-o', str(tmp_path)])

        assert result.exit_code == 0, result.output
        config, template = container_cls.call_args.args
        assert config.transcription.model == 'small-q8_0'
        assert config.summarization.n_batch == 256
        assert container_cls.call_args.kwargs['infra'].llama.n_threads == 2

    def test_pipeline_error_exits_1(self, container_cls, audio_file, tmp_path):
        with patch(f'{_BATCH}.run_pipeline', side_effect=EmptyTranscriptionResultError('No speech recognized')):
            result = CliRunner().invoke(cli, ['run', str(audio_file), '-o', str(tmp_path)])

        assert result.exit_code == 1
        assert 'Error: No speech recognized' in result.output
        container_cls.return_value.close.assert_called_once()

    def test_unknown_template_exits_1(self, container_cls, audio_file, tmp_path):
        result = CliRunner().invoke(cli, ['run', str(audio_file), '-o', str(tmp_path), '-t', 'no_such_template'])
        assert result.exit_code == 1
        assert 'Template not found' in result.output
        container_cls.assert_not_called()

    def test_invalid_config_exits_1(self, container_cls, audio_file, tmp_path):
        bad = tmp_path / 'bad.yaml'
        bad.write_text('summarization:\n  n_batch: 4096\n', encoding='utf-8')
        result = CliRunner().invoke(cli, ['run', str(audio_file), '-c', str(bad), '-o', str(tmp_path)])
        assert result.exit_code == 1
        assert 'n_batch' in result.output

    def test_missing_audio_is_usage_error(self, tmp_path):
        result = CliRunner().invoke(cli, ['run', str(tmp_path / 'nope.wav')])
        assert result.exit_code == 2


class TestTranscribe:
    def test_transcribe_only(self, container_cls, audio_file, tmp_path):
        with patch(f'{_BATCH}.run_transcribe') as mock_run:
            result = CliRunner().invoke(cli, ['transcribe', str(audio_file), '-o', str(tmp_path), '--language', 'ru'])

        assert result.exit_code == 0, result.output
        assert mock_run.call_args.args[1] == audio_file
        assert mock_run.call_args.args[3] == 'ru'

    def test_template_is_resolved_like_run(self, container_cls, audio_file, tmp_path):
        result = CliRunner().invoke(
            cli, ['transcribe', str(audio_file), '-o', str(tmp_path), '-t', 'no_such_template']
        )
        assert result.exit_code == 1
        assert 'Template not found' in result.output
        container_cls.assert_not_called()


class TestSummarize:
    def test_reads_stdin(self, container_cls, tmp_path):
        with patch(f'{_BATCH}.run_summarize') as mock_run:
            result = CliRunner().invoke(cli, ['summarize', '-', '-o', str(tmp_path)], input='Some transcript.')

        assert result.exit_code == 0, result.output
        assert mock_run.call_args.args[1] == 'Some transcript.'

    def test_reads_file(self, container_cls, tmp_path):
        text_file = tmp_path / 'transcript.txt'
        text_file.write_text('Привет мир', encoding='utf-8')
        with patch(f'{_BATCH}.run_summarize') as mock_run:
            result = CliRunner().invoke(cli, ['summarize', str(text_file), '-o', str(tmp_path)])

        assert result.exit_code == 0, result.output
        assert mock_run.call_args.args[1] == 'Привет мир'


class TestRecord:
    def test_records_for_duration(self, tmp_path):
        out = tmp_path / 'memo.wav'
        recorder = MagicMock()
        recorder.record.return_value = NormalizedAudio(path=out, frame_count=16000 * 65, temporary=False)
        with patch(_RECORDER, return_value=recorder):
            result = CliRunner().invoke(cli, ['record', str(out), '--duration', '65'])

        assert result.exit_code == 0, result.output
        assert recorder.record.call_args.kwargs['duration'] == 65.0
        assert 'Recorded 00:01:05' in result.output

    def test_microphone_denied_exits_1(self, tmp_path):
        recorder = MagicMock()
        recorder.record.side_effect = MicrophonePermissionDeniedError('No usable input device')
        with patch(_RECORDER, return_value=recorder):
            result = CliRunner().invoke(cli, ['record', str(tmp_path / 'memo.wav'), '--duration', '1'])

        assert result.exit_code == 1
        assert 'No usable input device' in result.output

    def test_zero_duration_rejected(self, tmp_path):
        result = CliRunner().invoke(cli, ['record', str(tmp_path / 'memo.wav'), '--duration', '0'])
        assert result.exit_code == 2
