"""CLI entry point for pocket-scribe."""

from __future__ import annotations

import re
import sys
from datetime import datetime
from pathlib import Path

import click

from pocket_scribe import __version__
from pocket_scribe.l1_entities.errors import PipelineError


def _make_session_dir(base_dir: Path, label: str | None) -> Path:
    """Create a timestamped session subdirectory under base_dir."""
    stamp = datetime.now().strftime('%Y-%m-%d_%H%M%S')
    if label:
        safe_label = re.sub(r'[^\w\-]', '_', label)
        name = f'{stamp}_{safe_label}'
    else:
        name = stamp
    session_dir = base_dir / name
    session_dir.mkdir(parents=True, exist_ok=True)
    return session_dir


def _fail(exc: Exception) -> None:
    click.echo(f'Error: {exc}', err=True)
    sys.exit(1)


def _build(config_path, output_dir, label, language, template_ref):
    """Load config and template, create the session dir, wire the container."""
    from pocket_scribe.l3_interface_adapters.gateways.file_persistence import (  # noqa: PLC0415 -- deferred: not needed for --help
        FilePersistenceGateway,
    )
    from pocket_scribe.l4_frameworks_and_drivers.container import (  # noqa: PLC0415 -- deferred: native stack not loaded on --help
        DependencyContainer,
    )
    from pocket_scribe.l4_frameworks_and_drivers.infra_config import (  # noqa: PLC0415 -- deferred: not needed for --help
        load_settings,
    )
    from pocket_scribe.l4_frameworks_and_drivers.logging_setup import (  # noqa: PLC0415 -- deferred: not needed for --help
        setup_file_logging,
    )

    try:
        overrides: dict = {}
        if output_dir:
            overrides['output'] = {'directory': output_dir}
        if language:
            overrides['transcription'] = {'language': language}
        if template_ref:
            overrides['template'] = template_ref
        config, infra = load_settings(
            DependencyContainer.config_loader(), config_path, overrides=overrides if overrides else None
        )
        template = DependencyContainer.template_loader().load(config.template)
    except (FileNotFoundError, ValueError) as e:
        _fail(e)

    out_dir = _make_session_dir(Path(config.output.directory), label)
    setup_file_logging(out_dir)
    container = DependencyContainer(config, template, infra=infra)
    return container, FilePersistenceGateway(out_dir)


_common_options = [
    click.option(
        '-c',
        '--config',
        'config_path',
        default=None,
        type=click.Path(exists=True, dir_okay=False),
        help='Path to YAML config file.',
    ),
    click.option(
        '-o',
        '--output-dir',
        default=None,
        type=click.Path(file_okay=False),
        help='Base output directory (session subfolder created automatically).',
    ),
    click.option(
        '-l',
        '--label',
        default=None,
        help="Session label appended to the timestamp folder (e.g. 'standup').",
    ),
    click.option('--language', default=None, help='Speech language code (e.g. ru, en).'),
    click.option(
        '-t',
        '--template',
        'template_ref',
        default=None,
        help='Summary template: built-in key, user template, display name, or YAML path.',
    ),
]


def common_options(func):
    for option in reversed(_common_options):
        func = option(func)
    return func


@click.group()
@click.version_option(version=__version__)
def cli():
    """pocket-scribe -- offline transcription and summarization of voice recordings."""


@cli.command()
@click.argument('audio', type=click.Path(exists=True, dir_okay=False))
@common_options
def run(audio, config_path, output_dir, label, language, template_ref):
    """Transcribe AUDIO and summarize the transcript."""
    from pocket_scribe.l4_frameworks_and_drivers.batch_runner import run_pipeline  # noqa: PLC0415

    container, persistence = _build(config_path, output_dir, label, language, template_ref)
    try:
        run_pipeline(container.orchestrator, Path(audio), persistence, language)
    except (PipelineError, FileNotFoundError) as e:
        _fail(e)
    finally:
        container.close()


@cli.command()
@click.argument('audio', type=click.Path(exists=True, dir_okay=False))
@common_options
def transcribe(audio, config_path, output_dir, label, language, template_ref):
    """Transcribe AUDIO only."""
    from pocket_scribe.l4_frameworks_and_drivers.batch_runner import run_transcribe  # noqa: PLC0415

    container, persistence = _build(config_path, output_dir, label, language, template_ref)
    try:
        run_transcribe(container.orchestrator, Path(audio), persistence, language)
    except (PipelineError, FileNotFoundError) as e:
        _fail(e)
    finally:
        container.close()


@cli.command()
@click.argument('textfile', type=click.File('r', encoding='utf-8'))
@common_options
def summarize(textfile, config_path, output_dir, label, language, template_ref):
    """Summarize TEXTFILE ('-' reads stdin)."""
    from pocket_scribe.l4_frameworks_and_drivers.batch_runner import run_summarize  # noqa: PLC0415

    text = textfile.read()
    container, persistence = _build(config_path, output_dir, label, language, template_ref)
    try:
        run_summarize(container.orchestrator, text, persistence)
    except PipelineError as e:
        _fail(e)
    finally:
        container.close()


@cli.command()
@click.argument('output', type=click.Path(dir_okay=False))
@click.option('--duration', type=click.FloatRange(min=0, min_open=True), default=None, help='Stop after N seconds.')
def record(output, duration):
    """Record the microphone to OUTPUT as mono 16 kHz 16-bit WAV (Ctrl-C stops)."""
    from pocket_scribe.l3_interface_adapters.gateways.sounddevice_recorder import (  # noqa: PLC0415 -- deferred: PortAudio not loaded on --help
        SounddeviceRecorder,
    )
    from pocket_scribe.l3_interface_adapters.gateways.wav_pcm_writer import WavPcmWriter  # noqa: PLC0415
    from pocket_scribe.l4_frameworks_and_drivers.batch_runner import describe_recording  # noqa: PLC0415

    recorder = SounddeviceRecorder(WavPcmWriter())
    if duration is None:
        click.echo('Recording... press Ctrl-C to stop.', err=True)
    try:
        audio = recorder.record(Path(output), duration=duration)
    except PipelineError as e:
        _fail(e)
    click.echo(describe_recording(audio.path, audio.frame_count, audio.sample_rate), err=True)
