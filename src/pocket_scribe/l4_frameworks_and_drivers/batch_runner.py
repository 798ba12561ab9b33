"""Batch runner — headless transcribe / summarize / record with progress on stderr."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

from pocket_scribe.l1_entities.progress import ProgressEvent, Stage
from pocket_scribe.l1_entities.transcript import format_wall_time
from pocket_scribe.l2_use_cases.pipeline_orchestrator import PipelineOrchestrator
from pocket_scribe.l2_use_cases.ports.persistence import PersistenceGateway

_PERCENT_STEP = 10  # print at most one line per 10% within a stage


def _err(msg: str) -> None:
    print(msg, file=sys.stderr, flush=True)


class ProgressPrinter:
    """Subscriber that renders ``ProgressEvent``s as short stderr lines."""

    def __init__(self) -> None:
        self._last: tuple[Stage, int] | None = None

    def __call__(self, event: ProgressEvent) -> None:
        percent = int(event.fraction * 100)
        bucket = percent // _PERCENT_STEP
        key = (event.stage, bucket)
        if key == self._last and not event.stage.is_terminal:
            return
        self._last = key
        if event.stage is Stage.ERROR:
            _err(f'[{event.stage.value}] {event.message}')
        elif event.stage is not Stage.IDLE:
            suffix = f' {event.message}' if event.message else ''
            _err(f'[{event.stage.value}] {percent:3d}%{suffix}')


def run_pipeline(
    orchestrator: PipelineOrchestrator,
    audio_path: Path,
    persistence: PersistenceGateway,
    language: str | None = None,
) -> str:
    """Transcribe and summarize *audio_path*; save both; print the summary. Blocks until done."""
    unsubscribe = orchestrator.bus.subscribe(ProgressPrinter())
    try:
        result = asyncio.run(orchestrator.process(audio_path, language))
    finally:
        unsubscribe()

    transcript_path = persistence.save_transcript(result.transcript)
    summary_path = persistence.save_summary(result.summary)
    _err(f'\nSaved:\n  Transcript: {transcript_path}\n  Summary:    {summary_path}\n')
    print(result.summary)
    return result.summary


def run_transcribe(
    orchestrator: PipelineOrchestrator,
    audio_path: Path,
    persistence: PersistenceGateway,
    language: str | None = None,
) -> str:
    """Transcription only; the transcript goes to stdout and ``transcript.txt``."""
    unsubscribe = orchestrator.bus.subscribe(ProgressPrinter())
    try:
        transcript = asyncio.run(orchestrator.transcribe(audio_path, language))
    finally:
        unsubscribe()

    transcript_path = persistence.save_transcript(transcript)
    _err(f'\nSaved:\n  Transcript: {transcript_path}\n')
    print(transcript)
    return transcript


def run_summarize(
    orchestrator: PipelineOrchestrator,
    text: str,
    persistence: PersistenceGateway,
) -> str:
    """Summarization only, loading whichever summarizer the config selects."""

    async def _run() -> str:
        await orchestrator.load_summarizer()
        return await orchestrator.summarize(text)

    unsubscribe = orchestrator.bus.subscribe(ProgressPrinter())
    try:
        summary = asyncio.run(_run())
    finally:
        unsubscribe()

    summary_path = persistence.save_summary(summary)
    _err(f'\nSaved:\n  Summary: {summary_path}\n')
    print(summary)
    return summary


def describe_recording(path: Path, frame_count: int, sample_rate: int) -> str:
    return f'Recorded {format_wall_time(frame_count / sample_rate)} to {path}'
