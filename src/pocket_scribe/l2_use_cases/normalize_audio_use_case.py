"""Use case: convert any decodable audio file into canonical mono 16 kHz 16-bit PCM."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from pocket_scribe.l1_entities.audio import NormalizedAudio
from pocket_scribe.l1_entities.audio_constants import CHANNELS, FRAMES_PER_CHUNK, SAMPLE_RATE
from pocket_scribe.l1_entities.engine_progress import EngineProgress, EngineStep, ProgressCallback
from pocket_scribe.l1_entities.errors import ConversionFailedError, NoAudioTrackError, PipelineError
from pocket_scribe.l2_use_cases.ports.audio_io import AudioReader, AudioStream, PcmSink, PcmWriter
from pocket_scribe.l2_use_cases.utils.resampler import StreamingResampler, downmix, float_to_pcm16

log = logging.getLogger('scribe.audio')


class NormalizeAudioUseCase:
    """Pull-loop converter: read one chunk, down-mix, resample, append, repeat.

    The sink never receives more than one converted chunk at a time; the next
    read is issued only after the previous write has returned. Any failure
    aborts the sink, which deletes the partial output.
    """

    def __init__(
        self,
        reader: AudioReader,
        writer: PcmWriter,
        frames_per_chunk: int = FRAMES_PER_CHUNK,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._frames_per_chunk = frames_per_chunk

    async def execute(
        self,
        source: Path,
        output: Path,
        progress: ProgressCallback | None = None,
    ) -> NormalizedAudio:
        _emit(progress, 0.0, 'Preparing audio')
        stream = self._reader.open(source)
        with stream:
            if stream.channels < 1:
                raise NoAudioTrackError(f'No audio track in: {source}')
            log.info(
                'Normalizing %s (%d Hz, %d ch, ~%d frames)',
                source.name,
                stream.sample_rate,
                stream.channels,
                stream.frames,
            )
            resampler = StreamingResampler(stream.sample_rate, SAMPLE_RATE)
            estimated = resampler.expected_output_frames(stream.frames)
            sink = self._writer.open(output, SAMPLE_RATE, CHANNELS)
            try:
                await self._pump(stream, sink, resampler, estimated, progress)
                sink.finalize()
            except PipelineError:
                sink.abort()
                raise
            except Exception as exc:
                sink.abort()
                raise ConversionFailedError(f'Audio conversion failed for {source}: {exc}') from exc

        if sink.frames_written == 0:
            output.unlink(missing_ok=True)
            raise NoAudioTrackError(f'Audio file contains no samples: {source}')

        log.info('Normalized audio written to %s (%d frames)', output, sink.frames_written)
        _emit(progress, 1.0, 'Audio ready')
        return NormalizedAudio(path=output, frame_count=sink.frames_written, temporary=True)

    async def _pump(
        self,
        stream: AudioStream,
        sink: PcmSink,
        resampler: StreamingResampler,
        estimated: int,
        progress: ProgressCallback | None,
    ) -> None:
        while True:
            block = await asyncio.to_thread(stream.read, self._frames_per_chunk)
            if len(block) == 0:
                tail = resampler.flush()
                if tail.size:
                    sink.write(float_to_pcm16(tail))
                return
            samples = resampler.process(downmix(block))
            if samples.size:
                sink.write(float_to_pcm16(samples))
            if estimated > 0:
                frac = min(1.0, sink.frames_written / estimated)
                _emit(progress, frac, f'Converting {int(frac * 100)}%')


def _emit(progress: ProgressCallback | None, fraction: float, message: str) -> None:
    if progress is not None:
        progress(EngineProgress(EngineStep.PREPROCESSING, fraction, message))
