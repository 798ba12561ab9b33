"""Gateway: microphone capture to a canonical WAV file via sounddevice."""

from __future__ import annotations

import logging
import queue
import threading
from pathlib import Path

import numpy as np
import sounddevice as sd

from pocket_scribe.l1_entities.audio import NormalizedAudio
from pocket_scribe.l1_entities.audio_constants import CHANNELS, SAMPLE_RATE
from pocket_scribe.l1_entities.errors import MicrophonePermissionDeniedError
from pocket_scribe.l2_use_cases.ports.audio_io import PcmWriter

log = logging.getLogger('scribe.record')

_BLOCK_FRAMES = SAMPLE_RATE // 10  # 100ms blocks


class SounddeviceRecorder:
    """Records mono 16 kHz int16 audio from the default input device."""

    def __init__(self, writer: PcmWriter) -> None:
        self._writer = writer

    def check_input_device(self) -> str:
        """Return the default input device name or raise MicrophonePermissionDeniedError."""
        try:
            info = sd.query_devices(kind='input')
        except (sd.PortAudioError, ValueError) as exc:
            raise MicrophonePermissionDeniedError(f'No usable input device: {exc}') from exc
        if not info or int(info.get('max_input_channels', 0)) < 1:
            raise MicrophonePermissionDeniedError('No usable input device: default device has no input channels')
        return str(info.get('name', 'default'))

    def record(
        self,
        output: Path,
        duration: float | None = None,
        stop: threading.Event | None = None,
    ) -> NormalizedAudio:
        """Capture until *duration* seconds elapse, *stop* is set, or Ctrl-C."""
        device = self.check_input_device()
        stop = stop or threading.Event()
        limit = int(duration * SAMPLE_RATE) if duration else None
        blocks: queue.Queue[np.ndarray] = queue.Queue()

        def _callback(indata, frames, time_info, status):
            if status:
                log.debug('Input stream status: %s', status)
            blocks.put(indata.copy())

        sink = self._writer.open(output, SAMPLE_RATE, CHANNELS)
        log.info('Recording from %s into %s', device, output)
        try:
            stream = sd.InputStream(
                samplerate=SAMPLE_RATE,
                channels=CHANNELS,
                dtype='int16',
                blocksize=_BLOCK_FRAMES,
                callback=_callback,
            )
        except sd.PortAudioError as exc:
            sink.abort()
            raise MicrophonePermissionDeniedError(f'Microphone unavailable: {exc}') from exc

        try:
            with stream:
                while not stop.is_set():
                    try:
                        data = blocks.get(timeout=0.5)
                    except queue.Empty:
                        continue
                    if limit is not None:
                        data = data[: limit - sink.frames_written]
                    sink.write(data.reshape(-1))
                    if limit is not None and sink.frames_written >= limit:
                        break
        except KeyboardInterrupt:
            log.info('Recording interrupted by user')
        except sd.PortAudioError as exc:
            sink.abort()
            raise MicrophonePermissionDeniedError(f'Microphone stream failed: {exc}') from exc
        except Exception:
            sink.abort()
            raise
        sink.finalize()

        log.info('Recorded %d frames to %s', sink.frames_written, output)
        return NormalizedAudio(path=output, frame_count=sink.frames_written, temporary=False)
