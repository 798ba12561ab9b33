"""Gateway: ffmpeg audio reader — decodes any container/codec via an ffmpeg subprocess."""

from __future__ import annotations

import json
import logging
import shutil
import subprocess  # noqa: S404 -- intentional: fixed arg list, not shell=True
from pathlib import Path

import numpy as np

from pocket_scribe.l1_entities.audio import AudioFormat
from pocket_scribe.l1_entities.audio_constants import CHANNELS, SAMPLE_RATE
from pocket_scribe.l1_entities.errors import ConversionFailedError, NoAudioTrackError, UnsupportedFormatError

log = logging.getLogger('scribe.audio')

_PROBE_TIMEOUT = 30  # seconds
_BYTES_PER_SAMPLE = 4  # float32


def _require(tool: str) -> str:
    path = shutil.which(tool)
    if path is None:
        raise UnsupportedFormatError(
            f'{tool} is required to decode this file but was not found on PATH.\n'
            '  macOS:  brew install ffmpeg\n  Debian: apt install ffmpeg'
        )
    return path


class FfmpegStream:
    """Reads interleaved float32 PCM from ffmpeg's stdout."""

    def __init__(self, proc: subprocess.Popen, sample_rate: int, channels: int, frames: int, name: str) -> None:
        self._proc = proc
        self._name = name
        self.sample_rate = sample_rate
        self.channels = channels
        self.frames = frames

    def __enter__(self) -> FfmpegStream:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def read(self, frames: int) -> np.ndarray:
        stdout = self._proc.stdout
        if stdout is None:  # pragma: no cover
            return np.zeros((0, self.channels), dtype=np.float32)
        frame_bytes = self.channels * _BYTES_PER_SAMPLE
        raw = stdout.read(frames * frame_bytes)
        usable = len(raw) - len(raw) % frame_bytes
        if usable == 0:
            self._check_exit()
            return np.zeros((0, self.channels), dtype=np.float32)
        return np.frombuffer(raw[:usable], dtype=np.float32).reshape(-1, self.channels).copy()

    def close(self) -> None:
        if self._proc.poll() is None:
            self._proc.terminate()
            try:
                self._proc.wait(timeout=3)
            except subprocess.TimeoutExpired:
                self._proc.kill()
                self._proc.wait()
        for pipe in (self._proc.stdout, self._proc.stderr):
            if pipe is not None:
                pipe.close()

    def _check_exit(self) -> None:
        rc = self._proc.wait()
        if rc == 0:
            return
        stderr = b''
        if self._proc.stderr is not None:
            stderr = self._proc.stderr.read()
        detail = stderr.decode('utf-8', errors='replace').strip()
        raise ConversionFailedError(f'ffmpeg exited with code {rc} for: {self._name}\n{detail}')


class FfmpegAudioReader:
    """Inspects with ffprobe, then streams mono 16 kHz float32 from ffmpeg.

    ffmpeg down-mixes and resamples (band-limited swr) so the stream arrives
    in the canonical layout; only the sample width is left to the normalizer.
    """

    def inspect(self, path: Path) -> AudioFormat:
        if not path.exists():
            raise FileNotFoundError(f'Audio file not found: {path}')
        cmd = [
            _require('ffprobe'),
            '-v',
            'error',
            '-select_streams',
            'a:0',
            '-show_entries',
            'stream=codec_name,sample_rate,channels,duration:format=format_name,duration',
            '-of',
            'json',
            str(path),
        ]
        try:
            result = subprocess.run(cmd, capture_output=True, timeout=_PROBE_TIMEOUT)  # noqa: S603
        except subprocess.TimeoutExpired as exc:
            raise UnsupportedFormatError(f'ffprobe timed out after {_PROBE_TIMEOUT}s probing: {path}') from exc
        except OSError as exc:
            raise UnsupportedFormatError(f'Failed to launch ffprobe: {exc}') from exc

        if result.returncode != 0:
            stderr = result.stderr.decode('utf-8', errors='replace').strip()
            raise UnsupportedFormatError(f'ffprobe could not read: {path}\n{stderr}')

        info = json.loads(result.stdout or b'{}')
        streams = info.get('streams') or []
        if not streams:
            raise NoAudioTrackError(f'No audio track in: {path}')
        stream = streams[0]
        fmt = info.get('format') or {}

        sample_rate = int(stream.get('sample_rate') or 0)
        channels = int(stream.get('channels') or 0)
        if sample_rate <= 0 or channels <= 0:
            raise NoAudioTrackError(f'No decodable audio track in: {path}')
        duration = float(stream.get('duration') or fmt.get('duration') or 0.0)
        return AudioFormat(
            container=str(fmt.get('format_name', 'unknown')).split(',')[0],
            subtype=str(stream.get('codec_name', 'unknown')),
            sample_rate=sample_rate,
            channels=channels,
            frames=int(round(duration * sample_rate)),
        )

    def open(self, path: Path) -> FfmpegStream:
        fmt = self.inspect(path)
        cmd = [
            _require('ffmpeg'),
            '-nostdin',
            '-v',
            'error',
            '-i',
            str(path),
            '-map',
            '0:a:0',
            '-ac',
            str(CHANNELS),
            '-ar',
            str(SAMPLE_RATE),
            '-f',
            'f32le',
            'pipe:1',
        ]
        try:
            proc = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE)  # noqa: S603
        except OSError as exc:
            raise ConversionFailedError(f'Failed to launch ffmpeg: {exc}') from exc
        log.debug('ffmpeg decoding %s (pid=%d, %s/%s)', path.name, proc.pid, fmt.container, fmt.subtype)
        frames = round(fmt.frames * SAMPLE_RATE / fmt.sample_rate)
        return FfmpegStream(proc, SAMPLE_RATE, CHANNELS, frames, str(path))
