"""Streaming mono down-mix and band-limited resampling (libsoxr)."""

from __future__ import annotations

import numpy as np
import soxr


def downmix(block: np.ndarray) -> np.ndarray:
    """Average a (frames, channels) block into a 1-D mono float32 array."""
    if block.ndim == 1:
        return block.astype(np.float32, copy=False)
    if block.shape[1] == 1:
        return block[:, 0].astype(np.float32, copy=False)
    return block.mean(axis=1, dtype=np.float32)


def float_to_pcm16(samples: np.ndarray) -> np.ndarray:
    clipped = np.clip(samples, -1.0, 1.0)
    return np.round(clipped * 32767.0).astype(np.int16)


class StreamingResampler:
    """Resamples a mono stream chunk by chunk through a ``soxr.ResampleStream``.

    The soxr filter low-passes below the target Nyquist before decimating, so
    content above ``dst_rate / 2`` is removed instead of folding back into the
    speech band. The filter holds a few milliseconds of state between chunks;
    call :meth:`flush` once at end of stream to drain it. Total output is within
    one frame of ``F * dst / src`` for ``F`` input frames, independent of chunking.
    """

    def __init__(self, src_rate: int, dst_rate: int, quality: str = 'HQ') -> None:
        if src_rate <= 0 or dst_rate <= 0:
            raise ValueError(f'Sample rates must be positive, got {src_rate} -> {dst_rate}')
        self._src_rate = src_rate
        self._dst_rate = dst_rate
        self._stream: soxr.ResampleStream | None = None
        if not self.passthrough:
            self._stream = soxr.ResampleStream(src_rate, dst_rate, 1, dtype='float32', quality=quality)

    @property
    def passthrough(self) -> bool:
        return self._src_rate == self._dst_rate

    def expected_output_frames(self, input_frames: int) -> int:
        if input_frames <= 0:
            return 0
        return round(input_frames * self._dst_rate / self._src_rate)

    def process(self, chunk: np.ndarray) -> np.ndarray:
        """Feed mono float32 *chunk*; return the output samples it completes."""
        if self._stream is None:
            return chunk.astype(np.float32, copy=False)
        if chunk.size == 0:
            return np.array([], dtype=np.float32)
        return self._stream.resample_chunk(np.ascontiguousarray(chunk, dtype=np.float32))

    def flush(self) -> np.ndarray:
        """Drain the filter tail at end of stream."""
        if self._stream is None:
            return np.array([], dtype=np.float32)
        return self._stream.resample_chunk(np.array([], dtype=np.float32), last=True)
