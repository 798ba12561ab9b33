"""Gateway: chained audio reader — tries each decoder in order until one accepts the file."""

from __future__ import annotations

import logging
from pathlib import Path

from pocket_scribe.l1_entities.audio import AudioFormat
from pocket_scribe.l1_entities.errors import UnsupportedFormatError
from pocket_scribe.l2_use_cases.ports.audio_io import AudioReader, AudioStream

log = logging.getLogger('scribe.audio')


class FallbackAudioReader:
    """Delegates to the first reader that does not raise ``UnsupportedFormatError``."""

    def __init__(self, *readers: AudioReader) -> None:
        if not readers:
            raise ValueError('FallbackAudioReader needs at least one reader')
        self._readers = readers

    def inspect(self, path: Path) -> AudioFormat:
        return self._first(path, lambda reader: reader.inspect(path))

    def open(self, path: Path) -> AudioStream:
        return self._first(path, lambda reader: reader.open(path))

    def _first(self, path, call):
        last: UnsupportedFormatError | None = None
        for reader in self._readers:
            try:
                return call(reader)
            except UnsupportedFormatError as exc:
                log.debug('%s rejected %s: %s', type(reader).__name__, path.name, exc)
                last = exc
        raise UnsupportedFormatError(str(last)) from last
