"""Gateway: file-based persistence — implements PersistenceGateway port."""

from __future__ import annotations

import logging
from pathlib import Path

log = logging.getLogger('scribe.persist')


class FilePersistenceGateway:
    """Persists transcript and summary into one session directory."""

    def __init__(self, output_dir: Path) -> None:
        self._output_dir = output_dir
        self._output_dir.mkdir(parents=True, exist_ok=True)

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def save_transcript(self, text: str) -> Path:
        path = self._output_dir / 'transcript.txt'
        path.write_text(text.rstrip('\n') + '\n', encoding='utf-8')
        log.debug('Wrote transcript (%d chars) to %s', len(text), path)
        return path

    def save_summary(self, markdown: str) -> Path:
        content = f'# Summary\n\n{markdown.strip()}\n'
        path = self._output_dir / 'summary.md'
        path.write_text(content, encoding='utf-8')
        log.debug('Wrote summary (%d chars) to %s', len(markdown), path)
        return path
