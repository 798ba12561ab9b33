"""pocket-scribe -- on-device transcription and summarization of voice recordings."""

__version__ = '0.1.0'
