"""Canonical PCM format expected by the speech model."""

SAMPLE_RATE = 16000
CHANNELS = 1
SAMPLE_WIDTH = 2  # bytes, int16
FRAMES_PER_CHUNK = 8192
