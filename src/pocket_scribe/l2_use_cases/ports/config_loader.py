"""Port: configuration loader."""

from __future__ import annotations

from typing import Protocol


class ConfigLoader(Protocol):
    """Abstract configuration source."""

    def load(self, config_path: str | None = None, overrides: dict | None = None) -> dict:
        """Return user settings with *overrides* merged in; unvalidated, provider sections included."""
        ...
