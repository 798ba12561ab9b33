"""L1 entity: model engine lifecycle state."""

from __future__ import annotations

import enum


class EngineState(enum.Enum):
    UNLOADED = 'unloaded'
    LOADING = 'loading'
    READY = 'ready'
