"""Publish/subscribe channel for unified progress events."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from pocket_scribe.l1_entities.progress import ProgressEvent

log = logging.getLogger('scribe.pipeline')

Subscriber = Callable[[ProgressEvent], None]


@dataclass(frozen=True, eq=False)
class _Subscription:
    callback: Subscriber
    loop: asyncio.AbstractEventLoop | None


class ProgressBus:
    """Fan-out of ``ProgressEvent`` to any number of subscribers.

    No buffering and no backpressure: an event published while nobody is
    subscribed is dropped. A subscriber registered with ``loop`` receives its
    events through ``loop.call_soon_threadsafe`` (e.g. a UI loop); otherwise it
    is called synchronously on the publisher's context. A subscriber whose loop
    has been closed is logged and dropped.
    """

    def __init__(self) -> None:
        self._subscriptions: list[_Subscription] = []
        self._guard = threading.Lock()

    def subscribe(
        self,
        callback: Subscriber,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> Callable[[], None]:
        """Register *callback*; returns a function that unsubscribes it."""
        sub = _Subscription(callback, loop)
        with self._guard:
            self._subscriptions.append(sub)

        def _unsubscribe() -> None:
            self._discard(sub)

        return _unsubscribe

    @property
    def subscriber_count(self) -> int:
        with self._guard:
            return len(self._subscriptions)

    def publish(self, event: ProgressEvent) -> None:
        with self._guard:
            subscriptions = list(self._subscriptions)
        for sub in subscriptions:
            try:
                if sub.loop is not None:
                    sub.loop.call_soon_threadsafe(sub.callback, event)
                else:
                    sub.callback(event)
            except Exception:
                log.error('Progress subscriber %r failed', sub.callback, exc_info=True)
                if sub.loop is not None and sub.loop.is_closed():
                    self._discard(sub)

    def _discard(self, sub: _Subscription) -> None:
        with self._guard:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)
