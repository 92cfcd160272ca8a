"""In-process notification of index updates."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mixnote.indexer.models import Index

logger = logging.getLogger(__name__)

IndexCallback = Callable[["Index"], None]


class IndexEventBus:
    """Publish/subscribe channel for the "index updated" event.

    Subscribers are called synchronously, in registration order, with the
    freshly built index. Events are not stored: a subscriber registered after
    a publish does not receive it.
    """

    def __init__(self) -> None:
        self._subscribers: list[IndexCallback] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: IndexCallback) -> Callable[[], None]:
        """Register a callback and return a function that unregisters it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, index: Index) -> None:
        """Deliver an index to every subscriber.

        A failing subscriber is logged and does not stop delivery to the rest.
        """
        with self._lock:
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(index)
            except Exception:
                logger.exception("Index subscriber %r failed", callback)
