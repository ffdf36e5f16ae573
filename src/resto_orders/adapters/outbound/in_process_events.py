from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from returns.result import Failure, Result, Success

from resto_orders.core.domain.model.errors import OrderError, PublishError
from resto_orders.core.ports.outbound.events import (
    ChangeCallback,
    ChangeFeed,
    Unsubscribe,
)

logger = logging.getLogger(__name__)


@dataclass
class InProcessChangeFeed(ChangeFeed):
    """Synchronous fan-out; callbacks run inside publish()."""

    _listeners: Dict[str, List[ChangeCallback]] = field(default_factory=dict)
    fail: bool = False

    def subscribe(self, topic: str, callback: ChangeCallback) -> Unsubscribe:
        self._listeners.setdefault(topic, []).append(callback)

        def unsubscribe() -> None:
            listeners = self._listeners.get(topic, [])
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    def publish(self, topic: str) -> Result[None, OrderError]:
        if self.fail:
            return Failure(PublishError(message="change feed is down"))
        listeners = list(self._listeners.get(topic, []))
        logger.debug("publish %s to %d listener(s)", topic, len(listeners))
        for callback in listeners:
            try:
                callback()
            except Exception:  # noqa: BLE001
                # one broken subscriber must not block the others
                logger.exception("change listener failed on %s", topic)
        return Success(None)

    def listener_count(self, topic: str) -> int:
        return len(self._listeners.get(topic, []))


class ChangeSubscription:
    """Explicitly owned subscription; close() detaches it."""

    def __init__(self, feed: ChangeFeed, topic: str, callback: ChangeCallback) -> None:
        self.topic = topic
        self._unsubscribe: Unsubscribe | None = feed.subscribe(topic, callback)

    @property
    def active(self) -> bool:
        return self._unsubscribe is not None

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def __enter__(self) -> "ChangeSubscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


@dataclass
class ChangeCounter:
    """Monotonic version number that polling clients compare to re-fetch."""

    version: int = 0

    def bump(self) -> None:
        self.version += 1
