from __future__ import annotations

from typing import Callable, Protocol

from returns.result import Result

from resto_orders.core.domain.model.errors import OrderError

ORDERS_CHANGED = "orders_changed"

# callbacks carry no payload: receiving one means "re-fetch"
ChangeCallback = Callable[[], None]
Unsubscribe = Callable[[], None]


class ChangeFeed(Protocol):
    def subscribe(self, topic: str, callback: ChangeCallback) -> Unsubscribe: ...

    def publish(self, topic: str) -> Result[None, OrderError]: ...
