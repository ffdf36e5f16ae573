from __future__ import annotations

from typing import Protocol

from returns.result import Result

from resto_orders.core.domain.model.errors import OrderError


class TableGateway(Protocol):
    """Receives intents only; table state is never read back by the core."""

    def occupy(self, table_id: str, order_id: str) -> Result[None, OrderError]: ...

    def free(self, table_id: str) -> Result[None, OrderError]: ...
