from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

from returns.result import Failure, Result, Success

from resto_orders.core.domain.model.errors import NotFoundError, OrderError
from resto_orders.core.ports.outbound.tables import TableGateway


@dataclass
class InMemoryTableRegistry(TableGateway):
    """table_id -> open order id (None when free)."""

    tables: Dict[str, str | None] = field(default_factory=dict)

    def occupy(self, table_id: str, order_id: str) -> Result[None, OrderError]:
        if table_id not in self.tables:
            return Failure(NotFoundError(message="table not found", ref=table_id))
        self.tables[table_id] = order_id
        return Success(None)

    def free(self, table_id: str) -> Result[None, OrderError]:
        if table_id not in self.tables:
            return Failure(NotFoundError(message="table not found", ref=table_id))
        self.tables[table_id] = None
        return Success(None)

    def order_for(self, table_id: str) -> str | None:
        return self.tables.get(table_id)
