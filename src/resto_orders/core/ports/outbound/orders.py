from __future__ import annotations

from typing import Protocol, Sequence

from returns.result import Result

from resto_orders.core.domain.model.errors import OrderError
from resto_orders.core.domain.model.order import Order, OrderItem, OrderKind, OrderStatus


class OrderRepository(Protocol):
    """
    Row store for orders and their items. Each read returns a fresh
    snapshot; writes are last-writer-wins per row.
    """

    def get_order(self, order_id: str) -> Result[Order | None, OrderError]: ...

    def upsert_order(self, order: Order) -> Result[Order, OrderError]: ...

    def upsert_items(
        self, order_id: str, items: Sequence[OrderItem]
    ) -> Result[None, OrderError]: ...

    def delete_items(self, item_ids: Sequence[str]) -> Result[None, OrderError]: ...

    def delete_order(self, order_id: str) -> Result[None, OrderError]: ...

    def list_orders(
        self,
        kind: OrderKind | None = None,
        order_status: OrderStatus | None = None,
    ) -> Result[Sequence[Order], OrderError]: ...
