from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Sequence

from returns.result import Failure, Result, Success

from resto_orders.adapters.outbound.row_mapping import (
    item_to_row,
    order_from_rows,
    order_to_row,
)
from resto_orders.core.domain.model.errors import OrderError, PersistenceError
from resto_orders.core.domain.model.order import Order, OrderItem, OrderKind, OrderStatus
from resto_orders.core.ports.outbound.orders import OrderRepository


@dataclass
class InMemoryOrderRepository(OrderRepository):
    """Two flat tables, orders and order_items, like the hosted row store."""

    _orders: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    _items: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    fail: bool = False

    def get_order(self, order_id: str) -> Result[Order | None, OrderError]:
        if self.fail:
            return Failure(PersistenceError(message="order store is down"))
        row = self._orders.get(order_id)
        if row is None:
            return Success(None)
        return Success(order_from_rows(row, self._item_rows(order_id)))

    def upsert_order(self, order: Order) -> Result[Order, OrderError]:
        if self.fail:
            return Failure(PersistenceError(message="order store is down"))
        self._orders[order.id] = order_to_row(order)
        return Success(order)

    def upsert_items(
        self, order_id: str, items: Sequence[OrderItem]
    ) -> Result[None, OrderError]:
        if self.fail:
            return Failure(PersistenceError(message="order store is down"))
        for it in items:
            row = item_to_row(order_id, it)
            # keep the original insertion position on update
            row["position"] = self._items.get(it.id, {}).get("position", self._next_position())
            self._items[it.id] = row
        return Success(None)

    def delete_items(self, item_ids: Sequence[str]) -> Result[None, OrderError]:
        if self.fail:
            return Failure(PersistenceError(message="order store is down"))
        for item_id in item_ids:
            self._items.pop(item_id, None)
        return Success(None)

    def delete_order(self, order_id: str) -> Result[None, OrderError]:
        if self.fail:
            return Failure(PersistenceError(message="order store is down"))
        self._orders.pop(order_id, None)
        return Success(None)

    def list_orders(
        self,
        kind: OrderKind | None = None,
        order_status: OrderStatus | None = None,
    ) -> Result[Sequence[Order], OrderError]:
        if self.fail:
            return Failure(PersistenceError(message="order store is down"))
        orders = [order_from_rows(row, self._item_rows(oid)) for oid, row in self._orders.items()]
        if kind is not None:
            orders = [o for o in orders if o.kind is kind]
        if order_status is not None:
            orders = [o for o in orders if o.order_status is order_status]
        return Success(tuple(sorted(orders, key=lambda o: o.created_at)))

    def load_rows(self, order_row: Dict[str, Any], item_rows: Sequence[Dict[str, Any]] = ()) -> None:
        """Seed raw rows as written by other clients, aliases included."""
        self._orders[str(order_row["id"])] = dict(order_row)
        for r in item_rows:
            row = dict(r)
            row.setdefault("order_id", order_row["id"])
            row.setdefault("position", self._next_position())
            self._items[str(row["id"])] = row

    def _next_position(self) -> int:
        return max((r["position"] for r in self._items.values()), default=-1) + 1

    def _item_rows(self, order_id: str) -> list[Dict[str, Any]]:
        rows = [r for r in self._items.values() if str(r.get("order_id")) == order_id]
        return sorted(rows, key=lambda r: r["position"])
