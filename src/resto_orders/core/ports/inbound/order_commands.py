from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from returns.result import Result

from resto_orders.core.domain.model.errors import OrderError
from resto_orders.core.domain.model.order import ClientInfo, Order, OrderKind
from resto_orders.core.domain.model.promotion import Promotion


@dataclass(frozen=True)
class NewItem:
    product_ref: str
    name: str
    unit_price: int
    quantity: int = 1
    excluded_ingredients: frozenset[str] = frozenset()
    comment: str | None = None
    item_id: str | None = None  # assigned on add when missing


@dataclass(frozen=True)
class ItemPatch:
    quantity: int | None = None
    comment: str | None = None  # "" clears the comment


@dataclass(frozen=True)
class CreateOrderCommand:
    kind: OrderKind
    table_ref: str | None = None
    party_size: int = 1
    client_info: ClientInfo | None = None
    items: Sequence[NewItem] = ()
    shipping_cost: int = 0
    promo_code: str | None = None


@dataclass(frozen=True)
class FinalizeCommand:
    payment_method: str
    receipt_url: str | None = None


class OrderUseCase(Protocol):
    def create_order(self, command: CreateOrderCommand) -> Result[Order, OrderError]: ...

    def get_order(self, order_id: str) -> Result[Order, OrderError]: ...

    def add_items(
        self, order_id: str, items: Sequence[NewItem]
    ) -> Result[Order, OrderError]: ...

    def update_item(
        self, order_id: str, item_id: str, patch: ItemPatch
    ) -> Result[Order, OrderError]: ...

    def remove_item(self, order_id: str, item_id: str) -> Result[Order, OrderError]: ...

    def dispatch(
        self, order_id: str, item_ids: Sequence[str] | None = None
    ) -> Result[Order, OrderError]: ...

    def mark_ready(self, order_id: str) -> Result[Order, OrderError]: ...

    def mark_served(self, order_id: str) -> Result[Order, OrderError]: ...

    def validate(
        self, order_id: str, send_to_kitchen: bool = False
    ) -> Result[Order, OrderError]: ...

    def apply_promotions(
        self, order_id: str, promotions: Sequence[Promotion]
    ) -> Result[Order, OrderError]: ...

    def finalize(
        self, order_id: str, command: FinalizeCommand
    ) -> Result[Order, OrderError]: ...

    def cancel(self, order_id: str) -> Result[None, OrderError]: ...
