from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Sequence, Tuple

from resto_orders.core.domain.model.order import (
    KitchenStatus,
    Order,
    OrderItem,
    SendState,
)


@dataclass(frozen=True)
class ItemPartition:
    pending: Tuple[OrderItem, ...]
    sent: Tuple[OrderItem, ...]


@dataclass(frozen=True)
class TicketLine:
    product_ref: str
    name: str
    quantity: int
    comment: str | None
    excluded_ingredients: frozenset[str]


@dataclass(frozen=True)
class KitchenTicket:
    ticket_key: str
    order_id: str
    kind: str
    table_ref: str | None
    sent_at: datetime
    items: Tuple[OrderItem, ...]

    @property
    def lines(self) -> Tuple[TicketLine, ...]:
        return ticket_lines(self.items)


def partition(items: Iterable[OrderItem]) -> ItemPartition:
    pending: list[OrderItem] = []
    sent: list[OrderItem] = []
    for it in items:
        (sent if it.send_state is SendState.SENT else pending).append(it)
    return ItemPartition(pending=tuple(pending), sent=tuple(sent))


def pending_items(items: Iterable[OrderItem]) -> Tuple[OrderItem, ...]:
    return partition(items).pending


def find_item(items: Iterable[OrderItem], item_id: str) -> OrderItem | None:
    for it in items:
        if it.id == item_id:
            return it
    return None


def ticket_lines(items: Sequence[OrderItem]) -> Tuple[TicketLine, ...]:
    """Compact kitchen lines, first-seen order.

    Uncommented items with the same product and the same exclusions are
    summed. A commented item is always a line of its own.
    """
    lines: list[TicketLine] = []
    merged: dict[tuple[str, frozenset[str]], int] = {}

    for it in items:
        comment = (it.comment or "").strip() or None
        if comment is not None:
            lines.append(_line(it, comment, it.quantity))
            continue
        key = (it.product_ref, it.excluded_ingredients)
        idx = merged.get(key)
        if idx is None:
            merged[key] = len(lines)
            lines.append(_line(it, None, it.quantity))
        else:
            prev = lines[idx]
            lines[idx] = _line(it, None, prev.quantity + it.quantity)

    return tuple(lines)


def open_batches(order: Order) -> dict[datetime, Tuple[OrderItem, ...]]:
    """Dispatch batches the kitchen still has to prepare, keyed by sent_at.

    While the order is RECEIVED every batch is open. Past that, only batches
    sent after ready_at are (items added once the rest was ready or served).
    """
    if order.is_finalized or order.kitchen_status is KitchenStatus.NOT_SENT:
        return {}
    cutoff = None
    if order.kitchen_status is not KitchenStatus.RECEIVED:
        cutoff = order.ready_at or order.completed_at
        if cutoff is None:
            return {}

    batches: dict[datetime, list[OrderItem]] = {}
    for it in partition(order.items).sent:
        key = it.sent_at or order.sent_to_kitchen_at or order.created_at
        if cutoff is not None and key <= cutoff:
            continue
        batches.setdefault(key, []).append(it)
    return {k: tuple(v) for k, v in batches.items()}


def kitchen_tickets(orders: Iterable[Order]) -> Tuple[KitchenTicket, ...]:
    """One ticket per open dispatch batch, oldest first."""
    tickets: list[KitchenTicket] = []
    for order in orders:
        for sent_at, batch in open_batches(order).items():
            tickets.append(
                KitchenTicket(
                    ticket_key=f"{order.id}-{int(sent_at.timestamp() * 1000)}",
                    order_id=order.id,
                    kind=order.kind.value,
                    table_ref=order.table_ref,
                    sent_at=sent_at,
                    items=batch,
                )
            )

    return tuple(sorted(tickets, key=lambda t: t.sent_at))


def _line(it: OrderItem, comment: str | None, quantity: int) -> TicketLine:
    return TicketLine(
        product_ref=it.product_ref,
        name=it.name,
        quantity=quantity,
        comment=comment,
        excluded_ingredients=it.excluded_ingredients,
    )
