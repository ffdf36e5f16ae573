"""Order lifecycle state machine.

Reachable (order_status, kitchen_status) pairs:

    (pending_validation, not_sent)      take-away, awaiting payment proof
    (in_progress, not_sent)             dine-in start / validated take-away
    (in_progress, received)             first dispatch done
    (in_progress, ready)
    (in_progress, served|delivered)
    (finalized, served|delivered)

Every operation takes an order snapshot and returns a new one wrapped in a
Result; nothing here touches persistence or the clock unless ``now`` is left
out. Timestamps are stamped once and never rewound, except that ready_at
moves forward when late batches are cleared. kitchen_status never moves
backwards.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Sequence, Tuple

from returns.result import Failure, Result, Success

from resto_orders.core.domain.model.errors import (
    IllegalTransitionError,
    InvalidInputError,
    ItemLockedError,
    NotFoundError,
    OrderClosedError,
    OrderError,
)
from resto_orders.core.domain.model.money import clamp_non_negative, sum_amounts
from resto_orders.core.domain.model.order import (
    KitchenStatus,
    Order,
    OrderItem,
    OrderKind,
    OrderStatus,
    SendState,
    new_id,
    now_utc,
)
from resto_orders.core.domain.model.promotion import Promotion
from resto_orders.core.domain.service import item_ledger, promotion_ledger
from resto_orders.core.ports.inbound.order_commands import (
    CreateOrderCommand,
    ItemPatch,
    NewItem,
)

# ---- creation --------------------------------------------------------------


def create(
    command: CreateOrderCommand,
    *,
    order_id: str | None = None,
    now: datetime | None = None,
) -> Result[Order, OrderError]:
    at = now or now_utc()
    return _validate_create(command).bind(
        lambda cmd: _build_order(cmd, order_id or new_id(), at)
    )


def _validate_create(cmd: CreateOrderCommand) -> Result[CreateOrderCommand, OrderError]:
    if cmd.party_size < 1:
        return Failure(InvalidInputError("party_size must be > 0"))
    if cmd.shipping_cost < 0:
        return Failure(InvalidInputError("shipping_cost must be >= 0"))

    if cmd.kind is OrderKind.DINE_IN:
        if not (cmd.table_ref or "").strip():
            return Failure(InvalidInputError("table_ref is required for dine_in orders"))
        if cmd.client_info is not None:
            return Failure(InvalidInputError("client_info is not allowed for dine_in orders"))
        return Success(cmd)

    if cmd.table_ref is not None:
        return Failure(InvalidInputError("table_ref is not allowed for takeaway orders"))
    info = cmd.client_info
    if info is None:
        return Failure(InvalidInputError("client_info is required for takeaway orders"))
    if not info.name.strip():
        return Failure(InvalidInputError("client_info.name is required"))
    if not info.phone.strip():
        return Failure(InvalidInputError("client_info.phone is required"))
    return Success(cmd)


def _build_order(
    cmd: CreateOrderCommand, order_id: str, now: datetime
) -> Result[Order, OrderError]:
    if cmd.kind is OrderKind.DINE_IN:
        status = OrderStatus.IN_PROGRESS
    else:
        status = OrderStatus.PENDING_VALIDATION

    order = Order(
        id=order_id,
        kind=cmd.kind,
        order_status=status,
        kitchen_status=KitchenStatus.NOT_SENT,
        created_at=now,
        party_size=cmd.party_size,
        table_ref=cmd.table_ref,
        client_info=cmd.client_info,
        shipping_cost=cmd.shipping_cost,
        promo_code=(cmd.promo_code or "").strip() or None,
    )
    if not cmd.items:
        return Success(order)
    return add_items(order, cmd.items)


# ---- item ledger mutations -------------------------------------------------


def add_items(order: Order, items: Sequence[NewItem]) -> Result[Order, OrderError]:
    if order.is_finalized:
        return Failure(OrderClosedError("cannot add items to a finalized order", order_id=order.id))
    if not items:
        return Failure(InvalidInputError("at least one item is required"))

    created: list[OrderItem] = []
    for i, it in enumerate(items):
        if not it.product_ref.strip():
            return Failure(InvalidInputError(f"items[{i}].product_ref is required"))
        if it.quantity < 1:
            return Failure(InvalidInputError(f"items[{i}].quantity must be > 0"))
        if it.unit_price < 0:
            return Failure(InvalidInputError(f"items[{i}].unit_price must be >= 0"))
        created.append(
            OrderItem(
                id=it.item_id or new_id(),
                product_ref=it.product_ref,
                name=it.name,
                unit_price=it.unit_price,
                quantity=it.quantity,
                excluded_ingredients=frozenset(it.excluded_ingredients),
                comment=_clean_comment(it.comment),
            )
        )

    known = {it.id for it in order.items}
    for it in created:
        if it.id in known:
            return Failure(InvalidInputError(f"duplicate item id: {it.id}"))
        known.add(it.id)

    return Success(_with_items(order, order.items + tuple(created)))


def update_item(order: Order, item_id: str, patch: ItemPatch) -> Result[Order, OrderError]:
    def apply(target: OrderItem) -> Result[Order, OrderError]:
        if patch.quantity is not None and patch.quantity < 1:
            return Failure(InvalidInputError("quantity must be > 0"))
        updated = target
        if patch.quantity is not None:
            updated = replace(updated, quantity=patch.quantity)
        if patch.comment is not None:
            updated = replace(updated, comment=_clean_comment(patch.comment))
        if updated == target:
            return Success(order)
        items = tuple(updated if it.id == item_id else it for it in order.items)
        return Success(_with_items(order, items))

    return _editable_item(order, item_id).bind(apply)


def remove_item(order: Order, item_id: str) -> Result[Order, OrderError]:
    return _editable_item(order, item_id).map(
        lambda _: _with_items(order, tuple(it for it in order.items if it.id != item_id))
    )


def _editable_item(order: Order, item_id: str) -> Result[OrderItem, OrderError]:
    if order.is_finalized:
        return Failure(OrderClosedError("order is finalized", order_id=order.id))
    target = order.item(item_id)
    if target is None:
        return Failure(NotFoundError("item not found in order", ref=item_id))
    if target.is_sent:
        return Failure(ItemLockedError("item already sent to the kitchen", item_id=item_id))
    return Success(target)


# ---- kitchen flow ----------------------------------------------------------


def dispatch_to_kitchen(
    order: Order,
    item_ids: Sequence[str] | None = None,
    *,
    now: datetime | None = None,
) -> Result[Order, OrderError]:
    """Send the selected (or all) pending items as one kitchen batch.

    Nothing pending among the selection returns the order unchanged.
    """
    if order.is_finalized:
        return Failure(OrderClosedError("order is finalized", order_id=order.id))
    if order.order_status is not OrderStatus.IN_PROGRESS:
        return _illegal(order, "order must be validated before dispatch")

    if item_ids:
        known = {it.id for it in order.items}
        missing = [i for i in item_ids if i not in known]
        if missing:
            return Failure(NotFoundError("item not found in order", ref=missing[0]))
        selected = set(item_ids)
    else:
        selected = None

    to_send = {
        it.id
        for it in order.items
        if not it.is_sent and (selected is None or it.id in selected)
    }
    if not to_send:
        return Success(order)

    at = now or now_utc()
    items = tuple(
        replace(it, send_state=SendState.SENT, sent_at=at) if it.id in to_send else it
        for it in order.items
    )

    if order.kitchen_status is KitchenStatus.NOT_SENT:
        return Success(
            replace(
                order,
                items=items,
                kitchen_status=KitchenStatus.RECEIVED,
                sent_to_kitchen_at=order.sent_to_kitchen_at or at,
            )
        )
    return Success(replace(order, items=items))


def mark_ready(order: Order, *, now: datetime | None = None) -> Result[Order, OrderError]:
    """received -> ready.

    On an order already past received, clears the late batches instead:
    ready_at moves forward and kitchen_status stays where it is.
    """
    if order.kitchen_status is not KitchenStatus.RECEIVED:
        if order.is_finalized or not item_ledger.open_batches(order):
            return _illegal(order, "only orders received by the kitchen can be marked ready")
        return Success(replace(order, ready_at=now or now_utc()))
    return Success(
        replace(
            order,
            kitchen_status=KitchenStatus.READY,
            ready_at=order.ready_at or now or now_utc(),
        )
    )


def mark_served_or_delivered(
    order: Order, *, now: datetime | None = None
) -> Result[Order, OrderError]:
    if order.kitchen_status is not KitchenStatus.READY:
        return _illegal(order, "only ready orders can be handed off")
    if order.kind is OrderKind.DINE_IN:
        handed_off = KitchenStatus.SERVED
    else:
        handed_off = KitchenStatus.DELIVERED
    return Success(
        replace(
            order,
            kitchen_status=handed_off,
            completed_at=order.completed_at or now or now_utc(),
        )
    )


def validate(order: Order) -> Result[Order, OrderError]:
    if order.kind is not OrderKind.TAKEAWAY:
        return _illegal(order, "only takeaway orders need validation")
    if (
        order.order_status is not OrderStatus.PENDING_VALIDATION
        or order.kitchen_status is not KitchenStatus.NOT_SENT
    ):
        return _illegal(order, "order is not awaiting validation")
    return Success(replace(order, order_status=OrderStatus.IN_PROGRESS))


# ---- money -----------------------------------------------------------------


def apply_promotions(
    order: Order, candidates: Sequence[Promotion]
) -> Result[Order, OrderError]:
    if order.is_finalized:
        return Failure(OrderClosedError("promotions are locked on finalized orders", order_id=order.id))
    breakdown = promotion_ledger.compute(order.subtotal, candidates, order.shipping_cost)
    return Success(
        replace(
            order,
            applied_promotions=breakdown.discounts,
            total_discount=breakdown.total_discount,
            total=breakdown.total,
            shipping_cost=breakdown.shipping_cost,
        )
    )


def finalize(
    order: Order, payment_method: str, receipt_url: str | None = None
) -> Result[Order, OrderError]:
    if order.order_status is not OrderStatus.IN_PROGRESS or not order.kitchen_status.is_completed:
        return _illegal(order, "only served or delivered orders can be finalized")
    if not (payment_method or "").strip():
        return Failure(InvalidInputError("payment_method is required"))
    return Success(
        replace(
            order,
            order_status=OrderStatus.FINALIZED,
            payment_method=payment_method.strip(),
            payment_receipt_url=(receipt_url or "").strip() or None,
        )
    )


def record_profit(order: Order, profit: int) -> Result[Order, OrderError]:
    if not order.is_finalized:
        return _illegal(order, "profit is computed at finalization")
    if order.profit is not None:
        return _illegal(order, "profit already recorded")
    return Success(replace(order, profit=profit))


def cancel(order: Order) -> Result[Order, OrderError]:
    """Only orders the kitchen never saw can be discarded."""
    if order.is_finalized:
        return Failure(OrderClosedError("order is finalized", order_id=order.id))
    if order.kitchen_status is not KitchenStatus.NOT_SENT or any(
        it.is_sent for it in order.items
    ):
        return _illegal(order, "orders already sent to the kitchen cannot be cancelled")
    return Success(order)


# ---- helpers ---------------------------------------------------------------


def _with_items(order: Order, items: Tuple[OrderItem, ...]) -> Order:
    """Recompute money after an item change; recorded discounts only shrink."""
    subtotal = sum_amounts(it.line_total for it in items)
    if order.applied_promotions:
        applied, discount = promotion_ledger.reclamp(subtotal, order.applied_promotions)
    else:
        applied, discount = (), min(order.total_discount, subtotal)
    return replace(
        order,
        items=items,
        subtotal=subtotal,
        applied_promotions=applied,
        total_discount=discount,
        total=clamp_non_negative(subtotal - discount),
    )


def _clean_comment(comment: str | None) -> str | None:
    if comment is None:
        return None
    return comment.strip() or None


def _illegal(order: Order, message: str) -> Result[Order, OrderError]:
    return Failure(
        IllegalTransitionError(
            message,
            order_status=order.order_status.value,
            kitchen_status=order.kitchen_status.value,
        )
    )


def removed_item_ids(before: Order, after: Order) -> Tuple[str, ...]:
    kept = {it.id for it in after.items}
    return tuple(it.id for it in before.items if it.id not in kept)


def changed_items(before: Order, after: Order) -> Tuple[OrderItem, ...]:
    previous = {it.id: it for it in before.items}
    return tuple(it for it in after.items if previous.get(it.id) != it)
