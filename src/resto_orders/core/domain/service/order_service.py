from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Sequence, Tuple

from returns.pipeline import flow
from returns.pointfree import bind, map_
from returns.result import Failure, Result, Success

from resto_orders.core.domain.model.catalog import CatalogSnapshot
from resto_orders.core.domain.model.errors import (
    NotFoundError,
    OrderError,
    PersistenceError,
    PublishError,
)
from resto_orders.core.domain.model.order import (
    KitchenStatus,
    Order,
    OrderKind,
    OrderStatus,
    now_utc,
)
from resto_orders.core.domain.model.promotion import Promotion
from resto_orders.core.domain.service import (
    item_ledger,
    lifecycle,
    progress,
    reporting,
    urgency,
)
from resto_orders.core.ports.inbound.order_commands import (
    CreateOrderCommand,
    FinalizeCommand,
    ItemPatch,
    NewItem,
    OrderUseCase,
)
from resto_orders.core.ports.outbound.catalog import CatalogLookup
from resto_orders.core.ports.outbound.events import ORDERS_CHANGED, ChangeFeed
from resto_orders.core.ports.outbound.orders import OrderRepository
from resto_orders.core.ports.outbound.tables import TableGateway

logger = logging.getLogger(__name__)

Transition = Callable[[Order], Result[Order, OrderError]]


@dataclass(frozen=True)
class OrderServiceDeps:
    orders: OrderRepository
    events: ChangeFeed
    tables: TableGateway
    catalog: CatalogLookup
    thresholds: urgency.UrgencyThresholds = urgency.DEFAULT_THRESHOLDS
    clock: Callable[[], datetime] = now_utc


@dataclass(frozen=True)
class TrackerView:
    order: Order
    step: int | None
    step_name: str | None
    completed: bool
    urgency: urgency.Urgency
    elapsed: str


@dataclass(frozen=True)
class TakeawayBoard:
    pending: Tuple[Order, ...]
    ready: Tuple[Order, ...]


@dataclass(frozen=True)
class OrderService(OrderUseCase):
    deps: OrderServiceDeps

    # ---- commands ----------------------------------------------------------

    def create_order(self, command: CreateOrderCommand) -> Result[Order, OrderError]:
        result = flow(
            lifecycle.create(command, now=self.deps.clock()),
            bind(self._occupy_table),
            bind(
                lambda order: self._persist_new(order).lash(
                    lambda err: self._release_table(order, err)
                )
            ),
            bind(self._publish),
        )
        return _logged(result, "create", command.kind.value)

    def add_items(self, order_id: str, items: Sequence[NewItem]) -> Result[Order, OrderError]:
        return self._transition(
            "add_items", order_id, lambda o: lifecycle.add_items(o, items)
        )

    def update_item(
        self, order_id: str, item_id: str, patch: ItemPatch
    ) -> Result[Order, OrderError]:
        return self._transition(
            "update_item", order_id, lambda o: lifecycle.update_item(o, item_id, patch)
        )

    def remove_item(self, order_id: str, item_id: str) -> Result[Order, OrderError]:
        return self._transition(
            "remove_item", order_id, lambda o: lifecycle.remove_item(o, item_id)
        )

    def dispatch(
        self, order_id: str, item_ids: Sequence[str] | None = None
    ) -> Result[Order, OrderError]:
        return self._transition(
            "dispatch",
            order_id,
            lambda o: lifecycle.dispatch_to_kitchen(o, item_ids, now=self.deps.clock()),
        )

    def mark_ready(self, order_id: str) -> Result[Order, OrderError]:
        return self._transition(
            "mark_ready", order_id, lambda o: lifecycle.mark_ready(o, now=self.deps.clock())
        )

    def mark_served(self, order_id: str) -> Result[Order, OrderError]:
        return self._transition(
            "mark_served",
            order_id,
            lambda o: lifecycle.mark_served_or_delivered(o, now=self.deps.clock()),
        )

    def validate(self, order_id: str, send_to_kitchen: bool = False) -> Result[Order, OrderError]:
        def op(order: Order) -> Result[Order, OrderError]:
            validated = lifecycle.validate(order)
            if not send_to_kitchen:
                return validated
            return validated.bind(
                lambda v: lifecycle.dispatch_to_kitchen(v, now=self.deps.clock())
            )

        return self._transition("validate", order_id, op)

    def apply_promotions(
        self, order_id: str, promotions: Sequence[Promotion]
    ) -> Result[Order, OrderError]:
        return self._transition(
            "apply_promotions", order_id, lambda o: lifecycle.apply_promotions(o, promotions)
        )

    def finalize(self, order_id: str, command: FinalizeCommand) -> Result[Order, OrderError]:
        def op(order: Order) -> Result[Order, OrderError]:
            return lifecycle.finalize(order, command.payment_method, command.receipt_url).bind(
                lambda closed: self._catalog_snapshot().bind(
                    lambda catalog: lifecycle.record_profit(
                        closed, reporting.order_profit(closed, catalog)
                    )
                )
            )

        def commit(before: Order) -> Result[Order, OrderError]:
            return op(before).bind(
                lambda after: self._free_table(after).bind(
                    lambda _: self._write(before, after).lash(
                        lambda err: self._restore_table(after, err)
                    )
                )
            )

        result = self._load(order_id).bind(commit).bind(self._publish)
        return _logged(result, "finalize", order_id)

    def cancel(self, order_id: str) -> Result[None, OrderError]:
        result = flow(
            self._load(order_id),
            bind(lifecycle.cancel),
            bind(self._free_table),
            bind(
                lambda order: self._delete(order).lash(
                    lambda err: self._restore_table(order, err)
                )
            ),
            bind(self._publish),
            map_(lambda _: None),
        )
        return _logged(result, "cancel", order_id)

    # ---- queries -----------------------------------------------------------

    def get_order(self, order_id: str) -> Result[Order, OrderError]:
        return self._load(order_id)

    def list_orders(
        self,
        kind: OrderKind | None = None,
        order_status: OrderStatus | None = None,
    ) -> Result[Sequence[Order], OrderError]:
        return self.deps.orders.list_orders(kind=kind, order_status=order_status)

    def track(self, order_id: str) -> Result[TrackerView, OrderError]:
        now = self.deps.clock()

        def view(order: Order) -> TrackerView:
            step = progress.project(order)
            ref = urgency.reference_time(order)
            return TrackerView(
                order=order,
                step=step,
                step_name=progress.step_name(step),
                completed=progress.is_complete(order),
                urgency=urgency.classify(ref, now, self.deps.thresholds),
                elapsed=urgency.format_elapsed(ref, now),
            )

        return self._load(order_id).map(view)

    def kitchen_tickets(self) -> Result[Tuple[item_ledger.KitchenTicket, ...], OrderError]:
        return self.deps.orders.list_orders(order_status=OrderStatus.IN_PROGRESS).map(
            item_ledger.kitchen_tickets
        )

    def takeaway_board(self) -> Result[TakeawayBoard, OrderError]:
        def board(orders: Sequence[Order]) -> TakeawayBoard:
            return TakeawayBoard(
                pending=tuple(
                    o
                    for o in orders
                    if o.order_status is OrderStatus.PENDING_VALIDATION
                    and o.kitchen_status is KitchenStatus.NOT_SENT
                ),
                ready=tuple(o for o in orders if o.kitchen_status is KitchenStatus.READY),
            )

        return self.deps.orders.list_orders(kind=OrderKind.TAKEAWAY).map(board)

    def sales_report(self) -> Result[reporting.SalesReport, OrderError]:
        return self.deps.orders.list_orders(order_status=OrderStatus.FINALIZED).bind(
            lambda orders: self._catalog_snapshot().map(
                lambda catalog: reporting.aggregate(orders, catalog)
            )
        )

    def notification_counts(self) -> Result[reporting.NotificationCounts, OrderError]:
        return self.deps.orders.list_orders().bind(
            lambda orders: self.deps.catalog.ingredients().map(
                lambda ingredients: reporting.notification_counts(
                    orders, ingredients.values()
                )
            )
        )

    # ---- plumbing ----------------------------------------------------------

    def _transition(self, action: str, order_id: str, op: Transition) -> Result[Order, OrderError]:
        result = self._load(order_id).bind(
            lambda before: op(before).bind(lambda after: self._save(before, after))
        )
        return _logged(result, action, order_id)

    def _load(self, order_id: str) -> Result[Order, OrderError]:
        def present(order: Order | None) -> Result[Order, OrderError]:
            if order is None:
                return Failure(NotFoundError("order not found", ref=order_id))
            return Success(order)

        return self.deps.orders.get_order(order_id).bind(present)

    def _save(self, before: Order, after: Order) -> Result[Order, OrderError]:
        if after == before:
            return Success(after)
        return self._write(before, after).bind(self._publish)

    def _write(self, before: Order, after: Order) -> Result[Order, OrderError]:
        removed = lifecycle.removed_item_ids(before, after)
        changed = lifecycle.changed_items(before, after)
        result: Result[None, OrderError] = Success(None)
        if removed:
            result = result.bind(lambda _: self.deps.orders.delete_items(removed))
        if changed:
            result = result.bind(lambda _: self.deps.orders.upsert_items(after.id, changed))
        return result.bind(lambda _: self.deps.orders.upsert_order(after))

    def _persist_new(self, order: Order) -> Result[Order, OrderError]:
        return (
            self.deps.orders.upsert_order(order)
            .bind(lambda saved: self.deps.orders.upsert_items(saved.id, order.items))
            .map(lambda _: order)
        )

    def _delete(self, order: Order) -> Result[Order, OrderError]:
        ids = tuple(it.id for it in order.items)
        result: Result[None, OrderError] = Success(None)
        if ids:
            result = self.deps.orders.delete_items(ids)
        return result.bind(lambda _: self.deps.orders.delete_order(order.id)).map(
            lambda _: order
        )

    def _occupy_table(self, order: Order) -> Result[Order, OrderError]:
        if order.table_ref is None:
            return Success(order)
        return self.deps.tables.occupy(order.table_ref, order.id).map(lambda _: order)

    def _free_table(self, order: Order) -> Result[Order, OrderError]:
        if order.table_ref is None:
            return Success(order)
        return self.deps.tables.free(order.table_ref).map(lambda _: order)

    # Table intents run before the order write; when the write fails they are
    # undone and the write error is what the caller sees.

    def _release_table(self, order: Order, err: OrderError) -> Result[Order, OrderError]:
        if order.table_ref is not None:
            _log_undo(self.deps.tables.free(order.table_ref), order)
        return Failure(err)

    def _restore_table(self, order: Order, err: OrderError) -> Result[Order, OrderError]:
        if order.table_ref is not None:
            _log_undo(self.deps.tables.occupy(order.table_ref, order.id), order)
        return Failure(err)

    def _publish(self, order: Order) -> Result[Order, OrderError]:
        return self.deps.events.publish(ORDERS_CHANGED).map(lambda _: order)

    def _catalog_snapshot(self) -> Result[CatalogSnapshot, OrderError]:
        catalog = self.deps.catalog
        return catalog.products().bind(
            lambda products: catalog.categories().bind(
                lambda categories: catalog.ingredients().map(
                    lambda ingredients: CatalogSnapshot(
                        products=products, categories=categories, ingredients=ingredients
                    )
                )
            )
        )


def _log_undo(undone: Result[None, OrderError], order: Order) -> None:
    if isinstance(undone, Failure):
        logger.error(
            "table %s out of sync with order %s: %s",
            order.table_ref,
            order.id,
            undone.failure(),
        )


def _logged(result: Result, action: str, ref: str) -> Result:
    if isinstance(result, Failure):
        err = result.failure()
        extra = {"action": action, "ref": ref}
        if isinstance(err, (PersistenceError, PublishError)):
            logger.error("%s failed for %s: %s", action, ref, err, extra=extra)
        else:
            logger.warning("%s rejected for %s: %s", action, ref, err, extra=extra)
        return result
    value = result.unwrap()
    if isinstance(value, Order):
        logger.info(
            "%s ok: order=%s status=%s kitchen=%s",
            action,
            value.id,
            value.order_status.value,
            value.kitchen_status.value,
            extra={
                "action": action,
                "order_id": value.id,
                "order_status": value.order_status.value,
                "kitchen_status": value.kitchen_status.value,
            },
        )
    else:
        logger.info("%s ok: %s", action, ref, extra={"action": action, "ref": ref})
    return result
