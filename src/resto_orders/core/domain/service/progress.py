from __future__ import annotations

from resto_orders.core.domain.model.order import KitchenStatus, Order, OrderStatus

STEP_NAMES = ("submitted", "validated", "preparing", "ready")
FINAL_STEP = len(STEP_NAMES) - 1

_DONE_KITCHEN = (KitchenStatus.SERVED, KitchenStatus.DELIVERED, KitchenStatus.READY)


def project(order: Order | None) -> int | None:
    """Customer tracker step; first matching rule wins.

    READY already counts as the final step, before the hand-off happens.
    """
    if order is None:
        return None
    if order.order_status is OrderStatus.FINALIZED or order.kitchen_status in _DONE_KITCHEN:
        return 3
    if order.kitchen_status is KitchenStatus.RECEIVED:
        return 2
    if order.order_status is OrderStatus.IN_PROGRESS:
        return 1
    if (
        order.order_status is OrderStatus.PENDING_VALIDATION
        or order.kitchen_status is KitchenStatus.NOT_SENT
    ):
        return 0
    return None


def step_name(step: int | None) -> str | None:
    return None if step is None else STEP_NAMES[step]


def is_complete(order: Order | None) -> bool:
    """Hand-off done, which is stricter than reaching the final step."""
    if order is None:
        return False
    return order.is_finalized or order.kitchen_status.is_completed
