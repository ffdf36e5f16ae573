from __future__ import annotations

from enum import Enum

from resto_orders.core.domain.model.order import KitchenStatus


class TableStatus(str, Enum):
    FREE = "free"
    IN_KITCHEN = "in_kitchen"
    TO_SERVE = "to_serve"
    TO_PAY = "to_pay"


def resolve(kitchen_status: KitchenStatus | None) -> TableStatus:
    """Floor-plan status of a table from the kitchen status of its open order.

    A table whose order has not been sent yet is still shown as free.
    """
    if kitchen_status is None or kitchen_status is KitchenStatus.NOT_SENT:
        return TableStatus.FREE
    if kitchen_status is KitchenStatus.READY:
        return TableStatus.TO_SERVE
    if kitchen_status.is_completed:
        return TableStatus.TO_PAY
    return TableStatus.IN_KITCHEN
