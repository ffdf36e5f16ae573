from __future__ import annotations

import pytest

from resto_orders.core.domain.model.order import KitchenStatus, Order, OrderKind, OrderStatus
from resto_orders.core.domain.service import progress
from resto_orders.core.domain.service.table_status import TableStatus, resolve


def _order(t0, order_status, kitchen_status, kind=OrderKind.TAKEAWAY):
    return Order(
        id="o",
        kind=kind,
        order_status=order_status,
        kitchen_status=kitchen_status,
        created_at=t0,
    )


@pytest.mark.parametrize(
    "order_status,kitchen_status,step,name",
    [
        (OrderStatus.PENDING_VALIDATION, KitchenStatus.NOT_SENT, 0, "submitted"),
        (OrderStatus.IN_PROGRESS, KitchenStatus.NOT_SENT, 1, "validated"),
        (OrderStatus.IN_PROGRESS, KitchenStatus.RECEIVED, 2, "preparing"),
        (OrderStatus.IN_PROGRESS, KitchenStatus.READY, 3, "ready"),
        (OrderStatus.IN_PROGRESS, KitchenStatus.DELIVERED, 3, "ready"),
        (OrderStatus.FINALIZED, KitchenStatus.DELIVERED, 3, "ready"),
    ],
)
def test_tracker_step(t0, order_status, kitchen_status, step, name):
    order = _order(t0, order_status, kitchen_status)
    assert progress.project(order) == step
    assert progress.step_name(progress.project(order)) == name


def test_no_order_has_no_step():
    assert progress.project(None) is None
    assert progress.step_name(None) is None
    assert progress.is_complete(None) is False


def test_ready_is_final_step_but_not_complete(t0):
    ready = _order(t0, OrderStatus.IN_PROGRESS, KitchenStatus.READY)
    assert progress.project(ready) == progress.FINAL_STEP
    assert progress.is_complete(ready) is False

    delivered = _order(t0, OrderStatus.IN_PROGRESS, KitchenStatus.DELIVERED)
    assert progress.is_complete(delivered) is True


@pytest.mark.parametrize(
    "kitchen_status,expected",
    [
        (None, TableStatus.FREE),
        (KitchenStatus.NOT_SENT, TableStatus.FREE),
        (KitchenStatus.RECEIVED, TableStatus.IN_KITCHEN),
        (KitchenStatus.READY, TableStatus.TO_SERVE),
        (KitchenStatus.SERVED, TableStatus.TO_PAY),
        (KitchenStatus.DELIVERED, TableStatus.TO_PAY),
    ],
)
def test_table_status(kitchen_status, expected):
    assert resolve(kitchen_status) is expected
