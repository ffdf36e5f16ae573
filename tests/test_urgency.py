from __future__ import annotations

from datetime import timedelta

import pytest

from resto_orders.core.domain.model.order import KitchenStatus, Order, OrderKind, OrderStatus
from resto_orders.core.domain.service.urgency import (
    Urgency,
    UrgencyThresholds,
    classify,
    classify_order,
    format_elapsed,
    reference_time,
)


@pytest.mark.parametrize(
    "elapsed,expected",
    [
        (timedelta(minutes=0), Urgency.NORMAL),
        (timedelta(minutes=9, seconds=59), Urgency.NORMAL),
        (timedelta(minutes=10), Urgency.WARNING),
        (timedelta(minutes=19, seconds=59), Urgency.WARNING),
        (timedelta(minutes=20), Urgency.CRITICAL),
        (timedelta(minutes=25), Urgency.CRITICAL),
    ],
)
def test_classify_thresholds(t0, elapsed, expected):
    assert classify(t0, t0 + elapsed) is expected


def test_reference_in_the_future_is_normal(t0):
    assert classify(t0 + timedelta(minutes=5), t0) is Urgency.NORMAL
    assert format_elapsed(t0 + timedelta(minutes=5), t0) == "00:00"


def test_custom_thresholds(t0):
    th = UrgencyThresholds(warning_minutes=5, critical_minutes=8)
    assert classify(t0, t0 + timedelta(minutes=6), th) is Urgency.WARNING
    assert classify(t0, t0 + timedelta(minutes=8), th) is Urgency.CRITICAL


@pytest.mark.parametrize("warning,critical", [(10, 10), (0, 5), (20, 10)])
def test_thresholds_must_be_ordered(warning, critical):
    with pytest.raises(ValueError):
        UrgencyThresholds(warning_minutes=warning, critical_minutes=critical)


def test_format_elapsed_keeps_counting_minutes(t0):
    assert format_elapsed(t0, t0 + timedelta(seconds=75)) == "01:15"
    assert format_elapsed(t0, t0 + timedelta(minutes=65, seconds=7)) == "65:07"


def test_reference_falls_back_to_creation_time(t0):
    order = Order(
        id="o-1",
        kind=OrderKind.TAKEAWAY,
        order_status=OrderStatus.PENDING_VALIDATION,
        kitchen_status=KitchenStatus.NOT_SENT,
        created_at=t0,
    )
    assert reference_time(order) == t0

    sent = t0 + timedelta(minutes=3)
    dispatched = Order(
        id="o-2",
        kind=OrderKind.TAKEAWAY,
        order_status=OrderStatus.IN_PROGRESS,
        kitchen_status=KitchenStatus.RECEIVED,
        created_at=t0,
        sent_to_kitchen_at=sent,
    )
    assert reference_time(dispatched) == sent
    assert classify_order(dispatched, t0 + timedelta(minutes=12)) is Urgency.NORMAL
    assert classify_order(order, t0 + timedelta(minutes=12)) is Urgency.WARNING
