from __future__ import annotations

import json
import logging

from resto_orders.logs import OrderLogFormatter


def _record(msg="dispatch ok", **extra):
    record = logging.LogRecord("resto_orders.test", logging.INFO, __file__, 1, msg, (), None)
    record.__dict__.update(extra)
    return record


def test_formatter_emits_order_context():
    line = OrderLogFormatter().format(
        _record(action="dispatch", order_id="o-1", kitchen_status="received")
    )
    data = json.loads(line)

    assert data["message"] == "dispatch ok"
    assert data["level"] == "INFO"
    assert data["action"] == "dispatch"
    assert data["order_id"] == "o-1"
    assert data["kitchen_status"] == "received"
    assert data["ts"].endswith("+00:00")


def test_formatter_omits_missing_context():
    data = json.loads(OrderLogFormatter().format(_record("plain")))
    assert "order_id" not in data
    assert "action" not in data


def test_service_outcomes_carry_order_context(service, caplog, dine_in):
    with caplog.at_level(logging.INFO, logger="resto_orders"):
        order = service.create_order(dine_in()).unwrap()
        service.mark_ready(order.id)

    ok, rejected = caplog.records[-2:]
    assert (ok.action, ok.order_id, ok.order_status) == ("create", order.id, "in_progress")
    assert rejected.levelno == logging.WARNING
    assert (rejected.action, rejected.ref) == ("mark_ready", order.id)
