from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

import pytest

from resto_orders.adapters.outbound.in_memory_orders import InMemoryOrderRepository
from resto_orders.adapters.outbound.in_memory_tables import InMemoryTableRegistry
from resto_orders.adapters.outbound.in_process_events import InProcessChangeFeed
from resto_orders.bootstrap import demo_catalog
from resto_orders.core.domain.model.order import ClientInfo, OrderKind
from resto_orders.core.domain.service.order_service import OrderService, OrderServiceDeps
from resto_orders.core.ports.inbound.order_commands import CreateOrderCommand, NewItem

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Hand-driven clock so timestamps in assertions are exact."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture()
def t0() -> datetime:
    return T0


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def make_item() -> Callable[..., NewItem]:
    def _make(
        product_ref: str = "prod-classic",
        name: str = "Classic burger",
        unit_price: int = 18000,
        quantity: int = 1,
        **kwargs,
    ) -> NewItem:
        return NewItem(
            product_ref=product_ref,
            name=name,
            unit_price=unit_price,
            quantity=quantity,
            **kwargs,
        )

    return _make


@pytest.fixture()
def dine_in() -> Callable[..., CreateOrderCommand]:
    def _make(table_ref: str = "T1", **kwargs) -> CreateOrderCommand:
        return CreateOrderCommand(kind=OrderKind.DINE_IN, table_ref=table_ref, **kwargs)

    return _make


@pytest.fixture()
def takeaway() -> Callable[..., CreateOrderCommand]:
    def _make(**kwargs) -> CreateOrderCommand:
        kwargs.setdefault("client_info", ClientInfo(name="Ana", phone="3001234567"))
        return CreateOrderCommand(kind=OrderKind.TAKEAWAY, **kwargs)

    return _make


@pytest.fixture()
def repo() -> InMemoryOrderRepository:
    return InMemoryOrderRepository()


@pytest.fixture()
def feed() -> InProcessChangeFeed:
    return InProcessChangeFeed()


@pytest.fixture()
def tables() -> InMemoryTableRegistry:
    return InMemoryTableRegistry(tables={"T1": None, "T2": None})


@pytest.fixture()
def service(repo, feed, tables, clock) -> OrderService:
    return OrderService(
        OrderServiceDeps(
            orders=repo,
            events=feed,
            tables=tables,
            catalog=demo_catalog(),
            clock=clock,
        )
    )
