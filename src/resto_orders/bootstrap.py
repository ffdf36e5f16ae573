from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from resto_orders.adapters.outbound.in_memory_catalog import InMemoryCatalog
from resto_orders.adapters.outbound.in_memory_orders import InMemoryOrderRepository
from resto_orders.adapters.outbound.in_memory_tables import InMemoryTableRegistry
from resto_orders.adapters.outbound.in_process_events import (
    ChangeCounter,
    ChangeSubscription,
    InProcessChangeFeed,
)
from resto_orders.config import Settings
from resto_orders.core.domain.model.catalog import (
    Category,
    Ingredient,
    Product,
    RecipeItem,
)
from resto_orders.core.domain.service.order_service import (
    OrderService,
    OrderServiceDeps,
)
from resto_orders.core.domain.service.urgency import UrgencyThresholds
from resto_orders.core.ports.outbound.events import ORDERS_CHANGED


@dataclass
class Runtime:
    """Everything one process composes; owns the change subscription."""

    settings: Settings
    orders: OrderService
    feed: InProcessChangeFeed
    changes: ChangeCounter = field(default_factory=ChangeCounter)
    subscription: ChangeSubscription | None = None

    def start(self) -> None:
        if self.subscription is None or not self.subscription.active:
            self.subscription = ChangeSubscription(self.feed, ORDERS_CHANGED, self.changes.bump)

    def close(self) -> None:
        if self.subscription is not None:
            self.subscription.close()


def demo_catalog() -> InMemoryCatalog:
    categories = [Category("cat-burgers", "Burgers"), Category("cat-drinks", "Drinks")]
    ingredients = [
        Ingredient("ing-beef", "Beef", "kg", Decimal(32000), Decimal(4000), Decimal(2000)),
        Ingredient("ing-bun", "Bun", "unit", Decimal(900), Decimal(40), Decimal(20)),
        Ingredient("ing-cheese", "Cheese", "kg", Decimal(28000), Decimal(800), Decimal(1000)),
        Ingredient("ing-lemon", "Lemon", "unit", Decimal(300), Decimal(50), Decimal(10)),
    ]
    products = [
        Product(
            "prod-classic",
            "Classic burger",
            "cat-burgers",
            18000,
            (RecipeItem("ing-beef", Decimal(150)), RecipeItem("ing-bun", Decimal(1))),
        ),
        Product(
            "prod-cheese",
            "Cheeseburger",
            "cat-burgers",
            21000,
            (
                RecipeItem("ing-beef", Decimal(150)),
                RecipeItem("ing-bun", Decimal(1)),
                RecipeItem("ing-cheese", Decimal(30)),
            ),
        ),
        Product("prod-lemonade", "Lemonade", "cat-drinks", 6000, (RecipeItem("ing-lemon", Decimal(2)),)),
    ]
    return InMemoryCatalog(
        products_by_id={p.id: p for p in products},
        categories_by_id={c.id: c for c in categories},
        ingredients_by_id={i.id: i for i in ingredients},
    )


def build_runtime(
    settings: Settings | None = None,
    *,
    orders: InMemoryOrderRepository | None = None,
    catalog: InMemoryCatalog | None = None,
    tables: InMemoryTableRegistry | None = None,
    feed: InProcessChangeFeed | None = None,
) -> Runtime:
    settings = settings or Settings.from_env()
    feed = feed or InProcessChangeFeed()
    tables = tables or InMemoryTableRegistry(tables={f"T{n}": None for n in range(1, 9)})

    service = OrderService(
        OrderServiceDeps(
            orders=orders or InMemoryOrderRepository(),
            events=feed,
            tables=tables,
            catalog=catalog or demo_catalog(),
            thresholds=UrgencyThresholds(
                warning_minutes=settings.urgency_warning_minutes,
                critical_minutes=settings.urgency_critical_minutes,
            ),
        )
    )
    return Runtime(settings=settings, orders=service, feed=feed)
