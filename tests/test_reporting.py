from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from resto_orders.bootstrap import demo_catalog
from resto_orders.core.domain.model.catalog import CatalogSnapshot, Ingredient
from resto_orders.core.domain.model.order import (
    KitchenStatus,
    Order,
    OrderItem,
    OrderKind,
    OrderStatus,
    SendState,
)
from resto_orders.core.domain.service import reporting


@pytest.fixture()
def catalog() -> CatalogSnapshot:
    c = demo_catalog()
    return CatalogSnapshot(
        products=c.products_by_id,
        categories=c.categories_by_id,
        ingredients=c.ingredients_by_id,
    )


def _line(item_id, product_ref, name, unit_price, quantity):
    return OrderItem(
        id=item_id,
        product_ref=product_ref,
        name=name,
        unit_price=unit_price,
        quantity=quantity,
        send_state=SendState.SENT,
    )


def _closed(t0, order_id, items, discount=0, profit=None):
    subtotal = sum(it.line_total for it in items)
    return Order(
        id=order_id,
        kind=OrderKind.DINE_IN,
        order_status=OrderStatus.FINALIZED,
        kitchen_status=KitchenStatus.SERVED,
        created_at=t0,
        completed_at=t0 + timedelta(minutes=30),
        table_ref="T1",
        items=tuple(items),
        subtotal=subtotal,
        total_discount=discount,
        total=subtotal - discount,
        payment_method="cash",
        profit=profit,
    )


def _orders(t0):
    a = _closed(
        t0,
        "a",
        [
            _line("a1", "prod-classic", "Classic burger", 18000, 2),
            _line("a2", "prod-lemonade", "Lemonade", 6000, 1),
        ],
    )
    b = _closed(t0, "b", [_line("b1", "prod-cheese", "Cheeseburger", 21000, 1)], 1000, 14460)
    still_open = Order(
        id="c",
        kind=OrderKind.DINE_IN,
        order_status=OrderStatus.IN_PROGRESS,
        kitchen_status=KitchenStatus.RECEIVED,
        created_at=t0,
        items=(_line("c1", "prod-classic", "Classic burger", 18000, 5),),
        subtotal=90000,
        total=90000,
    )
    return [a, b, still_open]


def test_unit_cost_scales_bulk_units(catalog):
    classic = catalog.products["prod-classic"]
    cheese = catalog.products["prod-cheese"]
    assert reporting.unit_cost(classic, catalog.ingredients) == Decimal(5700)
    assert reporting.unit_cost(cheese, catalog.ingredients) == Decimal(6540)
    assert reporting.unit_cost(None, catalog.ingredients) == 0


def test_order_profit_is_line_revenue_minus_recipe_cost(catalog, t0):
    a = _orders(t0)[0]
    assert reporting.order_profit(a, catalog) == 2 * (18000 - 5700) + (6000 - 600)


def test_sales_entries_describe_each_line(catalog, t0):
    entries = reporting.sales_entries(_orders(t0)[0], catalog)
    assert [(e.product_ref, e.category_name, e.quantity) for e in entries] == [
        ("prod-classic", "Burgers", 2),
        ("prod-lemonade", "Drinks", 1),
    ]
    assert entries[0].total_cost == 11400
    assert entries[0].payment_method == "cash"
    assert entries[0].sale_date == t0 + timedelta(minutes=30)


def test_aggregate_folds_finalized_orders_only(catalog, t0):
    report = reporting.aggregate(_orders(t0), catalog)

    assert report.order_count == 2
    assert report.total_sales == 42000 + 20000
    assert report.total_profit == 30000 + 14460
    assert report.average_ticket == 31000

    assert [(p.product_ref, p.quantity) for p in report.per_product] == [
        ("prod-classic", 2),
        ("prod-cheese", 1),
        ("prod-lemonade", 1),
    ]
    assert [(c.name, c.quantity, c.revenue) for c in report.per_category] == [
        ("Burgers", 3, 57000),
        ("Drinks", 1, 6000),
    ]
    assert [p.product_ref for p in report.per_category[0].products] == [
        "prod-classic",
        "prod-cheese",
    ]
    assert [i.id for i in report.low_stock] == ["ing-cheese"]


def test_aggregate_of_nothing(catalog):
    report = reporting.aggregate([], catalog)
    assert report.order_count == 0
    assert report.total_sales == 0
    assert report.average_ticket == 0
    assert report.per_product == ()


def test_unknown_product_lands_in_uncategorized(catalog, t0):
    ghost = _closed(t0, "g", [_line("g1", "prod-ghost", "Special", 9000, 1)])
    report = reporting.aggregate([ghost], catalog)
    assert report.per_category[0].name == reporting.UNCATEGORIZED
    assert report.per_product[0].profit == 9000


def test_top_products_folds_the_tail(catalog, t0):
    report = reporting.aggregate(_orders(t0), catalog)
    shares = reporting.top_products(report.per_product, limit=1)
    assert [(s.name, s.value) for s in shares] == [
        ("Classic burger", 36000),
        (reporting.OTHERS, 27000),
    ]
    assert len(reporting.top_products(report.per_product)) == 3


def test_low_stock_includes_the_minimum():
    items = [
        Ingredient("a", "Salt", "kg", Decimal(1), Decimal(5), Decimal(5)),
        Ingredient("b", "Oil", "L", Decimal(1), Decimal(6), Decimal(5)),
        Ingredient("c", "Flour", "kg", Decimal(1), Decimal(1), Decimal(5)),
    ]
    assert [i.name for i in reporting.low_stock(items)] == ["Flour", "Salt"]


def test_notification_counts(t0):
    def order(kind, status, kitchen):
        return Order(
            id=f"{kind.value}-{status.value}-{kitchen.value}",
            kind=kind,
            order_status=status,
            kitchen_status=kitchen,
            created_at=t0,
        )

    orders = [
        order(OrderKind.TAKEAWAY, OrderStatus.PENDING_VALIDATION, KitchenStatus.NOT_SENT),
        order(OrderKind.TAKEAWAY, OrderStatus.IN_PROGRESS, KitchenStatus.READY),
        order(OrderKind.TAKEAWAY, OrderStatus.IN_PROGRESS, KitchenStatus.RECEIVED),
        order(OrderKind.DINE_IN, OrderStatus.IN_PROGRESS, KitchenStatus.RECEIVED),
        order(OrderKind.DINE_IN, OrderStatus.IN_PROGRESS, KitchenStatus.READY),
        order(OrderKind.DINE_IN, OrderStatus.FINALIZED, KitchenStatus.SERVED),
    ]
    ingredients = [Ingredient("x", "Salt", "kg", Decimal(1), Decimal(0), Decimal(1))]

    counts = reporting.notification_counts(orders, ingredients)

    assert counts.pending_takeaway == 1
    assert counts.ready_takeaway == 1
    assert counts.kitchen_orders == 2
    assert counts.ready_for_service == 1
    assert counts.low_stock_ingredients == 1
