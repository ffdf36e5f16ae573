"""Sales folds over finalized orders.

Cost basis comes from product recipes: each ingredient's unit price times
the quantity used, where kg/L prices are per 1000 recipe units. Profit per
line is (unit_price - unit_cost) * quantity, before order-level discounts.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Mapping, Sequence, Tuple

from resto_orders.core.domain.model.catalog import (
    BULK_UNITS,
    CatalogSnapshot,
    Ingredient,
    Product,
)
from resto_orders.core.domain.model.money import sum_amounts, to_amount
from resto_orders.core.domain.model.order import (
    KitchenStatus,
    Order,
    OrderKind,
    OrderStatus,
)
from resto_orders.core.domain.service import item_ledger

UNCATEGORIZED = "Uncategorized"
OTHERS = "Others"


@dataclass(frozen=True)
class SaleEntry:
    order_id: str
    product_ref: str
    product_name: str
    category_ref: str | None
    category_name: str
    quantity: int
    unit_price: int
    total_price: int
    unit_cost: Decimal
    total_cost: int
    profit: int
    payment_method: str | None
    sale_date: datetime


@dataclass(frozen=True)
class ProductSales:
    product_ref: str
    name: str
    category_name: str
    quantity: int
    revenue: int
    profit: int


@dataclass(frozen=True)
class CategorySales:
    category_ref: str | None
    name: str
    quantity: int
    revenue: int
    products: Tuple[ProductSales, ...]


@dataclass(frozen=True)
class ProductShare:
    name: str
    value: int


@dataclass(frozen=True)
class SalesReport:
    order_count: int
    total_sales: int
    total_profit: int
    average_ticket: int
    per_category: Tuple[CategorySales, ...]
    per_product: Tuple[ProductSales, ...]
    low_stock: Tuple[Ingredient, ...]


@dataclass(frozen=True)
class NotificationCounts:
    pending_takeaway: int
    ready_takeaway: int
    kitchen_orders: int
    ready_for_service: int
    low_stock_ingredients: int


def unit_cost(product: Product | None, ingredients: Mapping[str, Ingredient]) -> Decimal:
    if product is None:
        return Decimal(0)
    cost = Decimal(0)
    for ri in product.recipe:
        ing = ingredients.get(ri.ingredient_ref)
        if ing is None:
            continue
        price = Decimal(ing.unit_price)
        if ing.unit in BULK_UNITS:
            price = price / 1000
        cost += price * Decimal(ri.quantity_used)
    return cost


def sales_entries(order: Order, catalog: CatalogSnapshot) -> Tuple[SaleEntry, ...]:
    sale_date = order.completed_at or order.created_at
    entries: list[SaleEntry] = []
    for it in order.items:
        product = catalog.products.get(it.product_ref)
        category_ref, category_name = _category_of(product, catalog)
        cost = unit_cost(product, catalog.ingredients)
        total_cost = to_amount(cost * it.quantity)
        entries.append(
            SaleEntry(
                order_id=order.id,
                product_ref=it.product_ref,
                product_name=it.name,
                category_ref=category_ref,
                category_name=category_name,
                quantity=it.quantity,
                unit_price=it.unit_price,
                total_price=it.line_total,
                unit_cost=cost,
                total_cost=total_cost,
                profit=it.line_total - total_cost,
                payment_method=order.payment_method,
                sale_date=sale_date,
            )
        )
    return tuple(entries)


def order_profit(order: Order, catalog: CatalogSnapshot) -> int:
    return sum_amounts(e.profit for e in sales_entries(order, catalog))


def low_stock(ingredients: Iterable[Ingredient]) -> Tuple[Ingredient, ...]:
    return tuple(sorted((i for i in ingredients if i.is_low_stock), key=lambda i: i.name))


def aggregate(orders: Iterable[Order], catalog: CatalogSnapshot) -> SalesReport:
    finalized = [o for o in orders if o.order_status is OrderStatus.FINALIZED]

    total_sales = sum_amounts(o.total for o in finalized)
    total_profit = 0
    by_product: dict[str, dict] = {}

    for order in finalized:
        entries = sales_entries(order, catalog)
        total_profit += (
            order.profit if order.profit is not None else sum_amounts(e.profit for e in entries)
        )
        for e in entries:
            acc = by_product.setdefault(
                e.product_ref,
                {
                    "name": e.product_name,
                    "category_ref": e.category_ref,
                    "category_name": e.category_name,
                    "quantity": 0,
                    "revenue": 0,
                    "profit": 0,
                },
            )
            acc["quantity"] += e.quantity
            acc["revenue"] += e.total_price
            acc["profit"] += e.profit

    per_product = tuple(
        sorted(
            (
                ProductSales(
                    product_ref=ref,
                    name=acc["name"],
                    category_name=acc["category_name"],
                    quantity=acc["quantity"],
                    revenue=acc["revenue"],
                    profit=acc["profit"],
                )
                for ref, acc in by_product.items()
            ),
            key=lambda p: (-p.quantity, p.name),
        )
    )

    category_refs = {ref: acc["category_ref"] for ref, acc in by_product.items()}
    per_category = _fold_categories(per_product, category_refs)

    count = len(finalized)
    average = to_amount(Decimal(total_sales) / count) if count else 0

    return SalesReport(
        order_count=count,
        total_sales=total_sales,
        total_profit=total_profit,
        average_ticket=average,
        per_category=per_category,
        per_product=per_product,
        low_stock=low_stock(catalog.ingredients.values()),
    )


def top_products(per_product: Sequence[ProductSales], limit: int = 6) -> Tuple[ProductShare, ...]:
    """Best sellers by revenue; anything past ``limit`` is folded into OTHERS."""
    ranked = sorted(per_product, key=lambda p: (-p.revenue, p.name))
    shares = [ProductShare(p.name, p.revenue) for p in ranked[:limit]]
    rest = ranked[limit:]
    if rest:
        shares.append(ProductShare(OTHERS, sum_amounts(p.revenue for p in rest)))
    return tuple(shares)


def notification_counts(
    orders: Iterable[Order], ingredients: Iterable[Ingredient]
) -> NotificationCounts:
    pending_takeaway = ready_takeaway = kitchen = ready_for_service = 0
    for o in orders:
        if o.is_finalized:
            continue
        takeaway = o.kind is OrderKind.TAKEAWAY
        if (
            takeaway
            and o.order_status is OrderStatus.PENDING_VALIDATION
            and o.kitchen_status is KitchenStatus.NOT_SENT
        ):
            pending_takeaway += 1
        if o.kitchen_status is KitchenStatus.RECEIVED or item_ledger.open_batches(o):
            kitchen += 1
        if o.kitchen_status is KitchenStatus.READY:
            if takeaway:
                ready_takeaway += 1
            else:
                ready_for_service += 1
    return NotificationCounts(
        pending_takeaway=pending_takeaway,
        ready_takeaway=ready_takeaway,
        kitchen_orders=kitchen,
        ready_for_service=ready_for_service,
        low_stock_ingredients=len(low_stock(ingredients)),
    )


def _category_of(product: Product | None, catalog: CatalogSnapshot) -> tuple[str | None, str]:
    if product is None:
        return None, UNCATEGORIZED
    category = catalog.categories.get(product.category_ref)
    if category is None:
        return product.category_ref, UNCATEGORIZED
    return category.id, category.name


def _fold_categories(
    per_product: Sequence[ProductSales], category_refs: Mapping[str, str | None]
) -> Tuple[CategorySales, ...]:
    grouped: dict[tuple[str | None, str], list[ProductSales]] = {}
    for p in per_product:
        key = (category_refs.get(p.product_ref), p.category_name)
        grouped.setdefault(key, []).append(p)

    categories = [
        CategorySales(
            category_ref=ref,
            name=name,
            quantity=sum_amounts(p.quantity for p in products),
            revenue=sum_amounts(p.revenue for p in products),
            products=tuple(products),  # per_product is already quantity-desc
        )
        for (ref, name), products in grouped.items()
    ]
    return tuple(sorted(categories, key=lambda c: (-c.revenue, c.name)))
