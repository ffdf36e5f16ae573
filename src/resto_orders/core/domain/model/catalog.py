from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping, Tuple

# units whose price is quoted per kilo/litre while recipes use grams/millilitres
BULK_UNITS = frozenset({"kg", "L"})


@dataclass(frozen=True)
class Category:
    id: str
    name: str


@dataclass(frozen=True)
class Ingredient:
    id: str
    name: str
    unit: str
    unit_price: Decimal
    stock_current: Decimal = Decimal(0)
    stock_minimum: Decimal = Decimal(0)

    @property
    def is_low_stock(self) -> bool:
        return self.stock_current <= self.stock_minimum


@dataclass(frozen=True)
class RecipeItem:
    ingredient_ref: str
    quantity_used: Decimal


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    category_ref: str
    sale_price: int
    recipe: Tuple[RecipeItem, ...] = ()


@dataclass(frozen=True)
class CatalogSnapshot:
    products: Mapping[str, Product] = field(default_factory=dict)
    categories: Mapping[str, Category] = field(default_factory=dict)
    ingredients: Mapping[str, Ingredient] = field(default_factory=dict)
