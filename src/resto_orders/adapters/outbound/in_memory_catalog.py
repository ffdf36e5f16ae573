from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping

from returns.result import Result, Success

from resto_orders.core.domain.model.catalog import Category, Ingredient, Product
from resto_orders.core.domain.model.errors import OrderError
from resto_orders.core.ports.outbound.catalog import CatalogLookup


@dataclass
class InMemoryCatalog(CatalogLookup):
    products_by_id: Dict[str, Product] = field(default_factory=dict)
    categories_by_id: Dict[str, Category] = field(default_factory=dict)
    ingredients_by_id: Dict[str, Ingredient] = field(default_factory=dict)

    def products(self) -> Result[Mapping[str, Product], OrderError]:
        return Success(dict(self.products_by_id))

    def categories(self) -> Result[Mapping[str, Category], OrderError]:
        return Success(dict(self.categories_by_id))

    def ingredients(self) -> Result[Mapping[str, Ingredient], OrderError]:
        return Success(dict(self.ingredients_by_id))
