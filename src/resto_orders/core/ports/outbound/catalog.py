from __future__ import annotations

from typing import Mapping, Protocol

from returns.result import Result

from resto_orders.core.domain.model.catalog import Category, Ingredient, Product
from resto_orders.core.domain.model.errors import OrderError


class CatalogLookup(Protocol):
    def products(self) -> Result[Mapping[str, Product], OrderError]: ...

    def categories(self) -> Result[Mapping[str, Category], OrderError]: ...

    def ingredients(self) -> Result[Mapping[str, Ingredient], OrderError]: ...
