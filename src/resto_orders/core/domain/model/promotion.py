from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping

from resto_orders.core.domain.model.order import PromotionType


@dataclass(frozen=True)
class Promotion:
    """A candidate promotion, before evaluation against an order.

    discount_value holds percentage points for PERCENTAGE and an amount for
    FIXED_AMOUNT; it is ignored for FREE_SHIPPING.
    config keys understood by the ledger: promo_code, min_order_amount,
    max_discount_amount. Anything else is carried into the snapshot as is.
    """

    promotion_id: str
    name: str
    type: PromotionType
    discount_value: Decimal = Decimal(0)
    config: Mapping[str, Any] = field(default_factory=dict)
    visuals: Mapping[str, Any] | None = None

    @property
    def min_order_amount(self) -> int | None:
        raw = self.config.get("min_order_amount")
        return None if raw is None else int(raw)

    @property
    def max_discount_amount(self) -> int | None:
        raw = self.config.get("max_discount_amount")
        return None if raw is None else int(raw)

    @property
    def promo_code(self) -> str | None:
        return self.config.get("promo_code")
