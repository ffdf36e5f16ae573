"""Subtotal -> discount -> total, with an audit trail per promotion.

Percentage and fixed discounts are each computed against the original
subtotal (no cascading) and stacked in the given order. The cumulative
discount never exceeds the subtotal; when a promotion is clamped its
snapshot records the amount actually taken, so the snapshots always sum
to total_discount. FREE_SHIPPING zeroes shipping_cost and records 0.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Sequence, Tuple

from resto_orders.core.domain.model.money import (
    clamp_non_negative,
    percentage_of,
    sum_amounts,
    to_amount,
)
from resto_orders.core.domain.model.order import AppliedPromotion, PromotionType
from resto_orders.core.domain.model.promotion import Promotion


@dataclass(frozen=True)
class PromotionBreakdown:
    discounts: Tuple[AppliedPromotion, ...]
    total_discount: int
    total: int
    shipping_cost: int


def nominal_discount(subtotal: int, promotion: Promotion) -> int:
    if promotion.type is PromotionType.PERCENTAGE:
        amount = percentage_of(subtotal, promotion.discount_value)
        cap = promotion.max_discount_amount
        if cap is not None and amount > cap:
            amount = cap
        return max(amount, 0)
    if promotion.type is PromotionType.FIXED_AMOUNT:
        return max(to_amount(promotion.discount_value), 0)
    return 0


def is_eligible(subtotal: int, promotion: Promotion) -> bool:
    minimum = promotion.min_order_amount
    return minimum is None or subtotal >= minimum


def compute(
    subtotal: int,
    promotions: Sequence[Promotion],
    shipping_cost: int = 0,
) -> PromotionBreakdown:
    discounts: list[AppliedPromotion] = []
    taken = 0

    for promo in promotions:
        if not is_eligible(subtotal, promo):
            continue

        if promo.type is PromotionType.FREE_SHIPPING:
            shipping_cost = 0
            discounts.append(_snapshot(promo, 0))
            continue

        remaining = clamp_non_negative(subtotal - taken)
        amount = min(nominal_discount(subtotal, promo), remaining)
        taken += amount
        discounts.append(_snapshot(promo, amount))

    return PromotionBreakdown(
        discounts=tuple(discounts),
        total_discount=taken,
        total=clamp_non_negative(subtotal - taken),
        shipping_cost=shipping_cost,
    )


def reclamp(
    subtotal: int, applied: Sequence[AppliedPromotion]
) -> Tuple[Tuple[AppliedPromotion, ...], int]:
    """Cap already-recorded snapshots against a new subtotal.

    Amounts only shrink; a grown subtotal keeps the recorded discounts until
    promotions are applied again.
    """
    out: list[AppliedPromotion] = []
    taken = 0
    for snap in applied:
        amount = min(snap.discount_amount, clamp_non_negative(subtotal - taken))
        taken += amount
        if amount != snap.discount_amount:
            snap = replace(snap, discount_amount=amount)
        out.append(snap)
    return tuple(out), sum_amounts(s.discount_amount for s in out)


def _snapshot(promo: Promotion, amount: int) -> AppliedPromotion:
    return AppliedPromotion(
        promotion_id=promo.promotion_id,
        name=promo.name,
        type=promo.type,
        discount_amount=amount,
        config=dict(promo.config),
        visuals=dict(promo.visuals) if promo.visuals is not None else None,
    )
