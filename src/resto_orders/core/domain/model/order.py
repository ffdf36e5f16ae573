from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Tuple
from uuid import uuid4

from resto_orders.core.domain.model import money


class OrderKind(str, Enum):
    DINE_IN = "dine_in"
    TAKEAWAY = "takeaway"


class OrderStatus(str, Enum):
    PENDING_VALIDATION = "pending_validation"
    IN_PROGRESS = "in_progress"
    FINALIZED = "finalized"


class KitchenStatus(str, Enum):
    NOT_SENT = "not_sent"
    RECEIVED = "received"
    READY = "ready"
    SERVED = "served"
    DELIVERED = "delivered"

    @property
    def rank(self) -> int:
        return _KITCHEN_RANK[self]

    @property
    def is_completed(self) -> bool:
        return self in (KitchenStatus.SERVED, KitchenStatus.DELIVERED)


_KITCHEN_RANK = {
    KitchenStatus.NOT_SENT: 0,
    KitchenStatus.RECEIVED: 1,
    KitchenStatus.READY: 2,
    KitchenStatus.SERVED: 3,
    KitchenStatus.DELIVERED: 3,
}


class SendState(str, Enum):
    PENDING = "pending"
    SENT = "sent"


class PromotionType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    FREE_SHIPPING = "free_shipping"


@dataclass(frozen=True)
class ClientInfo:
    name: str
    phone: str
    address: str | None = None


@dataclass(frozen=True)
class OrderItem:
    id: str
    product_ref: str
    name: str
    unit_price: int
    quantity: int
    excluded_ingredients: frozenset[str] = frozenset()
    comment: str | None = None
    send_state: SendState = SendState.PENDING
    sent_at: datetime | None = None

    @property
    def line_total(self) -> int:
        return money.line_total(self.unit_price, self.quantity)

    @property
    def is_sent(self) -> bool:
        return self.send_state is SendState.SENT


@dataclass(frozen=True)
class AppliedPromotion:
    """Snapshot of a promotion as evaluated against one order."""

    promotion_id: str
    name: str
    type: PromotionType
    discount_amount: int
    config: Mapping[str, Any] = field(default_factory=dict)
    visuals: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class Order:
    id: str
    kind: OrderKind
    order_status: OrderStatus
    kitchen_status: KitchenStatus
    created_at: datetime
    party_size: int = 1
    table_ref: str | None = None
    client_info: ClientInfo | None = None
    items: Tuple[OrderItem, ...] = ()
    sent_to_kitchen_at: datetime | None = None
    ready_at: datetime | None = None
    completed_at: datetime | None = None
    subtotal: int = 0
    total_discount: int = 0
    total: int = 0
    shipping_cost: int = 0
    promo_code: str | None = None
    applied_promotions: Tuple[AppliedPromotion, ...] = ()
    payment_method: str | None = None
    payment_receipt_url: str | None = None
    profit: int | None = None

    @property
    def is_finalized(self) -> bool:
        return self.order_status is OrderStatus.FINALIZED

    @property
    def amount_due(self) -> int:
        return self.total + self.shipping_cost

    def item(self, item_id: str) -> OrderItem | None:
        for it in self.items:
            if it.id == item_id:
                return it
        return None


def new_id() -> str:
    return str(uuid4())


def now_utc() -> datetime:
    return datetime.now(timezone.utc)
