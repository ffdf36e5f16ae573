"""Flat rows <-> canonical Order.

Rows written by older clients use other column names and Spanish/French
enum values; every alias is resolved here so the core only ever sees the
canonical shape.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, Mapping, Sequence

from resto_orders.core.domain.model.money import to_amount
from resto_orders.core.domain.model.order import (
    AppliedPromotion,
    ClientInfo,
    KitchenStatus,
    Order,
    OrderItem,
    OrderKind,
    OrderStatus,
    PromotionType,
    SendState,
)

Row = Mapping[str, Any]

_ORDER_ALIASES: dict[str, tuple[str, ...]] = {
    "kind": ("kind", "type"),
    "order_status": ("order_status", "statut"),
    "kitchen_status": ("kitchen_status", "estado_cocina"),
    "table_ref": ("table_ref", "table_id"),
    "party_size": ("party_size", "couverts"),
    "client_name": ("client_name", "client_nom"),
    "client_phone": ("client_phone", "client_telephone"),
    "client_address": ("client_address", "client_adresse"),
    "created_at": ("created_at", "date_creation"),
    "sent_to_kitchen_at": ("sent_to_kitchen_at", "date_envoi_cuisine"),
    "ready_at": ("ready_at", "date_listo_cuisine"),
    "completed_at": ("completed_at", "date_servido"),
    "payment_receipt_url": ("payment_receipt_url", "receipt_url"),
}

_ITEM_ALIASES: dict[str, tuple[str, ...]] = {
    "product_ref": ("product_ref", "produit_id"),
    "name": ("name", "nom_produit"),
    "unit_price": ("unit_price", "prix_unitaire"),
    "quantity": ("quantity", "quantite"),
    "comment": ("comment", "commentaire"),
    "send_state": ("send_state", "estado"),
    "sent_at": ("sent_at", "date_envoi"),
}

_LEGACY_VALUES: dict[str, str] = {
    "sur_place": OrderKind.DINE_IN.value,
    "a_emporter": OrderKind.TAKEAWAY.value,
    "pendiente_validacion": OrderStatus.PENDING_VALIDATION.value,
    "en_cours": OrderStatus.IN_PROGRESS.value,
    "finalisee": OrderStatus.FINALIZED.value,
    "no_enviado": KitchenStatus.NOT_SENT.value,
    "recibido": KitchenStatus.RECEIVED.value,
    "listo": KitchenStatus.READY.value,
    "servido": KitchenStatus.SERVED.value,
    "entregada": KitchenStatus.DELIVERED.value,
    "en_attente": SendState.PENDING.value,
    "enviado": SendState.SENT.value,
}


# ---- rows -> Order ---------------------------------------------------------


def order_from_rows(row: Row, item_rows: Iterable[Row] = ()) -> Order:
    r = _canonical(row, _ORDER_ALIASES)

    client = None
    if r.get("client_name") or r.get("client_phone"):
        client = ClientInfo(
            name=str(r.get("client_name") or ""),
            phone=str(r.get("client_phone") or ""),
            address=r.get("client_address") or None,
        )

    items = tuple(item_from_row(ir) for ir in item_rows)
    subtotal = r.get("subtotal")
    if subtotal is None:
        subtotal = sum(it.line_total for it in items)
    total_discount = to_amount(r.get("total_discount") or 0)

    return Order(
        id=str(r["id"]),
        kind=OrderKind(_enum_value(r["kind"])),
        order_status=OrderStatus(_enum_value(r["order_status"])),
        kitchen_status=KitchenStatus(_enum_value(r["kitchen_status"])),
        created_at=_parse_ts(r["created_at"]),
        party_size=int(r.get("party_size") or 1),
        table_ref=_opt_str(r.get("table_ref")),
        client_info=client,
        items=items,
        sent_to_kitchen_at=_opt_ts(r.get("sent_to_kitchen_at")),
        ready_at=_opt_ts(r.get("ready_at")),
        completed_at=_opt_ts(r.get("completed_at")),
        subtotal=to_amount(subtotal),
        total_discount=total_discount,
        total=max(to_amount(subtotal) - total_discount, 0),
        shipping_cost=to_amount(r.get("shipping_cost") or 0),
        promo_code=r.get("promo_code") or None,
        applied_promotions=_promotions_from(r.get("applied_promotions")),
        payment_method=r.get("payment_method") or None,
        payment_receipt_url=r.get("payment_receipt_url") or None,
        profit=None if r.get("profit") is None else to_amount(r["profit"]),
    )


def item_from_row(row: Row) -> OrderItem:
    r = _canonical(row, _ITEM_ALIASES)
    comment = r.get("comment")
    return OrderItem(
        id=str(r["id"]),
        product_ref=str(r.get("product_ref") or ""),
        name=str(r.get("name") or ""),
        unit_price=to_amount(r.get("unit_price") or 0),
        quantity=int(r.get("quantity") or 1),
        excluded_ingredients=frozenset(r.get("excluded_ingredients") or ()),
        comment=comment.strip() or None if isinstance(comment, str) else None,
        send_state=SendState(_enum_value(r.get("send_state") or SendState.PENDING.value)),
        sent_at=_opt_ts(r.get("sent_at")),
    )


# ---- Order -> rows ---------------------------------------------------------


def order_to_row(order: Order) -> dict[str, Any]:
    client = order.client_info
    return {
        "id": order.id,
        "kind": order.kind.value,
        "order_status": order.order_status.value,
        "kitchen_status": order.kitchen_status.value,
        "table_ref": order.table_ref,
        "party_size": order.party_size,
        "client_name": client.name if client else None,
        "client_phone": client.phone if client else None,
        "client_address": client.address if client else None,
        "created_at": order.created_at.isoformat(),
        "sent_to_kitchen_at": _iso(order.sent_to_kitchen_at),
        "ready_at": _iso(order.ready_at),
        "completed_at": _iso(order.completed_at),
        "subtotal": order.subtotal,
        "total_discount": order.total_discount,
        "total": order.total,
        "shipping_cost": order.shipping_cost,
        "promo_code": order.promo_code,
        "applied_promotions": json.dumps(
            [promotion_to_dict(p) for p in order.applied_promotions], ensure_ascii=False
        ),
        "payment_method": order.payment_method,
        "payment_receipt_url": order.payment_receipt_url,
        "profit": order.profit,
    }


def item_to_row(order_id: str, item: OrderItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "order_id": order_id,
        "product_ref": item.product_ref,
        "name": item.name,
        "unit_price": item.unit_price,
        "quantity": item.quantity,
        "excluded_ingredients": sorted(item.excluded_ingredients),
        "comment": item.comment,
        "send_state": item.send_state.value,
        "sent_at": _iso(item.sent_at),
    }


def promotion_to_dict(p: AppliedPromotion) -> dict[str, Any]:
    return {
        "promotion_id": p.promotion_id,
        "name": p.name,
        "type": p.type.value,
        "config": dict(p.config),
        "discount_amount": p.discount_amount,
        "visuals": dict(p.visuals) if p.visuals is not None else None,
    }


# ---- helpers ---------------------------------------------------------------


def _canonical(row: Row, aliases: Mapping[str, Sequence[str]]) -> dict[str, Any]:
    out = dict(row)
    for canonical, names in aliases.items():
        for name in names:
            value = row.get(name)
            if value is not None:
                out[canonical] = value
                break
    return out


def _enum_value(raw: Any) -> str:
    value = str(raw)
    return _LEGACY_VALUES.get(value, value)


def _promotions_from(raw: Any) -> tuple[AppliedPromotion, ...]:
    if not raw:
        return ()
    data = json.loads(raw) if isinstance(raw, str) else raw
    out = []
    for p in data:
        out.append(
            AppliedPromotion(
                promotion_id=str(p.get("promotion_id") or p.get("id") or ""),
                name=str(p.get("name") or ""),
                type=PromotionType(str(p.get("type", "")).lower()),
                discount_amount=to_amount(p.get("discount_amount") or 0),
                config=dict(p.get("config") or {}),
                visuals=p.get("visuals"),
            )
        )
    return tuple(out)


def _parse_ts(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        ts = raw
    elif isinstance(raw, (int, float, Decimal)):
        # epoch milliseconds
        ts = datetime.fromtimestamp(float(raw) / 1000, tz=timezone.utc)
    else:
        ts = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _opt_ts(raw: Any) -> datetime | None:
    return None if raw in (None, "") else _parse_ts(raw)


def _opt_str(raw: Any) -> str | None:
    return None if raw in (None, "") else str(raw)


def _iso(ts: datetime | None) -> str | None:
    return ts.isoformat() if ts is not None else None
