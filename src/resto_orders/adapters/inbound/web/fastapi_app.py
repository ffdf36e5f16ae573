from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, AsyncIterator

from fastapi import FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from returns.result import Result, Success

from resto_orders.adapters.outbound.row_mapping import promotion_to_dict
from resto_orders.bootstrap import Runtime
from resto_orders.core.domain.model.errors import (
    IllegalTransitionError,
    InvalidInputError,
    ItemLockedError,
    NotFoundError,
    OrderClosedError,
    OrderError,
    PersistenceError,
    PublishError,
)
from resto_orders.core.domain.model.money import format_amount
from resto_orders.core.domain.model.order import (
    ClientInfo,
    Order,
    OrderItem,
    OrderKind,
    OrderStatus,
    PromotionType,
)
from resto_orders.core.domain.model.promotion import Promotion
from resto_orders.core.domain.service import reporting
from resto_orders.core.domain.service.item_ledger import partition
from resto_orders.core.domain.service.table_status import resolve as resolve_table_status
from resto_orders.core.ports.inbound.order_commands import (
    CreateOrderCommand,
    FinalizeCommand,
    ItemPatch,
    NewItem,
)

logger = logging.getLogger(__name__)

# ---- HTTP DTOs (adapter layer) ---------------------------------------------


class ClientInfoIn(BaseModel):
    name: str = Field(min_length=1, examples=["Ana"])
    phone: str = Field(min_length=1, examples=["3001234567"])
    address: str | None = None


class NewItemIn(BaseModel):
    product_ref: str = Field(min_length=1, examples=["prod-classic"])
    name: str = Field(min_length=1, examples=["Classic burger"])
    unit_price: int = Field(ge=0, examples=[18000])
    quantity: int = Field(default=1, gt=0, examples=[2])
    excluded_ingredients: list[str] = Field(default_factory=list)
    comment: str | None = None


class CreateOrderRequest(BaseModel):
    kind: OrderKind
    table_ref: str | None = None
    party_size: int = Field(default=1, gt=0)
    client_info: ClientInfoIn | None = None
    items: list[NewItemIn] = Field(default_factory=list)
    shipping_cost: int | None = Field(default=None, ge=0)
    promo_code: str | None = None


class AddItemsRequest(BaseModel):
    items: list[NewItemIn] = Field(min_length=1)


class ItemPatchRequest(BaseModel):
    quantity: int | None = Field(default=None, gt=0)
    comment: str | None = None


class DispatchRequest(BaseModel):
    item_ids: list[str] | None = None


class ValidateRequest(BaseModel):
    send_to_kitchen: bool = False


class PromotionIn(BaseModel):
    promotion_id: str = Field(min_length=1)
    name: str
    type: PromotionType
    discount_value: Decimal = Field(default=Decimal(0), ge=0)
    config: dict[str, Any] = Field(default_factory=dict)
    visuals: dict[str, Any] | None = None


class ApplyPromotionsRequest(BaseModel):
    promotions: list[PromotionIn] = Field(default_factory=list)


class FinalizeRequest(BaseModel):
    payment_method: str = Field(min_length=1, examples=["cash"])
    receipt_url: str | None = None


class OrderItemOut(BaseModel):
    id: str
    product_ref: str
    name: str
    unit_price: int
    quantity: int
    line_total: int
    excluded_ingredients: list[str]
    comment: str | None
    send_state: str
    sent_at: str | None


class OrderOut(BaseModel):
    id: str
    kind: str
    order_status: str
    kitchen_status: str
    table_ref: str | None
    table_status: str | None
    party_size: int
    client_info: dict[str, Any] | None
    pending_items: list[OrderItemOut]
    sent_items: list[OrderItemOut]
    created_at: str
    sent_to_kitchen_at: str | None
    ready_at: str | None
    completed_at: str | None
    subtotal: int
    total_discount: int
    total: int
    shipping_cost: int
    amount_due: int
    amount_due_display: str
    promo_code: str | None
    applied_promotions: list[dict[str, Any]]
    payment_method: str | None
    payment_receipt_url: str | None
    profit: int | None


class TrackerOut(BaseModel):
    order_id: str
    step: int | None
    step_name: str | None
    completed: bool
    urgency: str
    elapsed: str


class TicketLineOut(BaseModel):
    product_ref: str
    name: str
    quantity: int
    comment: str | None
    excluded_ingredients: list[str]


class KitchenTicketOut(BaseModel):
    ticket_key: str
    order_id: str
    kind: str
    table_ref: str | None
    sent_at: str
    lines: list[TicketLineOut]


class ErrorResponse(BaseModel):
    type: str
    message: str
    details: list[dict[str, Any]] | None = None


def _map_error_to_http(err: OrderError) -> tuple[int, ErrorResponse]:
    body = ErrorResponse(type=type(err).__name__, message=str(err))

    if isinstance(err, InvalidInputError):
        return 400, body

    if isinstance(err, NotFoundError):
        return 404, body

    if isinstance(err, (IllegalTransitionError, ItemLockedError, OrderClosedError)):
        return 409, body

    if isinstance(err, PublishError):
        return 503, body

    if isinstance(err, PersistenceError):
        return 500, body

    return 500, body


# ---- mapping helpers -------------------------------------------------------


def _to_new_item(it: NewItemIn) -> NewItem:
    return NewItem(
        product_ref=it.product_ref,
        name=it.name,
        unit_price=it.unit_price,
        quantity=it.quantity,
        excluded_ingredients=frozenset(it.excluded_ingredients),
        comment=it.comment,
    )


def _item_out(it: OrderItem) -> OrderItemOut:
    return OrderItemOut(
        id=it.id,
        product_ref=it.product_ref,
        name=it.name,
        unit_price=it.unit_price,
        quantity=it.quantity,
        line_total=it.line_total,
        excluded_ingredients=sorted(it.excluded_ingredients),
        comment=it.comment,
        send_state=it.send_state.value,
        sent_at=it.sent_at.isoformat() if it.sent_at else None,
    )


def _order_out(order: Order, currency_symbol: str) -> OrderOut:
    groups = partition(order.items)
    client = order.client_info
    return OrderOut(
        id=order.id,
        kind=order.kind.value,
        order_status=order.order_status.value,
        kitchen_status=order.kitchen_status.value,
        table_ref=order.table_ref,
        table_status=(
            resolve_table_status(order.kitchen_status).value
            if order.table_ref and not order.is_finalized
            else None
        ),
        party_size=order.party_size,
        client_info=(
            {"name": client.name, "phone": client.phone, "address": client.address}
            if client
            else None
        ),
        pending_items=[_item_out(it) for it in groups.pending],
        sent_items=[_item_out(it) for it in groups.sent],
        created_at=order.created_at.isoformat(),
        sent_to_kitchen_at=_iso(order.sent_to_kitchen_at),
        ready_at=_iso(order.ready_at),
        completed_at=_iso(order.completed_at),
        subtotal=order.subtotal,
        total_discount=order.total_discount,
        total=order.total,
        shipping_cost=order.shipping_cost,
        amount_due=order.amount_due,
        amount_due_display=format_amount(order.amount_due, currency_symbol),
        promo_code=order.promo_code,
        applied_promotions=[promotion_to_dict(p) for p in order.applied_promotions],
        payment_method=order.payment_method,
        payment_receipt_url=order.payment_receipt_url,
        profit=order.profit,
    )


def _iso(ts) -> str | None:
    return ts.isoformat() if ts is not None else None


def _unwrap(result: Result) -> Any:
    if isinstance(result, Success):
        return result.unwrap()
    raise result.failure()


# ---- app factory -----------------------------------------------------------


def create_app(runtime: Runtime) -> FastAPI:
    service = runtime.orders
    symbol = runtime.settings.currency_symbol

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        runtime.start()
        logger.info("change subscription started")
        try:
            yield
        finally:
            runtime.close()
            logger.info("change subscription closed")

    app = FastAPI(title="resto_orders", lifespan=lifespan)

    # --- exception handlers ---------------------------------------------------

    @app.exception_handler(OrderError)
    async def handle_domain_error(_: Request, exc: OrderError) -> JSONResponse:
        status, body = _map_error_to_http(exc)
        if status >= 500:
            logger.error("request failed: %s", exc)
        return JSONResponse(status_code=status, content=body.model_dump())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        _: Request, exc: RequestValidationError
    ) -> JSONResponse:
        body = ErrorResponse(
            type="RequestValidationError",
            message="invalid request",
            details=[
                {"loc": list(e.get("loc", ())), "msg": str(e.get("msg", ""))}
                for e in exc.errors()
            ],
        )
        return JSONResponse(status_code=400, content=body.model_dump())

    @app.exception_handler(Exception)
    async def handle_unexpected(_: Request, exc: Exception) -> JSONResponse:
        logger.exception("unexpected error")
        body = ErrorResponse(type=type(exc).__name__, message="internal server error")
        return JSONResponse(status_code=500, content=body.model_dump())

    # --- orders -----------------------------------------------------------------

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/orders", response_model=OrderOut, status_code=201)
    def create_order(req: CreateOrderRequest, response: Response) -> Any:
        shipping = req.shipping_cost
        if shipping is None:
            shipping = (
                runtime.settings.takeaway_shipping_cost if req.kind is OrderKind.TAKEAWAY else 0
            )
        cmd = CreateOrderCommand(
            kind=req.kind,
            table_ref=req.table_ref,
            party_size=req.party_size,
            client_info=(
                ClientInfo(req.client_info.name, req.client_info.phone, req.client_info.address)
                if req.client_info
                else None
            ),
            items=tuple(_to_new_item(it) for it in req.items),
            shipping_cost=shipping,
            promo_code=req.promo_code,
        )
        order = _unwrap(service.create_order(cmd))
        response.headers["Location"] = f"/orders/{order.id}"
        return _order_out(order, symbol)

    @app.get("/orders", response_model=list[OrderOut])
    def list_orders(
        kind: OrderKind | None = Query(None),
        order_status: OrderStatus | None = Query(None),
    ) -> Any:
        orders = _unwrap(service.list_orders(kind=kind, order_status=order_status))
        return [_order_out(o, symbol) for o in orders]

    @app.get("/orders/{order_id}", response_model=OrderOut)
    def get_order(order_id: str) -> Any:
        return _order_out(_unwrap(service.get_order(order_id)), symbol)

    @app.delete("/orders/{order_id}", status_code=204)
    def cancel_order(order_id: str) -> Response:
        _unwrap(service.cancel(order_id))
        return Response(status_code=204)

    @app.post("/orders/{order_id}/items", response_model=OrderOut)
    def add_items(order_id: str, req: AddItemsRequest) -> Any:
        items = tuple(_to_new_item(it) for it in req.items)
        return _order_out(_unwrap(service.add_items(order_id, items)), symbol)

    @app.patch("/orders/{order_id}/items/{item_id}", response_model=OrderOut)
    def update_item(order_id: str, item_id: str, req: ItemPatchRequest) -> Any:
        patch = ItemPatch(quantity=req.quantity, comment=req.comment)
        return _order_out(_unwrap(service.update_item(order_id, item_id, patch)), symbol)

    @app.delete("/orders/{order_id}/items/{item_id}", response_model=OrderOut)
    def remove_item(order_id: str, item_id: str) -> Any:
        return _order_out(_unwrap(service.remove_item(order_id, item_id)), symbol)

    @app.post("/orders/{order_id}/dispatch", response_model=OrderOut)
    def dispatch(order_id: str, req: DispatchRequest | None = None) -> Any:
        item_ids = req.item_ids if req is not None else None
        return _order_out(_unwrap(service.dispatch(order_id, item_ids)), symbol)

    @app.post("/orders/{order_id}/ready", response_model=OrderOut)
    def mark_ready(order_id: str) -> Any:
        return _order_out(_unwrap(service.mark_ready(order_id)), symbol)

    @app.post("/orders/{order_id}/served", response_model=OrderOut)
    def mark_served(order_id: str) -> Any:
        return _order_out(_unwrap(service.mark_served(order_id)), symbol)

    @app.post("/orders/{order_id}/validate", response_model=OrderOut)
    def validate(order_id: str, req: ValidateRequest | None = None) -> Any:
        send = req.send_to_kitchen if req is not None else False
        return _order_out(_unwrap(service.validate(order_id, send_to_kitchen=send)), symbol)

    @app.post("/orders/{order_id}/promotions", response_model=OrderOut)
    def apply_promotions(order_id: str, req: ApplyPromotionsRequest) -> Any:
        promotions = tuple(
            Promotion(
                promotion_id=p.promotion_id,
                name=p.name,
                type=p.type,
                discount_value=p.discount_value,
                config=p.config,
                visuals=p.visuals,
            )
            for p in req.promotions
        )
        return _order_out(_unwrap(service.apply_promotions(order_id, promotions)), symbol)

    @app.post("/orders/{order_id}/finalize", response_model=OrderOut)
    def finalize(order_id: str, req: FinalizeRequest) -> Any:
        cmd = FinalizeCommand(payment_method=req.payment_method, receipt_url=req.receipt_url)
        return _order_out(_unwrap(service.finalize(order_id, cmd)), symbol)

    @app.get("/orders/{order_id}/tracker", response_model=TrackerOut)
    def track(order_id: str) -> Any:
        view = _unwrap(service.track(order_id))
        return TrackerOut(
            order_id=view.order.id,
            step=view.step,
            step_name=view.step_name,
            completed=view.completed,
            urgency=view.urgency.value,
            elapsed=view.elapsed,
        )

    # --- boards & reports ---------------------------------------------------

    @app.get("/kitchen/tickets", response_model=list[KitchenTicketOut])
    def kitchen_tickets() -> Any:
        tickets = _unwrap(service.kitchen_tickets())
        return [
            KitchenTicketOut(
                ticket_key=t.ticket_key,
                order_id=t.order_id,
                kind=t.kind,
                table_ref=t.table_ref,
                sent_at=t.sent_at.isoformat(),
                lines=[
                    TicketLineOut(
                        product_ref=ln.product_ref,
                        name=ln.name,
                        quantity=ln.quantity,
                        comment=ln.comment,
                        excluded_ingredients=sorted(ln.excluded_ingredients),
                    )
                    for ln in t.lines
                ],
            )
            for t in tickets
        ]

    @app.get("/takeaway")
    def takeaway_board() -> dict[str, Any]:
        board = _unwrap(service.takeaway_board())
        return {
            "pending": [_order_out(o, symbol).model_dump() for o in board.pending],
            "ready": [_order_out(o, symbol).model_dump() for o in board.ready],
        }

    @app.get("/reports/sales")
    def sales_report(top: int = Query(6, ge=1, le=50)) -> dict[str, Any]:
        report = _unwrap(service.sales_report())
        return {
            "order_count": report.order_count,
            "total_sales": report.total_sales,
            "total_profit": report.total_profit,
            "average_ticket": report.average_ticket,
            "per_category": [
                {
                    "category_ref": c.category_ref,
                    "name": c.name,
                    "quantity": c.quantity,
                    "revenue": c.revenue,
                    "products": [
                        {"product_ref": p.product_ref, "name": p.name, "quantity": p.quantity}
                        for p in c.products
                    ],
                }
                for c in report.per_category
            ],
            "per_product": [
                {
                    "product_ref": p.product_ref,
                    "name": p.name,
                    "category": p.category_name,
                    "quantity": p.quantity,
                    "revenue": p.revenue,
                    "profit": p.profit,
                }
                for p in report.per_product
            ],
            "top_products": [
                {"name": s.name, "value": s.value}
                for s in reporting.top_products(report.per_product, limit=top)
            ],
            "low_stock": [
                {
                    "id": i.id,
                    "name": i.name,
                    "unit": i.unit,
                    "stock_current": str(i.stock_current),
                    "stock_minimum": str(i.stock_minimum),
                }
                for i in report.low_stock
            ],
        }

    @app.get("/notifications")
    def notifications() -> dict[str, int]:
        counts = _unwrap(service.notification_counts())
        return {
            "pending_takeaway": counts.pending_takeaway,
            "ready_takeaway": counts.ready_takeaway,
            "kitchen_orders": counts.kitchen_orders,
            "ready_for_service": counts.ready_for_service,
            "low_stock_ingredients": counts.low_stock_ingredients,
        }

    @app.get("/changes")
    def changes() -> dict[str, int]:
        return {"version": runtime.changes.version}

    return app
