from __future__ import annotations

from fastapi import FastAPI

from resto_orders.adapters.inbound.web.fastapi_app import create_app
from resto_orders.bootstrap import build_runtime


def create_asgi_app() -> FastAPI:
    return create_app(build_runtime())
