from __future__ import annotations

import uvicorn

from resto_orders.config import Settings
from resto_orders.logs import setup_json_logging


def main() -> None:
    settings = Settings.from_env()
    setup_json_logging(settings.log_level)
    uvicorn.run(
        "resto_orders.asgi:create_asgi_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=False,
        log_config=None,
    )


if __name__ == "__main__":
    main()
