from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone

# Extras the order service attaches to outcome records.
CONTEXT_FIELDS = ("action", "ref", "order_id", "order_status", "kitchen_status")


class OrderLogFormatter(logging.Formatter):
    """One JSON object per line, carrying the order context when present."""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                data[name] = value
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False)


def setup_json_logging(level: str | None = None) -> None:
    lvl = getattr(logging, (level or os.getenv("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(OrderLogFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(lvl)
