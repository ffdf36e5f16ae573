"""Elapsed-time triage for kitchen tickets and take-away cards."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from resto_orders.core.domain.model.order import Order


class Urgency(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class UrgencyThresholds:
    warning_minutes: int = 10
    critical_minutes: int = 20

    def __post_init__(self) -> None:
        if not 0 < self.warning_minutes < self.critical_minutes:
            raise ValueError("thresholds must satisfy 0 < warning < critical")


DEFAULT_THRESHOLDS = UrgencyThresholds()


def elapsed_seconds(reference: datetime, now: datetime) -> int:
    seconds = int((now - reference).total_seconds())
    return seconds if seconds > 0 else 0


def classify(
    reference: datetime,
    now: datetime,
    thresholds: UrgencyThresholds = DEFAULT_THRESHOLDS,
) -> Urgency:
    minutes = elapsed_seconds(reference, now) // 60
    if minutes >= thresholds.critical_minutes:
        return Urgency.CRITICAL
    if minutes >= thresholds.warning_minutes:
        return Urgency.WARNING
    return Urgency.NORMAL


def reference_time(order: Order) -> datetime:
    return order.sent_to_kitchen_at or order.created_at


def classify_order(
    order: Order,
    now: datetime,
    thresholds: UrgencyThresholds = DEFAULT_THRESHOLDS,
) -> Urgency:
    return classify(reference_time(order), now, thresholds)


def format_elapsed(reference: datetime, now: datetime) -> str:
    """MM:SS, minutes keep growing past 59."""
    seconds = elapsed_seconds(reference, now)
    return f"{seconds // 60:02d}:{seconds % 60:02d}"
