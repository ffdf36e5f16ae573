from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class OrderError(Exception):
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class InvalidInputError(OrderError):
    pass


@dataclass(frozen=True)
class IllegalTransitionError(OrderError):
    order_status: str = ""
    kitchen_status: str = ""

    def __str__(self) -> str:
        if not self.order_status:
            return self.message
        return (
            f"illegal_transition: {self.message} "
            f"(order_status={self.order_status}, kitchen_status={self.kitchen_status})"
        )


@dataclass(frozen=True)
class ItemLockedError(OrderError):
    item_id: str = ""

    def __str__(self) -> str:
        return f"item_locked: {self.item_id} ({self.message})"


@dataclass(frozen=True)
class OrderClosedError(OrderError):
    order_id: str = ""

    def __str__(self) -> str:
        return f"order_closed: {self.order_id} ({self.message})"


@dataclass(frozen=True)
class NotFoundError(OrderError):
    ref: str = ""

    def __str__(self) -> str:
        return f"not_found: {self.ref} ({self.message})"


@dataclass(frozen=True)
class PersistenceError(OrderError):
    pass


@dataclass(frozen=True)
class PublishError(OrderError):
    pass
