"""
Order State Machine

    PENDING -> PAID -> PREPARING -> SHIPPED -> DELIVERED
       |        |          |
       |        +----------+--> REFUND_REQUESTED -> REFUNDED
       +--------+--> CANCELLED

Admin status overrides bypass this table on purpose.
"""
from typing import Dict, FrozenSet

from apps.core.exceptions import InvalidOrderStateException
from .models import Order, OrderStatus

ORDER_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PAID, OrderStatus.CANCELLED}),
    OrderStatus.PAID: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED, OrderStatus.REFUND_REQUESTED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.SHIPPED, OrderStatus.REFUND_REQUESTED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.REFUND_REQUESTED: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}

TERMINAL_STATES = frozenset(status for status, targets in ORDER_TRANSITIONS.items() if not targets)


def can_transition(current: str, target: str) -> bool:
    return target in ORDER_TRANSITIONS.get(current, frozenset())


def transition(order: Order, target: str, action: str) -> None:
    """Move ``order`` to ``target`` or raise; the caller persists it."""
    if not can_transition(order.status, target):
        raise InvalidOrderStateException(order.status, action)
    order.status = target
