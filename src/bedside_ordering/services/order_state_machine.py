"""Order status transition rules.

Forward progress is strictly one step at a time. Cancellation is possible from
any non-terminal status. Delivered and Cancelled are terminal.
"""

from bedside_ordering.models.order_models import OrderStatus, PaymentMethod

FORWARD_TRANSITIONS: dict[OrderStatus, OrderStatus] = {
    OrderStatus.PENDING_PAYMENT: OrderStatus.ORDER_PLACED,
    OrderStatus.ORDER_PLACED: OrderStatus.PREPARING,
    OrderStatus.PREPARING: OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.OUT_FOR_DELIVERY: OrderStatus.DELIVERED,
}

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED}
)

# The only step a customer may take: confirming receipt of the delivery.
CUSTOMER_TRANSITIONS: dict[OrderStatus, OrderStatus] = {
    OrderStatus.OUT_FOR_DELIVERY: OrderStatus.DELIVERED,
}


def initial_status(payment_method: PaymentMethod) -> OrderStatus:
    """Cash orders start as placed; QR orders wait for the merchant to confirm payment."""
    if payment_method == PaymentMethod.CASH:
        return OrderStatus.ORDER_PLACED
    return OrderStatus.PENDING_PAYMENT


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def next_status(status: OrderStatus) -> OrderStatus | None:
    """Single forward step from a status, or None for terminal statuses."""
    return FORWARD_TRANSITIONS.get(status)


def allowed_transitions(status: OrderStatus) -> frozenset[OrderStatus]:
    """All statuses reachable in one move from the given status."""
    if is_terminal(status):
        return frozenset()

    reachable = {OrderStatus.CANCELLED}
    forward = next_status(status)
    if forward is not None:
        reachable.add(forward)
    return frozenset(reachable)


def can_transition(current: OrderStatus, requested: OrderStatus) -> bool:
    return requested in allowed_transitions(current)
