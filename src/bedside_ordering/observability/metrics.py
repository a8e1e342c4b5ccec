"""Custom metrics for the bedside ordering service."""

from decimal import Decimal

from opentelemetry import metrics

meter = metrics.get_meter("bedside-ordering")

orders_created_counter = meter.create_counter(
    name="orders_created_total",
    description="Total number of orders created by payment method",
    unit="1",
)

order_status_transition_counter = meter.create_counter(
    name="order_status_transitions_total",
    description="Total number of order status changes by target status",
    unit="1",
)

order_rating_counter = meter.create_counter(
    name="order_ratings_total",
    description="Total number of order ratings by rating value",
    unit="1",
)

discount_applied_counter = meter.create_counter(
    name="order_discounts_applied_total",
    description="Total number of orders with a promotion discount",
    unit="1",
)

order_total_histogram = meter.create_histogram(
    name="order_total_amount",
    description="Payable amount of created orders",
    unit="1",
)

order_feed_subscribers = meter.create_up_down_counter(
    name="order_feed_subscribers",
    description="Current number of order feed subscriptions",
    unit="1",
)


def record_order_created(payment_method: str, total_amount: Decimal) -> None:
    """Record a newly created order.

    Args:
        payment_method: How the order is paid ("cash" or "qr")
        total_amount: Amount payable after discount
    """
    orders_created_counter.add(1, {"payment_method": payment_method})
    order_total_histogram.record(float(total_amount), {"payment_method": payment_method})


def record_status_transition(status: str) -> None:
    """Record an order moving to a new status.

    Args:
        status: The status the order moved to
    """
    order_status_transition_counter.add(1, {"status": status})


def record_rating(rating: int) -> None:
    order_rating_counter.add(1, {"rating": rating})


def record_discount_applied(promotion_id: str) -> None:
    discount_applied_counter.add(1, {"promotion_id": promotion_id})


def record_feed_subscription_change(change: int) -> None:
    """Record a change in the number of order feed subscriptions.

    Args:
        change: +1 for a new subscription, -1 for a removed one
    """
    order_feed_subscribers.add(change)
