"""Push-based read model of all orders.

The feed holds the latest full snapshot of the orders collection, newest
first, and hands it to every subscriber whenever it is refreshed. Subscribers
can narrow their view to one restaurant (merchant) or one customer.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from itertools import count

from bedside_ordering.models.order_models import Order
from bedside_ordering.observability.metrics import record_feed_subscription_change

logger = logging.getLogger(__name__)

OrderListener = Callable[[list[Order]], None]


@dataclass
class _Subscription:
    listener: OrderListener
    restaurant_id: str | None = None
    customer_id: str | None = None

    def select(self, orders: list[Order]) -> list[Order]:
        return [
            order
            for order in orders
            if (self.restaurant_id is None or order.restaurant_id == self.restaurant_id)
            and (self.customer_id is None or order.customer_id == self.customer_id)
        ]


def sort_newest_first(orders: list[Order]) -> list[Order]:
    return sorted(orders, key=lambda order: order.order_date, reverse=True)


class OrderFeed:
    """Latest order snapshot plus its subscribers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ids = count(1)
        self._subscriptions: dict[int, _Subscription] = {}
        self._snapshot: list[Order] = []
        self.loaded = False

    @property
    def snapshot(self) -> list[Order]:
        """Most recently published orders, newest first."""
        with self._lock:
            return list(self._snapshot)

    def subscribe(
        self,
        listener: OrderListener,
        restaurant_id: str | None = None,
        customer_id: str | None = None,
    ) -> Callable[[], None]:
        """Register a listener and immediately deliver the current snapshot.

        Args:
            listener: Called with the (filtered) snapshot on every publish
            restaurant_id: Only deliver this restaurant's orders
            customer_id: Only deliver this customer's orders

        Returns:
            Callable that removes the subscription
        """
        subscription = _Subscription(listener, restaurant_id, customer_id)
        with self._lock:
            subscription_id = next(self._ids)
            self._subscriptions[subscription_id] = subscription
            current = list(self._snapshot)

        record_feed_subscription_change(1)
        self._deliver(subscription, current)

        def unsubscribe() -> None:
            with self._lock:
                removed = self._subscriptions.pop(subscription_id, None)
            if removed is not None:
                record_feed_subscription_change(-1)

        return unsubscribe

    def publish(self, orders: list[Order]) -> None:
        """Replace the snapshot and notify every subscriber."""
        ordered = sort_newest_first(orders)
        with self._lock:
            self._snapshot = ordered
            self.loaded = True
            subscriptions = list(self._subscriptions.values())

        logger.debug(f"Publishing {len(ordered)} orders to {len(subscriptions)} subscribers")
        for subscription in subscriptions:
            self._deliver(subscription, ordered)

    def mark_stale(self) -> None:
        """Flag the snapshot as out of date until the next publish."""
        with self._lock:
            self.loaded = False

    def _deliver(self, subscription: _Subscription, orders: list[Order]) -> None:
        # One failing listener must not starve the others.
        try:
            subscription.listener(subscription.select(orders))
        except Exception:
            logger.exception("Order feed listener failed")

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)
