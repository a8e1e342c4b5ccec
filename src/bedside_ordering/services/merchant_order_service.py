"""Merchant view of incoming orders and the actions a merchant can take on them."""

import logging

from bedside_ordering.exceptions import CancellationNotConfirmed, InvalidTransition, OrderNotFound
from bedside_ordering.models.order_models import Order, OrderStatus
from bedside_ordering.services import order_state_machine
from bedside_ordering.services.order_service import OrderService

logger = logging.getLogger(__name__)

ADVANCE_ACTION_LABELS: dict[OrderStatus, str] = {
    OrderStatus.PENDING_PAYMENT: "Confirm payment and accept order",
    OrderStatus.ORDER_PLACED: "Start preparing",
    OrderStatus.PREPARING: "Mark out for delivery",
    OrderStatus.OUT_FOR_DELIVERY: "Mark delivered",
}


class MerchantOrderController:
    """Drives a restaurant's orders through their lifecycle.

    All writes go through OrderService, so the same transition rules and
    conditional updates apply. Orders belonging to another restaurant are
    reported as not found.
    """

    def __init__(self, order_service: OrderService) -> None:
        self.order_service = order_service

    @staticmethod
    def next_status(order: Order) -> OrderStatus | None:
        return order_state_machine.next_status(order.status)

    @staticmethod
    def can_advance(order: Order) -> bool:
        return order_state_machine.next_status(order.status) is not None

    @staticmethod
    def can_cancel(order: Order) -> bool:
        return not order_state_machine.is_terminal(order.status)

    @staticmethod
    def advance_label(order: Order) -> str | None:
        """Button text for the next step, or None if the order cannot advance."""
        return ADVANCE_ACTION_LABELS.get(order.status)

    async def list_orders(self, restaurant_id: str) -> list[Order]:
        """The restaurant's orders, newest first."""
        return await self.order_service.get_orders_for_restaurant(restaurant_id)

    async def _get_owned_order(self, order_id: str, restaurant_id: str) -> Order:
        order = await self.order_service.get_order(order_id)
        if order.restaurant_id != restaurant_id:
            logger.warning(f"Restaurant {restaurant_id} attempted to access order {order_id}")
            raise OrderNotFound(order_id)
        return order

    async def advance(self, order_id: str, restaurant_id: str) -> Order:
        """Move an order one step forward.

        Args:
            order_id: Order identifier
            restaurant_id: Restaurant acting on the order

        Returns:
            The updated order

        Raises:
            OrderNotFound: If the order is missing or belongs to another restaurant
            InvalidTransition: If the order is terminal or changed concurrently
        """
        order = await self._get_owned_order(order_id, restaurant_id)

        target = self.next_status(order)
        if target is None:
            raise InvalidTransition(order.id, order.status.value, "next status")

        return await self.order_service.update_status(order.id, target)

    async def cancel(self, order_id: str, restaurant_id: str, confirmed: bool) -> Order:
        """Cancel an order after explicit confirmation.

        Args:
            order_id: Order identifier
            restaurant_id: Restaurant acting on the order
            confirmed: Whether the merchant confirmed the cancellation

        Returns:
            The cancelled order

        Raises:
            CancellationNotConfirmed: If confirmed is False
            OrderNotFound: If the order is missing or belongs to another restaurant
            InvalidTransition: If the order is already terminal
        """
        if not confirmed:
            raise CancellationNotConfirmed(f"Cancelling order {order_id} requires confirmation")

        order = await self._get_owned_order(order_id, restaurant_id)
        return await self.order_service.update_status(order.id, OrderStatus.CANCELLED)
