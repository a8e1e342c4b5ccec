"""Order creation, status transitions, rating and the order read model."""

import logging
import secrets
import string
import uuid
from datetime import UTC, datetime

from bedside_ordering.exceptions import (
    AlreadyRated,
    EmptyCart,
    InvalidRating,
    InvalidTransition,
    OrderNotFound,
    PersistenceFailure,
    RatingNotAllowed,
    RestaurantMismatch,
    RestaurantUnavailable,
)
from bedside_ordering.models.location_models import DeliveryLocation
from bedside_ordering.models.menu_models import Restaurant
from bedside_ordering.models.order_models import (
    AppliedPromotion,
    CustomerInfo,
    Order,
    OrderStatus,
    PaymentMethod,
)
from bedside_ordering.observability import traced
from bedside_ordering.observability.metrics import (
    record_discount_applied,
    record_order_created,
    record_rating,
    record_status_transition,
)
from bedside_ordering.repositories.order_repository import OrderRepository, WriteResult
from bedside_ordering.repositories.restaurant_repository import RestaurantRepository
from bedside_ordering.services import order_state_machine
from bedside_ordering.services.cart_service import CartStore
from bedside_ordering.services.order_feed import OrderFeed
from bedside_ordering.services.pricing_service import confirm_quote

logger = logging.getLogger(__name__)

VERIFICATION_CODE_LENGTH = 6
VERIFICATION_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_verification_code() -> str:
    """Six upper-case alphanumeric characters shown to the customer for handoff.

    Codes are not checked for uniqueness.
    """
    return "".join(
        secrets.choice(VERIFICATION_CODE_ALPHABET) for _ in range(VERIFICATION_CODE_LENGTH)
    )


def generate_order_id() -> str:
    return f"ord_{uuid.uuid4().hex[:12]}"


class OrderService:
    """Service owning the order lifecycle.

    Orders are created from a cart and re-priced against the restaurant as
    stored at that moment. Status and rating changes are validated here and
    then written as conditional updates, so a change made concurrently by
    someone else surfaces as an error instead of being overwritten. Every
    successful write refreshes the order feed while it has subscribers.
    """

    def __init__(
        self,
        order_repository: OrderRepository,
        restaurant_repository: RestaurantRepository,
        order_feed: OrderFeed,
    ) -> None:
        """Initialize the OrderService.

        Args:
            order_repository: Repository for orders
            restaurant_repository: Repository used to re-read restaurants at checkout
            order_feed: Read model refreshed after every successful write
        """
        self.order_repository = order_repository
        self.restaurant_repository = restaurant_repository
        self.order_feed = order_feed

    @traced("add_order")
    async def add_order(
        self,
        cart: CartStore,
        delivery_location: DeliveryLocation,
        customer: CustomerInfo,
        restaurant: Restaurant,
        payment_method: PaymentMethod,
        order_id: str | None = None,
    ) -> Order:
        """Place an order for the current cart contents.

        The flow is:
        1. Return the stored order if order_id was already placed by this customer
        2. Check the cart is non-empty and belongs to the restaurant
        3. Re-read the restaurant and check it still accepts orders
        4. Recompute the discount against the stored promotions
        5. Persist the order with a conditional put
        6. Clear the cart and refresh the feed

        A replayed order_id leaves the cart alone; it was cleared when the
        order was first placed and may hold a new selection since.

        Args:
            cart: The customer's cart
            delivery_location: Where the order is delivered
            customer: Contact details and owning session
            restaurant: The restaurant the customer is checking out with
            payment_method: Cash or QR payment
            order_id: Client-supplied id that makes retries safe; generated if omitted

        Returns:
            The persisted order (the existing one if order_id was already used)

        Raises:
            EmptyCart: If the cart has no items
            RestaurantMismatch: If the cart holds items from another restaurant
            RestaurantUnavailable: If the restaurant is no longer approved
            PersistenceFailure: If the restaurant cannot be read or the order cannot be written
        """
        if order_id is not None:
            existing = await self.find_placed_order(order_id, customer.customer_id)
            if existing is not None:
                return existing

        if cart.is_empty():
            raise EmptyCart("Cannot place an order with an empty cart")

        cart_restaurant_id = cart.restaurant_id()
        if cart_restaurant_id != restaurant.id:
            raise RestaurantMismatch(cart_restaurant_id or "", restaurant.id)

        current = self.restaurant_repository.get_restaurant(restaurant.id)
        if current is None:
            raise PersistenceFailure(f"Could not load restaurant {restaurant.id} at checkout")

        if not current.is_visible_to_customers:
            raise RestaurantUnavailable(current.id, current.status.value)

        items = cart.items
        quote = confirm_quote(items, current.promotions)

        payment_qr_code_url = None
        if payment_method == PaymentMethod.QR and current.active_payment_methods:
            payment_qr_code_url = current.active_payment_methods[0].qr_code_url

        order = Order(
            id=order_id or generate_order_id(),
            items=items,
            total_amount=quote.total,
            status=order_state_machine.initial_status(payment_method),
            order_date=datetime.now(UTC),
            delivery_location=delivery_location.details.strip(),
            verification_code=generate_verification_code(),
            restaurant_name=current.name,
            restaurant_id=current.id,
            customer_name=customer.name.strip(),
            customer_phone=customer.phone.strip(),
            customer_id=customer.customer_id,
            payment_method=payment_method,
            payment_qr_code_url=payment_qr_code_url,
            applied_promotion=(
                AppliedPromotion.from_promotion(quote.promotion) if quote.promotion else None
            ),
            discount_amount=quote.discount if quote.discount > 0 else None,
        )

        result = self.order_repository.create_order(order)

        if result == WriteResult.CONDITION_FAILED:
            # Same id written by a concurrent retry, which clears the cart itself.
            existing = await self.find_placed_order(order.id, customer.customer_id)
            if existing is None:
                raise PersistenceFailure(f"Order {order.id} exists but could not be read")
            return existing

        if result != WriteResult.APPLIED:
            logger.error(f"Failed to persist order for restaurant {current.id}")  # pragma: no cover
            raise PersistenceFailure("Order could not be saved, please try again")

        logger.info(
            f"Order {order.id} created for restaurant {order.restaurant_id} "
            f"with status {order.status.value}, total {order.total_amount}"
        )
        record_order_created(order.payment_method.value, order.total_amount)
        if order.applied_promotion is not None:
            record_discount_applied(order.applied_promotion.id)

        cart.clear()
        await self.refresh_feed()
        return order

    async def find_placed_order(self, order_id: str, customer_id: str) -> Order | None:
        """Look up an order placed earlier under a client-supplied id.

        Returns:
            The stored order, or None if the id has not been used

        Raises:
            PersistenceFailure: If the id belongs to another customer's order
        """
        existing = self.order_repository.get_order(order_id)
        if existing is None:
            return None
        if existing.customer_id != customer_id:
            raise PersistenceFailure(f"Order id {order_id} is already in use")
        logger.info(f"Order {order_id} already placed, returning existing order")
        return existing

    async def get_order(self, order_id: str) -> Order:
        """Get an order by id.

        Raises:
            OrderNotFound: If no order exists with the id
        """
        order = self.order_repository.get_order(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order

    async def get_order_for_customer(self, order_id: str, customer_id: str) -> Order:
        """Get an order owned by a customer session.

        Raises:
            OrderNotFound: If the order is missing or belongs to another customer
        """
        order = await self.get_order(order_id)
        if order.customer_id != customer_id:
            raise OrderNotFound(order_id)
        return order

    async def get_orders_for_restaurant(self, restaurant_id: str) -> list[Order]:
        """List a restaurant's orders, newest first.

        Raises:
            PersistenceFailure: If the orders cannot be read
        """
        orders = self.order_repository.list_orders_for_restaurant(restaurant_id)
        if orders is None:
            raise PersistenceFailure(f"Could not load orders for restaurant {restaurant_id}")
        return orders

    async def get_orders_for_customer(self, customer_id: str) -> list[Order]:
        """List a customer's orders, newest first.

        Raises:
            PersistenceFailure: If the orders cannot be read
        """
        orders = self.order_repository.list_orders_for_customer(customer_id)
        if orders is None:
            raise PersistenceFailure("Could not load your orders")
        return orders

    @traced("update_order_status")
    async def update_status(self, order_id: str, new_status: OrderStatus) -> Order:
        """Move an order to a new status.

        Only the single forward step, or cancellation from a non-terminal
        status, is accepted.

        Args:
            order_id: Order identifier
            new_status: Requested status

        Returns:
            The order with its new status

        Raises:
            OrderNotFound: If the order does not exist
            InvalidTransition: If the transition is not allowed or the order changed concurrently
            PersistenceFailure: If the update cannot be written
        """
        order = await self.get_order(order_id)
        return await self._transition(order, new_status)

    async def _transition(self, order: Order, new_status: OrderStatus) -> Order:
        if not order_state_machine.can_transition(order.status, new_status):
            raise InvalidTransition(order.id, order.status.value, new_status.value)

        result = self.order_repository.update_status(order.id, order.status, new_status)

        if result == WriteResult.CONDITION_FAILED:
            latest = self.order_repository.get_order(order.id)
            if latest is None:
                raise OrderNotFound(order.id)
            raise InvalidTransition(order.id, latest.status.value, new_status.value)

        if result != WriteResult.APPLIED:
            raise PersistenceFailure(f"Could not update status of order {order.id}")

        logger.info(f"Order {order.id} moved from {order.status.value} to {new_status.value}")
        record_status_transition(new_status.value)

        await self.refresh_feed()
        return order.model_copy(update={"status": new_status})

    @traced("confirm_delivery")
    async def confirm_delivery(self, order_id: str, customer_id: str) -> Order:
        """Customer confirms receipt of an order that is out for delivery.

        Raises:
            OrderNotFound: If the order is missing or owned by another customer
            InvalidTransition: If the order is not out for delivery
        """
        order = await self.get_order_for_customer(order_id, customer_id)

        target = order_state_machine.CUSTOMER_TRANSITIONS.get(order.status)
        if target is None:
            raise InvalidTransition(order.id, order.status.value, OrderStatus.DELIVERED.value)

        return await self._transition(order, target)

    @traced("set_order_rating")
    async def set_rating(self, order_id: str, rating: int, customer_id: str | None = None) -> Order:
        """Rate a delivered order once.

        Args:
            order_id: Order identifier
            rating: Whole number from 1 to 5
            customer_id: If given, the order must belong to this customer

        Returns:
            The rated order

        Raises:
            InvalidRating: If the rating is out of range
            OrderNotFound: If the order does not exist (or is not the customer's)
            RatingNotAllowed: If the order has not been delivered
            AlreadyRated: If the order already has a rating
        """
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise InvalidRating(f"Rating must be a whole number from 1 to 5, got {rating!r}")

        if customer_id is None:
            order = await self.get_order(order_id)
        else:
            order = await self.get_order_for_customer(order_id, customer_id)

        self._check_ratable(order)

        result = self.order_repository.set_rating(order_id, rating)

        if result == WriteResult.CONDITION_FAILED:
            latest = self.order_repository.get_order(order_id)
            if latest is None:
                raise OrderNotFound(order_id)
            self._check_ratable(latest)
            raise AlreadyRated(order_id)

        if result != WriteResult.APPLIED:
            raise PersistenceFailure(f"Could not save rating for order {order_id}")

        logger.info(f"Order {order_id} rated {rating}")
        record_rating(rating)

        await self.refresh_feed()
        return order.model_copy(update={"rating": rating})

    @staticmethod
    def _check_ratable(order: Order) -> None:
        if order.rating is not None:
            raise AlreadyRated(order.id, order.rating)
        if order.status != OrderStatus.DELIVERED:
            raise RatingNotAllowed(
                f"Order {order.id} is {order.status.value}; only delivered orders can be rated"
            )

    async def refresh_feed(self) -> bool:
        """Reload all orders and publish them to feed subscribers.

        Without subscribers the scan is skipped and the feed is marked stale.
        A failed read leaves the previous snapshot in place.

        Returns:
            False if the read failed, True otherwise
        """
        if self.order_feed.subscriber_count() == 0:
            self.order_feed.mark_stale()
            return True

        orders = self.order_repository.list_orders()
        if orders is None:
            logger.warning("Could not refresh order feed, keeping last snapshot")
            return False

        self.order_feed.publish(orders)
        return True
