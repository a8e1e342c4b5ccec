"""Error taxonomy for cart, pricing and order lifecycle operations.

Repositories never raise these. They report storage problems through return
values (None / False / WriteResult) and the service layer translates those
into the exceptions below, which the API layer maps to HTTP responses.
"""


class OrderingError(Exception):
    """Base class for all expected ordering failures."""


class RestaurantMismatch(OrderingError):
    """The cart already holds items from a different restaurant."""

    def __init__(self, cart_restaurant_id: str, requested_restaurant_id: str) -> None:
        super().__init__(
            f"Cart contains items from restaurant {cart_restaurant_id}; "
            f"cannot add items from restaurant {requested_restaurant_id}"
        )
        self.cart_restaurant_id = cart_restaurant_id
        self.requested_restaurant_id = requested_restaurant_id


class InvalidTransition(OrderingError):
    """The requested status is not reachable from the order's current status."""

    def __init__(self, order_id: str, current_status: str, requested_status: str) -> None:
        super().__init__(
            f"Order {order_id} cannot move from '{current_status}' to '{requested_status}'"
        )
        self.order_id = order_id
        self.current_status = current_status
        self.requested_status = requested_status


class AlreadyRated(OrderingError):
    """The order already carries a rating."""

    def __init__(self, order_id: str, existing_rating: int | None = None) -> None:
        super().__init__(f"Order {order_id} has already been rated")
        self.order_id = order_id
        self.existing_rating = existing_rating


class PersistenceFailure(OrderingError):
    """The backing store could not complete a read or write."""


class OrderNotFound(OrderingError):
    """No order exists with the given id (or it is not visible to the caller)."""

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class RestaurantNotFound(OrderingError):
    """No restaurant exists with the given id (or it is not visible to the caller)."""

    def __init__(self, restaurant_id: str) -> None:
        super().__init__(f"Restaurant {restaurant_id} not found")
        self.restaurant_id = restaurant_id


class RestaurantUnavailable(OrderingError):
    """The restaurant exists but is not approved for customer orders."""

    def __init__(self, restaurant_id: str, status: str) -> None:
        super().__init__(f"Restaurant {restaurant_id} is not accepting orders (status: {status})")
        self.restaurant_id = restaurant_id
        self.status = status


class EmptyCart(OrderingError):
    """Checkout was attempted with no items in the cart."""


class InvalidRating(OrderingError):
    """Ratings must be whole numbers from 1 to 5."""


class RatingNotAllowed(OrderingError):
    """Only delivered orders can be rated."""


class CancellationNotConfirmed(OrderingError):
    """Merchant cancellation requires an explicit confirmation step."""


class InvalidQrCode(OrderingError):
    """A scanned bed QR payload could not be turned into a delivery location."""


class MenuItemNotFound(OrderingError):
    """The restaurant's menu has no item with the given id."""

    def __init__(self, restaurant_id: str, item_id: str) -> None:
        super().__init__(f"Menu item {item_id} not found in restaurant {restaurant_id}")
        self.restaurant_id = restaurant_id
        self.item_id = item_id


class BedQrCodeNotFound(OrderingError):
    """No bed QR code record exists with the given id."""

    def __init__(self, qr_code_id: str) -> None:
        super().__init__(f"Bed QR code {qr_code_id} not found")
        self.qr_code_id = qr_code_id
