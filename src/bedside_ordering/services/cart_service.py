"""Customer cart with the one-restaurant-per-cart rule."""

import logging
from decimal import Decimal

from pydantic import TypeAdapter, ValidationError

from bedside_ordering.exceptions import RestaurantMismatch
from bedside_ordering.models.menu_models import MenuItem
from bedside_ordering.models.order_models import CartItem, Order
from bedside_ordering.services.session_storage import SessionStorage

logger = logging.getLogger(__name__)

_CART_ITEMS = TypeAdapter(list[CartItem])


class CartStore:
    """In-progress selection for one customer session.

    Every mutation is written straight back to session storage, so a new
    CartStore for the same session sees the same items.
    """

    def __init__(self, storage: SessionStorage, session_id: str) -> None:
        """Initialize the cart and load any persisted items.

        Args:
            storage: Session storage backend
            session_id: Customer session the cart belongs to
        """
        self.storage = storage
        self.session_id = session_id
        self.storage_key = f"cart:{session_id}"
        self._items: list[CartItem] = self._load()

    def _load(self) -> list[CartItem]:
        raw = self.storage.get(self.storage_key)
        if raw is None:
            return []

        try:
            return _CART_ITEMS.validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable cart for session {self.session_id}: {e}")
            self.storage.delete(self.storage_key)
            return []

    def _save(self) -> None:
        self.storage.set(self.storage_key, _CART_ITEMS.dump_json(self._items).decode("utf-8"))

    @property
    def items(self) -> list[CartItem]:
        """Copies of the current cart items."""
        return [item.model_copy() for item in self._items]

    def is_empty(self) -> bool:
        return not self._items

    def restaurant_id(self) -> str | None:
        """Restaurant every item in the cart belongs to, or None when empty."""
        return self._items[0].restaurant_id if self._items else None

    def _ensure_same_restaurant(self, restaurant_id: str) -> None:
        current = self.restaurant_id()
        if current is not None and current != restaurant_id:
            raise RestaurantMismatch(current, restaurant_id)

    def add_item(self, menu_item: MenuItem) -> CartItem:
        """Add one unit of a menu item.

        Args:
            menu_item: Item to add

        Returns:
            The cart line after the change

        Raises:
            RestaurantMismatch: If the cart holds items from another restaurant
        """
        self._ensure_same_restaurant(menu_item.restaurant_id)

        for index, existing in enumerate(self._items):
            if existing.id == menu_item.id:
                updated = existing.model_copy(update={"quantity": existing.quantity + 1})
                self._items[index] = updated
                self._save()
                return updated

        added = CartItem.from_menu_item(menu_item)
        self._items.append(added)
        self._save()
        return added

    def remove_item(self, item_id: str) -> None:
        self._items = [item for item in self._items if item.id != item_id]
        self._save()

    def update_quantity(self, item_id: str, quantity: int) -> None:
        """Set an item's quantity; zero removes the item.

        Raises:
            ValueError: If quantity is negative
        """
        if quantity < 0:
            raise ValueError("quantity must not be negative")

        if quantity == 0:
            self.remove_item(item_id)
            return

        self._items = [
            item.model_copy(update={"quantity": quantity}) if item.id == item_id else item
            for item in self._items
        ]
        self._save()

    def clear(self) -> None:
        self._items = []
        self.storage.delete(self.storage_key)

    def total(self) -> Decimal:
        """Pre-discount subtotal of the cart."""
        return sum((item.line_total for item in self._items), Decimal("0"))

    def item_count(self) -> int:
        return sum(item.quantity for item in self._items)

    def reorder_from_past_order(self, order: Order) -> None:
        """Merge a past order's items into the cart.

        Quantities of items already in the cart are increased by the past
        order's quantity; other items are appended. Every merged item takes the
        past order's restaurant id.

        Raises:
            RestaurantMismatch: If the cart holds items from another restaurant
        """
        self._ensure_same_restaurant(order.restaurant_id)

        if not order.items:
            logger.info(f"Order {order.id} has no items to reorder")
            return

        for past_item in order.items:
            merged = past_item.model_copy(update={"restaurant_id": order.restaurant_id})
            for index, existing in enumerate(self._items):
                if existing.id == merged.id:
                    self._items[index] = existing.model_copy(
                        update={"quantity": existing.quantity + merged.quantity}
                    )
                    break
            else:
                self._items.append(merged)

        self._save()
