"""Restaurant registration, approval and merchant catalogue management."""

import logging
import secrets
import time
from decimal import Decimal
from urllib.parse import quote

from bedside_ordering.exceptions import (
    MenuItemNotFound,
    PersistenceFailure,
    RestaurantNotFound,
)
from bedside_ordering.models.menu_models import (
    MenuItem,
    Promotion,
    Restaurant,
    RestaurantPaymentMethod,
    RestaurantStatus,
)
from bedside_ordering.observability import traced
from bedside_ordering.repositories.restaurant_repository import RestaurantRepository

logger = logging.getLogger(__name__)

DEFAULT_DELIVERY_TIME = "20-30 分钟"
DEFAULT_DISTANCE = "0.5 公里"


def _placeholder_image(text: str, size: str) -> str:
    return f"https://placehold.co/{size}.png?text={quote(text)}"


def generate_entity_id(prefix: str) -> str:
    """Time-ordered id such as 'item_1718000000000_k3j9x'."""
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(3)[:5]}"


class RestaurantService:
    """Service for restaurant records and everything embedded in them.

    The restaurant id equals the owning merchant's uid, so a merchant acts on
    their own restaurant by passing their uid as restaurant_id.
    """

    def __init__(self, restaurant_repository: RestaurantRepository) -> None:
        """Initialize the RestaurantService.

        Args:
            restaurant_repository: Repository for restaurants
        """
        self.restaurant_repository = restaurant_repository

    @traced("register_restaurant")
    async def register_restaurant(self, owner_uid: str, name: str, cuisine: str) -> Restaurant:
        """Create the restaurant record for a newly signed-up merchant.

        The restaurant starts in Pending status and is invisible to customers
        until an admin approves it. Registering again returns the existing record.

        Args:
            owner_uid: Uid of the merchant; also used as restaurant id
            name: Restaurant name
            cuisine: Cuisine description

        Returns:
            The restaurant record

        Raises:
            PersistenceFailure: If the record cannot be written
        """
        existing = self.restaurant_repository.get_restaurant(owner_uid)
        if existing is not None:
            logger.info(f"Restaurant for merchant {owner_uid} already registered")
            return existing

        restaurant = Restaurant(
            id=owner_uid,
            name=name.strip(),
            cuisine=cuisine.strip(),
            image_url=_placeholder_image(name.strip(), "600x400"),
            rating=Decimal("0"),
            delivery_time=DEFAULT_DELIVERY_TIME,
            distance=DEFAULT_DISTANCE,
            status=RestaurantStatus.PENDING,
            owner_uid=owner_uid,
        )

        if not self.restaurant_repository.save_restaurant(restaurant):
            raise PersistenceFailure("Could not register restaurant")

        logger.info(f"Registered restaurant {restaurant.id} pending approval")
        return restaurant

    async def list_approved_restaurants(self) -> list[Restaurant]:
        """Restaurants customers can order from."""
        restaurants = self.restaurant_repository.list_restaurants(status=RestaurantStatus.APPROVED)
        if restaurants is None:
            raise PersistenceFailure("Could not load restaurants")
        return restaurants

    async def get_restaurant(self, restaurant_id: str) -> Restaurant:
        """Any restaurant by id, regardless of status.

        Raises:
            RestaurantNotFound: If the restaurant does not exist
        """
        restaurant = self.restaurant_repository.get_restaurant(restaurant_id)
        if restaurant is None:
            raise RestaurantNotFound(restaurant_id)
        return restaurant

    async def get_approved_restaurant(self, restaurant_id: str) -> Restaurant:
        """Customer view of one restaurant.

        Raises:
            RestaurantNotFound: If the restaurant is missing or not approved
        """
        restaurant = self.restaurant_repository.get_restaurant(restaurant_id)
        if restaurant is None or not restaurant.is_visible_to_customers:
            raise RestaurantNotFound(restaurant_id)
        return restaurant

    async def list_restaurants(self) -> list[Restaurant]:
        """Every restaurant regardless of status (admin view)."""
        restaurants = self.restaurant_repository.list_restaurants()
        if restaurants is None:
            raise PersistenceFailure("Could not load restaurants")
        return restaurants

    async def get_restaurant_for_owner(self, owner_uid: str) -> Restaurant:
        """The merchant's own restaurant, in any status.

        Raises:
            RestaurantNotFound: If the merchant has not registered a restaurant
        """
        restaurant = self.restaurant_repository.get_restaurant(owner_uid)
        if restaurant is None or restaurant.owner_uid != owner_uid:
            raise RestaurantNotFound(owner_uid)
        return restaurant

    @traced("set_restaurant_status")
    async def set_restaurant_status(
        self, restaurant_id: str, status: RestaurantStatus
    ) -> Restaurant:
        """Approve, reject or suspend a restaurant.

        Raises:
            RestaurantNotFound: If the restaurant does not exist
            PersistenceFailure: If the update cannot be written
        """
        restaurant = self.restaurant_repository.get_restaurant(restaurant_id)
        if restaurant is None:
            raise RestaurantNotFound(restaurant_id)

        if not self.restaurant_repository.update_status(restaurant_id, status):
            raise PersistenceFailure(f"Could not update status of restaurant {restaurant_id}")

        logger.info(
            f"Restaurant {restaurant_id} status changed from "
            f"{restaurant.status.value} to {status.value}"
        )
        return restaurant.model_copy(update={"status": status})

    async def add_menu_item(
        self,
        restaurant_id: str,
        name: str,
        price: Decimal,
        description: str = "",
        image_url: str | None = None,
    ) -> MenuItem:
        """Append a new, available item to the menu.

        Items without an image get a placeholder showing the item name.

        Returns:
            The created menu item
        """
        restaurant = await self.get_restaurant_for_owner(restaurant_id)

        menu_item = MenuItem(
            id=generate_entity_id("item"),
            restaurant_id=restaurant.id,
            name=name,
            description=description,
            price=price,
            image_url=image_url or _placeholder_image(name, "400x300"),
            is_available=True,
        )

        self._save_menu(restaurant.id, [*restaurant.menu, menu_item])
        return menu_item

    async def update_menu_item(
        self,
        restaurant_id: str,
        item_id: str,
        name: str,
        price: Decimal,
        description: str = "",
        image_url: str | None = None,
    ) -> MenuItem:
        """Edit an item's details. Availability and image are kept unless given.

        Raises:
            MenuItemNotFound: If the item is not on the menu
        """
        restaurant = await self.get_restaurant_for_owner(restaurant_id)
        existing = restaurant.find_menu_item(item_id)
        if existing is None:
            raise MenuItemNotFound(restaurant_id, item_id)

        updated = existing.model_copy(
            update={
                "name": name,
                "description": description,
                "price": price,
                "image_url": image_url or existing.image_url,
                "restaurant_id": restaurant.id,
            }
        )

        self._save_menu(
            restaurant.id, [updated if item.id == item_id else item for item in restaurant.menu]
        )
        return updated

    async def remove_menu_item(self, restaurant_id: str, item_id: str) -> None:
        """Delete an item from the menu.

        Past orders keep their own snapshot of the item.

        Raises:
            MenuItemNotFound: If the item is not on the menu
        """
        restaurant = await self.get_restaurant_for_owner(restaurant_id)
        if restaurant.find_menu_item(item_id) is None:
            raise MenuItemNotFound(restaurant_id, item_id)

        self._save_menu(restaurant.id, [item for item in restaurant.menu if item.id != item_id])

    async def set_item_availability(
        self, restaurant_id: str, item_id: str, is_available: bool
    ) -> MenuItem:
        """Mark an item available or sold out.

        Raises:
            MenuItemNotFound: If the item is not on the menu
        """
        restaurant = await self.get_restaurant_for_owner(restaurant_id)
        existing = restaurant.find_menu_item(item_id)
        if existing is None:
            raise MenuItemNotFound(restaurant_id, item_id)

        updated = existing.model_copy(update={"is_available": is_available})
        self._save_menu(
            restaurant.id, [updated if item.id == item_id else item for item in restaurant.menu]
        )
        return updated

    def _save_menu(self, restaurant_id: str, menu: list[MenuItem]) -> None:
        if not self.restaurant_repository.update_menu(restaurant_id, menu):
            raise PersistenceFailure(f"Could not save menu of restaurant {restaurant_id}")
        logger.info(f"Saved menu of restaurant {restaurant_id} with {len(menu)} items")

    async def save_promotions(
        self, restaurant_id: str, promotions: list[Promotion]
    ) -> list[Promotion]:
        """Replace the restaurant's promotion list.

        Promotions left out of the list are removed.

        Raises:
            RestaurantNotFound: If the merchant has no restaurant
            PersistenceFailure: If the list cannot be written
        """
        restaurant = await self.get_restaurant_for_owner(restaurant_id)

        if not self.restaurant_repository.update_promotions(restaurant.id, promotions):
            raise PersistenceFailure(f"Could not save promotions of restaurant {restaurant_id}")

        logger.info(f"Saved {len(promotions)} promotions for restaurant {restaurant_id}")
        return promotions

    async def save_payment_methods(
        self, restaurant_id: str, methods: list[RestaurantPaymentMethod]
    ) -> list[RestaurantPaymentMethod]:
        """Replace the payment QR codes offered at checkout.

        The first method's QR code is the one attached to QR-paid orders.

        Raises:
            RestaurantNotFound: If the merchant has no restaurant
            PersistenceFailure: If the list cannot be written
        """
        restaurant = await self.get_restaurant_for_owner(restaurant_id)

        if not self.restaurant_repository.update_payment_methods(restaurant.id, methods):
            raise PersistenceFailure(
                f"Could not save payment methods of restaurant {restaurant_id}"
            )

        logger.info(f"Saved {len(methods)} payment methods for restaurant {restaurant_id}")
        return methods
