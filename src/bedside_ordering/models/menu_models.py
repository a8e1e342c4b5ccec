"""Restaurant, menu and promotion models.

Restaurants are stored as a single DynamoDB item that embeds the menu, the
promotion list and the payment methods, so each of those collections is
rewritten as a whole when a merchant saves it.
"""

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MenuItem(BaseModel):
    """Menu item offered by a restaurant."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    id: str = Field(..., description="Unique identifier for the menu item")
    restaurant_id: str = Field(..., description="Restaurant this item belongs to")
    name: str = Field(..., description="Item name")
    description: str = Field(default="", description="Item description")
    price: Decimal = Field(..., description="Item price in currency units", gt=0)
    image_url: str = Field(default="", description="URL to item image")
    is_available: bool = Field(default=True, description="Whether item can currently be ordered")

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB map format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        return {
            "id": self.id,
            "restaurant_id": self.restaurant_id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "image_url": self.image_url,
            "is_available": self.is_available,
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "MenuItem":
        """Create MenuItem from a DynamoDB map.

        Args:
            item: DynamoDB map

        Returns:
            MenuItem: Parsed model instance
        """
        return cls(
            id=item["id"],
            restaurant_id=item["restaurant_id"],
            name=item["name"],
            description=item.get("description", ""),
            price=Decimal(str(item["price"])),
            image_url=item.get("image_url", ""),
            is_available=item.get("is_available", True),
        )


class PromotionType(str, Enum):
    """Promotion kinds. Only fixed-amount discounts are applied at checkout."""

    DISCOUNT_PERCENTAGE = "discount_percentage"
    DISCOUNT_FIXED_AMOUNT = "discount_fixed_amount"
    FREE_DELIVERY = "free_delivery"


class PromotionDetails(BaseModel):
    """Type-specific promotion parameters."""

    min_value: Decimal | None = Field(None, description="Minimum cart subtotal", ge=0)
    amount: Decimal | None = Field(None, description="Fixed discount amount", ge=0)
    percentage: Decimal | None = Field(None, description="Percentage off", ge=0, le=100)

    def to_dynamodb_item(self) -> dict[str, Any]:
        item: dict[str, Any] = {}
        if self.min_value is not None:
            item["min_value"] = self.min_value
        if self.amount is not None:
            item["amount"] = self.amount
        if self.percentage is not None:
            item["percentage"] = self.percentage
        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "PromotionDetails":
        return cls(
            min_value=_optional_decimal(item.get("min_value")),
            amount=_optional_decimal(item.get("amount")),
            percentage=_optional_decimal(item.get("percentage")),
        )


class Promotion(BaseModel):
    """Merchant-defined promotion attached to a restaurant."""

    id: str = Field(..., description="Unique identifier for the promotion")
    description: str = Field(..., description="Customer-facing text, e.g. 'Spend 30, save 5'")
    type: PromotionType = Field(..., description="Promotion kind")
    details: PromotionDetails = Field(default_factory=PromotionDetails)
    is_active: bool = Field(default=True, description="Whether the promotion is live")
    start_date: str | None = Field(None, description="Informational start date")
    end_date: str | None = Field(None, description="Informational end date")

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB map format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "id": self.id,
            "description": self.description,
            "type": self.type.value,
            "details": self.details.to_dynamodb_item(),
            "is_active": self.is_active,
        }

        if self.start_date is not None:
            item["start_date"] = self.start_date

        if self.end_date is not None:
            item["end_date"] = self.end_date

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Promotion":
        """Create Promotion from a DynamoDB map.

        Args:
            item: DynamoDB map

        Returns:
            Promotion: Parsed model instance
        """
        return cls(
            id=item["id"],
            description=item["description"],
            type=PromotionType(item["type"]),
            details=PromotionDetails.from_dynamodb_item(item.get("details", {})),
            is_active=item.get("is_active", False),
            start_date=item.get("start_date"),
            end_date=item.get("end_date"),
        )


class PaymentMethodType(str, Enum):
    """Kinds of merchant payment QR codes."""

    ALIPAY = "alipay"
    WECHAT = "wechat"
    CUSTOM = "custom"


class RestaurantPaymentMethod(BaseModel):
    """A payment QR code a merchant offers to customers."""

    id: str
    type: PaymentMethodType
    name: str
    qr_code_url: str

    def to_dynamodb_item(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "name": self.name,
            "qr_code_url": self.qr_code_url,
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "RestaurantPaymentMethod":
        return cls(
            id=item["id"],
            type=PaymentMethodType(item["type"]),
            name=item["name"],
            qr_code_url=item["qr_code_url"],
        )


class RestaurantStatus(str, Enum):
    """Approval state controlling customer-facing visibility."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    SUSPENDED = "Suspended"


class Restaurant(BaseModel):
    """Restaurant with its embedded menu, promotions and payment methods.

    Stored in DynamoDB with id as partition key. The id equals the owning
    merchant's uid.
    """

    id: str = Field(..., description="Unique identifier for the restaurant")
    name: str = Field(..., description="Restaurant name")
    cuisine: str = Field(default="", description="Cuisine description")
    image_url: str = Field(default="", description="Cover image URL")
    rating: Decimal = Field(default=Decimal("0"), description="Average rating", ge=0, le=5)
    delivery_time: str = Field(default="", description="Display delivery estimate")
    distance: str = Field(default="", description="Display distance")
    description: str = Field(default="", description="Restaurant description")
    menu: list[MenuItem] = Field(default_factory=list)
    promotions: list[Promotion] = Field(default_factory=list)
    active_payment_methods: list[RestaurantPaymentMethod] = Field(default_factory=list)
    status: RestaurantStatus = Field(default=RestaurantStatus.PENDING)
    owner_uid: str = Field(..., description="Uid of the owning merchant")

    @property
    def is_visible_to_customers(self) -> bool:
        """Only approved restaurants are shown to customers."""
        return self.status == RestaurantStatus.APPROVED

    def find_menu_item(self, item_id: str) -> MenuItem | None:
        for menu_item in self.menu:
            if menu_item.id == item_id:
                return menu_item
        return None

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        return {
            "id": self.id,
            "name": self.name,
            "cuisine": self.cuisine,
            "image_url": self.image_url,
            "rating": self.rating,
            "delivery_time": self.delivery_time,
            "distance": self.distance,
            "description": self.description,
            "menu": [menu_item.to_dynamodb_item() for menu_item in self.menu],
            "promotions": [promotion.to_dynamodb_item() for promotion in self.promotions],
            "active_payment_methods": [
                method.to_dynamodb_item() for method in self.active_payment_methods
            ],
            "status": self.status.value,
            "owner_uid": self.owner_uid,
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Restaurant":
        """Create Restaurant from DynamoDB item.

        Missing collections and status default the same way newly registered
        restaurants do.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Restaurant: Parsed model instance
        """
        return cls(
            id=item["id"],
            name=item["name"],
            cuisine=item.get("cuisine", ""),
            image_url=item.get("image_url", ""),
            rating=Decimal(str(item.get("rating", 0))),
            delivery_time=item.get("delivery_time", ""),
            distance=item.get("distance", ""),
            description=item.get("description", ""),
            menu=[MenuItem.from_dynamodb_item(m) for m in item.get("menu", [])],
            promotions=[Promotion.from_dynamodb_item(p) for p in item.get("promotions", [])],
            active_payment_methods=[
                RestaurantPaymentMethod.from_dynamodb_item(m)
                for m in item.get("active_payment_methods", [])
            ],
            status=RestaurantStatus(item.get("status", RestaurantStatus.PENDING.value)),
            owner_uid=item.get("owner_uid", item["id"]),
        )


def _optional_decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value))
