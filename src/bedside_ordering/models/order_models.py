"""Cart and order models.

Orders are stored in DynamoDB with id as partition key. Two global secondary
indexes (restaurant_id-index and customer_id-index, both sorted by order_date)
back the merchant and customer order lists.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from bedside_ordering.models.menu_models import MenuItem, Promotion, PromotionDetails, PromotionType


class CartItem(BaseModel):
    """Snapshot of a menu item plus the quantity chosen by the customer.

    Also used for order line items, where the snapshot is frozen at checkout
    and never follows later menu edits.
    """

    model_config = ConfigDict(json_encoders={Decimal: str})

    id: str = Field(..., description="Menu item identifier")
    restaurant_id: str = Field(..., description="Restaurant the item belongs to")
    name: str = Field(..., description="Item name at the time it was added")
    description: str = Field(default="")
    price: Decimal = Field(..., description="Unit price at the time it was added", gt=0)
    image_url: str = Field(default="")
    quantity: int = Field(..., description="Number of units", ge=1)

    @classmethod
    def from_menu_item(cls, menu_item: MenuItem, quantity: int = 1) -> "CartItem":
        return cls(
            id=menu_item.id,
            restaurant_id=menu_item.restaurant_id,
            name=menu_item.name,
            description=menu_item.description,
            price=menu_item.price,
            image_url=menu_item.image_url,
            quantity=quantity,
        )

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_dynamodb_item(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "restaurant_id": self.restaurant_id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "image_url": self.image_url,
            "quantity": self.quantity,
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "CartItem":
        return cls(
            id=item["id"],
            restaurant_id=item["restaurant_id"],
            name=item["name"],
            description=item.get("description", ""),
            price=Decimal(str(item["price"])),
            image_url=item.get("image_url", ""),
            quantity=int(item["quantity"]),
        )


class OrderStatus(str, Enum):
    """Order lifecycle states."""

    PENDING_PAYMENT = "Pending Payment"
    ORDER_PLACED = "Order Placed"
    PREPARING = "Preparing"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentMethod(str, Enum):
    """How the customer pays at checkout."""

    CASH = "cash"
    QR = "qr"


class AppliedPromotion(BaseModel):
    """Snapshot of the promotion that produced an order's discount."""

    id: str
    description: str
    type: PromotionType
    details: PromotionDetails = Field(default_factory=PromotionDetails)

    @classmethod
    def from_promotion(cls, promotion: Promotion) -> "AppliedPromotion":
        return cls(
            id=promotion.id,
            description=promotion.description,
            type=promotion.type,
            details=promotion.details.model_copy(),
        )

    def to_dynamodb_item(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "type": self.type.value,
            "details": self.details.to_dynamodb_item(),
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "AppliedPromotion":
        return cls(
            id=item["id"],
            description=item["description"],
            type=PromotionType(item["type"]),
            details=PromotionDetails.from_dynamodb_item(item.get("details", {})),
        )


class CustomerInfo(BaseModel):
    """Contact details collected at checkout."""

    customer_id: str = Field(..., description="Owning customer session identifier")
    name: str = Field(..., min_length=1, description="Customer name or how to address them")
    phone: str = Field(..., min_length=1, description="Customer phone number")


class Order(BaseModel):
    """A placed order.

    Items and money fields are fixed at creation. Afterwards only status and
    (once) rating change.
    """

    id: str = Field(..., description="Unique order identifier")
    items: list[CartItem] = Field(..., description="Item snapshots taken at checkout")
    total_amount: Decimal = Field(..., description="Amount payable after discount", ge=0)
    status: OrderStatus = Field(..., description="Current lifecycle status")
    order_date: datetime = Field(..., description="Server-assigned creation timestamp")
    delivery_location: str = Field(..., description="Human-readable delivery location")
    verification_code: str = Field(..., description="Handoff confirmation code")
    restaurant_name: str
    restaurant_id: str
    customer_name: str
    customer_phone: str
    customer_id: str = Field(..., description="Owning customer session identifier")
    payment_method: PaymentMethod
    payment_qr_code_url: str | None = None
    rating: int | None = Field(None, ge=1, le=5)
    applied_promotion: AppliedPromotion | None = None
    discount_amount: Decimal | None = Field(None, ge=0)

    @property
    def subtotal(self) -> Decimal:
        """Pre-discount sum of the item snapshots."""
        return sum((item.line_total for item in self.items), Decimal("0"))

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "id": self.id,
            "items": [cart_item.to_dynamodb_item() for cart_item in self.items],
            "total_amount": self.total_amount,
            "status": self.status.value,
            "order_date": self.order_date.isoformat(),
            "delivery_location": self.delivery_location,
            "verification_code": self.verification_code,
            "restaurant_name": self.restaurant_name,
            "restaurant_id": self.restaurant_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_id": self.customer_id,
            "payment_method": self.payment_method.value,
        }

        if self.payment_qr_code_url is not None:
            item["payment_qr_code_url"] = self.payment_qr_code_url

        if self.rating is not None:
            item["rating"] = self.rating

        if self.applied_promotion is not None:
            item["applied_promotion"] = self.applied_promotion.to_dynamodb_item()

        if self.discount_amount is not None:
            item["discount_amount"] = self.discount_amount

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Order":
        """Create Order from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Order: Parsed model instance
        """
        data: dict[str, Any] = {
            "id": item["id"],
            "items": [CartItem.from_dynamodb_item(i) for i in item.get("items", [])],
            "total_amount": Decimal(str(item["total_amount"])),
            "status": OrderStatus(item["status"]),
            "order_date": datetime.fromisoformat(item["order_date"]),
            "delivery_location": item["delivery_location"],
            "verification_code": item["verification_code"],
            "restaurant_name": item["restaurant_name"],
            "restaurant_id": item["restaurant_id"],
            "customer_name": item.get("customer_name", ""),
            "customer_phone": item.get("customer_phone", ""),
            "customer_id": item.get("customer_id", ""),
            "payment_method": PaymentMethod(item.get("payment_method", PaymentMethod.CASH.value)),
        }

        if "payment_qr_code_url" in item:
            data["payment_qr_code_url"] = item["payment_qr_code_url"]

        if "rating" in item:
            data["rating"] = int(item["rating"])

        if "applied_promotion" in item:
            data["applied_promotion"] = AppliedPromotion.from_dynamodb_item(
                item["applied_promotion"]
            )

        if "discount_amount" in item:
            data["discount_amount"] = Decimal(str(item["discount_amount"]))

        return cls(**data)
