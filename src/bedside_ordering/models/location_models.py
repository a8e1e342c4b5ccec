"""Delivery location, bed QR code and favorite item models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class DeliveryLocation(BaseModel):
    """Where an order should be brought, usually taken from a bed QR code."""

    bed_id: str = Field(..., min_length=1)
    details: str = Field(..., min_length=1)
    department: str | None = None
    room: str | None = None


class BedQrCode(BaseModel):
    """Admin-managed record behind a printed bed QR code.

    Stored in DynamoDB with id as partition key.
    """

    id: str = Field(..., description="Unique record identifier")
    bed_id: str = Field(..., min_length=1, description="Bed identifier, e.g. 'B101A'")
    details: str = Field(..., min_length=1, description="Human-readable location")
    department: str | None = None
    room: str | None = None
    qr_code_value: str = Field(..., description="JSON payload encoded into the QR image")
    is_active: bool = Field(default=True)
    created_at: datetime
    last_updated_at: datetime | None = None

    def to_delivery_location(self) -> DeliveryLocation:
        return DeliveryLocation(
            bed_id=self.bed_id, details=self.details, department=self.department, room=self.room
        )

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "id": self.id,
            "bed_id": self.bed_id,
            "details": self.details,
            "qr_code_value": self.qr_code_value,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat(),
        }

        if self.department is not None:
            item["department"] = self.department

        if self.room is not None:
            item["room"] = self.room

        if self.last_updated_at is not None:
            item["last_updated_at"] = self.last_updated_at.isoformat()

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "BedQrCode":
        """Create BedQrCode from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            BedQrCode: Parsed model instance
        """
        data: dict[str, Any] = {
            "id": item["id"],
            "bed_id": item["bed_id"],
            "details": item["details"],
            "qr_code_value": item["qr_code_value"],
            "is_active": item.get("is_active", True),
            "created_at": datetime.fromisoformat(item["created_at"]),
            "department": item.get("department"),
            "room": item.get("room"),
        }

        if "last_updated_at" in item:
            data["last_updated_at"] = datetime.fromisoformat(item["last_updated_at"])

        return cls(**data)


class FavoriteItem(BaseModel):
    """A menu item a customer marked as favorite.

    Stored in DynamoDB with composite key (customer_id, favorite_id).
    """

    customer_id: str
    item_id: str
    restaurant_id: str
    item_name: str
    added_at: datetime

    @property
    def favorite_id(self) -> str:
        return favorite_key(self.restaurant_id, self.item_id)

    def to_dynamodb_item(self) -> dict[str, Any]:
        return {
            "customer_id": self.customer_id,
            "favorite_id": self.favorite_id,
            "item_id": self.item_id,
            "restaurant_id": self.restaurant_id,
            "item_name": self.item_name,
            "added_at": self.added_at.isoformat(),
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "FavoriteItem":
        return cls(
            customer_id=item["customer_id"],
            item_id=item["item_id"],
            restaurant_id=item["restaurant_id"],
            item_name=item["item_name"],
            added_at=datetime.fromisoformat(item["added_at"]),
        )


def favorite_key(restaurant_id: str, item_id: str) -> str:
    return f"{restaurant_id}_{item_id}"
