"""DynamoDB repository for restaurants.

Menu, promotions and payment methods are embedded lists on the restaurant
item; each save rewrites one whole list attribute.
"""

import logging
from typing import Any

from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource, Table

from bedside_ordering.models.menu_models import (
    MenuItem,
    Promotion,
    Restaurant,
    RestaurantPaymentMethod,
    RestaurantStatus,
)

logger = logging.getLogger(__name__)


class RestaurantRepository:
    """Repository for restaurant CRUD operations.

    Manages restaurant records in DynamoDB with id as partition key.
    """

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)

    def get_restaurant(self, restaurant_id: str) -> Restaurant | None:
        """Retrieve a restaurant by id.

        Args:
            restaurant_id: Restaurant identifier

        Returns:
            Restaurant if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"id": restaurant_id}, ConsistentRead=True)

            if "Item" not in response:
                return None

            return Restaurant.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get restaurant: {e}")  # pragma: no cover
            return None

    def save_restaurant(self, restaurant: Restaurant) -> bool:
        """Save or replace a restaurant.

        Args:
            restaurant: Restaurant to save

        Returns:
            bool: True if save succeeded, False otherwise
        """
        try:
            self.table.put_item(Item=restaurant.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to save restaurant: {e}")  # pragma: no cover
            return False

    def list_restaurants(self, status: RestaurantStatus | None = None) -> list[Restaurant] | None:
        """List restaurants, optionally only those with a given status.

        Args:
            status: Optional status filter

        Returns:
            list: Restaurants (empty list if none found), or None on failure
        """
        try:
            scan_kwargs: dict[str, Any] = {}
            if status is not None:
                scan_kwargs["FilterExpression"] = Attr("status").eq(status.value)

            items = []
            while True:
                response = self.table.scan(**scan_kwargs)
                items.extend(response.get("Items", []))
                if "LastEvaluatedKey" not in response:
                    break
                scan_kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]

            return [Restaurant.from_dynamodb_item(item) for item in items]

        except ClientError as e:
            logger.error(f"Failed to list restaurants: {e}")  # pragma: no cover
            return None

    def update_status(self, restaurant_id: str, status: RestaurantStatus) -> bool:
        """Update the approval status of a restaurant.

        Args:
            restaurant_id: Restaurant identifier
            status: New status

        Returns:
            bool: True if update succeeded, False otherwise
        """
        return self._set_attribute(restaurant_id, "status", status.value)

    def update_menu(self, restaurant_id: str, menu: list[MenuItem]) -> bool:
        """Replace the menu of a restaurant.

        Returns:
            bool: True if update succeeded, False otherwise
        """
        return self._set_attribute(restaurant_id, "menu", [m.to_dynamodb_item() for m in menu])

    def update_promotions(self, restaurant_id: str, promotions: list[Promotion]) -> bool:
        """Replace the promotion list of a restaurant.

        Returns:
            bool: True if update succeeded, False otherwise
        """
        return self._set_attribute(
            restaurant_id, "promotions", [p.to_dynamodb_item() for p in promotions]
        )

    def update_payment_methods(
        self, restaurant_id: str, methods: list[RestaurantPaymentMethod]
    ) -> bool:
        """Replace the payment methods of a restaurant.

        Returns:
            bool: True if update succeeded, False otherwise
        """
        return self._set_attribute(
            restaurant_id, "active_payment_methods", [m.to_dynamodb_item() for m in methods]
        )

    def _set_attribute(self, restaurant_id: str, attribute: str, value: Any) -> bool:
        try:
            self.table.update_item(
                Key={"id": restaurant_id},
                UpdateExpression="SET #attr = :value",
                ConditionExpression="attribute_exists(id)",
                ExpressionAttributeNames={"#attr": attribute},
                ExpressionAttributeValues={":value": value},
            )
            return True

        except ClientError as e:
            logger.error(f"Failed to update restaurant {attribute}: {e}")  # pragma: no cover
            return False
