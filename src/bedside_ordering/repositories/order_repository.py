"""DynamoDB repository for orders.

Same store-boundary convention as the other repositories: ClientError is
caught and logged, reads return None on failure and writes report a result
value. Status and rating changes are conditional single-item updates so that
concurrent merchant and customer actions cannot overwrite each other.
"""

import logging
from enum import Enum

from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource, Table

from bedside_ordering.models.order_models import Order, OrderStatus

logger = logging.getLogger(__name__)


class WriteResult(str, Enum):
    """Outcome of a conditional write."""

    APPLIED = "applied"
    CONDITION_FAILED = "condition_failed"
    FAILED = "failed"


def _is_condition_failure(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


class OrderRepository:
    """Repository for order CRUD operations.

    Manages order records in DynamoDB with id as partition key.
    """

    RESTAURANT_INDEX = "restaurant_id-index"
    CUSTOMER_INDEX = "customer_id-index"

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)

    def create_order(self, order: Order) -> WriteResult:
        """Insert a new order.

        The put only succeeds if no order with the same id exists, which makes
        a retried checkout with the same id detectable.

        Args:
            order: Order to insert

        Returns:
            WriteResult: APPLIED, CONDITION_FAILED if the id already exists, or FAILED
        """
        try:
            self.table.put_item(
                Item=order.to_dynamodb_item(),
                ConditionExpression="attribute_not_exists(id)",
            )
            return WriteResult.APPLIED

        except ClientError as e:
            if _is_condition_failure(e):
                logger.info(f"Order {order.id} already exists")
                return WriteResult.CONDITION_FAILED
            logger.error(f"Failed to create order: {e}")  # pragma: no cover
            return WriteResult.FAILED

    def get_order(self, order_id: str) -> Order | None:
        """Retrieve an order by id.

        Args:
            order_id: Order identifier

        Returns:
            Order if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"id": order_id}, ConsistentRead=True)

            if "Item" not in response:
                return None

            return Order.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get order: {e}")  # pragma: no cover
            return None

    def list_orders(self) -> list[Order] | None:
        """List every order, newest first.

        Returns:
            list: Orders sorted by order_date descending, or None on failure
        """
        try:
            items = []
            scan_kwargs: dict = {}
            while True:
                response = self.table.scan(**scan_kwargs)
                items.extend(response.get("Items", []))
                if "LastEvaluatedKey" not in response:
                    break
                scan_kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]

            orders = [Order.from_dynamodb_item(item) for item in items]
            return sorted(orders, key=lambda order: order.order_date, reverse=True)

        except ClientError as e:
            logger.error(f"Failed to list orders: {e}")  # pragma: no cover
            return None

    def list_orders_for_restaurant(self, restaurant_id: str) -> list[Order] | None:
        """List a restaurant's orders, newest first.

        Uses a Global Secondary Index on restaurant_id sorted by order_date.

        Args:
            restaurant_id: Restaurant identifier

        Returns:
            list: Orders (empty list if none found), or None on failure
        """
        return self._query_index(self.RESTAURANT_INDEX, "restaurant_id", restaurant_id)

    def list_orders_for_customer(self, customer_id: str) -> list[Order] | None:
        """List a customer's orders, newest first.

        Uses a Global Secondary Index on customer_id sorted by order_date.

        Args:
            customer_id: Customer session identifier

        Returns:
            list: Orders (empty list if none found), or None on failure
        """
        return self._query_index(self.CUSTOMER_INDEX, "customer_id", customer_id)

    def _query_index(self, index_name: str, key_name: str, key_value: str) -> list[Order] | None:
        try:
            items = []
            query_kwargs: dict = {
                "IndexName": index_name,
                "KeyConditionExpression": Key(key_name).eq(key_value),
                "ScanIndexForward": False,  # Most recent first
            }
            while True:
                response = self.table.query(**query_kwargs)
                items.extend(response.get("Items", []))
                if "LastEvaluatedKey" not in response:
                    break
                query_kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]

            return [Order.from_dynamodb_item(item) for item in items]

        except ClientError as e:
            logger.error(f"Failed to query {index_name}: {e}")  # pragma: no cover
            return None

    def update_status(
        self, order_id: str, expected_status: OrderStatus, new_status: OrderStatus
    ) -> WriteResult:
        """Move an order to a new status if it is still in the expected one.

        Args:
            order_id: Order identifier
            expected_status: Status the caller validated the transition against
            new_status: Status to write

        Returns:
            WriteResult: CONDITION_FAILED if the order is missing or its status changed
        """
        try:
            self.table.update_item(
                Key={"id": order_id},
                UpdateExpression="SET #status = :new_status",
                ConditionExpression="attribute_exists(id) AND #status = :expected_status",
                ExpressionAttributeNames={"#status": "status"},
                ExpressionAttributeValues={
                    ":new_status": new_status.value,
                    ":expected_status": expected_status.value,
                },
            )
            return WriteResult.APPLIED

        except ClientError as e:
            if _is_condition_failure(e):
                return WriteResult.CONDITION_FAILED
            logger.error(f"Failed to update order status: {e}")  # pragma: no cover
            return WriteResult.FAILED

    def set_rating(self, order_id: str, rating: int) -> WriteResult:
        """Set the rating of a delivered, unrated order.

        Args:
            order_id: Order identifier
            rating: Rating value (1-5)

        Returns:
            WriteResult: CONDITION_FAILED if the order is not delivered or already rated
        """
        try:
            self.table.update_item(
                Key={"id": order_id},
                UpdateExpression="SET rating = :rating",
                ConditionExpression=(
                    "attribute_exists(id) AND attribute_not_exists(rating) "
                    "AND #status = :delivered"
                ),
                ExpressionAttributeNames={"#status": "status"},
                ExpressionAttributeValues={
                    ":rating": rating,
                    ":delivered": OrderStatus.DELIVERED.value,
                },
            )
            return WriteResult.APPLIED

        except ClientError as e:
            if _is_condition_failure(e):
                return WriteResult.CONDITION_FAILED
            logger.error(f"Failed to set order rating: {e}")  # pragma: no cover
            return WriteResult.FAILED
