"""DynamoDB stream handler for changes to the orders table."""

import logging
from typing import Any

from boto3.dynamodb.types import TypeDeserializer
from pydantic import BaseModel

from bedside_ordering.services.order_service import OrderService

logger = logging.getLogger(__name__)

_deserializer = TypeDeserializer()


class OrderChangeEvent(BaseModel):
    """One order change read from a DynamoDB stream record.

    Attributes:
        event_name: INSERT, MODIFY or REMOVE
        order_id: Id of the changed order
        restaurant_id: Restaurant of the order, if present in the record
        old_status: Status before the change (MODIFY/REMOVE)
        new_status: Status after the change (INSERT/MODIFY)
    """

    event_name: str
    order_id: str
    restaurant_id: str | None = None
    old_status: str | None = None
    new_status: str | None = None

    @property
    def status_changed(self) -> bool:
        return self.event_name == "MODIFY" and self.old_status != self.new_status


def _deserialize_image(image: dict[str, Any] | None) -> dict[str, Any]:
    if not image:
        return {}
    return {key: _deserializer.deserialize(value) for key, value in image.items()}


def parse_stream_record(record: dict[str, Any]) -> OrderChangeEvent | None:
    """Parse a DynamoDB stream record into an OrderChangeEvent.

    Args:
        record: One entry of the stream event's Records list

    Returns:
        OrderChangeEvent if parsing succeeds, None otherwise
    """
    try:
        stream = record.get("dynamodb", {})
        new_image = _deserialize_image(stream.get("NewImage"))
        old_image = _deserialize_image(stream.get("OldImage"))
        keys = _deserialize_image(stream.get("Keys"))

        order_id = keys.get("id") or new_image.get("id") or old_image.get("id")
        return OrderChangeEvent(
            event_name=record["eventName"],
            order_id=order_id,
            restaurant_id=new_image.get("restaurant_id") or old_image.get("restaurant_id"),
            old_status=old_image.get("status"),
            new_status=new_image.get("status"),
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.error(f"Failed to parse DynamoDB stream record: {e}")  # pragma: no cover
        return None


def is_dynamodb_stream_event(event: dict[str, Any]) -> bool:
    """True for events delivered by a DynamoDB stream trigger."""
    records = event.get("Records")
    if not isinstance(records, list) or not records:
        return False
    return all(record.get("eventSource") == "aws:dynamodb" for record in records)


class OrderStreamHandler:
    """Keeps the order feed current when orders change in DynamoDB.

    Changes made by other service instances arrive through the table's
    stream; one refresh per batch republishes the full order snapshot.
    """

    def __init__(self, order_service: OrderService) -> None:
        """Initialize the stream handler.

        Args:
            order_service: Service whose feed is refreshed
        """
        self.order_service = order_service

    async def handle_changes(self, changes: list[OrderChangeEvent]) -> bool:
        """Log the changes and refresh the feed once.

        Args:
            changes: Parsed order changes from one stream batch

        Returns:
            True if the feed was refreshed
        """
        for change in changes:
            if change.event_name == "INSERT":
                logger.info(
                    f"Order {change.order_id} created for restaurant {change.restaurant_id} "
                    f"with status {change.new_status}"
                )
            elif change.status_changed:
                logger.info(
                    f"Order {change.order_id} status changed: "
                    f"{change.old_status} -> {change.new_status}"
                )

        return await self.order_service.refresh_feed()

    async def handle_stream_event(self, event: dict[str, Any], _context: Any) -> dict[str, Any]:
        """Lambda handler for DynamoDB stream events.

        Args:
            event: DynamoDB stream event dictionary
            _context: Lambda context object (unused)

        Returns:
            Dictionary with statusCode and body for Lambda response
        """
        changes = []
        for record in event.get("Records", []):
            change = parse_stream_record(record)
            if change is None:
                logger.warning("Skipping unreadable stream record")  # pragma: no cover
                continue
            changes.append(change)

        if not changes:
            return {"statusCode": 400, "body": "No valid order changes in event"}

        if await self.handle_changes(changes):
            return {"statusCode": 200, "body": f"Processed {len(changes)} order changes"}

        return {"statusCode": 500, "body": "Failed to refresh order feed"}
