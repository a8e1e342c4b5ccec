"""Unit tests for the orders table stream handler."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from bedside_ordering.handlers.event_handler import (
    OrderChangeEvent,
    OrderStreamHandler,
    is_dynamodb_stream_event,
    parse_stream_record,
)
from bedside_ordering.services.order_service import OrderService


def stream_record(
    event_name: str,
    order_id: str = "ord_123",
    old_status: str | None = None,
    new_status: str | None = None,
) -> dict[str, Any]:
    """Build a DynamoDB stream record for the orders table."""
    stream: dict[str, Any] = {"Keys": {"id": {"S": order_id}}}
    if new_status is not None:
        stream["NewImage"] = {
            "id": {"S": order_id},
            "restaurant_id": {"S": "merchant_123"},
            "status": {"S": new_status},
            "total_amount": {"N": "110"},
        }
    if old_status is not None:
        stream["OldImage"] = {
            "id": {"S": order_id},
            "restaurant_id": {"S": "merchant_123"},
            "status": {"S": old_status},
        }
    return {"eventSource": "aws:dynamodb", "eventName": event_name, "dynamodb": stream}


@pytest.mark.unit
class TestParseStreamRecord:
    """Tests for parse_stream_record."""

    def test_insert(self) -> None:
        """Test parsing a new order."""
        change = parse_stream_record(stream_record("INSERT", new_status="Order Placed"))

        assert change == OrderChangeEvent(
            event_name="INSERT",
            order_id="ord_123",
            restaurant_id="merchant_123",
            new_status="Order Placed",
        )
        assert change.status_changed is False

    def test_modify_with_status_change(self) -> None:
        """Test parsing a status change."""
        change = parse_stream_record(
            stream_record("MODIFY", old_status="Order Placed", new_status="Preparing")
        )

        assert change is not None
        assert change.old_status == "Order Placed"
        assert change.new_status == "Preparing"
        assert change.status_changed is True

    def test_modify_without_status_change(self) -> None:
        """Test that a rating update is not a status change."""
        change = parse_stream_record(
            stream_record("MODIFY", old_status="Delivered", new_status="Delivered")
        )

        assert change is not None
        assert change.status_changed is False

    def test_remove_reads_old_image(self) -> None:
        """Test parsing a deleted order."""
        change = parse_stream_record(stream_record("REMOVE", old_status="Cancelled"))

        assert change is not None
        assert change.restaurant_id == "merchant_123"
        assert change.new_status is None

    def test_missing_event_name(self) -> None:
        """Test that malformed records are rejected."""
        record = stream_record("INSERT", new_status="Order Placed")
        del record["eventName"]

        assert parse_stream_record(record) is None

    def test_missing_order_id(self) -> None:
        """Test that records without any order id are rejected."""
        assert parse_stream_record({"eventName": "INSERT", "dynamodb": {}}) is None


@pytest.mark.unit
class TestIsDynamoDBStreamEvent:
    """Tests for is_dynamodb_stream_event."""

    def test_stream_event(self) -> None:
        """Test that stream batches are recognised."""
        event = {"Records": [stream_record("INSERT", new_status="Order Placed")]}

        assert is_dynamodb_stream_event(event) is True

    @pytest.mark.parametrize(
        "event",
        [
            {"version": "2.0", "rawPath": "/health", "requestContext": {"http": {}}},
            {"Records": []},
            {"Records": [{"eventSource": "aws:sqs"}]},
            {"Records": "not a list"},
        ],
    )
    def test_other_events(self, event: dict[str, Any]) -> None:
        """Test that API Gateway and other events are not stream events."""
        assert is_dynamodb_stream_event(event) is False


@pytest.mark.unit
class TestOrderStreamHandler:
    """Tests for OrderStreamHandler."""

    @pytest.fixture
    def mock_order_service(self) -> MagicMock:
        """Create a mock OrderService whose refresh succeeds."""
        service = MagicMock(spec=OrderService)
        service.refresh_feed = AsyncMock(return_value=True)
        return service

    @pytest.fixture
    def handler(self, mock_order_service: MagicMock) -> OrderStreamHandler:
        """Create the stream handler."""
        return OrderStreamHandler(order_service=mock_order_service)

    @pytest.mark.asyncio
    async def test_refreshes_feed_once_per_batch(
        self, handler: OrderStreamHandler, mock_order_service: MagicMock
    ) -> None:
        """Test that a batch of changes triggers one refresh."""
        event = {
            "Records": [
                stream_record("INSERT", order_id="ord_1", new_status="Order Placed"),
                stream_record(
                    "MODIFY",
                    order_id="ord_2",
                    old_status="Preparing",
                    new_status="Out for Delivery",
                ),
            ]
        }

        result = await handler.handle_stream_event(event, None)

        assert result == {"statusCode": 200, "body": "Processed 2 order changes"}
        mock_order_service.refresh_feed.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_skips_unreadable_records(
        self, handler: OrderStreamHandler, mock_order_service: MagicMock
    ) -> None:
        """Test that bad records are skipped and the rest processed."""
        event = {
            "Records": [
                {"eventSource": "aws:dynamodb", "dynamodb": {}},
                stream_record("INSERT", new_status="Pending Payment"),
            ]
        }

        result = await handler.handle_stream_event(event, None)

        assert result["statusCode"] == 200
        assert "1 order changes" in result["body"]

    @pytest.mark.asyncio
    async def test_no_valid_records(
        self, handler: OrderStreamHandler, mock_order_service: MagicMock
    ) -> None:
        """Test that a batch with nothing usable returns 400."""
        result = await handler.handle_stream_event({"Records": [{"dynamodb": {}}]}, None)

        assert result["statusCode"] == 400
        mock_order_service.refresh_feed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_refresh_failure(
        self, handler: OrderStreamHandler, mock_order_service: MagicMock
    ) -> None:
        """Test that a failed refresh returns 500."""
        mock_order_service.refresh_feed.return_value = False

        result = await handler.handle_stream_event(
            {"Records": [stream_record("INSERT", new_status="Order Placed")]}, None
        )

        assert result == {"statusCode": 500, "body": "Failed to refresh order feed"}
