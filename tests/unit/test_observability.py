"""Unit tests for logging, tracing and metrics helpers."""

import json
import logging
import os
from decimal import Decimal
from unittest.mock import MagicMock, Mock, patch

import pytest
from pythonjsonlogger import jsonlogger

from bedside_ordering.observability import configure_logging, setup_observability, traced
from bedside_ordering.observability import metrics as order_metrics


@pytest.mark.unit
class TestConfigureLogging:
    """Tests for configure_logging."""

    def teardown_method(self) -> None:
        """Restore a plain root logger."""
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
        root_logger.setLevel(logging.WARNING)

    @patch.dict(os.environ, {}, clear=True)
    def test_installs_json_formatter(self) -> None:
        """Test that the root logger emits JSON at the requested level."""
        configure_logging("DEBUG")

        root_logger = logging.getLogger()
        assert root_logger.level == logging.DEBUG
        assert len(root_logger.handlers) == 1
        formatter = root_logger.handlers[0].formatter
        assert isinstance(formatter, jsonlogger.JsonFormatter)

        record = logging.LogRecord("orders", logging.INFO, __file__, 1, "Order placed", None, None)
        body = json.loads(formatter.format(record))
        assert body["message"] == "Order placed"
        assert body["levelname"] == "INFO"

    @patch.dict(os.environ, {"LOG_LEVEL": "warning"}, clear=True)
    def test_environment_level_wins(self) -> None:
        """Test that LOG_LEVEL overrides the argument."""
        configure_logging("DEBUG")

        assert logging.getLogger().level == logging.WARNING

    @patch.dict(os.environ, {}, clear=True)
    def test_unknown_level_falls_back_to_info(self) -> None:
        """Test that an unknown level name is treated as INFO."""
        configure_logging("CHATTY")

        assert logging.getLogger().level == logging.INFO


@pytest.mark.unit
class TestSetupObservability:
    """Tests for setup_observability."""

    @patch("bedside_ordering.observability.config.setup_auto_instrumentation")
    @patch("bedside_ordering.observability.config.setup_metrics")
    @patch("bedside_ordering.observability.config.setup_tracing")
    @patch.dict(os.environ, {"ENVIRONMENT": "test"}, clear=True)
    def test_exporters_disabled_in_test_environment(
        self, mock_tracing: Mock, mock_metrics: Mock, mock_instrumentation: Mock
    ) -> None:
        """Test that no OTLP exporters are started when ENVIRONMENT=test."""
        setup_observability(enable_exporters=True)

        mock_tracing.assert_not_called()
        mock_metrics.assert_not_called()
        mock_instrumentation.assert_called_once()

    @patch("bedside_ordering.observability.config.FastAPIInstrumentor")
    @patch("bedside_ordering.observability.config.setup_auto_instrumentation")
    @patch("bedside_ordering.observability.config.setup_metrics")
    @patch("bedside_ordering.observability.config.setup_tracing")
    @patch.dict(os.environ, {"ENVIRONMENT": "production"}, clear=True)
    def test_exporters_and_app_instrumentation(
        self,
        mock_tracing: Mock,
        mock_metrics: Mock,
        _mock_instrumentation: Mock,
        mock_fastapi_instrumentor: Mock,
    ) -> None:
        """Test the production setup with a FastAPI app."""
        app = MagicMock()

        setup_observability(app)

        mock_tracing.assert_called_once()
        mock_metrics.assert_called_once()
        mock_fastapi_instrumentor.instrument_app.assert_called_once_with(app)


@pytest.mark.unit
class TestTraced:
    """Tests for the traced decorator."""

    def test_sync_function(self) -> None:
        """Test that sync functions keep their result and name."""

        @traced("price_cart")
        def price_cart(amount: int) -> int:
            return amount * 2

        assert price_cart(21) == 42
        assert price_cart.__name__ == "price_cart"

    @pytest.mark.asyncio
    async def test_async_function(self) -> None:
        """Test that coroutines are awaited inside the span."""

        @traced()
        async def load_order(order_id: str) -> str:
            return order_id

        assert await load_order("ord_123") == "ord_123"

    @pytest.mark.asyncio
    async def test_exceptions_are_reraised(self) -> None:
        """Test that errors propagate unchanged."""

        @traced("failing")
        async def failing() -> None:
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await failing()


@pytest.mark.unit
class TestMetrics:
    """Tests for the custom metric helpers."""

    def test_record_order_created(self) -> None:
        """Test that a created order updates the counter and histogram."""
        with (
            patch.object(order_metrics, "orders_created_counter") as mock_counter,
            patch.object(order_metrics, "order_total_histogram") as mock_histogram,
        ):
            order_metrics.record_order_created("cash", Decimal("110"))

        mock_counter.add.assert_called_once_with(1, {"payment_method": "cash"})
        mock_histogram.record.assert_called_once_with(110.0, {"payment_method": "cash"})

    def test_record_status_transition(self) -> None:
        """Test the status transition counter."""
        with patch.object(order_metrics, "order_status_transition_counter") as mock_counter:
            order_metrics.record_status_transition("Preparing")

        mock_counter.add.assert_called_once_with(1, {"status": "Preparing"})
