"""OpenTelemetry instrumentation and observability utilities."""

from bedside_ordering.observability.config import configure_logging, setup_observability
from bedside_ordering.observability.decorators import traced

__all__ = ["setup_observability", "configure_logging", "traced"]
