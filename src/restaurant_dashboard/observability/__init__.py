"""OpenTelemetry instrumentation and structured logging for the dashboard client."""

from restaurant_dashboard.observability.config import configure_logging, setup_observability
from restaurant_dashboard.observability.decorators import traced

__all__ = ["setup_observability", "configure_logging", "traced"]
