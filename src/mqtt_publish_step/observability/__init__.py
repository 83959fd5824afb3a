"""Observability components: logging and metrics."""

from mqtt_publish_step.observability.logging import setup_logging
from mqtt_publish_step.observability.metrics import METRICS

__all__ = ["setup_logging", "METRICS"]
