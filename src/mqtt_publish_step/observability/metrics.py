"""Prometheus metrics for the MQTT publish step."""

from prometheus_client import Counter, Gauge, Histogram

from mqtt_publish_step.domain.outcome import Outcome, PublishFailure


class StepMetrics:
    """Collection of Prometheus metrics for publish invocations."""

    def __init__(self) -> None:
        """Initialize metrics."""
        self.outcomes_total = Counter(
            "mqtt_publish_step_outcomes_total",
            "Total number of publish invocations by outcome",
            ["result", "error_type"],  # result: 'success' or 'failure'
        )

        self.in_flight = Gauge(
            "mqtt_publish_step_in_flight",
            "Number of publish invocations currently running",
        )

        self.duration_seconds = Histogram(
            "mqtt_publish_step_duration_seconds",
            "Time from connection open to outcome",
            ["result"],
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
        )

    def record_outcome(self, outcome: Outcome, duration: float | None = None) -> None:
        """Count an outcome and, when known, its duration."""
        result = "success" if outcome.success else "failure"
        error_type = outcome.error_type if isinstance(outcome, PublishFailure) else ""
        self.outcomes_total.labels(result=result, error_type=error_type).inc()
        if duration is not None:
            self.duration_seconds.labels(result=result).observe(duration)


# Global metrics instance
METRICS = StepMetrics()
