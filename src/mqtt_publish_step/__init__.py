"""MQTT publish step: connect, publish one message with QoS 1, disconnect."""

from mqtt_publish_step.step import run, run_async

__version__ = "0.1.0"

__all__ = ["run", "run_async", "__version__"]
