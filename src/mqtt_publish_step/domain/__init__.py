"""Domain models for the publish step."""

from mqtt_publish_step.domain.outcome import Outcome, PublishFailure, PublishSuccess

__all__ = ["Outcome", "PublishFailure", "PublishSuccess"]
