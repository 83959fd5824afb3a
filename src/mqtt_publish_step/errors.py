"""Error taxonomy for the publish step."""


class PublishStepError(Exception):
    """Base error for the publish step.

    The exception message is the failure detail; ``reason`` prefixes it with
    the category label shown to the caller.
    """

    error_type = "unknown"
    reason_prefix: str | None = None

    @property
    def reason(self) -> str:
        """Human-readable failure reason reported to the caller."""
        if self.reason_prefix:
            return f"{self.reason_prefix}: {self}"
        return str(self)


class InputValidationError(PublishStepError):
    """Raised when caller inputs are missing or invalid."""

    error_type = "validation"


class BrokerConnectionError(PublishStepError):
    """Raised when the broker cannot be reached, refuses, or drops the connection."""

    error_type = "connection"
    reason_prefix = "Connection error"


class DeadlineExceededError(PublishStepError):
    """Raised when no terminal event arrives before the deadline."""

    error_type = "timeout"


class PublishRejectedError(PublishStepError):
    """Raised when a publish cannot be issued or the broker rejects it."""

    error_type = "publish"
    reason_prefix = "Failed to publish message"
