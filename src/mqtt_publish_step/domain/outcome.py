"""Terminal outcome of a publish invocation."""

from dataclasses import dataclass
from typing import Any

from mqtt_publish_step.errors import PublishStepError


@dataclass(frozen=True, slots=True)
class PublishSuccess:
    """The broker acknowledged the message and the connection was closed."""

    message: str
    """Confirmation shown to the caller."""

    @property
    def success(self) -> bool:
        return True

    def to_record(self) -> dict[str, Any]:
        """Render the output record handed back to the pipeline."""
        return {"success": True, "message": self.message}


@dataclass(frozen=True, slots=True)
class PublishFailure:
    """The invocation failed; ``reason`` is human readable."""

    reason: str
    """Failure reason shown to the caller."""

    error_type: str = "unknown"
    """Error category (validation, connection, timeout, publish, unknown)."""

    @property
    def success(self) -> bool:
        return False

    @classmethod
    def from_error(cls, error: PublishStepError) -> "PublishFailure":
        """Build a failure from a step error."""
        return cls(reason=error.reason, error_type=error.error_type)

    @classmethod
    def from_exception(cls, error: BaseException) -> "PublishFailure":
        """Build a failure from an unexpected exception."""
        if isinstance(error, PublishStepError):
            return cls.from_error(error)
        detail = str(error) or "Unknown error occurred"
        return cls(reason=f"Automation error: {detail}", error_type="unknown")

    def to_record(self) -> dict[str, Any]:
        """Render the output record handed back to the pipeline."""
        return {"success": False, "message": self.reason}


Outcome = PublishSuccess | PublishFailure
