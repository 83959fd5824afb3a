"""Invocation boundary: raw inputs in, ``{success, message}`` record out."""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

import structlog

from mqtt_publish_step.builder import build_request
from mqtt_publish_step.config import StepSettings
from mqtt_publish_step.domain.outcome import Outcome, PublishFailure
from mqtt_publish_step.errors import InputValidationError
from mqtt_publish_step.mqtt.connection import BrokerConnection
from mqtt_publish_step.observability.metrics import METRICS
from mqtt_publish_step.orchestrator import ConnectionFactory, PublishOrchestrator

logger = logging.getLogger(__name__)

# One structured record per invocation for the hosting pipeline
outcome_logger: structlog.stdlib.BoundLogger = structlog.get_logger(
    "mqtt_publish_step.outcome"
)


def publish(
    inputs: Mapping[str, Any],
    settings: StepSettings | None = None,
    connection_factory: ConnectionFactory = BrokerConnection,
) -> Outcome:
    """Validate inputs, publish one message, and return the outcome.

    Never raises: every error becomes a PublishFailure.
    """
    settings = settings or StepSettings()

    try:
        config, request = build_request(inputs, settings)
    except InputValidationError as e:
        outcome: Outcome = PublishFailure.from_error(e)
        METRICS.record_outcome(outcome)
        outcome_logger.info("mqtt_publish_rejected", reason=outcome.reason)
        return outcome
    except Exception as e:
        logger.exception("Publish step inputs could not be processed")
        outcome = PublishFailure.from_exception(e)
        METRICS.record_outcome(outcome)
        return outcome

    try:
        orchestrator = PublishOrchestrator(
            config, request, settings, connection_factory=connection_factory
        )
        outcome = orchestrator.execute()
    except Exception as e:
        logger.exception("Publish step crashed for %s on %s", request.topic, config.url)
        outcome = PublishFailure.from_exception(e)
        METRICS.record_outcome(outcome)
        return outcome

    if isinstance(outcome, PublishFailure):
        outcome_logger.warning(
            "mqtt_publish_finished",
            url=config.url,
            topic=request.topic,
            success=False,
            reason=outcome.reason,
            error_type=outcome.error_type,
        )
    else:
        outcome_logger.info(
            "mqtt_publish_finished",
            url=config.url,
            topic=request.topic,
            success=True,
        )
    return outcome


def run(inputs: Mapping[str, Any], settings: StepSettings | None = None) -> dict[str, Any]:
    """Run the publish step and return ``{"success": bool, "message": str}``."""
    return publish(inputs, settings).to_record()


async def run_async(
    inputs: Mapping[str, Any], settings: StepSettings | None = None
) -> dict[str, Any]:
    """Awaitable run(); the blocking invocation executes on a worker thread."""
    return await asyncio.to_thread(run, inputs, settings)
