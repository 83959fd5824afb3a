"""Validation and normalization of raw step inputs."""

from collections.abc import Mapping
from typing import Any

import pydantic

from mqtt_publish_step.config import (
    ConnectionConfig,
    PublishRequest,
    StepSettings,
    Transport,
)
from mqtt_publish_step.errors import InputValidationError

REQUIRED_INPUTS = ("host", "port", "protocol", "topic", "message")

MISSING_INPUTS_REASON = (
    "Missing required inputs: host, port, protocol, topic, and message are required"
)
INVALID_PROTOCOL_REASON = "Protocol must be either 'tcp' or 'ws'"
INVALID_PORT_REASON = "Port must be an integer between 1 and 65535"

_PROTOCOLS = {transport.value: transport for transport in Transport}


def _parse_port(raw: Any) -> int:
    """Coerce a port given as int or numeric string."""
    if isinstance(raw, bool):
        raise InputValidationError(INVALID_PORT_REASON)
    try:
        port = int(str(raw).strip())
    except ValueError:
        raise InputValidationError(INVALID_PORT_REASON) from None
    if not 1 <= port <= 65535:
        raise InputValidationError(INVALID_PORT_REASON)
    return port


def build_request(
    inputs: Mapping[str, Any],
    settings: StepSettings | None = None,
) -> tuple[ConnectionConfig, PublishRequest]:
    """Build the connection config and publish request from caller inputs.

    Pure: performs no network activity.

    Args:
        inputs: Raw step inputs (host, port, protocol, username, password,
            topic, message).
        settings: Optional step settings supplying keepalive and WebSocket path.

    Returns:
        Tuple of (ConnectionConfig, PublishRequest).

    Raises:
        InputValidationError: If a required input is missing or invalid.
    """
    settings = settings or StepSettings()

    if any(not inputs.get(name) for name in REQUIRED_INPUTS):
        raise InputValidationError(MISSING_INPUTS_REASON)

    transport = _PROTOCOLS.get(inputs["protocol"]) if isinstance(inputs["protocol"], str) else None
    if transport is None:
        raise InputValidationError(INVALID_PROTOCOL_REASON)

    port = _parse_port(inputs["port"])

    try:
        config = ConnectionConfig(
            host=str(inputs["host"]).strip(),
            port=port,
            transport=transport,
            username=inputs.get("username") or None,
            password=inputs.get("password") or None,
            keepalive=settings.keepalive,
            websocket_path=settings.websocket_path,
        )
        request = PublishRequest(topic=str(inputs["topic"]), payload=str(inputs["message"]))
    except pydantic.ValidationError as e:
        # e.g. a host made only of whitespace
        raise InputValidationError(f"Invalid inputs: {e.errors()[0]['msg']}") from e

    return config, request
