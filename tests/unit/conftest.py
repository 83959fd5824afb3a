"""Fixtures for unit tests."""

from collections.abc import Iterator
from typing import Any
from unittest.mock import patch

import pytest
from paho_fakes import FakePahoClient, PahoScenario

from mqtt_publish_step.config import ConnectionConfig, PublishRequest, StepSettings, Transport


@pytest.fixture
def paho_scenario() -> PahoScenario:
    """Broker behaviour for the current test (a well-behaved broker by default)."""
    return PahoScenario()


@pytest.fixture
def fake_paho(paho_scenario: PahoScenario) -> Iterator[list[FakePahoClient]]:
    """Patch paho's Client; yields the list of clients created."""
    clients: list[FakePahoClient] = []

    def factory(**kwargs: Any) -> FakePahoClient:
        client = FakePahoClient(paho_scenario, **kwargs)
        clients.append(client)
        return client

    with patch("mqtt_publish_step.mqtt.connection.mqtt.Client", side_effect=factory):
        yield clients


@pytest.fixture
def tcp_config() -> ConnectionConfig:
    """Connection config for a plain TCP broker."""
    return ConnectionConfig(host="broker.local", port=1883, transport=Transport.TCP)


@pytest.fixture
def publish_request() -> PublishRequest:
    """A temperature reading."""
    return PublishRequest(topic="sensors/temp", payload="21.5")


@pytest.fixture
def fast_settings() -> StepSettings:
    """Settings with a deadline short enough for timeout tests."""
    return StepSettings(deadline_seconds=0.2)


@pytest.fixture
def valid_inputs() -> dict[str, Any]:
    """Step inputs that pass validation."""
    return {
        "host": "broker.local",
        "port": 1883,
        "protocol": "tcp",
        "topic": "sensors/temp",
        "message": "21.5",
    }
