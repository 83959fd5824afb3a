"""Shared pytest fixtures for MQTT publish step tests."""

import socket
import uuid

import pytest

BROKER_HOST = "localhost"
BROKER_PORT = 1883


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers.

    Note: Markers are also defined in pyproject.toml [tool.pytest.ini_options].
    This function ensures they're registered even when running pytest directly.
    """
    config.addinivalue_line("markers", "integration: integration tests requiring MQTT broker")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        if "/integration/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


def _broker_reachable(host: str, port: int) -> bool:
    try:
        with socket.create_connection((host, port), timeout=1.0):
            return True
    except OSError:
        return False


@pytest.fixture(scope="session")
def broker_address() -> tuple[str, int]:
    """Address of the local test broker; skips when none is listening."""
    if not _broker_reachable(BROKER_HOST, BROKER_PORT):
        pytest.skip(f"No MQTT broker on {BROKER_HOST}:{BROKER_PORT}")
    return BROKER_HOST, BROKER_PORT


@pytest.fixture
def unique_topic() -> str:
    """Generate a unique topic for test isolation."""
    return f"test/mqtt-publish-step/{uuid.uuid4().hex}"
