"""Configuration models for the MQTT publish step."""

from enum import Enum
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr

DEFAULT_DEADLINE_SECONDS = 30.0


class Transport(str, Enum):
    """Byte-stream transport carrying the MQTT frames."""

    TCP = "tcp"
    WEBSOCKET = "ws"

    @property
    def paho_name(self) -> str:
        """Transport name understood by paho-mqtt."""
        return "websockets" if self is Transport.WEBSOCKET else "tcp"


class ConnectionConfig(BaseModel):
    """Broker connection parameters for a single invocation."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(min_length=1)
    port: int = Field(ge=1, le=65535)
    transport: Transport
    username: str | None = None
    password: SecretStr | None = None
    keepalive: int = 60
    websocket_path: str = "/mqtt"

    @property
    def url(self) -> str:
        """Broker URL in ``transport://host:port`` form."""
        return f"{self.transport.value}://{self.host}:{self.port}"


class PublishRequest(BaseModel):
    """The one message published per invocation."""

    model_config = ConfigDict(frozen=True)

    topic: str = Field(min_length=1)
    payload: str
    qos: Literal[1] = 1
    """Fixed at 1: the broker must acknowledge before success is reported."""


class StepSettings(BaseModel):
    """Tunables for the publish step, with documented defaults."""

    deadline_seconds: float = Field(default=DEFAULT_DEADLINE_SECONDS, gt=0)
    """Wall-clock budget measured from connection open."""

    keepalive: int = Field(default=60, ge=0)
    """MQTT keepalive interval in seconds."""

    client_id_prefix: str = "mqtt_publish"
    """Prefix for the per-invocation client identifier."""

    websocket_path: str = "/mqtt"
    """HTTP path used for the WebSocket upgrade."""

    @classmethod
    def from_yaml(cls, path: Path) -> "StepSettings":
        """Load settings from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.model_validate(data or {})
