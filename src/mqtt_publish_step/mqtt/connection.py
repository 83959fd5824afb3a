"""Single-use MQTT broker connection over TCP or WebSocket."""

import logging
import threading
import uuid
from collections.abc import Callable
from typing import Any

import paho.mqtt.client as mqtt
from paho.mqtt.enums import CallbackAPIVersion, MQTTErrorCode

from mqtt_publish_step.config import ConnectionConfig, PublishRequest
from mqtt_publish_step.errors import BrokerConnectionError, PublishRejectedError

logger = logging.getLogger(__name__)

# Called once per publish: None on broker acknowledgement, the error otherwise
PublishCallback = Callable[[Exception | None], None]


def new_client_id(prefix: str) -> str:
    """Generate a client identifier that is unique per invocation."""
    return f"{prefix}_{uuid.uuid4().hex}"


def _is_failure(reason_code: Any) -> bool:
    """Interpret a paho reason code (ReasonCode object or int)."""
    if reason_code is None:
        return False
    if hasattr(reason_code, "is_failure"):
        return bool(reason_code.is_failure)
    if hasattr(reason_code, "value"):
        return bool(reason_code.value != 0)
    return bool(reason_code != 0)


class BrokerConnection:
    """Owned, single-use connection to an MQTT broker.

    Wraps a paho-mqtt v2.0+ client and turns its callbacks into three
    events for the owner:
    - ``on_connected()`` once the broker accepted the session
    - ``on_error(exc)`` on refused handshake or unexpected disconnect
    - ``on_closed()`` once a disconnect requested through close() completed

    Publishes report completion through a per-call callback. close() may be
    called from any thread and any state, any number of times.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        on_connected: Callable[[], None],
        on_error: Callable[[Exception], None],
        on_closed: Callable[[], None],
        client_id_prefix: str = "mqtt_publish",
        connect_timeout: float = 30.0,
    ):
        """Initialize the connection without touching the network.

        Args:
            config: Broker connection configuration.
            on_connected: Called when the broker accepts the connection.
            on_error: Called on handshake refusal or transport failure.
            on_closed: Called when a requested disconnect has completed.
            client_id_prefix: Prefix for the generated client identifier.
            connect_timeout: Socket connect timeout in seconds.
        """
        self.config = config
        self.client_id = new_client_id(client_id_prefix)
        self._on_connected = on_connected
        self._on_error = on_error
        self._on_closed = on_closed

        self._client = mqtt.Client(
            callback_api_version=CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
            clean_session=True,
            protocol=mqtt.MQTTv311,
            transport=config.transport.paho_name,
        )
        self._client.connect_timeout = connect_timeout

        self._lock = threading.Lock()
        self._closed = False
        self._loop_started = False
        self._pending: dict[int, PublishCallback] = {}

        self._client.on_connect = self._handle_connect
        self._client.on_disconnect = self._handle_disconnect
        self._client.on_publish = self._handle_publish

        if config.transport.paho_name == "websockets":
            self._client.ws_set_options(path=config.websocket_path)

        if config.username:
            password = config.password.get_secret_value() if config.password else None
            self._client.username_pw_set(config.username, password)

    @property
    def closed(self) -> bool:
        """Whether close() has been requested."""
        with self._lock:
            return self._closed

    def open(self) -> None:
        """Connect the socket and start the network loop.

        Blocks for DNS and the socket handshake, bounded per address by
        ``connect_timeout``. If close() runs meanwhile, the socket is dropped
        as soon as the connect returns and the loop is never started.

        Raises:
            BrokerConnectionError: If the broker cannot be reached.
        """
        with self._lock:
            if self._closed:
                raise BrokerConnectionError("connection closed before open")

        logger.debug("Connecting to %s as %s", self.config.url, self.client_id)
        try:
            self._client.connect(
                self.config.host,
                self.config.port,
                keepalive=self.config.keepalive,
            )
        except (OSError, ValueError, mqtt.WebsocketConnectionError) as e:
            raise BrokerConnectionError(str(e) or type(e).__name__) from e

        with self._lock:
            if not self._closed:
                self._client.loop_start()
                self._loop_started = True
                return

        # close() ran while the socket was connecting; without a network loop
        # disconnect() writes DISCONNECT and closes the socket inline
        logger.debug("Connection to %s closed during connect", self.config.url)
        try:
            self._client.disconnect()
        except Exception as e:
            logger.debug("Disconnect from %s failed: %s", self.config.url, e)

    def publish(self, request: PublishRequest, on_done: PublishCallback) -> None:
        """Publish a message; ``on_done`` fires when the broker acknowledges.

        Args:
            request: The message to publish.
            on_done: Completion callback, receives None or the failure.

        Raises:
            PublishRejectedError: If the publish could not be issued.
        """
        payload = request.payload.encode("utf-8")

        with self._lock:
            if self._closed:
                raise PublishRejectedError("connection is closed")
            try:
                info = self._client.publish(request.topic, payload, qos=request.qos)
            except ValueError as e:
                raise PublishRejectedError(str(e)) from e

            if info.rc != MQTTErrorCode.MQTT_ERR_SUCCESS:
                raise PublishRejectedError(mqtt.error_string(info.rc))

            self._pending[info.mid] = on_done

        logger.debug("Published to %s (qos=%d, mid=%d)", request.topic, request.qos, info.mid)

    def close(self) -> None:
        """Disconnect and stop the network loop. Idempotent, never raises."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            started = self._loop_started
            self._pending.clear()

        if not started:
            return

        try:
            self._client.disconnect()
        except Exception as e:
            logger.debug("Disconnect from %s failed: %s", self.config.url, e)

        # loop_stop() skips the join when invoked from the network thread
        self._client.loop_stop()
        logger.debug("Closed connection to %s", self.config.url)

    def _handle_connect(
        self,
        client: mqtt.Client,
        userdata: Any,
        flags: mqtt.ConnectFlags,
        reason_code: Any,
        properties: Any | None,
    ) -> None:
        """Handle CONNACK."""
        if _is_failure(reason_code):
            logger.warning("Broker %s refused connection: %s", self.config.url, reason_code)
            self._on_error(BrokerConnectionError(str(reason_code)))
            return

        logger.info("Connected to MQTT broker at %s", self.config.url)
        self._on_connected()

    def _handle_disconnect(
        self,
        client: mqtt.Client,
        userdata: Any,
        disconnect_flags: mqtt.DisconnectFlags,
        reason_code: Any,
        properties: Any | None,
    ) -> None:
        """Handle disconnection; only close()-initiated ones are expected."""
        with self._lock:
            requested = self._closed

        if requested:
            logger.debug("Disconnected from %s", self.config.url)
            self._on_closed()
        else:
            logger.warning("Lost connection to %s: %s", self.config.url, reason_code)
            self._on_error(BrokerConnectionError(f"connection lost ({reason_code})"))

    def _handle_publish(
        self,
        client: mqtt.Client,
        userdata: Any,
        mid: int,
        reason_code: Any,
        properties: Any | None,
    ) -> None:
        """Handle PUBACK for an outstanding publish."""
        with self._lock:
            callback = self._pending.pop(mid, None)

        if callback is None:
            logger.debug("Ignoring acknowledgement for unknown mid %d", mid)
            return

        if _is_failure(reason_code):
            callback(PublishRejectedError(str(reason_code)))
        else:
            callback(None)
