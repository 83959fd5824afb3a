"""Connect, publish and teardown state machine racing a deadline."""

import logging
import threading
import time
from collections.abc import Callable, Collection
from enum import Enum

from mqtt_publish_step.config import ConnectionConfig, PublishRequest, StepSettings
from mqtt_publish_step.domain.outcome import Outcome, PublishFailure, PublishSuccess
from mqtt_publish_step.errors import (
    BrokerConnectionError,
    DeadlineExceededError,
    PublishStepError,
)
from mqtt_publish_step.mqtt.connection import BrokerConnection
from mqtt_publish_step.observability.metrics import METRICS

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[..., BrokerConnection]


class PublishState(str, Enum):
    """States of a single publish invocation."""

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    PUBLISHING = "publishing"
    CLOSING = "closing"
    DONE = "done"


class PublishOrchestrator:
    """Drives one connect -> publish -> close cycle to exactly one outcome.

    The connection is opened on a helper thread, connection events arrive
    on the paho network thread and the deadline on a timer thread. The
    caller only waits for the outcome, so a connect stuck in DNS or the
    handshake cannot hold it past the deadline. Every terminal transition goes through ``_resolve``,
    which only the first caller gets past; later events are discarded.
    Resolution disarms the timer and closes the connection, both of which
    are idempotent.

    Instances are single-use.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        request: PublishRequest,
        settings: StepSettings | None = None,
        connection_factory: ConnectionFactory = BrokerConnection,
    ):
        """Initialize the orchestrator.

        Args:
            config: Broker connection configuration.
            request: The message to publish.
            settings: Step settings (deadline, client id prefix).
            connection_factory: Builds the owned connection; receives the
                config, the three event callbacks, and connection options.
        """
        self.config = config
        self.request = request
        self.settings = settings or StepSettings()

        self._lock = threading.Lock()
        self._state = PublishState.IDLE
        self._outcome: Outcome | None = None
        self._done = threading.Event()

        self._deadline_timer = threading.Timer(self.settings.deadline_seconds, self._on_deadline)
        self._deadline_timer.daemon = True

        self._connection = connection_factory(
            config,
            on_connected=self._on_connected,
            on_error=self._on_error,
            on_closed=self._on_closed,
            client_id_prefix=self.settings.client_id_prefix,
            connect_timeout=self.settings.deadline_seconds,
        )

    @property
    def state(self) -> PublishState:
        """Current state."""
        with self._lock:
            return self._state

    @property
    def outcome(self) -> Outcome | None:
        """The resolved outcome, or None while running."""
        with self._lock:
            return self._outcome

    def execute(self) -> Outcome:
        """Run the invocation and block until its outcome is decided.

        Returns:
            The single outcome of this invocation.

        Raises:
            RuntimeError: If the orchestrator has already been executed.
        """
        with self._lock:
            if self._state is not PublishState.IDLE:
                raise RuntimeError("PublishOrchestrator instances are single-use")
            self._state = PublishState.CONNECTING

        started = time.monotonic()
        METRICS.in_flight.inc()
        logger.info("Connecting to MQTT broker at %s", self.config.url)

        try:
            self._deadline_timer.start()
            threading.Thread(
                target=self._open_connection, name="mqtt-publish-open", daemon=True
            ).start()
            self._done.wait()
        finally:
            self._deadline_timer.cancel()
            self._connection.close()
            METRICS.in_flight.dec()

        outcome = self.outcome
        if outcome is None:
            raise RuntimeError("PublishOrchestrator finished without an outcome")
        METRICS.record_outcome(outcome, time.monotonic() - started)
        return outcome

    def _open_connection(self) -> None:
        # Blocks through DNS and the socket handshake; execute() only waits on _done
        try:
            self._connection.open()
        except BrokerConnectionError as e:
            self._fail(e)
        except Exception as e:
            logger.exception("Unexpected error opening connection to %s", self.config.url)
            self._resolve(PublishFailure.from_exception(e))

    def _resolve(
        self,
        outcome: Outcome,
        from_states: Collection[PublishState] | None = None,
    ) -> bool:
        """Move to DONE with ``outcome`` unless another event got there first.

        Args:
            outcome: The outcome to record.
            from_states: When given, only resolve from one of these states.

        Returns:
            True if this call decided the outcome.
        """
        with self._lock:
            if self._state is PublishState.DONE or (
                from_states is not None and self._state not in from_states
            ):
                logger.debug("Discarding %r in state %s", outcome, self._state.value)
                return False
            previous = self._state
            self._state = PublishState.DONE
            self._outcome = outcome

        self._deadline_timer.cancel()
        self._connection.close()
        self._done.set()

        if outcome.success:
            logger.info("Publish to %s finished: %s", self.request.topic, outcome.message)
        else:
            logger.warning(
                "Publish to %s failed while %s: %s",
                self.request.topic,
                previous.value,
                outcome.reason,
            )
        return True

    def _fail(self, error: PublishStepError) -> bool:
        return self._resolve(PublishFailure.from_error(error))

    def _on_connected(self) -> None:
        with self._lock:
            if self._state is not PublishState.CONNECTING:
                logger.debug("Discarding connect event in state %s", self._state.value)
                return
            self._state = PublishState.CONNECTED
            # QoS 1 publish is issued as soon as the session is up
            self._state = PublishState.PUBLISHING

        try:
            self._connection.publish(self.request, self._on_publish_done)
        except PublishStepError as e:
            self._fail(e)
        except Exception as e:
            logger.exception("Unexpected error publishing to %s", self.request.topic)
            self._resolve(PublishFailure.from_exception(e))

    def _on_publish_done(self, error: Exception | None) -> None:
        if error is not None:
            if isinstance(error, PublishStepError):
                self._fail(error)
            else:
                self._resolve(PublishFailure.from_exception(error))
            return

        with self._lock:
            if self._state is not PublishState.PUBLISHING:
                logger.debug("Discarding publish acknowledgement in state %s", self._state.value)
                return
            self._state = PublishState.CLOSING

        logger.info("Published message to topic: %s", self.request.topic)
        self._connection.close()

    def _on_closed(self) -> None:
        self._resolve(
            PublishSuccess(f"Message published successfully to topic: {self.request.topic}"),
            from_states=(PublishState.CLOSING,),
        )

    def _on_error(self, error: Exception) -> None:
        if not isinstance(error, PublishStepError):
            error = BrokerConnectionError(str(error) or type(error).__name__)
        self._fail(error)

    def _on_deadline(self) -> None:
        seconds = self.settings.deadline_seconds
        self._fail(DeadlineExceededError(f"MQTT connection timeout after {seconds:g} seconds"))
