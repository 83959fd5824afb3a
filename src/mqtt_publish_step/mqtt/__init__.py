"""MQTT transport layer."""

from mqtt_publish_step.mqtt.connection import BrokerConnection, new_client_id

__all__ = ["BrokerConnection", "new_client_id"]
