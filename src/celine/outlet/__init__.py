"""Buffered MQTT event output with at-least-once delivery."""
from celine.outlet.contracts.broker import ConnectionOptions, QoS
from celine.outlet.contracts.events import Event, PendingItem
from celine.outlet.core.driver import PublishDriver, RetryPolicy, ShutdownToken
from celine.outlet.core.output import MqttOutput

__version__ = "0.1.0"

__all__ = [
    "ConnectionOptions",
    "QoS",
    "Event",
    "PendingItem",
    "PublishDriver",
    "RetryPolicy",
    "ShutdownToken",
    "MqttOutput",
]
