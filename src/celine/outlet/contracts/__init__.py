"""Public contracts for the MQTT output."""
from celine.outlet.contracts.broker import (
    ConnectionOptions,
    QoS,
    TransportFactory,
    TransportHandle,
)
from celine.outlet.contracts.events import Encoder, Event, PendingItem

__all__ = [
    "ConnectionOptions", "QoS", "TransportFactory", "TransportHandle",
    "Encoder", "Event", "PendingItem",
]
