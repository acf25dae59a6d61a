# celine/outlet/core/errors.py
"""
Exception hierarchy for the MQTT output.

Transport failures are recovered by the publish driver and never reach
ingest callers. Encoding and configuration errors propagate.
"""
from __future__ import annotations


class OutletError(Exception):
    """Base exception for the MQTT output."""


class TransportError(OutletError):
    """Any failure talking to the broker."""


class BrokerConnectionError(TransportError):
    """Raised when a broker session cannot be established."""

    def __init__(self, host: str, port: int, reason: str = ""):
        self.host = host
        self.port = port
        msg = f"Cannot connect to MQTT broker {host}:{port}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PublishError(TransportError):
    """Raised when a single publish call fails."""

    def __init__(self, topic: str, reason: str = ""):
        self.topic = topic
        msg = f"Failed to publish to '{topic}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class EncodingError(OutletError):
    """Raised when an event cannot be serialized."""


class ConfigurationError(OutletError):
    """Invalid output options or config files."""


class QueueFullError(OutletError):
    """Raised when a bounded queue rejects a new item."""


class QueueEmpty(OutletError):
    """Raised when reading the head of an empty queue."""
