# celine/outlet/contracts/broker.py
"""
Transport contract for MQTT event publishing.

The output engine depends only on these protocols; the concrete client
(aiomqtt) lives in ``celine.outlet.core.transport``.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Protocol, runtime_checkable

DEFAULT_PORT = 1883
DEFAULT_TLS_PORT = 8883


class QoS(IntEnum):
    """Quality of Service levels for message delivery."""

    AT_MOST_ONCE = 0  # Fire and forget
    AT_LEAST_ONCE = 1  # Acknowledged delivery
    EXACTLY_ONCE = 2  # Guaranteed single delivery


@dataclass(frozen=True)
class ConnectionOptions:
    """
    Everything needed to open one broker session.

    Attributes:
        host: MQTT broker hostname.
        port: Broker port. When unset, 8883 is used with ssl and 1883 without.
        client_id: Client identifier. Generated by the transport if not given.
        username: Optional authentication username.
        password: Optional authentication password.
        ssl: Whether to use TLS.
        cert_file: Client certificate for mutual TLS.
        key_file: Private key matching ``cert_file``.
        ca_file: Root CA certificate.
        version: MQTT protocol version ("3.1", "3.1.1" or "5").
        clean_session: Whether to start with a clean session.
        keep_alive: Keepalive interval in seconds.
        will_topic: Topic of the last-will message.
        will_payload: Payload of the last-will message.
        will_qos: QoS of the last-will message.
        will_retain: Whether the broker retains the last-will message.
    """

    host: str
    port: int | None = None
    client_id: str | None = None
    username: str | None = None
    password: str | None = None
    ssl: bool = False
    cert_file: str | None = None
    key_file: str | None = None
    ca_file: str | None = None
    version: str = "3.1.1"
    clean_session: bool = True
    keep_alive: int = 15
    will_topic: str | None = None
    will_payload: str | None = None
    will_qos: QoS = QoS.AT_MOST_ONCE
    will_retain: bool = False

    @property
    def effective_port(self) -> int:
        if self.port:
            return self.port
        return DEFAULT_TLS_PORT if self.ssl else DEFAULT_PORT

    def describe(self) -> dict[str, object]:
        """Loggable view of the options, without secrets."""
        return {
            "host": self.host,
            "port": self.effective_port,
            "client_id": self.client_id,
            "username": self.username,
            "ssl": self.ssl,
            "version": self.version,
            "clean_session": self.clean_session,
            "keep_alive": self.keep_alive,
            "will_topic": self.will_topic,
        }


@runtime_checkable
class TransportHandle(Protocol):
    """A live broker session."""

    async def publish(
        self, topic: str, payload: bytes, retain: bool, qos: QoS
    ) -> None: ...

    async def close(self) -> None: ...


@runtime_checkable
class TransportFactory(Protocol):
    """Opens broker sessions. Raises ``TransportError`` on failure."""

    async def connect(self, options: ConnectionOptions) -> TransportHandle: ...
