# celine/outlet/core/transport/mqtt.py
"""
aiomqtt-backed transport.

Each ``connect`` opens one fresh ``aiomqtt.Client`` session. Every error
raised by the client (paho rejects some topics with ``ValueError``) is
translated into ``BrokerConnectionError`` or ``PublishError``, so the publish
driver only deals with ``TransportError``. Cancellation is not caught.
"""
from __future__ import annotations

import asyncio
import logging
import ssl
from uuid import uuid4

import aiomqtt

from celine.outlet.contracts.broker import ConnectionOptions, QoS
from celine.outlet.core.errors import BrokerConnectionError, PublishError

logger = logging.getLogger(__name__)

PROTOCOL_VERSIONS = {
    "3.1": aiomqtt.ProtocolVersion.V31,
    "3.1.1": aiomqtt.ProtocolVersion.V311,
    "5": aiomqtt.ProtocolVersion.V5,
}


def build_tls_context(options: ConnectionOptions) -> ssl.SSLContext | None:
    """
    Build an SSL context when TLS is enabled or any TLS file is given.

    Raises:
        OSError / ssl.SSLError: If a certificate or key cannot be loaded.
    """
    if not (options.ssl or options.ca_file or options.cert_file):
        return None

    context = ssl.create_default_context()

    if options.ca_file:
        context.load_verify_locations(options.ca_file)

    if options.cert_file and options.key_file:
        context.load_cert_chain(
            certfile=options.cert_file,
            keyfile=options.key_file,
        )

    return context


def build_will(options: ConnectionOptions) -> aiomqtt.Will | None:
    if not options.will_topic:
        return None
    return aiomqtt.Will(
        topic=options.will_topic,
        payload=options.will_payload,
        qos=int(options.will_qos),
        retain=options.will_retain,
    )


class AiomqttHandle:
    """A connected aiomqtt session."""

    def __init__(self, client: aiomqtt.Client, timeout: float) -> None:
        self._client = client
        self._timeout = timeout
        self._closed = False

    @property
    def client(self) -> aiomqtt.Client:
        return self._client

    async def publish(self, topic: str, payload: bytes, retain: bool, qos: QoS) -> None:
        if self._closed:
            raise PublishError(topic, "session is closed")
        try:
            await self._client.publish(
                topic,
                payload=payload,
                qos=int(qos),
                retain=retain,
                timeout=self._timeout,
            )
        except Exception as exc:
            raise PublishError(topic, str(exc) or type(exc).__name__) from exc

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await asyncio.wait_for(
                self._client.__aexit__(None, None, None), self._timeout
            )
        except Exception as exc:
            logger.warning("Error during MQTT disconnect: %s", exc)


class AiomqttTransportFactory:
    """
    Opens MQTT sessions with aiomqtt.

    Args:
        timeout: Seconds allowed for connecting and for each publish.
    """

    def __init__(self, timeout: float = 10.0) -> None:
        self._timeout = timeout

    def _create_client(self, options: ConnectionOptions) -> aiomqtt.Client:
        protocol = PROTOCOL_VERSIONS[options.version]
        kwargs: dict = {}
        if protocol == aiomqtt.ProtocolVersion.V5:
            kwargs["clean_start"] = options.clean_session
        else:
            kwargs["clean_session"] = options.clean_session

        return aiomqtt.Client(
            hostname=options.host,
            port=options.effective_port,
            identifier=options.client_id or f"outlet-{uuid4().hex[:8]}",
            username=options.username,
            password=options.password,
            protocol=protocol,
            will=build_will(options),
            keepalive=options.keep_alive,
            tls_context=build_tls_context(options),
            timeout=self._timeout,
            **kwargs,
        )

    async def connect(self, options: ConnectionOptions) -> AiomqttHandle:
        port = options.effective_port
        logger.info("Connecting to MQTT broker at %s:%d", options.host, port)

        try:
            client = self._create_client(options)
        except (OSError, ssl.SSLError, ValueError) as exc:
            # TLS material or client option problems
            raise BrokerConnectionError(options.host, port, str(exc)) from exc

        try:
            await asyncio.wait_for(client.__aenter__(), self._timeout)
        except Exception as exc:
            raise BrokerConnectionError(
                options.host, port, str(exc) or type(exc).__name__
            ) from exc

        logger.info(
            "Connected to MQTT broker %s:%d (protocol %s, tls=%s)",
            options.host,
            port,
            options.version,
            options.ssl,
        )
        return AiomqttHandle(client, self._timeout)
