# tests/core/transport/test_mqtt.py
from __future__ import annotations

import ssl
from typing import Any

import aiomqtt
import pytest

from celine.outlet.contracts.broker import ConnectionOptions, QoS
from celine.outlet.contracts.events import Event
from celine.outlet.core.driver import RetryPolicy
from celine.outlet.core.errors import BrokerConnectionError, PublishError
from celine.outlet.core.output import MqttOutput
from celine.outlet.core.transport import mqtt as mqtt_transport
from celine.outlet.core.transport.mqtt import (
    AiomqttTransportFactory,
    build_tls_context,
    build_will,
)


class StubClient:
    """Stands in for aiomqtt.Client; records constructor args and calls."""

    instances: list["StubClient"] = []
    fail_connect: Exception | None = None
    fail_publish: Exception | None = None

    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.published: list[dict[str, Any]] = []
        self.entered = False
        self.exited = False
        StubClient.instances.append(self)

    async def __aenter__(self) -> "StubClient":
        if StubClient.fail_connect is not None:
            raise StubClient.fail_connect
        self.entered = True
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.exited = True

    async def publish(self, topic: str, **kwargs: Any) -> None:
        if not topic or "+" in topic or "#" in topic:
            # paho validates topics before sending
            raise ValueError("Publish topic cannot contain wildcards.")
        if StubClient.fail_publish is not None:
            raise StubClient.fail_publish
        self.published.append({"topic": topic, **kwargs})


@pytest.fixture
def stub_client(monkeypatch):
    StubClient.instances = []
    StubClient.fail_connect = None
    StubClient.fail_publish = None
    monkeypatch.setattr(mqtt_transport.aiomqtt, "Client", StubClient)
    return StubClient


class TestAiomqttTransportFactory:
    @pytest.mark.asyncio
    async def test_connect_builds_client(self, stub_client):
        options = ConnectionOptions(
            host="test.mosquitto.org",
            client_id="c1",
            username="u",
            password="p",
            keep_alive=30,
        )

        handle = await AiomqttTransportFactory(timeout=5).connect(options)

        client = stub_client.instances[0]
        assert handle.client is client
        assert client.entered
        assert client.kwargs["hostname"] == "test.mosquitto.org"
        assert client.kwargs["port"] == 1883
        assert client.kwargs["identifier"] == "c1"
        assert client.kwargs["username"] == "u"
        assert client.kwargs["password"] == "p"
        assert client.kwargs["keepalive"] == 30
        assert client.kwargs["protocol"] == aiomqtt.ProtocolVersion.V311
        assert client.kwargs["clean_session"] is True
        assert client.kwargs["tls_context"] is None
        assert client.kwargs["will"] is None

    @pytest.mark.asyncio
    async def test_generates_client_id(self, stub_client):
        await AiomqttTransportFactory().connect(ConnectionOptions(host="h"))
        assert stub_client.instances[0].kwargs["identifier"].startswith("outlet-")

    @pytest.mark.asyncio
    async def test_tls_uses_8883(self, stub_client):
        await AiomqttTransportFactory().connect(ConnectionOptions(host="h", ssl=True))
        kwargs = stub_client.instances[0].kwargs
        assert kwargs["port"] == 8883
        assert isinstance(kwargs["tls_context"], ssl.SSLContext)

    @pytest.mark.asyncio
    async def test_mqtt5_uses_clean_start(self, stub_client):
        await AiomqttTransportFactory().connect(
            ConnectionOptions(host="h", version="5", clean_session=False)
        )
        kwargs = stub_client.instances[0].kwargs
        assert kwargs["protocol"] == aiomqtt.ProtocolVersion.V5
        assert kwargs["clean_start"] is False
        assert "clean_session" not in kwargs

    @pytest.mark.asyncio
    async def test_connect_error_wrapped(self, stub_client):
        stub_client.fail_connect = aiomqtt.MqttError("refused")
        with pytest.raises(BrokerConnectionError, match="h:1883: refused"):
            await AiomqttTransportFactory().connect(ConnectionOptions(host="h"))

    @pytest.mark.asyncio
    async def test_unexpected_connect_error_wrapped(self, stub_client):
        stub_client.fail_connect = RuntimeError("loop closed")
        with pytest.raises(BrokerConnectionError, match="loop closed"):
            await AiomqttTransportFactory().connect(ConnectionOptions(host="h"))

    @pytest.mark.asyncio
    async def test_missing_ca_file_is_connection_error(self, stub_client, tmp_path):
        options = ConnectionOptions(host="h", ssl=True, ca_file=str(tmp_path / "nope.crt"))
        with pytest.raises(BrokerConnectionError):
            await AiomqttTransportFactory().connect(options)
        assert stub_client.instances == []


class TestAiomqttHandle:
    @pytest.mark.asyncio
    async def test_publish(self, stub_client):
        handle = await AiomqttTransportFactory(timeout=3).connect(ConnectionOptions(host="h"))

        await handle.publish("hello", b"payload", False, QoS.AT_LEAST_ONCE)

        assert stub_client.instances[0].published == [
            {"topic": "hello", "payload": b"payload", "qos": 1, "retain": False, "timeout": 3}
        ]

    @pytest.mark.asyncio
    async def test_publish_error_wrapped(self, stub_client):
        handle = await AiomqttTransportFactory().connect(ConnectionOptions(host="h"))
        stub_client.fail_publish = aiomqtt.MqttCodeError(7, "lost")

        with pytest.raises(PublishError, match="hello"):
            await handle.publish("hello", b"x", False, QoS.AT_MOST_ONCE)

    @pytest.mark.asyncio
    async def test_rejected_topic_is_publish_error(self, stub_client):
        handle = await AiomqttTransportFactory().connect(ConnectionOptions(host="h"))

        with pytest.raises(PublishError, match="wildcards") as exc_info:
            await handle.publish("events/a/#", b"x", False, QoS.AT_MOST_ONCE)

        assert isinstance(exc_info.value.__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, stub_client):
        handle = await AiomqttTransportFactory().connect(ConnectionOptions(host="h"))
        await handle.close()
        await handle.close()
        assert stub_client.instances[0].exited

        with pytest.raises(PublishError, match="closed"):
            await handle.publish("t", b"x", False, QoS.AT_MOST_ONCE)


class TestBuilders:
    def test_no_tls_by_default(self):
        assert build_tls_context(ConnectionOptions(host="h")) is None

    def test_will(self):
        will = build_will(
            ConnectionOptions(
                host="h",
                will_topic="status",
                will_payload="offline",
                will_qos=QoS.EXACTLY_ONCE,
                will_retain=True,
            )
        )
        assert will.topic == "status"
        assert will.payload == "offline"
        assert will.qos == 2
        assert will.retain is True

    def test_no_will_without_topic(self):
        assert build_will(ConnectionOptions(host="h", will_payload="x")) is None


class TestOutputOverAiomqtt:
    @pytest.mark.asyncio
    async def test_rejected_topic_never_reaches_caller(self, stub_client):
        output = MqttOutput(
            ConnectionOptions(host="h"),
            topic="events/%{room}",
            transport=AiomqttTransportFactory(),
            retry=RetryPolicy(interval=0.01, max_retries=0),
        )

        assert await output.receive(Event({"room": "a/#"})) is False

        assert output.pending == 1
        assert output.is_connected is False
        assert stub_client.instances[0].exited
        assert output.get_stats()["failed_attempts"] == 1

    @pytest.mark.asyncio
    async def test_rejected_topic_is_retried_on_next_call(self, stub_client):
        output = MqttOutput(
            ConnectionOptions(host="h"),
            topic="events/%{room}",
            transport=AiomqttTransportFactory(),
            retry=RetryPolicy(interval=0.01, max_retries=1),
        )

        await output.receive(Event({"room": "a/#"}))
        assert await output.receive(Event({"room": "kitchen"})) is False

        assert output.pending == 2
        assert output.get_stats()["failed_attempts"] == 4
        assert all(client.published == [] for client in stub_client.instances)
