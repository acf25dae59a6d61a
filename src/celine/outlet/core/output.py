# celine/outlet/core/output.py
"""
MQTT output: the ingest entry points.

Events are encoded, queued, and published before ``receive`` /
``receive_batch`` return. Broker failures are retried inside the call and
never raised to the caller; a stuck broker shows up as a call that takes
long and as retry errors in the log.

Usage:
    output = MqttOutput.from_config(load_output_config(["config/outlet.yaml"]))

    await output.receive(Event({"message": "hello"}))
    await output.receive_batch([Event({"n": 1}), Event({"n": 2})])

    output.shutdown()
    await output.close()
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

from celine.outlet.contracts.broker import ConnectionOptions, QoS, TransportFactory
from celine.outlet.contracts.events import Encoder, Event, PendingItem
from celine.outlet.core.codecs import JsonEncoder, create_encoder
from celine.outlet.core.config import OutputConfig
from celine.outlet.core.connection import ConnectionHolder
from celine.outlet.core.driver import PublishDriver, RetryPolicy, ShutdownToken
from celine.outlet.core.queue import EventQueue, OverflowPolicy
from celine.outlet.core.template import field_refs
from celine.outlet.core.transport import AiomqttTransportFactory

logger = logging.getLogger(__name__)


class MqttOutput:
    """
    Buffered, at-least-once MQTT publisher.

    One lock covers push+drain, so concurrent callers are serialized and
    items are published strictly in arrival order over a single session.
    """

    def __init__(
        self,
        options: ConnectionOptions,
        *,
        topic: str,
        retain: bool = False,
        qos: QoS = QoS.AT_MOST_ONCE,
        encoder: Encoder | None = None,
        transport: TransportFactory | None = None,
        retry: RetryPolicy | None = None,
        queue_max_size: int | None = None,
        queue_overflow: OverflowPolicy = "reject",
    ) -> None:
        self._encoder = encoder or JsonEncoder()
        self._queue = EventQueue(max_size=queue_max_size, overflow=queue_overflow)
        self._holder = ConnectionHolder(options, transport or AiomqttTransportFactory())
        self._driver = PublishDriver(
            self._queue,
            self._holder,
            topic=topic,
            retain=retain,
            qos=qos,
            retry=retry,
        )
        self._shutdown = ShutdownToken()
        self._lock = asyncio.Lock()
        self._received = 0

        refs = field_refs(topic)
        if refs:
            logger.info("Topic template '%s' uses event fields: %s", topic, refs)

    @classmethod
    def from_config(
        cls,
        config: OutputConfig,
        transport: TransportFactory | None = None,
    ) -> MqttOutput:
        return cls(
            config.to_connection_options(),
            topic=config.topic,
            retain=config.retain,
            qos=config.qos,
            encoder=create_encoder(config.codec, **config.codec_options),
            transport=transport,
            retry=RetryPolicy(
                interval=config.connect_retry_interval,
                max_retries=config.max_retries,
            ),
            queue_max_size=config.queue_max_size,
            queue_overflow=config.queue_overflow,
        )

    @property
    def queue(self) -> EventQueue:
        return self._queue

    @property
    def holder(self) -> ConnectionHolder:
        return self._holder

    @property
    def driver(self) -> PublishDriver:
        return self._driver

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def is_connected(self) -> bool:
        return self._holder.is_live

    @property
    def is_shutting_down(self) -> bool:
        return self._shutdown.is_set

    def _enqueue(self, event: Event) -> None:
        payload = self._encoder.encode(event)
        self._queue.push(PendingItem(source_event=event, payload=payload))
        self._received += 1

    async def receive(self, event: Event) -> bool:
        """
        Encode and publish one event.

        Returns:
            True if the queue was fully drained.

        Raises:
            EncodingError: If the event cannot be encoded (nothing is queued).
            QueueFullError: If a bounded queue rejects the event.
        """
        async with self._lock:
            self._enqueue(event)
            return await self._driver.drain(self._shutdown)

    async def receive_batch(self, events: Iterable[Event]) -> bool:
        """
        Encode all events, queue them in order, then drain once.

        Every event is encoded before any is queued, so an encoding failure
        leaves the queue untouched.
        """
        events = list(events)
        async with self._lock:
            items = [
                PendingItem(source_event=event, payload=self._encoder.encode(event))
                for event in events
            ]
            self._queue.push_all(items)
            self._received += len(items)
            logger.debug("Queued batch of %d event(s)", len(items))
            return await self._driver.drain(self._shutdown)

    async def drain(self) -> bool:
        """Retry delivery of anything still queued."""
        async with self._lock:
            return await self._driver.drain(self._shutdown)

    def shutdown(self) -> None:
        """Stop retrying. Pending events are kept in memory, not flushed."""
        if not self._shutdown.is_set:
            logger.info("Shutting down MQTT output (%d event(s) pending)", self.pending)
        self._shutdown.set()

    async def close(self) -> None:
        """Shut down and release the broker session."""
        self.shutdown()
        async with self._lock:
            await self._holder.invalidate()
        if self._queue:
            logger.warning(
                "MQTT output closed with %d undelivered event(s)", len(self._queue)
            )

    def get_stats(self) -> dict[str, Any]:
        return {
            "connected": self.is_connected,
            "received": self._received,
            "published": self._driver.published,
            "failed_attempts": self._driver.failed_attempts,
            "connections": self._holder.connect_count,
            "pending": self.pending,
            "dropped": self._queue.dropped,
            "state": self._driver.state.value,
            "shutting_down": self.is_shutting_down,
        }
