# celine/outlet/core/driver.py
"""
Publish driver: drains the event queue through the connection holder.

The head item is removed only after the broker accepted it. Any transport
failure invalidates the session and waits ``RetryPolicy.interval`` seconds
before retrying the same item. The wait is cut short by the shutdown token,
in which case ``drain`` returns with the item still queued.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from celine.outlet.contracts.broker import QoS
from celine.outlet.contracts.events import Event
from celine.outlet.core.connection import ConnectionHolder
from celine.outlet.core.errors import TransportError
from celine.outlet.core.queue import EventQueue
from celine.outlet.core.template import render

logger = logging.getLogger(__name__)

TopicRenderer = Callable[[str, Event], str]


class DriverState(str, Enum):
    IDLE = "idle"
    DRAINING = "draining"
    BACKOFF = "backoff"


@dataclass(frozen=True)
class RetryPolicy:
    """
    Fixed-interval retry.

    Attributes:
        interval: Seconds to wait after a failed attempt.
        max_retries: Consecutive retries of one item before ``drain`` gives
            up for now (the item stays queued). None retries forever.
    """

    interval: float = 10.0
    max_retries: int | None = None


class ShutdownToken:
    """Set once on stop; wakes any pending backoff wait."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def set(self) -> None:
        self._event.set()

    @property
    def is_set(self) -> bool:
        return self._event.is_set()

    async def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds. Returns True if woken by shutdown."""
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True


class PublishDriver:
    """Delivers queued items in FIFO order with at-least-once semantics."""

    def __init__(
        self,
        queue: EventQueue,
        holder: ConnectionHolder,
        *,
        topic: str,
        retain: bool = False,
        qos: QoS = QoS.AT_MOST_ONCE,
        retry: RetryPolicy | None = None,
        renderer: TopicRenderer = render,
    ) -> None:
        self._queue = queue
        self._holder = holder
        self._topic = topic
        self._retain = retain
        self._qos = QoS(qos)
        self._retry = retry or RetryPolicy()
        self._render = renderer
        self._state = DriverState.IDLE

        self._published = 0
        self._failed_attempts = 0

    @property
    def state(self) -> DriverState:
        return self._state

    @property
    def retry(self) -> RetryPolicy:
        return self._retry

    @property
    def published(self) -> int:
        return self._published

    @property
    def failed_attempts(self) -> int:
        return self._failed_attempts

    async def drain(self, shutdown: ShutdownToken) -> bool:
        """
        Publish queued items until the queue is empty.

        Returns:
            True when the queue was fully drained, False when the call
            stopped early (shutdown or retry limit) with items still queued.
        """
        retries = 0

        while self._queue:
            self._state = DriverState.DRAINING
            item = self._queue.peek_first()
            topic = self._render(self._topic, item.source_event)

            logger.debug(
                "Publishing MQTT event (%d bytes) with topic %s, retain %s, qos %d",
                len(item.payload),
                topic,
                self._retain,
                self._qos,
            )

            try:
                handle = await self._holder.get()
                await handle.publish(topic, item.payload, self._retain, self._qos)
            except TransportError as exc:
                self._failed_attempts += 1
                await self._holder.invalidate()

                if self._retry.max_retries is not None and retries >= self._retry.max_retries:
                    logger.error(
                        "Error %s while publishing to MQTT server. Giving up after "
                        "%d retries; %d event(s) remain queued.",
                        exc,
                        retries,
                        len(self._queue),
                    )
                    self._state = DriverState.IDLE
                    return False

                logger.error(
                    "Error %s while publishing to MQTT server. Will retry in %s seconds.",
                    exc,
                    self._retry.interval,
                )
                self._state = DriverState.BACKOFF
                if shutdown.is_set or await shutdown.wait(self._retry.interval):
                    logger.info(
                        "Shutdown requested, abandoning retry; %d event(s) remain queued",
                        len(self._queue),
                    )
                    self._state = DriverState.IDLE
                    return False

                retries += 1
                continue

            self._queue.pop_first()
            self._published += 1
            retries = 0

        self._state = DriverState.IDLE
        return True
