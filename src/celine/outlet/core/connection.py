# celine/outlet/core/connection.py
"""
Lazy, single-session connection holder.

The holder is either ``Absent`` or ``Live(handle)``. Any publish failure
sends it back to ``Absent`` so the next attempt opens a fresh session.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from celine.outlet.contracts.broker import (
    ConnectionOptions,
    TransportFactory,
    TransportHandle,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Absent:
    """No session; the next ``get`` connects."""


@dataclass(frozen=True)
class Live:
    handle: TransportHandle


ConnectionState = Union[Absent, Live]


class ConnectionHolder:
    """Owns at most one transport session built from fixed options."""

    def __init__(self, options: ConnectionOptions, factory: TransportFactory) -> None:
        self._options = options
        self._factory = factory
        self._state: ConnectionState = Absent()
        self._connect_count = 0

    @property
    def options(self) -> ConnectionOptions:
        return self._options

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_live(self) -> bool:
        return isinstance(self._state, Live)

    @property
    def connect_count(self) -> int:
        """Number of sessions successfully established so far."""
        return self._connect_count

    async def get(self) -> TransportHandle:
        """
        Return the live session, connecting first if needed.

        Raises:
            TransportError: If the session cannot be established. Nothing
                is cached in that case.
        """
        state = self._state
        if isinstance(state, Live):
            return state.handle

        logger.debug("Connecting MQTT with options %s", self._options.describe())
        handle = await self._factory.connect(self._options)
        self._state = Live(handle)
        self._connect_count += 1
        return handle

    async def invalidate(self) -> None:
        """Drop the current session, if any. Safe to call repeatedly."""
        state = self._state
        self._state = Absent()
        if isinstance(state, Live):
            await state.handle.close()
