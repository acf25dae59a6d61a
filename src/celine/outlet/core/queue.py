# celine/outlet/core/queue.py
"""
In-memory FIFO of encoded events awaiting delivery.

The queue is unbounded unless ``max_size`` is given. It is not safe for
uncoordinated concurrent mutation; ``MqttOutput`` serializes access.
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Iterator, Literal

from celine.outlet.contracts.events import PendingItem
from celine.outlet.core.errors import QueueEmpty, QueueFullError

logger = logging.getLogger(__name__)

OverflowPolicy = Literal["reject", "drop_oldest"]


class EventQueue:
    """Ordered buffer of pending items. Items leave only via ``pop_first``."""

    def __init__(
        self,
        max_size: int | None = None,
        overflow: OverflowPolicy = "reject",
    ) -> None:
        if max_size is not None and max_size < 1:
            raise ValueError("max_size must be at least 1")
        if overflow not in ("reject", "drop_oldest"):
            raise ValueError(f"Unknown overflow policy '{overflow}'")

        self._items: deque[PendingItem] = deque()
        self._max_size = max_size
        self._overflow = overflow
        self._dropped = 0

    @property
    def max_size(self) -> int | None:
        return self._max_size

    @property
    def dropped(self) -> int:
        """Number of items discarded by the ``drop_oldest`` policy."""
        return self._dropped

    def push(self, item: PendingItem) -> None:
        if self._max_size is not None and len(self._items) >= self._max_size:
            if self._overflow == "reject":
                raise QueueFullError(
                    f"Event queue is full ({self._max_size} pending items)"
                )
            self._items.popleft()
            self._dropped += 1
            logger.warning(
                "Event queue full (%d items), dropped oldest pending event",
                self._max_size,
            )
        self._items.append(item)

    def push_all(self, items: list[PendingItem]) -> None:
        """Append items in order. With ``reject``, either all fit or none are added."""
        if (
            self._overflow == "reject"
            and self._max_size is not None
            and len(self._items) + len(items) > self._max_size
        ):
            raise QueueFullError(
                f"Event queue cannot take {len(items)} more item(s) "
                f"({len(self._items)}/{self._max_size} pending)"
            )
        for item in items:
            self.push(item)

    def peek_first(self) -> PendingItem:
        """Return the head without removing it. Raises ``QueueEmpty``."""
        if not self._items:
            raise QueueEmpty("Event queue is empty")
        return self._items[0]

    def pop_first(self) -> PendingItem:
        """Remove and return the head. Raises ``QueueEmpty``."""
        if not self._items:
            raise QueueEmpty("Event queue is empty")
        return self._items.popleft()

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __iter__(self) -> Iterator[PendingItem]:
        return iter(list(self._items))
