# celine/outlet/contracts/events.py
"""
Event model carried through the output.

An event is a free-form record of named fields. Two fields are always
present once an event is created: ``@timestamp`` (UTC, millisecond
precision) and ``@version``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Protocol, runtime_checkable

TIMESTAMP_FIELD = "@timestamp"
VERSION_FIELD = "@version"
EVENT_VERSION = "1"

# [outer][inner] style field reference
_BRACKET_REF = re.compile(r"\[([^\[\]]+)\]")


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(value: Any) -> datetime:
    """Coerce a datetime or ISO-8601 string into an aware UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError as exc:
            raise ValueError(f"Invalid {TIMESTAMP_FIELD} '{value}'") from exc
    else:
        raise ValueError(
            f"Invalid {TIMESTAMP_FIELD} type: {type(value).__name__}"
        )

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def split_field_ref(ref: str) -> list[str]:
    """``"[a][b]"`` -> ``["a", "b"]``, ``"a"`` -> ``["a"]``."""
    ref = ref.strip()
    if ref.startswith("["):
        parts = _BRACKET_REF.findall(ref)
        if parts and "".join(f"[{p}]" for p in parts) == ref:
            return parts
    return [ref]


class Event:
    """A structured application event."""

    __slots__ = ("_fields",)

    def __init__(self, fields: Mapping[str, Any] | None = None) -> None:
        data = dict(fields or {})
        if TIMESTAMP_FIELD in data:
            data[TIMESTAMP_FIELD] = format_timestamp(parse_timestamp(data[TIMESTAMP_FIELD]))
        else:
            data[TIMESTAMP_FIELD] = format_timestamp(datetime.now(timezone.utc))
        data.setdefault(VERSION_FIELD, EVENT_VERSION)
        self._fields = data

    @property
    def timestamp(self) -> datetime:
        return parse_timestamp(self._fields[TIMESTAMP_FIELD])

    def get(self, ref: str, default: Any = None) -> Any:
        """Resolve a field reference such as ``message`` or ``[host][name]``."""
        current: Any = self._fields
        for part in split_field_ref(ref):
            if not isinstance(current, Mapping) or part not in current:
                return default
            current = current[part]
        return current

    def has(self, ref: str) -> bool:
        sentinel = object()
        return self.get(ref, sentinel) is not sentinel

    def field_names(self) -> list[str]:
        return list(self._fields.keys())

    def to_dict(self) -> dict[str, Any]:
        return dict(self._fields)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Event):
            return NotImplemented
        return self._fields == other._fields

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Event({self._fields!r})"


@dataclass(frozen=True, eq=False)
class PendingItem:
    """
    An encoded event waiting for delivery.

    Compared and hashed by identity: two queued copies of the same event are
    separate deliveries.
    """

    source_event: Event
    payload: bytes


@runtime_checkable
class Encoder(Protocol):
    """Serializes an event into the bytes published to the broker."""

    def encode(self, event: Event) -> bytes: ...
