# celine/outlet/core/codecs.py
"""
Event encoders.

``json`` is the default codec. Custom encoders can be referenced by import
path (``package.module:EncoderClass``).
"""
from __future__ import annotations

import json
import logging
from typing import Any, Callable

from celine.outlet.contracts.events import Encoder, Event
from celine.outlet.core.errors import ConfigurationError, EncodingError
from celine.outlet.core.loader import import_attr
from celine.outlet.core.template import render

logger = logging.getLogger(__name__)


class JsonEncoder:
    """Compact JSON document, UTF-8 encoded."""

    def encode(self, event: Event) -> bytes:
        try:
            return json.dumps(
                event.to_dict(),
                separators=(",", ":"),
                ensure_ascii=False,
            ).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise EncodingError(f"Failed to serialize event: {exc}") from exc


class JsonLinesEncoder(JsonEncoder):
    """JSON document terminated by a newline."""

    def __init__(self, delimiter: str = "\n") -> None:
        self._delimiter = delimiter.encode("utf-8")

    def encode(self, event: Event) -> bytes:
        return super().encode(event) + self._delimiter


class PlainEncoder:
    """Renders a sprintf-style format against the event."""

    def __init__(self, **options: str) -> None:
        template = options.pop("format", "%{message}")
        if options:
            raise TypeError(f"Unexpected option(s): {sorted(options)}")
        self._format = template

    def encode(self, event: Event) -> bytes:
        return render(self._format, event).encode("utf-8")


ENCODERS: dict[str, Callable[..., Encoder]] = {
    "json": JsonEncoder,
    "json_lines": JsonLinesEncoder,
    "plain": PlainEncoder,
}


def create_encoder(name: str = "json", **options: Any) -> Encoder:
    """
    Build an encoder by registered name or ``module:attr`` import path.

    Raises:
        ConfigurationError: If the codec is unknown or rejects ``options``.
    """
    if name in ENCODERS:
        factory = ENCODERS[name]
    elif ":" in name:
        try:
            factory = import_attr(name)
        except (ImportError, AttributeError) as exc:
            raise ConfigurationError(f"Cannot load codec '{name}': {exc}") from exc
    else:
        raise ConfigurationError(
            f"Unknown codec '{name}'. Available: {sorted(ENCODERS)}"
        )

    try:
        encoder = factory(**options)
    except TypeError as exc:
        raise ConfigurationError(
            f"Failed to instantiate codec '{name}': {exc}"
        ) from exc

    if not isinstance(encoder, Encoder):
        raise ConfigurationError(f"Codec '{name}' does not provide encode()")

    logger.debug("Using codec '%s'", name)
    return encoder
