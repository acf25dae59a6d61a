# celine/outlet/core/template.py
"""
sprintf-style templating over event fields.

Supported references:

* ``%{field}`` / ``%{[outer][inner]}`` – field value. Mappings and lists
  render as compact JSON, booleans as ``true``/``false``.
* ``%{+FORMAT}`` – the event ``@timestamp`` formatted with ``strftime``
  (``%{+%s}`` gives epoch seconds).

A reference to a missing field is left in the output verbatim.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any

from celine.outlet.contracts.events import Event

logger = logging.getLogger(__name__)

FIELD_REF_PATTERN = re.compile(r"%\{([^}]+)\}")


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def _format_timestamp(event: Event, fmt: str) -> str:
    ts = event.timestamp
    if fmt == "%s":
        return str(int(ts.timestamp()))
    return ts.strftime(fmt)


def render(template: str, event: Event) -> str:
    """Substitute every field reference in ``template`` from ``event``."""
    if "%{" not in template:
        return template

    def replacer(match: re.Match) -> str:
        ref = match.group(1)

        if ref.startswith("+"):
            return _format_timestamp(event, ref[1:])

        value = event.get(ref)
        if value is None:
            logger.debug("Field reference '%s' not found in event", ref)
            return match.group(0)
        return _format_value(value)

    return FIELD_REF_PATTERN.sub(replacer, template)


def field_refs(template: str) -> list[str]:
    """List the field references used by ``template``."""
    return FIELD_REF_PATTERN.findall(template)
