# celine/outlet/api/events.py
"""
Event ingest endpoints.

``POST /events`` takes one JSON object, ``POST /events/batch`` a JSON
array. Both return once the queue is drained or the output is shutting
down; a broker outage makes the request wait rather than fail.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from celine.outlet.api.dependencies import get_output
from celine.outlet.api.schemas import AcceptedSchema
from celine.outlet.contracts.events import Event
from celine.outlet.core.errors import EncodingError, QueueFullError
from celine.outlet.core.output import MqttOutput

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


def _to_event(fields: dict[str, Any]) -> Event:
    try:
        return Event(fields)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.post(
    "",
    status_code=202,
    response_model=AcceptedSchema,
    operation_id="receive_event",
)
async def receive_event(
    fields: dict[str, Any] = Body(...),
    output: MqttOutput = Depends(get_output),
) -> AcceptedSchema:
    event = _to_event(fields)
    try:
        delivered = await output.receive(event)
    except EncodingError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except QueueFullError as exc:
        logger.warning("Rejected event: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    return AcceptedSchema(accepted=1, delivered=delivered, pending=output.pending)


@router.post(
    "/batch",
    status_code=202,
    response_model=AcceptedSchema,
    operation_id="receive_event_batch",
)
async def receive_event_batch(
    batch: list[dict[str, Any]] = Body(...),
    output: MqttOutput = Depends(get_output),
) -> AcceptedSchema:
    events = [_to_event(fields) for fields in batch]
    if not events:
        return AcceptedSchema(accepted=0, delivered=not output.pending, pending=output.pending)

    try:
        delivered = await output.receive_batch(events)
    except EncodingError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except QueueFullError as exc:
        logger.warning("Rejected batch of %d event(s): %s", len(events), exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    return AcceptedSchema(
        accepted=len(events), delivered=delivered, pending=output.pending
    )
