# celine/outlet/api/discovery.py
"""
Root-level health and statistics endpoints.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from celine.outlet.api.dependencies import get_output
from celine.outlet.api.schemas import HealthSchema, StatsSchema
from celine.outlet.core.output import MqttOutput

router = APIRouter()


@router.get("/health", response_model=HealthSchema)
async def health(request: Request) -> HealthSchema:
    output: MqttOutput | None = getattr(request.app.state, "output", None)
    if output is None:
        return HealthSchema(
            status="not configured", connected=False, pending=0, shutting_down=False
        )
    return HealthSchema(
        status="ok",
        connected=output.is_connected,
        pending=output.pending,
        shutting_down=output.is_shutting_down,
    )


@router.get("/stats", response_model=StatsSchema)
async def stats(output: MqttOutput = Depends(get_output)) -> StatsSchema:
    return StatsSchema(**output.get_stats())
