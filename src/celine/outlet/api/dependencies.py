# celine/outlet/api/dependencies.py
"""
FastAPI dependencies for the ingest routes.
"""
from __future__ import annotations

from fastapi import HTTPException, Request

from celine.outlet.core.output import MqttOutput


def get_output(request: Request) -> MqttOutput:
    """Return the app's MQTT output, or 503 while it is not configured."""
    output = getattr(request.app.state, "output", None)
    if output is None:
        raise HTTPException(status_code=503, detail="MQTT output not configured")
    return output
