# celine/outlet/api/schemas.py
from __future__ import annotations

from pydantic import BaseModel


class AcceptedSchema(BaseModel):
    accepted: int
    delivered: bool
    pending: int


class HealthSchema(BaseModel):
    status: str
    connected: bool
    pending: int
    shutting_down: bool


class StatsSchema(BaseModel):
    connected: bool
    received: int
    published: int
    failed_attempts: int
    connections: int
    pending: int
    dropped: int
    state: str
    shutting_down: bool
