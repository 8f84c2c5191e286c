"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class CollectorState(str, Enum):
    """Scheduler states exposed via the API."""

    idle = "idle"
    collecting = "collecting"


class CycleOutcome(BaseModel):
    """Result of one fetch, parse, and update pass."""

    cycle: int = Field(..., ge=1)
    started_at: datetime
    finished_at: datetime
    duration_ms: int = Field(..., ge=0)
    sensor_count: int = Field(0, ge=0, description="Metric points written this cycle.")
    error: Optional[str] = Field(
        default=None, description="Report fetch failure, if the cycle produced no readings."
    )

    @property
    def succeeded(self) -> bool:
        return self.error is None


class ExporterStatus(BaseModel):
    """Collector health reported by ``/health``."""

    status: str = "ok"
    host: str
    state: CollectorState
    running: bool
    interval_seconds: float
    cycles_completed: int = Field(0, ge=0)
    last_cycle: Optional[CycleOutcome] = None
