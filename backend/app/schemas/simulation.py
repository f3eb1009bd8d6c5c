from __future__ import annotations

from pydantic import BaseModel, Field
from typing import Dict, Optional
import datetime as dt


class TickReport(BaseModel):
    tick: int
    started_at: dt.datetime
    finished_at: Optional[dt.datetime] = None
    vehicles: int = 0
    processed: int = 0
    # vehicle_id -> reason it was skipped this tick
    skipped: Dict[str, str] = Field(default_factory=dict)


class SimulationStatus(BaseModel):
    running: bool
    tick_interval_ms: int
    worker_pool_size: int
    seeded: bool
    ticks_completed: int
    last_report: Optional[TickReport] = None
