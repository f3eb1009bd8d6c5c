from __future__ import annotations

from fastapi import APIRouter, Depends

from app.deps import get_scheduler
from app.schemas.simulation import SimulationStatus, TickReport
from app.services.tick_scheduler import TickScheduler

router = APIRouter(prefix="/simulation", tags=["simulation"])


@router.get("/status", response_model=SimulationStatus)
def simulation_status(scheduler: TickScheduler = Depends(get_scheduler)):
    return scheduler.status()


@router.post("/tick", response_model=TickReport)
async def run_tick(scheduler: TickScheduler = Depends(get_scheduler)):
    """Run one simulation pass over the fleet right now.

    Safe alongside the background loop: work for each vehicle is queued
    behind any tick still processing it.
    """
    return await scheduler.run_tick()
