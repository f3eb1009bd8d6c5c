from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List

from app.deps import get_store
from app.errors import StoreUnavailable
from app.schemas.telemetry import DashboardStats, MaintenanceStats, TelemetrySampleOut
from app.services import reporting
from app.services.telemetry_store import TelemetryStore

router = APIRouter(prefix="/telemetry", tags=["telemetry"])


def _unavailable(e: StoreUnavailable) -> HTTPException:
    return HTTPException(status_code=503, detail=f"telemetry store unavailable: {e}")


@router.get("/latest", response_model=List[TelemetrySampleOut])
def latest_for_all_vehicles(store: TelemetryStore = Depends(get_store)):
    try:
        return store.latest_for_all_vehicles()
    except StoreUnavailable as e:
        raise _unavailable(e)


@router.get("/vehicle/{vehicle_id}", response_model=List[TelemetrySampleOut])
def vehicle_history(
    vehicle_id: str,
    limit: int = Query(100, ge=1, le=1000),
    store: TelemetryStore = Depends(get_store),
):
    try:
        return store.history(vehicle_id, limit=limit)
    except StoreUnavailable as e:
        raise _unavailable(e)


@router.get("/vehicle/{vehicle_id}/latest", response_model=TelemetrySampleOut)
def vehicle_latest(vehicle_id: str, store: TelemetryStore = Depends(get_store)):
    try:
        sample = store.latest(vehicle_id)
    except StoreUnavailable as e:
        raise _unavailable(e)
    if sample is None:
        raise HTTPException(status_code=404, detail="No telemetry for vehicle")
    return sample


@router.get("/recent", response_model=List[TelemetrySampleOut])
def recent(
    hours: float = Query(1.0, gt=0, le=24 * 30),
    store: TelemetryStore = Depends(get_store),
):
    try:
        return reporting.recent_telemetry(store, hours=hours)
    except StoreUnavailable as e:
        raise _unavailable(e)


@router.get("/maintenance/stats", response_model=MaintenanceStats)
def maintenance_stats(store: TelemetryStore = Depends(get_store)):
    try:
        return reporting.maintenance_stats(store)
    except StoreUnavailable as e:
        raise _unavailable(e)


@router.get("/dashboard/stats", response_model=DashboardStats)
def dashboard_stats(store: TelemetryStore = Depends(get_store)):
    try:
        return reporting.dashboard_stats(store)
    except StoreUnavailable as e:
        raise _unavailable(e)
