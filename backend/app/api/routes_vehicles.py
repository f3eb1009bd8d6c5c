from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from app.deps import get_db
from app.schemas.telemetry import VehicleStatus
from app.schemas.vehicle import VehicleCreate, VehicleOut, VehicleUpdate
from app.services.vehicle_registry import VehicleService, to_out

router = APIRouter(tags=["vehicles"])
svc = VehicleService()


@router.get("/vehicles", response_model=List[VehicleOut])
def list_vehicles(
    status: Optional[VehicleStatus] = Query(None, description="Filter by operating status"),
    db: Session = Depends(get_db),
):
    rows = svc.list(db, status=status.value if status else None)
    return [to_out(v) for v in rows]


@router.post("/vehicles", response_model=VehicleOut)
def create_vehicle(payload: VehicleCreate, db: Session = Depends(get_db)):
    if svc.get(db, payload.vehicle_id) is not None:
        raise HTTPException(status_code=409, detail=f"Vehicle ID already exists: {payload.vehicle_id}")
    return to_out(svc.create(db, payload))


@router.get("/vehicles/{vehicle_id}", response_model=VehicleOut)
def get_vehicle(vehicle_id: str, db: Session = Depends(get_db)):
    v = svc.get(db, vehicle_id)
    if not v:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return to_out(v)


@router.patch("/vehicles/{vehicle_id}", response_model=VehicleOut)
def update_vehicle(vehicle_id: str, payload: VehicleUpdate, db: Session = Depends(get_db)):
    v = svc.get(db, vehicle_id)
    if not v:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return to_out(svc.update(db, v, payload))


@router.delete("/vehicles/{vehicle_id}")
def delete_vehicle(vehicle_id: str, db: Session = Depends(get_db)):
    v = svc.get(db, vehicle_id)
    if not v:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    svc.delete(db, v)
    return {"ok": True}
