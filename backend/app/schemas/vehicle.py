from __future__ import annotations

from pydantic import BaseModel, Field
from typing import Optional
import datetime as dt

from app.schemas.telemetry import VehicleStatus


class VehicleCreate(BaseModel):
    vehicle_id: str = Field(..., min_length=1, max_length=64)
    type: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    capacity: int = Field(..., ge=0)
    fuel_type: str = Field(..., min_length=1, description="e.g. diesel, petrol, electric")
    license_plate: Optional[str] = None
    status: VehicleStatus = VehicleStatus.AVAILABLE
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    current_location: Optional[str] = None


class VehicleUpdate(BaseModel):
    status: Optional[VehicleStatus] = None
    fuel_type: Optional[str] = Field(None, min_length=1)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    current_location: Optional[str] = None


class VehicleOut(BaseModel):
    vehicle_id: str
    type: str
    model: str
    capacity: int
    fuel_type: str
    license_plate: Optional[str] = None
    status: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    current_location: Optional[str] = None
    is_electric: bool
    speed: Optional[float] = None
    fuel_level: Optional[float] = None
    battery_level: Optional[float] = None
    mileage: Optional[float] = None
    last_updated: Optional[dt.datetime] = None
    created_at: dt.datetime
