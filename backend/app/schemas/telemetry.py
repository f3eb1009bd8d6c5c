from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Dict, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field


class VehicleStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    EN_ROUTE = "EN_ROUTE"
    LOADING = "LOADING"
    MAINTENANCE = "MAINTENANCE"
    OFFLINE = "OFFLINE"
    OUT_OF_SERVICE = "OUT_OF_SERVICE"


class MaintenanceTier(str, Enum):
    HEALTHY = "HEALTHY"
    DUE = "DUE"
    CRITICAL = "CRITICAL"

    @property
    def severity(self) -> int:
        return _TIER_SEVERITY[self]


_TIER_SEVERITY: Dict[MaintenanceTier, int] = {
    MaintenanceTier.HEALTHY: 0,
    MaintenanceTier.DUE: 1,
    MaintenanceTier.CRITICAL: 2,
}


def most_severe(tiers: Iterable[MaintenanceTier]) -> Optional[MaintenanceTier]:
    """Worst tier in ``tiers`` (CRITICAL > DUE > HEALTHY), None when empty."""
    return max(tiers, key=lambda t: t.severity, default=None)


class VehicleSnapshot(BaseModel):
    """Registry view of a vehicle as read at the start of a tick.

    Deliberately lenient: malformed rows still load so the scheduler can
    reject them one vehicle at a time.
    """

    vehicle_id: str
    status: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_electric: bool = False

    speed: Optional[float] = None
    fuel_level: Optional[float] = None
    battery_level: Optional[float] = None
    mileage: Optional[float] = None
    last_updated: Optional[dt.datetime] = None


class RawTelemetry(BaseModel):
    """Output of one state progression step, before classification."""

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    speed: float = Field(..., ge=0)
    fuel_level: float
    battery_level: float
    mileage: float
    engine_temperature: float
    tire_pressure: float


class TelemetrySampleOut(BaseModel):
    """One persisted telemetry record; immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    vehicle_id: str
    timestamp: dt.datetime
    speed: float
    fuel_level: float
    battery_level: float
    mileage: float
    latitude: float
    longitude: float
    engine_temperature: Optional[float] = None
    tire_pressure: Optional[float] = None
    maintenance_status: MaintenanceTier
    alert_message: Optional[str] = None


class MaintenanceStats(BaseModel):
    HEALTHY: int = 0
    DUE: int = 0
    CRITICAL: int = 0


class DashboardStats(BaseModel):
    total_vehicles: int
    active_vehicles: int
    average_speed: float
    average_fuel_level: float
    maintenance_stats: MaintenanceStats
    worst_tier: Optional[MaintenanceTier] = None
