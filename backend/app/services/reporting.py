"""
Reporting
Read-only aggregates over the telemetry store for dashboards.
"""

from __future__ import annotations

import datetime as dt
from typing import List

from app.schemas.telemetry import (
    DashboardStats,
    MaintenanceStats,
    TelemetrySampleOut,
    most_severe,
)
from app.services.telemetry_store import TelemetryStore
from app.utils.time import utc_now

# Vehicles reporting more than this (km/h) count as active
ACTIVE_SPEED_KMH = 5.0


def recent_telemetry(store: TelemetryStore, *, hours: float = 1.0) -> List[TelemetrySampleOut]:
    """All samples from the last ``hours`` hours, newest first."""
    since = utc_now() - dt.timedelta(hours=hours)
    return store.since(since)


def maintenance_stats(store: TelemetryStore) -> MaintenanceStats:
    return MaintenanceStats(**store.maintenance_counts())


def dashboard_stats(store: TelemetryStore) -> DashboardStats:
    """Fleet summary built from each vehicle's latest sample.

    Averages are rounded to one decimal place; ``worst_tier`` is the most
    severe tier among the latest samples (None for an empty fleet).
    """
    latest = store.latest_for_all_vehicles()
    n = len(latest)

    avg_speed = sum(s.speed for s in latest) / n if n else 0.0
    avg_fuel = sum(s.fuel_level for s in latest) / n if n else 0.0
    active = sum(1 for s in latest if s.speed > ACTIVE_SPEED_KMH)

    return DashboardStats(
        total_vehicles=n,
        active_vehicles=active,
        average_speed=round(avg_speed, 1),
        average_fuel_level=round(avg_fuel, 1),
        maintenance_stats=maintenance_stats(store),
        worst_tier=most_severe(s.maintenance_status for s in latest),
    )
