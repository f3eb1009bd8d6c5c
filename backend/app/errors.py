"""Error taxonomy for the telemetry engine.

None of these ever abort a tick: the scheduler catches them per vehicle,
logs them and skips that vehicle until the next tick.
"""

from __future__ import annotations

from typing import Optional


class TelemetryEngineError(Exception):
    """Base class for per-vehicle processing failures."""

    def __init__(self, message: str, vehicle_id: Optional[str] = None):
        super().__init__(message)
        self.vehicle_id = vehicle_id


class StoreUnavailable(TelemetryEngineError):
    """The telemetry store or registry database could not be reached in time."""


class VehicleNotFound(TelemetryEngineError):
    """The registry entry disappeared while the vehicle was being processed."""


class InvalidSnapshot(TelemetryEngineError):
    """Vehicle data (or the tick it belongs to) cannot be simulated."""
