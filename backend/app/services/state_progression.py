from __future__ import annotations

from typing import Optional

from app.schemas.telemetry import (
    RawTelemetry,
    TelemetrySampleOut,
    VehicleSnapshot,
    VehicleStatus,
)
from app.utils.rng import RandomSource, uniform


# --- Random-walk parameters ---
POSITION_JITTER_DEG = 0.005

EN_ROUTE_SPEED_KMH = (20.0, 80.0)
LOADING_SPEED_KMH = (0.0, 5.0)

FUEL_FLOOR = 10.0
MAX_FUEL_DROP = 2.0

BATTERY_FLOOR = 15.0
MAX_BATTERY_DROP = 3.0
NON_ELECTRIC_BATTERY = 100.0

ENGINE_TEMP_C = (80.0, 120.0)
TIRE_PRESSURE_PSI = (30.0, 40.0)

# Baseline for a vehicle that has never produced a sample
DEFAULT_FUEL = 100.0
DEFAULT_BATTERY = 100.0
DEFAULT_MILEAGE = 0.0


def advance(
    previous: Optional[TelemetrySampleOut],
    vehicle: VehicleSnapshot,
    tick_seconds: float,
    rng: RandomSource,
) -> RawTelemetry:
    """Compute the next raw telemetry values for one vehicle.

    Pure: the only input that varies between calls is ``rng``. Draws are
    consumed in a fixed order (latitude, longitude, speed when moving, fuel,
    battery when electric, engine temperature, tire pressure) so a seeded
    source replays the same run.

    Position is an unbounded random walk; nothing keeps it inside a region.
    """
    if previous is not None:
        base_lat = previous.latitude
        base_lon = previous.longitude
        base_mileage = previous.mileage
        base_fuel = previous.fuel_level
        base_battery = previous.battery_level
    else:
        base_lat = float(vehicle.latitude)
        base_lon = float(vehicle.longitude)
        base_mileage = DEFAULT_MILEAGE
        base_fuel = DEFAULT_FUEL
        base_battery = DEFAULT_BATTERY

    latitude = base_lat + uniform(rng, -POSITION_JITTER_DEG, POSITION_JITTER_DEG)
    longitude = base_lon + uniform(rng, -POSITION_JITTER_DEG, POSITION_JITTER_DEG)

    speed = _speed_for(vehicle.status, rng)

    fuel_level = max(FUEL_FLOOR, base_fuel - uniform(rng, 0.0, MAX_FUEL_DROP))

    if vehicle.is_electric:
        battery_level = max(BATTERY_FLOOR, base_battery - uniform(rng, 0.0, MAX_BATTERY_DROP))
    else:
        battery_level = NON_ELECTRIC_BATTERY

    mileage = base_mileage + speed * (tick_seconds / 3600.0)

    return RawTelemetry(
        latitude=latitude,
        longitude=longitude,
        speed=speed,
        fuel_level=fuel_level,
        battery_level=battery_level,
        mileage=mileage,
        engine_temperature=uniform(rng, *ENGINE_TEMP_C),
        tire_pressure=uniform(rng, *TIRE_PRESSURE_PSI),
    )


def _speed_for(status: str, rng: RandomSource) -> float:
    if status == VehicleStatus.EN_ROUTE:
        return uniform(rng, *EN_ROUTE_SPEED_KMH)
    if status == VehicleStatus.LOADING:
        return uniform(rng, *LOADING_SPEED_KMH)
    return 0.0
