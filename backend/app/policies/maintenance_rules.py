from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from app.schemas.telemetry import MaintenanceTier
from app.utils.rng import RandomSource


# --- Maintenance thresholds ---
CRITICAL_FUEL_PCT = 15.0
CRITICAL_BATTERY_PCT = 20.0
CRITICAL_MILEAGE = 50000.0

DUE_FUEL_PCT = 30.0
DUE_BATTERY_PCT = 40.0
DUE_MILEAGE = 30000.0

# Chance that an otherwise healthy vehicle is flagged DUE on a given tick
RANDOM_DUE_PROBABILITY = 0.1

DUE_ALERT = "Scheduled maintenance due soon"


@dataclass(frozen=True)
class Reading:
    fuel: float
    battery: float
    mileage: float


@dataclass(frozen=True)
class MaintenanceRule:
    rule_id: str
    tier: MaintenanceTier
    matches: Callable[[Reading], bool]


# Evaluated top to bottom, first match wins. Fuel precedes battery precedes
# mileage, and every threshold precedes the random DUE draw.
MAINTENANCE_RULES: List[MaintenanceRule] = [
    MaintenanceRule("CRITICAL_FUEL", MaintenanceTier.CRITICAL, lambda r: r.fuel < CRITICAL_FUEL_PCT),
    MaintenanceRule("CRITICAL_BATTERY", MaintenanceTier.CRITICAL, lambda r: r.battery < CRITICAL_BATTERY_PCT),
    MaintenanceRule("CRITICAL_MILEAGE", MaintenanceTier.CRITICAL, lambda r: r.mileage > CRITICAL_MILEAGE),
    MaintenanceRule("DUE_FUEL", MaintenanceTier.DUE, lambda r: r.fuel < DUE_FUEL_PCT),
    MaintenanceRule("DUE_BATTERY", MaintenanceTier.DUE, lambda r: r.battery < DUE_BATTERY_PCT),
    MaintenanceRule("DUE_MILEAGE", MaintenanceTier.DUE, lambda r: r.mileage > DUE_MILEAGE),
]


def classify(
    fuel: float,
    battery: float,
    mileage: float,
    rng: RandomSource,
) -> Tuple[MaintenanceTier, Optional[str]]:
    """Assign a maintenance tier and alert text to one set of readings.

    ``rng`` is consulted at most once, and only when no threshold rule
    matched (the spontaneous DUE flag).
    """
    reading = Reading(fuel=fuel, battery=battery, mileage=mileage)

    tier = MaintenanceTier.HEALTHY
    for rule in MAINTENANCE_RULES:
        if rule.matches(reading):
            tier = rule.tier
            break
    else:
        if rng.random() < RANDOM_DUE_PROBABILITY:
            tier = MaintenanceTier.DUE

    return tier, alert_for(tier, reading)


def alert_for(tier: MaintenanceTier, reading: Reading) -> Optional[str]:
    if tier == MaintenanceTier.CRITICAL:
        if reading.fuel < CRITICAL_FUEL_PCT:
            return f"Critical: Low fuel level - {reading.fuel:.1f}%"
        if reading.battery < CRITICAL_BATTERY_PCT:
            return f"Critical: Low battery level - {reading.battery:.1f}%"
        return "Critical: Immediate maintenance required"
    if tier == MaintenanceTier.DUE:
        return DUE_ALERT
    return None
