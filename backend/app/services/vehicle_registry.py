from __future__ import annotations

import datetime as dt
import logging
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models import Vehicle
from app.errors import StoreUnavailable, VehicleNotFound
from app.schemas.telemetry import VehicleSnapshot
from app.schemas.vehicle import VehicleCreate, VehicleOut, VehicleUpdate
from app.utils.time import as_utc, utc_now

logger = logging.getLogger("app.vehicle_registry")


def is_electric_fuel(fuel_type: str) -> bool:
    return fuel_type.strip().lower() == "electric"


def to_snapshot(v: Vehicle) -> VehicleSnapshot:
    return VehicleSnapshot(
        vehicle_id=v.vehicle_id,
        status=v.status or "",
        latitude=v.latitude,
        longitude=v.longitude,
        is_electric=bool(v.is_electric),
        speed=v.speed,
        fuel_level=v.fuel_level,
        battery_level=v.battery_level,
        mileage=v.mileage,
        last_updated=as_utc(v.last_updated) if v.last_updated else None,
    )


def to_out(v: Vehicle) -> VehicleOut:
    return VehicleOut(
        vehicle_id=v.vehicle_id,
        type=v.type,
        model=v.model,
        capacity=v.capacity,
        fuel_type=v.fuel_type,
        license_plate=v.license_plate,
        status=v.status,
        latitude=v.latitude,
        longitude=v.longitude,
        current_location=v.current_location,
        is_electric=bool(v.is_electric),
        speed=v.speed,
        fuel_level=v.fuel_level,
        battery_level=v.battery_level,
        mileage=v.mileage,
        last_updated=as_utc(v.last_updated) if v.last_updated else None,
        created_at=as_utc(v.created_at),
    )


class VehicleRegistry:
    """What the telemetry engine needs from the vehicle table.

    Opens one session per call so it can be used from worker threads.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def list_vehicles(self) -> List[VehicleSnapshot]:
        try:
            with self._session_factory() as db:
                rows = db.query(Vehicle).order_by(Vehicle.vehicle_id.asc()).all()
                return [to_snapshot(v) for v in rows]
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"vehicle registry: {e}") from e

    def update_snapshot(
        self,
        vehicle_id: str,
        latitude: float,
        longitude: float,
        speed: float,
        battery_level: float,
        fuel_level: float,
        mileage: float,
        updated_at: Optional[dt.datetime] = None,
    ) -> None:
        """Mirror the newest sample onto the cached vehicle row."""
        try:
            with self._session_factory() as db:
                v = db.query(Vehicle).filter(Vehicle.vehicle_id == vehicle_id).first()
                if v is None:
                    raise VehicleNotFound(f"vehicle {vehicle_id} no longer exists", vehicle_id)
                v.latitude = latitude
                v.longitude = longitude
                v.speed = speed
                v.battery_level = battery_level
                v.fuel_level = fuel_level
                v.mileage = mileage
                v.last_updated = updated_at or utc_now()
                db.commit()
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"vehicle registry: {e}", vehicle_id) from e


class VehicleService:
    """CRUD plumbing behind the /vehicles routes. Works on a caller-owned session."""

    def list(self, db: Session, status: Optional[str] = None) -> List[Vehicle]:
        q = db.query(Vehicle)
        if status:
            q = q.filter(Vehicle.status == status)
        return q.order_by(Vehicle.vehicle_id.asc()).all()

    def get(self, db: Session, vehicle_id: str) -> Optional[Vehicle]:
        return db.query(Vehicle).filter(Vehicle.vehicle_id == vehicle_id).first()

    def create(self, db: Session, payload: VehicleCreate) -> Vehicle:
        now = utc_now()
        v = Vehicle(
            vehicle_id=payload.vehicle_id,
            type=payload.type,
            model=payload.model,
            capacity=payload.capacity,
            fuel_type=payload.fuel_type,
            license_plate=payload.license_plate,
            status=payload.status.value,
            latitude=payload.latitude,
            longitude=payload.longitude,
            current_location=payload.current_location,
            is_electric=is_electric_fuel(payload.fuel_type),
            last_updated=now,
            created_at=now,
        )
        db.add(v)
        db.commit()
        db.refresh(v)
        logger.info("Vehicle registered: %s (%s)", v.vehicle_id, v.status)
        return v

    def update(self, db: Session, v: Vehicle, payload: VehicleUpdate) -> Vehicle:
        changes = payload.model_dump(exclude_unset=True)
        if "status" in changes and changes["status"] is not None:
            v.status = payload.status.value
        if changes.get("fuel_type"):
            v.fuel_type = payload.fuel_type
            v.is_electric = is_electric_fuel(payload.fuel_type)
        for field in ("latitude", "longitude", "current_location"):
            if field in changes:
                setattr(v, field, changes[field])
        v.last_updated = utc_now()
        db.commit()
        db.refresh(v)
        return v

    def delete(self, db: Session, v: Vehicle) -> None:
        db.delete(v)
        db.commit()
        logger.info("Vehicle removed: %s", v.vehicle_id)
