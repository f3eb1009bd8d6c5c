from __future__ import annotations

import datetime as dt
import functools
import logging
from typing import Callable, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models import TelemetrySample
from app.errors import StoreUnavailable
from app.schemas.telemetry import MaintenanceTier, RawTelemetry, TelemetrySampleOut
from app.utils.time import as_utc

logger = logging.getLogger("app.telemetry_store")


def _store_call(fn):
    """Translate database failures into StoreUnavailable."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"telemetry store: {e.__class__.__name__}: {e}") from e

    return wrapper


def to_sample(row: TelemetrySample) -> TelemetrySampleOut:
    return TelemetrySampleOut(
        id=row.id,
        vehicle_id=row.vehicle_id,
        timestamp=as_utc(row.ts),
        speed=row.speed,
        fuel_level=row.fuel_level,
        battery_level=row.battery_level,
        mileage=row.mileage,
        latitude=row.latitude,
        longitude=row.longitude,
        engine_temperature=row.engine_temperature,
        tire_pressure=row.tire_pressure,
        maintenance_status=MaintenanceTier(row.maintenance_status),
        alert_message=row.alert_message,
    )


class TelemetryStore:
    """Append-only store of telemetry samples.

    Every call opens and closes its own session, so one instance can be
    shared by the scheduler's worker threads. Reads see every committed save.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    @_store_call
    def save(
        self,
        vehicle_id: str,
        timestamp: dt.datetime,
        raw: RawTelemetry,
        tier: MaintenanceTier,
        alert_message: Optional[str] = None,
    ) -> TelemetrySampleOut:
        row = TelemetrySample(
            vehicle_id=vehicle_id,
            ts=as_utc(timestamp),
            speed=raw.speed,
            fuel_level=raw.fuel_level,
            battery_level=raw.battery_level,
            mileage=raw.mileage,
            latitude=raw.latitude,
            longitude=raw.longitude,
            engine_temperature=raw.engine_temperature,
            tire_pressure=raw.tire_pressure,
            maintenance_status=tier.value,
            alert_message=alert_message,
        )
        with self._session_factory() as db:
            db.add(row)
            db.commit()
            db.refresh(row)
            return to_sample(row)

    @_store_call
    def latest(self, vehicle_id: str) -> Optional[TelemetrySampleOut]:
        with self._session_factory() as db:
            row = (
                db.query(TelemetrySample)
                .filter(TelemetrySample.vehicle_id == vehicle_id)
                .order_by(TelemetrySample.ts.desc(), TelemetrySample.id.desc())
                .first()
            )
            return to_sample(row) if row else None

    @_store_call
    def latest_for_all_vehicles(self) -> List[TelemetrySampleOut]:
        """Exactly one sample per vehicle: the newest (ties go to the later insert)."""
        ranked = select(
            TelemetrySample.id.label("id"),
            func.row_number()
            .over(
                partition_by=TelemetrySample.vehicle_id,
                order_by=(TelemetrySample.ts.desc(), TelemetrySample.id.desc()),
            )
            .label("rn"),
        ).subquery()
        with self._session_factory() as db:
            rows = (
                db.query(TelemetrySample)
                .join(ranked, ranked.c.id == TelemetrySample.id)
                .filter(ranked.c.rn == 1)
                .order_by(TelemetrySample.vehicle_id.asc())
                .all()
            )
            return [to_sample(r) for r in rows]

    @_store_call
    def since(self, timestamp: dt.datetime) -> List[TelemetrySampleOut]:
        with self._session_factory() as db:
            rows = (
                db.query(TelemetrySample)
                .filter(TelemetrySample.ts >= as_utc(timestamp))
                .order_by(TelemetrySample.ts.desc(), TelemetrySample.id.desc())
                .all()
            )
            return [to_sample(r) for r in rows]

    @_store_call
    def history(self, vehicle_id: str, limit: Optional[int] = None) -> List[TelemetrySampleOut]:
        with self._session_factory() as db:
            q = (
                db.query(TelemetrySample)
                .filter(TelemetrySample.vehicle_id == vehicle_id)
                .order_by(TelemetrySample.ts.desc(), TelemetrySample.id.desc())
            )
            if limit is not None:
                q = q.limit(limit)
            return [to_sample(r) for r in q.all()]

    @_store_call
    def history_since(self, vehicle_id: str, timestamp: dt.datetime) -> List[TelemetrySampleOut]:
        """Samples for one vehicle from ``timestamp`` on, oldest first (for charts)."""
        with self._session_factory() as db:
            rows = (
                db.query(TelemetrySample)
                .filter(TelemetrySample.vehicle_id == vehicle_id)
                .filter(TelemetrySample.ts >= as_utc(timestamp))
                .order_by(TelemetrySample.ts.asc(), TelemetrySample.id.asc())
                .all()
            )
            return [to_sample(r) for r in rows]

    @_store_call
    def count_by_tier(self, tier: MaintenanceTier) -> int:
        with self._session_factory() as db:
            return (
                db.query(func.count(TelemetrySample.id))
                .filter(TelemetrySample.maintenance_status == tier.value)
                .scalar()
            ) or 0

    @_store_call
    def maintenance_counts(self) -> Dict[str, int]:
        with self._session_factory() as db:
            rows = (
                db.query(TelemetrySample.maintenance_status, func.count(TelemetrySample.id))
                .group_by(TelemetrySample.maintenance_status)
                .all()
            )
        counts = {tier.value: 0 for tier in MaintenanceTier}
        for status, n in rows:
            counts[status] = n
        return counts
