from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Float, Index, Integer, String, Text

from app.db.session import Base


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_id = Column(String, unique=True, index=True, nullable=False)
    type = Column(String, nullable=False)
    model = Column(String, nullable=False)
    capacity = Column(Integer, nullable=False)
    fuel_type = Column(String, nullable=False)
    license_plate = Column(String, nullable=True)
    status = Column(String, nullable=False)  # AVAILABLE|EN_ROUTE|LOADING|MAINTENANCE|OFFLINE|OUT_OF_SERVICE
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    current_location = Column(String, nullable=True)
    is_electric = Column(Boolean, nullable=False, default=False)

    # Cached from the most recent telemetry sample
    speed = Column(Float, nullable=True)
    fuel_level = Column(Float, nullable=True)
    battery_level = Column(Float, nullable=True)
    mileage = Column(Float, nullable=True)
    last_updated = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)


class TelemetrySample(Base):
    __tablename__ = "vehicle_telemetry"
    __table_args__ = (Index("ix_vehicle_telemetry_vehicle_ts", "vehicle_id", "ts"),)

    # No FK to vehicles: samples outlive deleted vehicles
    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_id = Column(String, index=True, nullable=False)
    ts = Column(DateTime(timezone=True), index=True, nullable=False)
    speed = Column(Float, nullable=False)
    fuel_level = Column(Float, nullable=False)
    battery_level = Column(Float, nullable=False)
    mileage = Column(Float, nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    engine_temperature = Column(Float, nullable=True)
    tire_pressure = Column(Float, nullable=True)
    maintenance_status = Column(String, index=True, nullable=False)  # HEALTHY|DUE|CRITICAL
    alert_message = Column(Text, nullable=True)
