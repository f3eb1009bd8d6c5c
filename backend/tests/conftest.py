"""Test fixtures: throwaway SQLite databases + FastAPI TestClient."""

from __future__ import annotations

import os

# Must be set before anything imports app.config
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SIM_ENABLED", "false")
os.environ.setdefault("SIM_WORKER_POOL_SIZE", "1")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import datetime as dt
from typing import Optional

import pytest
from sqlalchemy.orm import sessionmaker

from app.db import models  # noqa: F401  (registers tables on Base.metadata)
from app.db.models import Vehicle
from app.db.session import Base, make_engine
from app.services.telemetry_store import TelemetryStore
from app.services.vehicle_registry import VehicleRegistry

T0 = dt.datetime(2026, 1, 1, 12, 0, 0, tzinfo=dt.timezone.utc)


class ConstantRandom:
    """RandomSource that always returns the same draw."""

    def __init__(self, value: float):
        self.value = value
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        return self.value


class NoDrawRandom:
    """RandomSource that fails the test if it is ever consulted."""

    def random(self) -> float:
        raise AssertionError("random source should not have been used")


@pytest.fixture
def make_session_factory(tmp_path):
    """Factory for independent file-backed databases (safe across worker threads)."""
    engines = []

    def _make(name: str = "telemetry"):
        engine = make_engine(f"sqlite:///{tmp_path / name}.db")
        Base.metadata.create_all(bind=engine)
        engines.append(engine)
        return sessionmaker(autocommit=False, autoflush=False, bind=engine)

    yield _make
    for engine in engines:
        engine.dispose()


@pytest.fixture
def session_factory(make_session_factory):
    return make_session_factory()


@pytest.fixture
def store(session_factory) -> TelemetryStore:
    return TelemetryStore(session_factory)


@pytest.fixture
def registry(session_factory) -> VehicleRegistry:
    return VehicleRegistry(session_factory)


@pytest.fixture
def add_vehicle(session_factory):
    def _add(
        vehicle_id: str,
        *,
        status: str = "AVAILABLE",
        is_electric: bool = False,
        latitude: Optional[float] = 40.7128,
        longitude: Optional[float] = -74.0060,
        factory=None,
    ) -> None:
        with (factory or session_factory)() as db:
            db.add(Vehicle(
                vehicle_id=vehicle_id,
                type="Van",
                model="Transit",
                capacity=1000,
                fuel_type="electric" if is_electric else "diesel",
                status=status,
                latitude=latitude,
                longitude=longitude,
                is_electric=is_electric,
                created_at=T0,
            ))
            db.commit()

    return _add
