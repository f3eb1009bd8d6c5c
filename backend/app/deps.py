from __future__ import annotations

from typing import Generator

from starlette.requests import HTTPConnection
from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.services.distributor import TelemetryDistributor
from app.services.telemetry_store import TelemetryStore
from app.services.tick_scheduler import TickScheduler


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_store(conn: HTTPConnection) -> TelemetryStore:
    return conn.app.state.store


def get_distributor(conn: HTTPConnection) -> TelemetryDistributor:
    return conn.app.state.distributor


def get_scheduler(conn: HTTPConnection) -> TickScheduler:
    return conn.app.state.scheduler
