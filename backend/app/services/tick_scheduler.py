from __future__ import annotations

import asyncio
import contextlib
import datetime as dt
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Optional

from app.errors import InvalidSnapshot, StoreUnavailable, VehicleNotFound
from app.policies.maintenance_rules import classify
from app.schemas.simulation import SimulationStatus, TickReport
from app.schemas.telemetry import TelemetrySampleOut, VehicleSnapshot, VehicleStatus
from app.services.distributor import TelemetryDistributor
from app.services.state_progression import advance
from app.services.telemetry_store import TelemetryStore
from app.services.vehicle_registry import VehicleRegistry
from app.utils.rng import RandomSource, vehicle_rng
from app.utils.time import as_utc, utc_now

logger = logging.getLogger("app.tick_scheduler")

_VALID_STATUSES = {s.value for s in VehicleStatus}


def validate_snapshot(vehicle: VehicleSnapshot) -> None:
    """Reject registry rows the progression function cannot work with."""
    if vehicle.status not in _VALID_STATUSES:
        raise InvalidSnapshot(f"unknown status {vehicle.status!r}", vehicle.vehicle_id)
    for name in ("latitude", "longitude"):
        value = getattr(vehicle, name)
        if value is None or not math.isfinite(value):
            raise InvalidSnapshot(f"{name} is {value!r}", vehicle.vehicle_id)


def validate_tick_seconds(vehicle_id: str, tick_seconds: float) -> None:
    if not math.isfinite(tick_seconds) or tick_seconds < 0:
        raise InvalidSnapshot(f"tick duration {tick_seconds!r}s", vehicle_id)


class TickScheduler:
    """Drives the telemetry simulation for the whole fleet.

    Each tick lists the fleet and processes every vehicle independently on a
    bounded thread pool: latest sample -> advance -> classify -> save ->
    update snapshot, then publish. A failing vehicle is logged and skipped;
    the next tick retries it.

    Work for the same vehicle is chained across ticks, so tick N+1 only reads
    vehicle V's latest sample after tick N has written it. Once a worker has
    started on a vehicle it always runs through to the snapshot update, even
    if the tick awaiting it is cancelled.
    """

    def __init__(
        self,
        registry: VehicleRegistry,
        store: TelemetryStore,
        distributor: TelemetryDistributor,
        *,
        interval_s: float = 5.0,
        worker_pool_size: int = 4,
        random_seed: Optional[int] = None,
        rng_factory: Optional[Callable[[str], RandomSource]] = None,
    ):
        self.registry = registry
        self.store = store
        self.distributor = distributor
        self.interval_s = interval_s
        self.worker_pool_size = worker_pool_size
        self.random_seed = random_seed

        self._rng_factory = rng_factory or (lambda vehicle_id: vehicle_rng(random_seed, vehicle_id))
        self._rngs: Dict[str, RandomSource] = {}

        self._executor = ThreadPoolExecutor(
            max_workers=worker_pool_size, thread_name_prefix="telemetry-worker"
        )
        # Fleet listing + chaining happen under the gate so chains follow call order
        self._gate = asyncio.Lock()
        self._tails: Dict[str, asyncio.Task] = {}

        self._task: Optional[asyncio.Task] = None
        self._stop: Optional[asyncio.Event] = None
        self._ticks = 0
        # Tick time of the last tick that advanced the simulation clock
        self._last_tick_at: Optional[dt.datetime] = None
        self.last_report: Optional[TickReport] = None

    # ── lifecycle ────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop = asyncio.Event()
        self._task = asyncio.create_task(self._run_forever(), name="telemetry-scheduler")
        logger.info(
            "Telemetry scheduler started (interval=%.1fs, workers=%d, seeded=%s)",
            self.interval_s, self.worker_pool_size, self.random_seed is not None,
        )

    async def stop(self, timeout: Optional[float] = None) -> None:
        """Stop scheduling ticks; lets the in-flight tick finish its vehicles."""
        if self._stop is not None:
            self._stop.set()
        if self._task is not None:
            try:
                await asyncio.wait_for(asyncio.shield(self._task), timeout)
            except asyncio.TimeoutError:
                logger.warning("Tick still running after %.1fs; abandoning it", timeout)
                self._task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._task
            self._task = None
        pending = list(self._tails.values())
        if pending:
            _, not_done = await asyncio.wait(pending, timeout=timeout)
            if not_done:
                logger.warning(
                    "%d vehicle(s) still in flight after %.1fs; not waiting for them",
                    len(not_done), timeout,
                )
        logger.info("Telemetry scheduler stopped after %d tick(s)", self._ticks)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    async def aclose(self) -> None:
        """``close()`` without blocking the event loop on busy workers."""
        await asyncio.to_thread(self._executor.shutdown, True)

    def status(self) -> SimulationStatus:
        return SimulationStatus(
            running=self.is_running,
            tick_interval_ms=round(self.interval_s * 1000),
            worker_pool_size=self.worker_pool_size,
            seeded=self.random_seed is not None,
            ticks_completed=self._ticks,
            last_report=self.last_report,
        )

    async def _run_forever(self) -> None:
        loop = asyncio.get_running_loop()
        while not self._stop.is_set():
            started = loop.time()
            try:
                await self.run_tick()
            except Exception:
                logger.exception("Telemetry tick crashed")
            delay = max(0.0, self.interval_s - (loop.time() - started))
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass

    # ── ticks ────────────────────────────────────────────────

    async def run_tick(self, now: Optional[dt.datetime] = None) -> TickReport:
        now = as_utc(now) if now is not None else utc_now()
        loop = asyncio.get_running_loop()

        async with self._gate:
            self._ticks += 1
            report = TickReport(tick=self._ticks, started_at=now)
            tick_seconds = self._elapsed_since_last_tick(now)

            try:
                vehicles = await loop.run_in_executor(self._executor, self.registry.list_vehicles)
            except StoreUnavailable as e:
                logger.warning("Tick %d skipped, fleet unavailable: %s", report.tick, e)
                report.finished_at = utc_now()
                self.last_report = report
                return report

            listed = {v.vehicle_id for v in vehicles}
            for vehicle_id in [vid for vid in self._rngs if vid not in listed]:
                del self._rngs[vehicle_id]

            tasks = []
            for vehicle in vehicles:
                prev = self._tails.get(vehicle.vehicle_id)
                task = asyncio.create_task(self._run_vehicle(vehicle, now, tick_seconds, prev))
                self._tails[vehicle.vehicle_id] = task
                tasks.append((vehicle.vehicle_id, task))

        report.vehicles = len(tasks)
        # Shielded: cancelling the tick must not cancel vehicles mid-chain
        results = await asyncio.shield(asyncio.gather(*(t for _, t in tasks)))
        for (vehicle_id, _), reason in zip(tasks, results):
            if reason is None:
                report.processed += 1
            else:
                report.skipped[vehicle_id] = reason

        report.finished_at = utc_now()
        self.last_report = report
        logger.debug(
            "Tick %d: %d/%d vehicle(s) processed, %d skipped",
            report.tick, report.processed, report.vehicles, len(report.skipped),
        )
        return report

    def _elapsed_since_last_tick(self, now: dt.datetime) -> float:
        """Simulated seconds this tick covers: the gap to the previous tick.

        The first tick covers one configured interval. A gap that would move
        the clock backwards is returned as-is (every vehicle rejects it) and
        does not move the clock.
        """
        if self._last_tick_at is None:
            elapsed = self.interval_s
        else:
            elapsed = (now - self._last_tick_at).total_seconds()
        if math.isfinite(elapsed) and elapsed >= 0:
            self._last_tick_at = now
        return elapsed

    async def _run_vehicle(
        self,
        vehicle: VehicleSnapshot,
        now: dt.datetime,
        tick_seconds: float,
        prev: Optional[asyncio.Task],
    ) -> Optional[str]:
        """Process one vehicle; returns None on success or the reason it was skipped."""
        vehicle_id = vehicle.vehicle_id
        try:
            if prev is not None and not prev.done():
                await asyncio.wait({prev})

            rng = self._rngs.get(vehicle_id)
            if rng is None:
                rng = self._rngs[vehicle_id] = self._rng_factory(vehicle_id)

            loop = asyncio.get_running_loop()
            try:
                sample = await loop.run_in_executor(
                    self._executor, self._process_vehicle, vehicle, now, tick_seconds, rng
                )
            except InvalidSnapshot as e:
                logger.warning("Skipping vehicle %s: invalid snapshot: %s", vehicle_id, e)
                return f"invalid snapshot: {e}"
            except StoreUnavailable as e:
                logger.warning("Skipping vehicle %s: store unavailable: %s", vehicle_id, e)
                return f"store unavailable: {e}"
            except VehicleNotFound:
                logger.info("Vehicle %s removed mid-tick; skipped", vehicle_id)
                return "vehicle not found"
            except Exception as e:
                logger.exception("Skipping vehicle %s: unexpected error", vehicle_id)
                return f"error: {e}"
        finally:
            if self._tails.get(vehicle_id) is asyncio.current_task():
                self._tails.pop(vehicle_id, None)

        try:
            self.distributor.publish(sample)
        except Exception as e:
            logger.debug("Publish failed for %s: %s", vehicle_id, e)
        return None

    def _process_vehicle(
        self,
        vehicle: VehicleSnapshot,
        now: dt.datetime,
        tick_seconds: float,
        rng: RandomSource,
    ) -> TelemetrySampleOut:
        # Runs on a worker thread; nothing here touches the event loop.
        validate_snapshot(vehicle)
        validate_tick_seconds(vehicle.vehicle_id, tick_seconds)

        previous = self.store.latest(vehicle.vehicle_id)
        raw = advance(previous, vehicle, tick_seconds, rng)
        tier, alert = classify(raw.fuel_level, raw.battery_level, raw.mileage, rng)

        sample = self.store.save(vehicle.vehicle_id, now, raw, tier, alert)
        # Sample is committed; the snapshot update below always follows it.
        self.registry.update_snapshot(
            vehicle.vehicle_id,
            latitude=raw.latitude,
            longitude=raw.longitude,
            speed=raw.speed,
            battery_level=raw.battery_level,
            fuel_level=raw.fuel_level,
            mileage=raw.mileage,
            updated_at=utc_now(),
        )
        return sample
