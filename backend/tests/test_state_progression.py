import random

import pytest

from app.schemas.telemetry import TelemetrySampleOut, VehicleSnapshot
from app.services.state_progression import advance
from conftest import T0, ConstantRandom


def _vehicle(status="AVAILABLE", is_electric=False, lat=40.0, lon=-74.0):
    return VehicleSnapshot(
        vehicle_id="V1", status=status, latitude=lat, longitude=lon, is_electric=is_electric
    )


def _previous(fuel=80.0, battery=60.0, mileage=1200.0, lat=41.0, lon=-73.0):
    return TelemetrySampleOut(
        vehicle_id="V1",
        timestamp=T0,
        speed=0.0,
        fuel_level=fuel,
        battery_level=battery,
        mileage=mileage,
        latitude=lat,
        longitude=lon,
        maintenance_status="HEALTHY",
    )


def test_first_tick_starts_from_registry_defaults():
    raw = advance(None, _vehicle(), 5.0, random.Random(1))
    assert abs(raw.latitude - 40.0) <= 0.005
    assert abs(raw.longitude - (-74.0)) <= 0.005
    assert 98.0 < raw.fuel_level <= 100.0
    assert raw.battery_level == 100.0
    assert raw.mileage == 0.0


def test_midpoint_draws_follow_fixed_order():
    raw = advance(_previous(), _vehicle("EN_ROUTE", is_electric=True), 3600.0, ConstantRandom(0.5))
    assert raw.latitude == pytest.approx(41.0)
    assert raw.longitude == pytest.approx(-73.0)
    assert raw.speed == pytest.approx(50.0)
    assert raw.fuel_level == pytest.approx(79.0)
    assert raw.battery_level == pytest.approx(58.5)
    assert raw.mileage == pytest.approx(1250.0)
    assert raw.engine_temperature == pytest.approx(100.0)
    assert raw.tire_pressure == pytest.approx(35.0)


def test_non_electric_consumes_no_battery_draw():
    rng = ConstantRandom(0.5)
    advance(_previous(), _vehicle("AVAILABLE", is_electric=False), 5.0, rng)
    # lat, lon, fuel, engine temp, tire pressure
    assert rng.calls == 5


@pytest.mark.parametrize(
    "status, low, high",
    [
        ("EN_ROUTE", 20.0, 80.0),
        ("LOADING", 0.0, 5.0),
        ("AVAILABLE", 0.0, 0.0),
        ("MAINTENANCE", 0.0, 0.0),
        ("OFFLINE", 0.0, 0.0),
        ("OUT_OF_SERVICE", 0.0, 0.0),
    ],
)
def test_speed_depends_on_status(status, low, high):
    rng = random.Random(7)
    for _ in range(200):
        raw = advance(_previous(), _vehicle(status), 5.0, rng)
        assert low <= raw.speed <= high


def test_fuel_is_non_increasing_with_floor():
    rng = random.Random(11)
    for fuel in [100.0, 55.5, 30.0, 12.0, 11.0, 10.0]:
        for _ in range(100):
            raw = advance(_previous(fuel=fuel), _vehicle("EN_ROUTE"), 5.0, rng)
            assert max(10.0, fuel - 2.0) <= raw.fuel_level <= fuel


def test_battery_bounds_for_electric_and_fixed_otherwise():
    rng = random.Random(13)
    for battery in [100.0, 42.0, 17.0, 15.0]:
        for _ in range(100):
            raw = advance(_previous(battery=battery), _vehicle(is_electric=True), 5.0, rng)
            assert max(15.0, battery - 3.0) <= raw.battery_level <= battery

            raw = advance(_previous(battery=battery), _vehicle(is_electric=False), 5.0, rng)
            assert raw.battery_level == 100.0


def test_mileage_never_decreases_over_a_walk():
    rng = random.Random(17)
    vehicle = _vehicle("EN_ROUTE", is_electric=True)
    previous = None
    for i in range(50):
        raw = advance(previous, vehicle, 5.0, rng)
        if previous is not None:
            assert raw.mileage >= previous.mileage
        previous = TelemetrySampleOut(
            vehicle_id="V1",
            timestamp=T0,
            maintenance_status="HEALTHY",
            **raw.model_dump(exclude={"engine_temperature", "tire_pressure"}),
        )


def test_mileage_scales_with_tick_duration():
    raw = advance(_previous(mileage=10.0), _vehicle("EN_ROUTE"), 1800.0, ConstantRandom(0.0))
    # speed 20 km/h for half an hour
    assert raw.mileage == pytest.approx(20.0)


def test_sensor_ranges():
    rng = random.Random(19)
    for _ in range(200):
        raw = advance(_previous(), _vehicle(), 5.0, rng)
        assert 80.0 <= raw.engine_temperature <= 120.0
        assert 30.0 <= raw.tire_pressure <= 40.0


def test_same_seed_same_output():
    a = advance(_previous(), _vehicle("LOADING", is_electric=True), 5.0, random.Random(42))
    b = advance(_previous(), _vehicle("LOADING", is_electric=True), 5.0, random.Random(42))
    assert a == b


def test_position_walk_is_not_clamped():
    raw = advance(_previous(lat=89.999, lon=179.999), _vehicle(), 5.0, ConstantRandom(0.999))
    assert raw.latitude > 90.0
    assert raw.longitude > 180.0
