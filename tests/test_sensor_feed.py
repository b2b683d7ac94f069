from __future__ import annotations

import random
import time
from datetime import datetime, timezone

import pytest

from app.schemas import TemperatureReading, TemperatureSensor
from datastore.sensor_table import SensorTable
from services.sensor_feed import SensorFeed

NOW = datetime(2024, 6, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture()
def table() -> SensorTable:
    table = SensorTable(name="sensors")
    table.put_sensor(
        TemperatureSensor(
            sensor_id="with-history",
            readings=[TemperatureReading(timestamp=datetime(2024, 6, 1, 9, 25, tzinfo=timezone.utc), temperature=24.0)],
        )
    )
    table.put_sensor(TemperatureSensor(sensor_id="fresh"))
    return table


def test_tick_appends_one_reading_per_sensor(table: SensorTable) -> None:
    feed = SensorFeed(table, rng=random.Random(7), max_step=0.3, low=18.0, high=30.0)

    written = feed.tick(now=NOW)

    assert written == 2
    with_history = table.get_sensor("with-history")
    fresh = table.get_sensor("fresh")
    assert with_history is not None and fresh is not None
    assert len(with_history.readings) == 2
    assert with_history.readings[-1].timestamp == NOW
    assert abs(with_history.readings[-1].temperature - 24.0) <= 0.3 + 0.005
    assert len(fresh.readings) == 1
    assert 18.0 <= fresh.readings[0].temperature <= 30.0


def test_values_are_clamped_to_range(table: SensorTable) -> None:
    feed = SensorFeed(table, rng=random.Random(1), max_step=5.0, low=24.5, high=24.5)

    feed.tick(now=NOW)

    for sensor in table.scan():
        assert sensor.readings[-1].temperature == 24.5


def test_seeded_feeds_are_reproducible() -> None:
    first = SensorFeed(SensorTable(name="a"), rng=random.Random(42))
    second = SensorFeed(SensorTable(name="b"), rng=random.Random(42))

    assert [first.next_value(22.0) for _ in range(5)] == [second.next_value(22.0) for _ in range(5)]


def test_inverted_bounds_are_rejected(table: SensorTable) -> None:
    with pytest.raises(ValueError):
        SensorFeed(table, low=30.0, high=10.0)


def test_start_runs_ticks_until_stopped(table: SensorTable) -> None:
    feed = SensorFeed(table, interval_seconds=0.01, rng=random.Random(3))

    feed.start()
    try:
        deadline = time.monotonic() + 2.0
        while time.monotonic() < deadline:
            fresh = table.get_sensor("fresh")
            if fresh is not None and fresh.readings:
                break
            time.sleep(0.01)
        assert feed.running
    finally:
        feed.stop()

    assert not feed.running
    fresh = table.get_sensor("fresh")
    assert fresh is not None and fresh.readings
