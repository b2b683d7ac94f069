"""Background job that synthesizes temperature readings for every sensor."""

from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from functools import lru_cache
from threading import Event, Thread
from typing import Optional

from app.schemas import TemperatureReading
from datastore.sensor_table import SensorTable, build_default_table
from settings import get_settings

logger = logging.getLogger(__name__)


class SensorFeed:
    """Appends a random-walk reading to each sensor on a fixed interval."""

    def __init__(
        self,
        table: SensorTable,
        interval_seconds: float = 300.0,
        rng: Optional[random.Random] = None,
        max_step: float = 0.3,
        low: float = 18.0,
        high: float = 30.0,
    ) -> None:
        if low > high:
            raise ValueError("Feed lower bound must not exceed the upper bound.")
        self.table = table
        self.interval_seconds = interval_seconds
        self.max_step = max_step
        self.low = low
        self.high = high
        self._rng = rng or random.Random()
        self._stop = Event()
        self._thread: Optional[Thread] = None

    def next_value(self, previous: Optional[float]) -> float:
        if previous is None:
            return round(self._rng.uniform(self.low, self.high), 2)
        candidate = previous + self._rng.uniform(-self.max_step, self.max_step)
        return round(min(self.high, max(self.low, candidate)), 2)

    def tick(self, now: Optional[datetime] = None) -> int:
        """Record one reading per sensor and return how many were written."""
        timestamp = now or datetime.now(timezone.utc)
        written = 0
        for sensor in self.table.scan():
            previous = sensor.readings[-1].temperature if sensor.readings else None
            reading = TemperatureReading(timestamp=timestamp, temperature=self.next_value(previous))
            try:
                self.table.append_reading(sensor.sensor_id, reading)
            except KeyError:
                # Removed between scan and append.
                continue
            written += 1
        return written

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = Thread(target=self._run, name="sensor-feed", daemon=True)
        self._thread.start()
        logger.info(
            "Temperature feed started",
            extra={"interval_seconds": self.interval_seconds},
        )

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                self.tick()
            except Exception:  # pragma: no cover - keep the loop alive
                logger.exception("Temperature feed tick failed")


@lru_cache
def build_default_feed() -> SensorFeed:
    settings = get_settings()
    return SensorFeed(
        table=build_default_table(),
        interval_seconds=settings.feed_interval_seconds,
    )
