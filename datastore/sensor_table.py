from __future__ import annotations
import json
import logging
from bisect import insort
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Optional

from app.schemas import TemperatureReading, TemperatureSensor
from settings import get_settings

logger = logging.getLogger(__name__)


class SensorTable:
    """Temperature sensors keyed by id, optionally mirrored to a JSON file."""

    def __init__(
        self,
        name: str,
        persistence_path: Optional[Path] = None,
        history_limit: Optional[int] = None,
    ) -> None:
        self.name = name
        self._items: Dict[str, TemperatureSensor] = {}
        self.persistence_path = persistence_path
        self.history_limit = history_limit
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def put_sensor(self, sensor: TemperatureSensor) -> None:
        item = sensor.model_copy(deep=True)
        item.readings.sort(key=lambda reading: reading.timestamp)
        self._trim(item)
        with self._lock:
            self._items[item.sensor_id] = item
            self._persist()

    def get_sensor(self, sensor_id: str) -> Optional[TemperatureSensor]:
        with self._lock:
            item = self._items.get(sensor_id)
            if item is None:
                return None
            return item.model_copy(deep=True)

    def scan(self) -> list[TemperatureSensor]:
        """Return deep copies of all stored sensors."""

        with self._lock:
            return [item.model_copy(deep=True) for item in self._items.values()]

    def append_reading(self, sensor_id: str, reading: TemperatureReading) -> None:
        with self._lock:
            item = self._items.get(sensor_id)
            if item is None:
                raise KeyError(f"Temperature sensor {sensor_id!r} not found.")
            insort(item.readings, reading.model_copy(), key=lambda entry: entry.timestamp)
            self._trim(item)
            self._persist()

    def _trim(self, item: TemperatureSensor) -> None:
        if self.history_limit and len(item.readings) > self.history_limit:
            del item.readings[: len(item.readings) - self.history_limit]

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            sensor_id: item.model_dump(mode="json") for sensor_id, item in self._items.items()
        }
        self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            logger.warning(
                "Ignoring unreadable sensor table file %s", self.persistence_path
            )
            data = {}

        for sensor_id, payload in data.items():
            item = TemperatureSensor.model_validate(payload)
            item.readings.sort(key=lambda reading: reading.timestamp)
            self._trim(item)
            self._items[sensor_id] = item


@lru_cache
def build_default_table(path: Optional[str] = None) -> SensorTable:
    settings = get_settings()
    table_path = settings.table_persistence_path if path is None else path
    persistence = Path(table_path) if table_path else None
    return SensorTable(
        name="temperature_sensors",
        persistence_path=persistence,
        history_limit=settings.history_limit,
    )
