"""Glue between the sensor table and the forecast engine."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import List, Optional

from datastore.sensor_table import SensorTable, build_default_table
from models.records import ForecastPoint, Reading
from services.completion import build_default_completion
from services.forecaster import Completion, ForecastEngine

logger = logging.getLogger(__name__)


class ForecastService:
    """Loads a sensor's history and forecasts its next readings."""

    def __init__(self, table: SensorTable, completion: Optional[Completion] = None) -> None:
        self.table = table
        self.engine = ForecastEngine(completion=completion)

    def readings_for(self, sensor_id: str) -> List[Reading]:
        sensor = self.table.get_sensor(sensor_id)
        if sensor is None:
            raise KeyError(f"Temperature sensor {sensor_id!r} not found.")
        return [reading.to_reading() for reading in sensor.readings]

    def forecast_for_sensor(
        self, sensor_id: str, points: int, step_minutes: int
    ) -> List[ForecastPoint]:
        readings = self.readings_for(sensor_id)
        forecast = self.engine.forecast(readings, points, step_minutes)
        logger.info(
            "Forecast computed",
            extra={
                "sensor_id": sensor_id,
                "reading_count": len(readings),
                "point_count": len(forecast),
            },
        )
        return forecast


@lru_cache
def build_default_forecast_service() -> ForecastService:
    """Factory that wires the service with the default table and completion client."""
    return ForecastService(table=build_default_table(), completion=build_default_completion())
