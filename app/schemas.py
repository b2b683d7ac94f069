"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_serializer, field_validator

from models.records import ForecastPoint, Reading, format_timestamp, to_utc


class TemperatureReading(BaseModel):
    """A recorded temperature measurement."""

    timestamp: datetime
    temperature: float = Field(..., ge=0, allow_inf_nan=False)

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return to_utc(value)

    def to_reading(self) -> Reading:
        return Reading(timestamp=self.timestamp, value=self.temperature)


class SensorCreate(BaseModel):
    """Payload for registering a temperature sensor."""

    sensor_id: str = Field(..., min_length=1)
    name: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class TemperatureSensor(SensorCreate):
    """A sensor together with its reading history, oldest first."""

    readings: List[TemperatureReading] = Field(default_factory=list)


class ForecastPointOut(BaseModel):
    timestamp: datetime
    temperature: float

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)

    @classmethod
    def from_point(cls, point: ForecastPoint) -> "ForecastPointOut":
        return cls(timestamp=point.timestamp, temperature=point.value)


class ForecastResponse(BaseModel):
    """Forecast for a single sensor."""

    sensor_id: str
    forecast: List[ForecastPointOut] = Field(default_factory=list)
