"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.concurrency import run_in_threadpool

from app.schemas import (
    ForecastPointOut,
    ForecastResponse,
    SensorCreate,
    TemperatureReading,
    TemperatureSensor,
)
from datastore.sensor_table import SensorTable, build_default_table
from services.errors import InvalidArgument
from services.forecast_service import ForecastService, build_default_forecast_service
from settings import get_settings

router = APIRouter()


def get_table() -> SensorTable:
    return build_default_table()


def get_forecast_service() -> ForecastService:
    return build_default_forecast_service()


def _not_found(exc: KeyError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.args[0])


@router.get(
    "/temperatures",
    response_model=List[TemperatureSensor],
    summary="List temperature sensors with their most recent reading.",
)
async def list_temperatures(
    table: SensorTable = Depends(get_table),
) -> List[TemperatureSensor]:
    sensors = sorted(table.scan(), key=lambda sensor: sensor.sensor_id)
    for sensor in sensors:
        sensor.readings = sensor.readings[-1:]
    return sensors


@router.post(
    "/temperatures",
    status_code=status.HTTP_201_CREATED,
    response_model=TemperatureSensor,
    summary="Register a temperature sensor.",
)
async def create_temperature_sensor(
    payload: SensorCreate,
    table: SensorTable = Depends(get_table),
) -> TemperatureSensor:
    if table.get_sensor(payload.sensor_id) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Temperature sensor {payload.sensor_id!r} already exists.",
        )
    sensor = TemperatureSensor(**payload.model_dump())
    table.put_sensor(sensor)
    return sensor


@router.get(
    "/temperatures/{sensor_id}",
    response_model=TemperatureSensor,
    summary="Fetch a temperature sensor with all of its readings.",
)
async def get_temperature_sensor(
    sensor_id: str,
    table: SensorTable = Depends(get_table),
) -> TemperatureSensor:
    sensor = table.get_sensor(sensor_id)
    if sensor is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Temperature sensor {sensor_id!r} not found.",
        )
    return sensor


@router.post(
    "/temperatures/{sensor_id}/readings",
    status_code=status.HTTP_201_CREATED,
    response_model=TemperatureReading,
    summary="Record a temperature reading for a sensor.",
)
async def add_temperature_reading(
    sensor_id: str,
    reading: TemperatureReading,
    table: SensorTable = Depends(get_table),
) -> TemperatureReading:
    try:
        table.append_reading(sensor_id, reading)
    except KeyError as exc:
        raise _not_found(exc) from exc
    return reading


@router.get(
    "/temperatures/{sensor_id}/forecast",
    response_model=ForecastResponse,
    summary="Forecast the next temperature readings for a sensor.",
)
async def get_temperature_forecast(
    sensor_id: str,
    points: Optional[int] = Query(None, ge=1, le=500, description="Number of points to forecast."),
    step_minutes: Optional[int] = Query(
        None,
        ge=1,
        description="Step used when the sensor history is too short to infer one.",
    ),
    service: ForecastService = Depends(get_forecast_service),
) -> ForecastResponse:
    settings = get_settings()
    count = points if points is not None else settings.forecast_points
    step = step_minutes if step_minutes is not None else settings.forecast_step_minutes
    try:
        forecast = await run_in_threadpool(service.forecast_for_sensor, sensor_id, count, step)
    except KeyError as exc:
        raise _not_found(exc) from exc
    except InvalidArgument as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return ForecastResponse(
        sensor_id=sensor_id,
        forecast=[ForecastPointOut.from_point(point) for point in forecast],
    )


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
