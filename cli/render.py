from __future__ import annotations

from typing import Any, Dict, Iterable, List, Sequence

import typer

from models.records import ForecastPoint, format_timestamp


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _latest(sensor: Dict[str, Any]) -> str:
    readings = sensor.get("readings") or []
    if not readings:
        return "no readings"
    last = readings[-1]
    return f"{last.get('temperature')} at {last.get('timestamp')}"


def render_sensors(sensors: List[Dict[str, Any]]) -> None:
    echo_heading("Temperature Sensors")
    if not sensors:
        typer.echo("No sensors registered.")
        return
    for sensor in sensors:
        typer.echo(f"  - {sensor.get('sensor_id')}: {_latest(sensor)}")


def render_sensor(payload: Dict[str, Any]) -> None:
    echo_heading("Temperature Sensor")
    echo_key_values(
        [
            ("sensor_id", payload.get("sensor_id")),
            ("name", payload.get("name")),
            ("latitude", payload.get("latitude")),
            ("longitude", payload.get("longitude")),
        ]
    )

    readings = payload.get("readings") or []
    typer.echo()
    echo_heading("Readings")
    if readings:
        for reading in readings:
            typer.echo(f"  - {reading.get('timestamp')}: {reading.get('temperature')}")
    else:
        typer.echo("No readings recorded.")


def render_forecast(title: str, points: Sequence[ForecastPoint]) -> None:
    echo_heading(title)
    if not points:
        typer.echo("No forecast available.")
        return
    for point in points:
        typer.echo(f"  - {format_timestamp(point.timestamp)}: {point.value:.2f}")
