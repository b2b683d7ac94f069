from __future__ import annotations

import itertools
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_forecast, render_sensor, render_sensors
from models.records import ForecastPoint, parse_timestamp
from services.csv_readings import parse_readings_csv
from services.errors import InvalidArgument
from services.forecaster import forecast
from services.reconcile import reconcile_forecast


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for inspecting temperature sensors and their forecasts.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


def _points_from_payload(payload: Dict[str, Any]) -> List[ForecastPoint]:
    return [
        ForecastPoint(timestamp=parse_timestamp(item["timestamp"]), value=float(item["temperature"]))
        for item in payload.get("forecast") or []
    ]


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Forecast API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each API response.",
    ),
    interval: Optional[float] = typer.Option(
        None,
        "--interval",
        help="Seconds between refreshes in watch mode.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(
        base_url=base_url,
        timeout=timeout,
        watch_interval=interval,
    )
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("sensors")
def sensors_command(ctx: typer.Context) -> None:
    """List sensors with their latest reading."""
    state = _get_state(ctx)
    render_sensors(state.client.list_sensors())


@app.command("readings")
def readings_command(
    ctx: typer.Context,
    sensor_id: str = typer.Argument(..., help="Sensor identifier."),
) -> None:
    """Show every stored reading for a sensor."""
    state = _get_state(ctx)
    render_sensor(state.client.get_sensor(sensor_id))


@app.command("forecast")
def forecast_command(
    ctx: typer.Context,
    sensor_id: str = typer.Argument(..., help="Sensor identifier."),
    points: Optional[int] = typer.Option(None, "--points", "-n", min=1, help="Points to forecast."),
    step: Optional[int] = typer.Option(
        None,
        "--step",
        min=1,
        help="Step in minutes used when the history is too short to infer one.",
    ),
) -> None:
    """Fetch the forecast for a sensor."""
    state = _get_state(ctx)
    payload = state.client.get_forecast(sensor_id, points=points, step_minutes=step)
    render_forecast(f"Forecast for {sensor_id}", _points_from_payload(payload))


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    sensor_id: str = typer.Argument(..., help="Sensor identifier."),
    points: Optional[int] = typer.Option(None, "--points", "-n", min=1, help="Points to forecast."),
    iterations: int = typer.Option(
        0,
        "--iterations",
        min=0,
        help="Number of refreshes before exiting (0 keeps watching).",
    ),
) -> None:
    """Keep a forecast on screen, replacing points as real readings arrive."""
    state = _get_state(ctx)
    displayed: List[ForecastPoint] = []
    rounds = itertools.count() if iterations == 0 else range(iterations)

    for index in rounds:
        if index:
            time.sleep(state.config.watch_interval)
        sensor = state.client.get_sensor(sensor_id)
        fresh = _points_from_payload(state.client.get_forecast(sensor_id, points=points))
        readings = sensor.get("readings") or []
        if readings:
            latest = parse_timestamp(readings[-1]["timestamp"])
            displayed = reconcile_forecast(displayed, latest, fresh)
            title = f"Forecast for {sensor_id} (latest {readings[-1]['temperature']} at {readings[-1]['timestamp']})"
        else:
            displayed = fresh
            title = f"Forecast for {sensor_id}"
        if index:
            typer.echo()
        render_forecast(title, displayed)


@app.command("forecast-csv")
def forecast_csv_command(
    file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="CSV with timestamp,value columns."
    ),
    points: int = typer.Option(12, "--points", "-n", min=1, help="Points to forecast."),
    step: int = typer.Option(
        5,
        "--step",
        min=1,
        help="Step in minutes used when the history is too short to infer one.",
    ),
) -> None:
    """Forecast from a local CSV history without contacting the service."""
    try:
        readings, errors = parse_readings_csv(file.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    for error in errors:
        typer.secho(
            f"Skipped row {error.row_number}: {error.reason}",
            fg=typer.colors.YELLOW,
            err=True,
        )

    try:
        result = forecast(readings, points, step)
    except InvalidArgument as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    render_forecast(f"Forecast from {file.name} ({len(readings)} readings)", result)
