from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the forecast service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def list_sensors(self) -> List[Dict[str, Any]]:
        return self._get("/temperatures")

    def get_sensor(self, sensor_id: str) -> Dict[str, Any]:
        return self._get(f"/temperatures/{sensor_id}", missing=sensor_id)

    def get_forecast(
        self,
        sensor_id: str,
        points: Optional[int] = None,
        step_minutes: Optional[int] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, int] = {}
        if points is not None:
            params["points"] = points
        if step_minutes is not None:
            params["step_minutes"] = step_minutes
        return self._get(f"/temperatures/{sensor_id}/forecast", params=params, missing=sensor_id)

    def _get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        missing: Optional[str] = None,
    ) -> Any:
        try:
            response = self._client.get(path, params=params)
            if response.status_code == 404 and missing is not None:
                raise typer.BadParameter(f"Sensor {missing} was not found.")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
