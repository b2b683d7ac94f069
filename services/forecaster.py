"""Temperature forecasting engine.

A forecast is produced by the first strategy in the chain that succeeds:

1. language-model continuation, when a completion callable is supplied and at
   least three readings exist;
2. Holt's linear (double exponential) smoothing;
3. linear extrapolation of the last two readings.

The forecast step is inferred from the median spacing of the history and only
falls back to the caller's default when fewer than two readings exist.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from statistics import median
from typing import Any, Callable, Iterable, List, Optional, Protocol, Sequence, Union

from models.records import ForecastPoint, Reading, format_timestamp, parse_timestamp, to_utc
from services.errors import InvalidArgument, ParseFailure

logger = logging.getLogger(__name__)

Completion = Callable[[str], str]

LEVEL_SMOOTHING = 0.4
TREND_SMOOTHING = 0.1
MIN_LANGUAGE_MODEL_READINGS = 3


@dataclass(frozen=True)
class Success:
    points: List[ForecastPoint]


@dataclass(frozen=True)
class Unavailable:
    reason: str


AttemptResult = Union[Success, Unavailable]


class ForecastStrategy(Protocol):
    name: str

    def attempt(
        self, readings: Sequence[Reading], count: int, step_minutes: int
    ) -> AttemptResult:
        ...


def _round_half_up(value: float) -> float:
    scaled = value * 100
    if not math.isfinite(scaled):
        return value
    return math.floor(scaled + 0.5) / 100


def _future_timestamps(last: datetime, count: int, step_minutes: int) -> List[datetime]:
    return [last + timedelta(minutes=step_minutes * step) for step in range(1, count + 1)]


def normalize_series(series: Iterable[Reading]) -> List[Reading]:
    """Validate readings and return them as UTC, sorted by timestamp."""
    readings: List[Reading] = []
    for reading in series:
        value = reading.value
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidArgument(f"Reading value {value!r} is not a number.")
        value = float(value)
        if not math.isfinite(value):
            raise InvalidArgument(f"Reading value {value!r} is not finite.")
        if value < 0:
            raise InvalidArgument(f"Reading value {value!r} is negative.")
        readings.append(Reading(timestamp=to_utc(reading.timestamp), value=value))
    readings.sort(key=lambda item: item.timestamp)
    return readings


def infer_step_minutes(readings: Sequence[Reading], default_step_minutes: int) -> int:
    """Median spacing of the readings in whole minutes, never below one."""
    if len(readings) < 2:
        return default_step_minutes

    ordered = sorted(readings, key=lambda item: item.timestamp)
    deltas = [
        (current.timestamp - previous.timestamp).total_seconds() / 60
        for previous, current in zip(ordered, ordered[1:])
    ]
    return max(1, math.floor(median(deltas) + 0.5))


def build_prompt(readings: Sequence[Reading], count: int, step_minutes: int) -> str:
    history = "\n".join(
        f"{format_timestamp(reading.timestamp)} => {reading.value:.2f}" for reading in readings
    )
    return (
        "I have a sequence of water temperature readings "
        "(ISO8601 timestamp => temp in °C). "
        f"Continue the pattern and provide the next {count} readings "
        f"spaced {step_minutes} minutes apart. "
        'Respond with JSON array of objects [{"timestamp":"ISO","temperature":number}, ...] only.'
        f"\nHistory:\n{history}"
    )


def _coerce_point(item: Any, index: int) -> ForecastPoint:
    if not isinstance(item, dict):
        raise ParseFailure(f"Element {index} is not an object.")

    raw_timestamp = item.get("timestamp")
    raw_value = item.get("temperature")
    if not isinstance(raw_timestamp, str):
        raise ParseFailure(f"Element {index} has no timestamp.")
    if raw_value is None or isinstance(raw_value, bool):
        raise ParseFailure(f"Element {index} has no temperature.")

    try:
        timestamp = parse_timestamp(raw_timestamp)
    except ValueError as exc:
        raise ParseFailure(f"Element {index} has an invalid timestamp.") from exc

    try:
        value = float(raw_value)
    except (TypeError, ValueError) as exc:
        raise ParseFailure(f"Element {index} has a non-numeric temperature.") from exc
    if not math.isfinite(value):
        raise ParseFailure(f"Element {index} has a non-finite temperature.")

    return ForecastPoint(timestamp=timestamp, value=value)


def parse_completion(text: Any, count: int, after: datetime) -> List[ForecastPoint]:
    """Extract forecast points from a language-model response.

    Leading prose before the first ``[`` and trailing prose after the array are
    ignored. The points must number exactly ``count`` and have strictly
    increasing timestamps later than ``after``.
    """
    if not isinstance(text, str):
        raise ParseFailure("Completion response is not text.")

    start = text.find("[")
    candidate = text[start:] if start >= 0 else text.strip()
    try:
        parsed, _ = json.JSONDecoder().raw_decode(candidate)
    except json.JSONDecodeError as exc:
        raise ParseFailure("Completion response is not valid JSON.") from exc

    if not isinstance(parsed, list):
        raise ParseFailure("Completion response is not a JSON array.")

    points = [_coerce_point(item, index) for index, item in enumerate(parsed)]
    if len(points) != count:
        raise ParseFailure(f"Expected {count} points, received {len(points)}.")

    previous = after
    for point in points:
        if point.timestamp <= previous:
            raise ParseFailure("Forecast timestamps must increase after the last reading.")
        previous = point.timestamp
    return points


class LanguageModelStrategy:
    name = "language_model"

    def __init__(self, completion: Completion) -> None:
        self._completion = completion

    def attempt(
        self, readings: Sequence[Reading], count: int, step_minutes: int
    ) -> AttemptResult:
        if len(readings) < MIN_LANGUAGE_MODEL_READINGS:
            return Unavailable("not enough readings for a language model forecast")

        prompt = build_prompt(readings, count, step_minutes)
        try:
            response = self._completion(prompt)
        except Exception as exc:  # noqa: BLE001 - any completion failure falls back
            logger.warning(
                "Language model forecast failed, falling back to trend model",
                extra={"strategy": self.name, "reason": str(exc)},
            )
            return Unavailable(f"completion failed: {exc}")

        try:
            points = parse_completion(response, count, readings[-1].timestamp)
        except ParseFailure as exc:
            logger.warning(
                "Language model response unusable, falling back to trend model",
                extra={"strategy": self.name, "reason": str(exc)},
            )
            return Unavailable(f"unusable completion: {exc}")

        return Success(points)


class HoltLinearStrategy:
    """Holt's linear exponential smoothing over the whole history."""

    name = "holt_linear"

    def __init__(self, alpha: float = LEVEL_SMOOTHING, beta: float = TREND_SMOOTHING) -> None:
        self.alpha = alpha
        self.beta = beta

    def smooth(self, readings: Sequence[Reading]) -> tuple[float, float]:
        """Run one smoothing pass and return the final ``(level, trend)``."""
        level = readings[0].value
        trend = readings[1].value - readings[0].value if len(readings) > 1 else 0.0

        for reading in readings[1:]:
            prior_level = level
            level = self.alpha * reading.value + (1 - self.alpha) * (level + trend)
            trend = self.beta * (level - prior_level) + (1 - self.beta) * trend

        return level, trend

    def attempt(
        self, readings: Sequence[Reading], count: int, step_minutes: int
    ) -> AttemptResult:
        if not readings:
            return Unavailable("no readings")

        level, trend = self.smooth(readings)
        values = [level + trend * step for step in range(1, count + 1)]
        if not all(math.isfinite(value) for value in values):
            return Unavailable("trend projection is not finite")

        timestamps = _future_timestamps(readings[-1].timestamp, count, step_minutes)
        return Success(
            [
                ForecastPoint(timestamp=timestamp, value=_round_half_up(value))
                for timestamp, value in zip(timestamps, values)
            ]
        )


class LinearExtrapolationStrategy:
    """Continue the slope between the last two readings."""

    name = "linear"

    def attempt(
        self, readings: Sequence[Reading], count: int, step_minutes: int
    ) -> AttemptResult:
        if not readings:
            return Unavailable("no readings")

        last = readings[-1]
        timestamps = _future_timestamps(last.timestamp, count, step_minutes)
        if len(readings) == 1:
            return Success(self._repeat(last, timestamps))

        previous = readings[-2]
        elapsed_ms = max(1.0, (last.timestamp - previous.timestamp).total_seconds() * 1000)
        slope_per_ms = (last.value - previous.value) / elapsed_ms
        step_ms = step_minutes * 60_000

        points: List[ForecastPoint] = []
        value = last.value
        for timestamp in timestamps:
            value = value + slope_per_ms * step_ms
            points.append(ForecastPoint(timestamp=timestamp, value=_round_half_up(value)))

        if not all(math.isfinite(point.value) for point in points):
            return Success(self._repeat(last, timestamps))
        return Success(points)

    @staticmethod
    def _repeat(reading: Reading, timestamps: Sequence[datetime]) -> List[ForecastPoint]:
        value = _round_half_up(reading.value)
        return [ForecastPoint(timestamp=timestamp, value=value) for timestamp in timestamps]


class ForecastEngine:
    """Runs the strategy chain for a single sensor history."""

    def __init__(self, completion: Optional[Completion] = None) -> None:
        self.completion = completion

    def strategies(self) -> List[ForecastStrategy]:
        chain: List[ForecastStrategy] = []
        if self.completion is not None:
            chain.append(LanguageModelStrategy(self.completion))
        chain.append(HoltLinearStrategy())
        chain.append(LinearExtrapolationStrategy())
        return chain

    def forecast(
        self,
        series: Iterable[Reading],
        count: int,
        default_step_minutes: int,
    ) -> List[ForecastPoint]:
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise InvalidArgument(f"Forecast point count must be at least 1, got {count!r}.")
        if (
            isinstance(default_step_minutes, bool)
            or not isinstance(default_step_minutes, int)
            or default_step_minutes < 1
        ):
            raise InvalidArgument(
                f"Default step must be at least 1 minute, got {default_step_minutes!r}."
            )

        readings = normalize_series(series)
        step_minutes = infer_step_minutes(readings, default_step_minutes)

        for strategy in self.strategies():
            result = strategy.attempt(readings, count, step_minutes)
            if isinstance(result, Success):
                logger.debug(
                    "Forecast produced",
                    extra={
                        "strategy": strategy.name,
                        "step_minutes": step_minutes,
                        "point_count": len(result.points),
                    },
                )
                return result.points
            logger.debug(
                "Forecast strategy unavailable",
                extra={"strategy": strategy.name, "reason": result.reason},
            )

        return []


def forecast(
    series: Iterable[Reading],
    count: int,
    default_step_minutes: int,
    completion: Optional[Completion] = None,
) -> List[ForecastPoint]:
    """Forecast ``count`` future readings for one sensor."""
    return ForecastEngine(completion=completion).forecast(series, count, default_step_minutes)
