"""Keep a displayed forecast in step with newly arrived readings."""

from __future__ import annotations

from datetime import datetime
from typing import List, Sequence

from models.records import ForecastPoint, to_utc


def reconcile_forecast(
    displayed: Sequence[ForecastPoint],
    latest_reading_at: datetime,
    fresh: Sequence[ForecastPoint],
) -> List[ForecastPoint]:
    """Drop points overtaken by real readings and top up from ``fresh``.

    The result holds as many points as ``displayed`` did, or all of ``fresh``
    when nothing was displayed yet.
    """
    latest = to_utc(latest_reading_at)
    target = len(displayed) or len(fresh)

    kept = [point for point in displayed if to_utc(point.timestamp) > latest]
    horizon = to_utc(kept[-1].timestamp) if kept else latest
    for point in sorted(fresh, key=lambda item: item.timestamp):
        if len(kept) >= target:
            break
        if to_utc(point.timestamp) > horizon:
            kept.append(point)
            horizon = to_utc(point.timestamp)
    return kept
