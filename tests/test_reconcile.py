from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List

from models.records import ForecastPoint
from services.reconcile import reconcile_forecast

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _points(*minutes: int, value: float = 20.0) -> List[ForecastPoint]:
    return [ForecastPoint(timestamp=BASE + timedelta(minutes=m), value=value) for m in minutes]


def test_first_render_uses_fresh_forecast() -> None:
    fresh = _points(5, 10, 15)

    assert reconcile_forecast([], BASE, fresh) == fresh


def test_overtaken_points_are_replaced_and_count_is_stable() -> None:
    displayed = _points(5, 10, 15, value=20.0)
    fresh = _points(10, 15, 20, value=21.0)

    result = reconcile_forecast(displayed, BASE + timedelta(minutes=5), fresh)

    assert [point.timestamp for point in result] == [
        BASE + timedelta(minutes=m) for m in (10, 15, 20)
    ]
    # Points still in the future are kept; only the new tail comes from ``fresh``.
    assert [point.value for point in result] == [20.0, 20.0, 21.0]


def test_all_points_replaced_when_readings_overtake_forecast() -> None:
    displayed = _points(5, 10)
    fresh = _points(35, 40, 45, value=22.0)

    result = reconcile_forecast(displayed, BASE + timedelta(minutes=30), fresh)

    assert result == _points(35, 40, value=22.0)


def test_untouched_forecast_is_kept_when_no_new_reading() -> None:
    displayed = _points(5, 10, 15)
    fresh = _points(5, 10, 15, value=25.0)

    assert reconcile_forecast(displayed, BASE, fresh) == displayed


def test_short_fresh_forecast_leaves_fewer_points() -> None:
    displayed = _points(5, 10, 15)

    result = reconcile_forecast(displayed, BASE + timedelta(minutes=10), _points(15))

    assert result == _points(15)
