from __future__ import annotations

import logging
from datetime import datetime, timezone

import pytest

from models.records import Reading
from services.csv_readings import RowError, parse_readings_csv


def test_parse_valid_rows() -> None:
    csv_body = (
        "timestamp,value\n"
        "2024-01-01T00:00:00Z,21.5\n"
        "2024-01-01T00:05:00+00:00,21.75\n"
    )

    readings, errors = parse_readings_csv(csv_body)

    assert errors == []
    assert readings == [
        Reading(timestamp=datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc), value=21.5),
        Reading(timestamp=datetime(2024, 1, 1, 0, 5, tzinfo=timezone.utc), value=21.75),
    ]


def test_headers_are_case_insensitive_and_extra_columns_ignored() -> None:
    csv_body = (
        "sensor_id, Timestamp ,VALUE\n"
        "reef,2024-01-01T00:00:00Z,20\n"
    )

    readings, errors = parse_readings_csv(csv_body)

    assert errors == []
    assert [reading.value for reading in readings] == [20.0]


def test_row_errors_are_collected() -> None:
    csv_body = (
        "timestamp,value\n"
        "2024-01-01T00:00:00Z,3.0\n"
        ",1\n"
        "invalid,2\n"
        "2024-01-01T02:00:00Z,not-a-number\n"
        "2024-01-01T03:00:00Z,\n"
    )

    readings, errors = parse_readings_csv(csv_body)

    assert len(readings) == 1
    assert errors == [
        RowError(row_number=3, reason="missing timestamp"),
        RowError(row_number=4, reason="invalid timestamp"),
        RowError(row_number=5, reason="invalid numeric value"),
        RowError(row_number=6, reason="missing value"),
    ]


def test_skipped_rows_are_logged(caplog) -> None:
    csv_body = "timestamp,value\n2024-01-01T00:00:00Z,oops\n"

    with caplog.at_level(logging.WARNING, logger="services.csv_readings"):
        parse_readings_csv(csv_body)

    records = [record for record in caplog.records if record.name == "services.csv_readings"]
    assert records, "Expected row skip warnings to be logged."
    assert records[0].getMessage() == "Skipping row"
    assert getattr(records[0], "row_number", None) == 2
    assert getattr(records[0], "reason", None) == "invalid numeric value"


def test_missing_columns_raise() -> None:
    with pytest.raises(ValueError) as excinfo:
        parse_readings_csv("time,value\n2024-01-01T00:00:00Z,1\n")

    assert "missing required columns: timestamp" in str(excinfo.value)


def test_empty_input_raises() -> None:
    with pytest.raises(ValueError):
        parse_readings_csv("")


def test_negative_and_non_finite_values_are_skipped() -> None:
    csv_body = (
        "timestamp,value\n"
        "2024-01-01T00:00:00Z,20.0\n"
        "2024-01-01T00:05:00Z,-0.5\n"
        "2024-01-01T00:10:00Z,nan\n"
        "2024-01-01T00:15:00Z,inf\n"
        "2024-01-01T00:20:00Z,20.5\n"
    )

    readings, errors = parse_readings_csv(csv_body)

    assert [reading.value for reading in readings] == [20.0, 20.5]
    assert errors == [
        RowError(row_number=3, reason="invalid numeric value"),
        RowError(row_number=4, reason="invalid numeric value"),
        RowError(row_number=5, reason="invalid numeric value"),
    ]
