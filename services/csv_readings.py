"""Parse reading histories from CSV text."""

from __future__ import annotations

import csv
import io
import logging
import math
from dataclasses import dataclass
from typing import List, Tuple

from models.records import Reading, parse_timestamp

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RowError:
    """A CSV row that could not be turned into a reading."""

    row_number: int
    reason: str


def parse_readings_csv(text: str) -> Tuple[List[Reading], List[RowError]]:
    """Read ``timestamp,value`` rows, collecting per-row errors instead of failing."""
    reader = csv.DictReader(io.StringIO(text))

    if not reader.fieldnames:
        raise ValueError("CSV file is missing a header row.")

    normalized = {name.lower().strip(): name for name in reader.fieldnames if name}
    required = {"timestamp", "value"}
    missing = sorted(required - normalized.keys())
    if missing:
        raise ValueError(f"CSV missing required columns: {', '.join(missing)}")

    timestamp_col = normalized["timestamp"]
    value_col = normalized["value"]

    readings: List[Reading] = []
    errors: List[RowError] = []
    for row_number, row in enumerate(reader, start=2):
        timestamp_raw = (row.get(timestamp_col) or "").strip()
        value_raw = (row.get(value_col) or "").strip()

        reason = None
        if not timestamp_raw:
            reason = "missing timestamp"
        else:
            try:
                timestamp = parse_timestamp(timestamp_raw)
            except ValueError:
                reason = "invalid timestamp"

        if reason is None and not value_raw:
            reason = "missing value"

        if reason is None:
            try:
                value = float(value_raw)
            except ValueError:
                reason = "invalid numeric value"
            else:
                if not math.isfinite(value) or value < 0:
                    reason = "invalid numeric value"

        if reason is not None:
            logger.warning(
                "Skipping row",
                extra={"row_number": row_number, "reason": reason},
            )
            errors.append(RowError(row_number=row_number, reason=reason))
            continue

        readings.append(Reading(timestamp=timestamp, value=value))

    return readings, errors
