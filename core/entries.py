from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional, Union

import pandas as pd


logger = logging.getLogger(__name__)


# Feed column -> field name. The feed spells the start column "StarTimeUtc".
ENTRY_FIELDS = {
    "Id": "id",
    "EmployeeName": "employee_name",
    "StarTimeUtc": "start_time_utc",
    "StartTimeUtc": "start_time_utc",
    "EndTimeUtc": "end_time_utc",
    "EntryNotes": "notes",
    "DeletedOn": "deleted_on",
}

MISSING_NAME = "missing_name"
DELETED = "deleted"
INVALID_TIMESTAMP = "invalid_timestamp"
EXCLUSION_REASONS = (MISSING_NAME, DELETED, INVALID_TIMESTAMP)


@dataclass(frozen=True)
class TimeEntry:
    """One raw time-tracking record as delivered by the feed."""

    id: Optional[str] = None
    employee_name: Optional[str] = None
    start_time_utc: Optional[object] = None
    end_time_utc: Optional[object] = None
    notes: Optional[str] = None
    deleted_on: Optional[object] = None

    @classmethod
    def from_dict(cls, raw: object) -> "TimeEntry":
        if isinstance(raw, TimeEntry):
            return raw
        if not isinstance(raw, Mapping):
            return cls()
        values: Dict[str, Any] = {}
        for key, value in raw.items():
            name = ENTRY_FIELDS.get(key, key)
            if name in cls.__dataclass_fields__ and values.get(name) is None:
                values[name] = value
        return cls(**values)


@dataclass
class NormalizedEntries:
    frame: pd.DataFrame
    excluded: Counter
    received: int = 0

    @property
    def used(self) -> int:
        return int(len(self.frame))


def _timestamp_text(value: object) -> Optional[str]:
    # Relative words ("now", "today") carry no digits and must not resolve against the clock.
    if isinstance(value, datetime):
        return None if pd.isna(value) else value.isoformat()
    if isinstance(value, str):
        text = value.strip()
        return text if any(c.isdigit() for c in text) else None
    return None


def parse_instants(values: Iterable[object]) -> pd.Series:
    """Parse a column of timestamps into UTC instants; unreadable values become NaT."""
    text = pd.Series([_timestamp_text(v) for v in values], dtype=object)
    parsed = pd.to_datetime(text, errors="coerce", utc=True, format="ISO8601")
    retry = parsed.isna() & text.notna()
    if retry.any():
        parsed.loc[retry] = pd.to_datetime(text[retry], errors="coerce", utc=True, format="mixed")
    return parsed


def parse_instant(value: object) -> Optional[pd.Timestamp]:
    ts = parse_instants([value]).iloc[0]
    return None if pd.isna(ts) else ts


def _is_blank(value: object) -> bool:
    if value is None or value is pd.NA:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    try:
        return not bool(value)
    except (TypeError, ValueError):
        return False


def normalize_entries(raw_entries: Optional[Iterable[Union[Mapping[str, Any], TimeEntry]]]) -> NormalizedEntries:
    records = [TimeEntry.from_dict(raw) for raw in raw_entries or []]
    if not records:
        frame = pd.DataFrame({"name": pd.Series(dtype=object), "hours": pd.Series(dtype=float)})
        return NormalizedEntries(frame=frame, excluded=Counter(), received=0)

    names = pd.Series([r.employee_name for r in records], dtype=object)
    start = parse_instants(r.start_time_utc for r in records)
    end = parse_instants(r.end_time_utc for r in records)

    # Exclusion rules short-circuit: a row counts only under its first matching reason.
    missing = names.map(_is_blank).astype(bool)
    deleted = ~missing & ~pd.Series([_is_blank(r.deleted_on) for r in records], dtype=bool)
    invalid = ~missing & ~deleted & (start.isna() | end.isna())
    keep = ~(missing | deleted | invalid)

    hours = ((end[keep] - start[keep]) / pd.Timedelta(hours=1)).clip(lower=0).astype(float)
    frame = pd.DataFrame({"name": names[keep].astype(str), "hours": hours}).reset_index(drop=True)

    excluded = +Counter({MISSING_NAME: int(missing.sum()), DELETED: int(deleted.sum()), INVALID_TIMESTAMP: int(invalid.sum())})
    if excluded:
        logger.debug("excluded %d of %d entries: %s", sum(excluded.values()), len(records), dict(excluded))
    return NormalizedEntries(frame=frame, excluded=excluded, received=len(records))


def exclusion_reason(entry: TimeEntry) -> Optional[str]:
    return next(iter(normalize_entries([entry]).excluded), None)


def entry_hours(entry: TimeEntry) -> Optional[float]:
    """Worked hours for a surviving entry, clamped at zero; None if the entry is excluded."""
    normalized = normalize_entries([entry])
    if not normalized.used:
        return None
    return float(normalized.frame["hours"].iloc[0])


def aggregate_hours(normalized: Union[NormalizedEntries, pd.DataFrame]) -> Dict[str, float]:
    """Sum hours per exact employee name, keyed in first-appearance order."""
    frame = normalized.frame if isinstance(normalized, NormalizedEntries) else normalized
    if frame.empty:
        return {}
    totals = frame.groupby("name", sort=False)["hours"].sum()
    return {str(name): float(total) for name, total in totals.items()}
