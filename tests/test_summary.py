import math
import random

import pytest

from core.config import DEFAULT_HUES, Palette, SummaryOptions
from core.entries import DELETED, INVALID_TIMESTAMP, MISSING_NAME, parse_instant
from core.metrics_summary import (
    AggregatedTotal,
    build_chart_series,
    compute_summary,
    grand_total,
    sort_totals,
    summarize_frame,
)


def _entry(name, start, end, deleted=None):
    return {"Id": "x", "EmployeeName": name, "StarTimeUtc": start, "EndTimeUtc": end, "EntryNotes": None, "DeletedOn": deleted}


def test_scenario_empty_input():
    payload = compute_summary([])
    assert payload["rows"] == []
    assert payload["grand_total_hours"] == 0
    assert payload["chart"] == {"labels": [], "values": [], "colors": []}
    assert payload["charts"] == {}


def test_scenario_single_entry():
    payload = compute_summary([_entry("Alice", "2024-01-01T00:00:00Z", "2024-01-01T02:00:00Z")])
    assert payload["rows"] == [{"name": "Alice", "total_hours": 2.0}]
    assert payload["grand_total_hours"] == 2.0


def test_scenario_deleted_entry_is_dropped():
    entries = [
        _entry("Bob", "2024-01-01T00:00:00Z", "2024-01-01T01:00:00Z"),
        _entry("Alice", "2024-01-01T00:00:00Z", "2024-01-01T02:00:00Z"),
        _entry("Carol", "2024-01-01T00:00:00Z", "2024-01-01T05:00:00Z", deleted="2024-01-03T00:00:00Z"),
    ]
    payload = compute_summary(entries)
    assert payload["rows"] == [{"name": "Alice", "total_hours": 2.0}, {"name": "Bob", "total_hours": 1.0}]
    assert payload["grand_total_hours"] == 3.0
    assert payload["data_quality"]["excluded"][DELETED] == 1


def test_scenario_inverted_interval_keeps_employee_at_zero():
    payload = compute_summary([_entry("Dan", "2024-01-01T10:00:00Z", "2024-01-01T09:00:00Z")])
    assert payload["rows"] == [{"name": "Dan", "total_hours": 0.0}]
    assert payload["grand_total_hours"] == 0.0


def test_scenario_blank_name_is_ignored():
    entries = [
        _entry("", "2024-01-01T00:00:00Z", "2024-01-01T08:00:00Z"),
        _entry("Alice", "2024-01-01T00:00:00Z", "2024-01-01T02:00:00Z"),
    ]
    payload = compute_summary(entries)
    assert [r["name"] for r in payload["rows"]] == ["Alice"]
    assert payload["grand_total_hours"] == 2.0
    assert payload["data_quality"]["excluded"][MISSING_NAME] == 1


def test_ties_keep_first_appearance_order():
    entries = [
        _entry("Bob", "2024-01-01T00:00:00Z", "2024-01-01T01:00:00Z"),
        _entry("Alice", "2024-01-01T00:00:00Z", "2024-01-01T01:00:00Z"),
        _entry("Zed", "2024-01-01T00:00:00Z", "2024-01-01T03:00:00Z"),
    ]
    assert [r["name"] for r in compute_summary(entries)["rows"]] == ["Zed", "Bob", "Alice"]


def test_sort_totals_descending():
    rows = sort_totals({"a": 1.0, "b": 5.0, "c": 2.5})
    assert rows == [AggregatedTotal("b", 5.0), AggregatedTotal("c", 2.5), AggregatedTotal("a", 1.0)]
    assert sort_totals({}) == []


def test_grand_total_empty_is_zero():
    assert grand_total([]) == 0.0


def test_chart_series_cycles_palette():
    rows = [AggregatedTotal(f"e{i}", float(30 - i)) for i in range(30)]
    series = build_chart_series(rows)
    size = len(DEFAULT_HUES)
    assert len(series.labels) == len(series.values) == len(series.colors) == 30
    assert series.colors[0] == "hsl(0 65% 55%)"
    for i in range(30 - size):
        assert series.colors[i] == series.colors[i + size]
    assert series.colors[1] != series.colors[0]


def test_custom_palette_is_used():
    options = SummaryOptions(palette=Palette(hues=(10, 200), saturation=50, lightness=40))
    entries = [
        _entry("A", "2024-01-01T00:00:00Z", "2024-01-01T03:00:00Z"),
        _entry("B", "2024-01-01T00:00:00Z", "2024-01-01T02:00:00Z"),
        _entry("C", "2024-01-01T00:00:00Z", "2024-01-01T01:00:00Z"),
    ]
    colors = compute_summary(entries, options)["chart"]["colors"]
    assert colors == ["hsl(10 50% 40%)", "hsl(200 50% 40%)", "hsl(10 50% 40%)"]


def test_options_from_mapping():
    payload = compute_summary([], {"palette": {"hues": [5]}, "legend_position": "bottom"})
    assert payload["options"]["palette"]["hues"] == (5,)
    assert payload["options"]["legend_position"] == "bottom"


def test_pie_chart_spec_present():
    payload = compute_summary([_entry("Alice", "2024-01-01T00:00:00Z", "2024-01-01T02:00:00Z")])
    spec = payload["charts"]["hours_by_employee"]
    mark = spec["mark"]
    assert (mark["type"] if isinstance(mark, dict) else mark) == "arc"
    assert spec["encoding"]["color"]["scale"]["range"] == ["hsl(0 65% 55%)"]


def test_summarize_frame_columns():
    entries = [
        _entry("Alice", "2024-01-01T00:00:00Z", "2024-01-01T03:00:00Z"),
        _entry("Bob", "2024-01-01T00:00:00Z", "2024-01-01T03:00:00Z"),
    ]
    frame = summarize_frame(entries)
    assert list(frame["name"]) == ["Alice", "Bob"]
    assert list(frame["pct"]) == [50.0, 50.0]
    assert frame["tooltip"].iloc[0] == "Alice: 3.00h (50.0%)"
    assert summarize_frame([]).empty


def _random_entries(rng):
    names = ["Alice", "Bob", "Carol", "", None, "alice"]
    starts = ["2024-01-01T08:00:00Z", "2024-01-01T12:30:00Z", "garbage", None]
    ends = ["2024-01-01T09:15:00Z", "2024-01-01T17:00:00Z", "2024-01-01T07:00:00Z", ""]
    return [
        _entry(rng.choice(names), rng.choice(starts), rng.choice(ends), deleted=rng.choice([None, None, "2024-02-01"]))
        for _ in range(rng.randint(0, 40))
    ]


@pytest.mark.parametrize("seed", range(25))
def test_summary_properties(seed):
    entries = _random_entries(random.Random(seed))
    payload = compute_summary(entries)
    rows = payload["rows"]

    expected_names = {
        e["EmployeeName"]
        for e in entries
        if e["EmployeeName"]
        and not e["DeletedOn"]
        and parse_instant(e["StarTimeUtc"]) is not None
        and parse_instant(e["EndTimeUtc"]) is not None
    }
    assert {r["name"] for r in rows} == expected_names
    assert all(r["total_hours"] >= 0 for r in rows)
    assert all(rows[i]["total_hours"] >= rows[i + 1]["total_hours"] for i in range(len(rows) - 1))
    assert math.isclose(payload["grand_total_hours"], sum(r["total_hours"] for r in rows), rel_tol=1e-9, abs_tol=1e-12)

    chart = payload["chart"]
    assert chart["labels"] == [r["name"] for r in rows]
    assert chart["values"] == [r["total_hours"] for r in rows]
    assert len(chart["colors"]) == len(rows)

    quality = payload["data_quality"]
    assert quality["entries_received"] == len(entries)
    assert quality["entries_used"] + sum(quality["excluded"].values()) == len(entries)
    assert set(quality["excluded"]) == {MISSING_NAME, DELETED, INVALID_TIMESTAMP}
