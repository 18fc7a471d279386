from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pandas as pd

from core.charts import format_tooltip, generate_color_palette, hours_pie_chart, percent_of_total, to_vega_spec
from core.config import DEFAULT_PALETTE, Palette, SummaryOptions, normalize_options
from core.entries import EXCLUSION_REASONS, NormalizedEntries, aggregate_hours, normalize_entries


@dataclass(frozen=True)
class AggregatedTotal:
    name: str
    total_hours: float


@dataclass(frozen=True)
class ChartSeries:
    labels: List[str] = field(default_factory=list)
    values: List[float] = field(default_factory=list)
    colors: List[str] = field(default_factory=list)


def sort_totals(totals: Mapping[str, float]) -> List[AggregatedTotal]:
    """Order totals by hours, highest first.

    Equal totals keep the mapping's iteration order, which for
    `aggregate_hours` is the order employees first appear in the raw list.
    """
    if not totals:
        return []
    df = pd.DataFrame({"name": list(totals.keys()), "total_hours": list(totals.values())})
    df = df.sort_values("total_hours", ascending=False, kind="mergesort")
    return [AggregatedTotal(name=str(r.name), total_hours=float(r.total_hours)) for r in df.itertuples(index=False)]


def grand_total(rows: Iterable[AggregatedTotal]) -> float:
    return float(math.fsum(r.total_hours for r in rows))


def build_chart_series(rows: List[AggregatedTotal], palette: Palette = DEFAULT_PALETTE) -> ChartSeries:
    return ChartSeries(
        labels=[r.name for r in rows],
        values=[r.total_hours for r in rows],
        colors=generate_color_palette(len(rows), palette),
    )


def summarize_rows(entries: Optional[Iterable[Any]]) -> tuple[List[AggregatedTotal], NormalizedEntries]:
    normalized = normalize_entries(entries)
    return sort_totals(aggregate_hours(normalized)), normalized


def summary_frame(rows: List[AggregatedTotal], series: ChartSeries, total: float) -> pd.DataFrame:
    """Sorted rows with percentage, color and tooltip text, ready for tables and charts."""
    if not rows:
        return pd.DataFrame(columns=["name", "total_hours", "pct", "color", "tooltip"])
    df = pd.DataFrame([asdict(r) for r in rows])
    df["pct"] = df["total_hours"].apply(lambda v: float(percent_of_total(v, total)))
    df["color"] = series.colors
    df["tooltip"] = [format_tooltip(v, n, total) for n, v in zip(df["name"], df["total_hours"])]
    return df


def compute_summary(
    entries: Optional[Iterable[Any]],
    options: Optional[SummaryOptions | Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    opts = options if isinstance(options, SummaryOptions) else normalize_options(options)
    rows, normalized = summarize_rows(entries)
    total = grand_total(rows)
    series = build_chart_series(rows, opts.palette)

    charts: Dict[str, Any] = {}
    if rows:
        frame = summary_frame(rows, series, total)
        pie = hours_pie_chart(frame, series.colors, title=opts.chart_title, legend_position=opts.legend_position)
        charts["hours_by_employee"] = to_vega_spec(pie)

    return {
        "options": asdict(opts),
        "rows": [asdict(r) for r in rows],
        "grand_total_hours": total,
        "chart": asdict(series),
        "charts": charts,
        "data_quality": {
            "entries_received": normalized.received,
            "entries_used": normalized.used,
            "excluded": {reason: int(normalized.excluded.get(reason, 0)) for reason in EXCLUSION_REASONS},
        },
    }


def summarize_frame(
    entries: Optional[Iterable[Any]],
    options: Optional[SummaryOptions | Mapping[str, Any]] = None,
) -> pd.DataFrame:
    opts = options if isinstance(options, SummaryOptions) else normalize_options(options)
    rows, _ = summarize_rows(entries)
    total = grand_total(rows)
    return summary_frame(rows, build_chart_series(rows, opts.palette), total)
