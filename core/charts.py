from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence

import altair as alt
import pandas as pd

from core.config import DEFAULT_PALETTE, Palette

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def generate_color_palette(count: int, palette: Palette = DEFAULT_PALETTE) -> List[str]:
    """Return `count` HSL colors, cycling through the palette hues by position."""
    hues = palette.hues or DEFAULT_PALETTE.hues
    return [
        f"hsl({hues[i % len(hues)]} {palette.saturation}% {palette.lightness}%)"
        for i in range(max(0, int(count)))
    ]


def percent_of_total(value: Optional[float], grand_total: Optional[float]) -> str:
    grand = float(grand_total or 0)
    if grand <= 0:
        return "0.0"
    return f"{float(value or 0) / grand * 100:.1f}"


def format_tooltip(value: Optional[float], label: Optional[str], grand_total: Optional[float]) -> str:
    label = "" if label is None else str(label)
    return f"{label}: {float(value or 0):.2f}h ({percent_of_total(value, grand_total)}%)"


def tooltip_formatter(grand_total: float) -> Callable[[Optional[float], Optional[str]], str]:
    """Bind the grand total so a chart callback only supplies value and label."""

    def _format(value: Optional[float], label: Optional[str]) -> str:
        return format_tooltip(value, label, grand_total)

    return _format


def hours_pie_chart(
    frame: pd.DataFrame,
    colors: Sequence[str],
    *,
    title: str = "Hours by employee",
    legend_position: str = "right",
) -> alt.Chart:
    """Pie of total hours per employee; slice order and colors follow the row order of `frame`."""
    data = frame[["name", "total_hours", "tooltip"]].reset_index(drop=True).copy()
    data["order"] = data.index
    return (
        alt.Chart(data, title=title)
        .mark_arc()
        .encode(
            theta=alt.Theta("total_hours:Q", stack=True),
            color=alt.Color(
                "name:N",
                title="Employee",
                sort=list(data["name"]),
                scale=alt.Scale(domain=list(data["name"]), range=list(colors)),
                legend=alt.Legend(orient=legend_position),
            ),
            order=alt.Order("order:Q"),
            tooltip=[alt.Tooltip("tooltip:N", title="Hours")],
        )
    )
