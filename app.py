import logging
from contextlib import contextmanager
from typing import Dict, Optional

import pandas as pd
import streamlit as st

from core import data as dc
from core.charts import hours_pie_chart
from core.config import configure_logging, load_settings, normalize_options
from core.metrics_summary import build_chart_series, grand_total, summarize_rows, summary_frame

logger = logging.getLogger(__name__)


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-header {display: flex;justify-content: space-between;align-items: center;margin-bottom: 8px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .card-actions {font-size: 0.9rem;color: #2563eb;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str, actions: Optional[str] = None):
    container = st.container()
    container.markdown(
        f"""
        <div class="card">
          <div class="card-header">
            <div class="card-title">{title}</div>
            <div class="card-actions">{actions or ""}</div>
          </div>
        """,
        unsafe_allow_html=True,
    )
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def render_page_header(title: str, export_df: Optional[pd.DataFrame] = None, export_name: str = "summary.csv"):
    inject_base_styles()
    c1, c2 = st.columns([8, 2])
    with c1:
        st.markdown(f"<div class='app-top-bar'><div class='page-title'>{title}</div></div>", unsafe_allow_html=True)
    with c2:
        btn_cols = st.columns(2)
        if btn_cols[0].button("Refresh"):
            dc.clear_entries_cache()
            st.rerun()
        if export_df is not None and not export_df.empty:
            btn_cols[1].download_button(
                "Export CSV",
                data=export_df[["name", "total_hours", "pct"]].to_csv(index=False).encode("utf-8"),
                file_name=export_name,
                mime="text/csv",
            )


def render_kpi_tiles(frame: pd.DataFrame, total: float, excluded: Dict[str, int]):
    cols = st.columns(3)
    cols[0].metric("Employees", f"{len(frame):,}")
    cols[1].metric("Total hours", f"{total:,.2f}h")
    cols[2].metric(
        "Excluded entries",
        f"{sum(excluded.values()):,}",
        help="Entries without an employee name, soft-deleted, or with an unreadable start/end time.",
    )


def render_summary_table(frame: pd.DataFrame):
    display = frame[["name", "total_hours", "pct"]].rename(
        columns={"name": "Employee", "total_hours": "Hours", "pct": "% of total"}
    )
    st.dataframe(
        display,
        hide_index=True,
        use_container_width=True,
        column_config={
            "Hours": st.column_config.NumberColumn(format="%.2f"),
            "% of total": st.column_config.NumberColumn(format="%.1f%%"),
        },
    )


# ---------- UI setup ----------
st.set_page_config(page_title="Time Tracker", layout="wide")
inject_base_styles()

settings = load_settings()
configure_logging(settings.log_level)
options = normalize_options({})

with st.spinner("Loading entries..."):
    try:
        entries = dc.load_entries(settings)
    except dc.EntriesFetchError:
        logger.exception("loading entries failed")
        entries = None

if entries is None:
    render_page_header("Time Tracker")
    st.error("Failed to load entries")
    st.stop()

rows, normalized = summarize_rows(entries)
total = grand_total(rows)
series = build_chart_series(rows, options.palette)
frame = summary_frame(rows, series, total)

render_page_header("Time Tracker", export_df=frame)
render_kpi_tiles(frame, total, dict(normalized.excluded))

if frame.empty:
    st.info("No time entries to show.")
    st.stop()

left, right = st.columns([3, 2])
with left:
    with card(options.chart_title):
        pie = hours_pie_chart(frame, series.colors, title="", legend_position=options.legend_position)
        st.altair_chart(pie, use_container_width=True)
with right:
    with card("Totals by employee"):
        render_summary_table(frame)
