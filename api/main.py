from __future__ import annotations

import logging
import math
from contextlib import asynccontextmanager

import numpy as np
import pandas as pd
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import SummaryRequest, SummaryResponse
from core.config import configure_logging, load_settings, normalize_options
from core.data import EntriesFetchError, UpstreamStatusError, fetch_raw_entries, load_entries
from core.metrics_summary import compute_summary, summarize_frame


settings = load_settings()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    configure_logging(settings.log_level)
    yield


app = FastAPI(title="Time Tracker API", version="0.1.0", lifespan=lifespan)
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _json(data: object, **kwargs) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        ),
        **kwargs,
    )


def _cache_control() -> str:
    return f"s-maxage={settings.cache_seconds}, stale-while-revalidate={settings.cache_seconds}"


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/time-entries")
def time_entries():
    try:
        data = fetch_raw_entries(settings.upstream_url, timeout=settings.timeout)
        return _json(data, headers={"cache-control": _cache_control()})
    except UpstreamStatusError as exc:
        logger.warning("entries feed returned HTTP %s", exc.status_code)
        return Response(content=exc.body, status_code=exc.status_code, media_type="text/plain")
    except Exception:
        logger.exception("proxy error")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch entries"})


@app.post("/summary", response_model=SummaryResponse)
def summary(request: SummaryRequest):
    try:
        options = normalize_options(request.options.model_dump())
        return _json(compute_summary(request.entries, options))
    except Exception as exc:
        logger.exception("summary failed")
        return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


@app.get("/summary", response_model=SummaryResponse)
def summary_from_feed():
    try:
        entries = load_entries(settings)
    except EntriesFetchError as exc:
        logger.exception("loading entries failed")
        return JSONResponse(status_code=502, content={"error": "Failed to load entries", "type": type(exc).__name__})
    try:
        return _json(compute_summary(entries))
    except Exception as exc:
        logger.exception("summary failed")
        return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


@app.post("/export/summary")
def export_summary(request: SummaryRequest):
    options = normalize_options(request.options.model_dump())
    export_df = summarize_frame(request.entries, options)
    export_df = export_df[["name", "total_hours", "pct"]] if not export_df.empty else pd.DataFrame(columns=["name", "total_hours", "pct"])
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": "attachment; filename=summary.csv"})
