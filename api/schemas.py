from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class PaletteModel(BaseModel):
    # Loosely typed; normalize_palette coerces and drops bad values.
    hues: List[Any] = Field(default_factory=lambda: [0, 20, 40, 60, 80, 110, 140, 170, 200, 230, 260, 290, 320, 340])
    saturation: Any = 65
    lightness: Any = 55
    version: str = "v1"


class SummaryOptionsModel(BaseModel):
    palette: PaletteModel = Field(default_factory=PaletteModel)
    legend_position: str = "right"
    chart_title: str = "Hours by employee"


class SummaryRequest(BaseModel):
    # Entries stay loosely typed so one malformed record cannot reject the request.
    entries: List[Any] = Field(default_factory=list)
    options: SummaryOptionsModel = Field(default_factory=SummaryOptionsModel)


class AggregatedTotalModel(BaseModel):
    name: str
    total_hours: float


class ChartSeriesModel(BaseModel):
    labels: List[str]
    values: List[float]
    colors: List[str]


class SummaryResponse(BaseModel):
    rows: List[AggregatedTotalModel]
    grand_total_hours: float
    chart: ChartSeriesModel
    charts: Dict[str, Any] = Field(default_factory=dict)
    data_quality: Dict[str, Any] = Field(default_factory=dict)
    options: Optional[Dict[str, Any]] = None
