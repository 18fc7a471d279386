from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Tuple


DEFAULT_HUES: Tuple[int, ...] = (0, 20, 40, 60, 80, 110, 140, 170, 200, 230, 260, 290, 320, 340)
LEGEND_POSITIONS = ("top", "bottom", "left", "right")

DEFAULT_SOURCE_URL = "https://rc-vault-fap-live-1.azurewebsites.net/api/gettimeentries"
DEFAULT_TIMEOUT = 10.0
DEFAULT_CACHE_SECONDS = 300


@dataclass(frozen=True)
class Palette:
    hues: Tuple[int, ...] = DEFAULT_HUES
    saturation: int = 65
    lightness: int = 55
    version: str = "v1"


DEFAULT_PALETTE = Palette()


@dataclass(frozen=True)
class SummaryOptions:
    palette: Palette = field(default_factory=Palette)
    legend_position: str = "right"
    chart_title: str = "Hours by employee"


@dataclass(frozen=True)
class Settings:
    source_url: str = DEFAULT_SOURCE_URL
    source_code: str = ""
    api_url: str = ""
    timeout: float = DEFAULT_TIMEOUT
    cache_seconds: int = DEFAULT_CACHE_SECONDS
    cors_origins: Tuple[str, ...] = ("http://localhost:4200", "http://127.0.0.1:4200")
    log_level: str = "INFO"

    @property
    def entries_url(self) -> str:
        """URL the summary reads entries from: the explicit API URL, else the upstream feed."""
        return self.api_url or self.upstream_url

    @property
    def upstream_url(self) -> str:
        if not self.source_code:
            return self.source_url
        sep = "&" if "?" in self.source_url else "?"
        return f"{self.source_url}{sep}code={self.source_code}"


def _as_hue_tuple(values: Optional[Iterable[object]]) -> Tuple[int, ...]:
    if not values or isinstance(values, (str, bytes)):
        return DEFAULT_HUES
    out = []
    for v in values:
        try:
            out.append(int(float(v)) % 360)
        except Exception:
            continue
    return tuple(out) or DEFAULT_HUES


def _as_percent(value: object, default: int) -> int:
    try:
        pct = int(float(value))
    except Exception:
        return default
    return max(0, min(100, pct))


def normalize_palette(raw: Optional[Mapping[str, object]]) -> Palette:
    raw = raw or {}
    return Palette(
        hues=_as_hue_tuple(raw.get("hues")),
        saturation=_as_percent(raw.get("saturation", 65), 65),
        lightness=_as_percent(raw.get("lightness", 55), 55),
        version=str(raw.get("version") or "v1"),
    )


def normalize_options(raw: Optional[Mapping[str, object]]) -> SummaryOptions:
    raw = raw or {}
    legend_position = str(raw.get("legend_position") or "right").strip().lower()
    if legend_position not in LEGEND_POSITIONS:
        legend_position = "right"
    chart_title = str(raw.get("chart_title") or "Hours by employee").strip()
    return SummaryOptions(
        palette=normalize_palette(raw.get("palette")),  # type: ignore[arg-type]
        legend_position=legend_position,
        chart_title=chart_title,
    )


def _env_float(environ: Mapping[str, str], key: str, default: float) -> float:
    try:
        val = float(environ.get(key, default) or default)
        return val if val > 0 else default
    except Exception:
        return default


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build runtime settings from environment variables."""
    env = os.environ if environ is None else environ
    origins = tuple(o.strip() for o in (env.get("TIME_TRACKER_CORS_ORIGINS") or "").split(",") if o.strip())
    return Settings(
        source_url=(env.get("SOURCE_URL") or DEFAULT_SOURCE_URL).strip(),
        source_code=(env.get("SOURCE_CODE") or "").strip(),
        api_url=(env.get("TIME_TRACKER_API_URL") or "").strip(),
        timeout=_env_float(env, "TIME_TRACKER_TIMEOUT", DEFAULT_TIMEOUT),
        cache_seconds=int(_env_float(env, "TIME_TRACKER_CACHE_SECONDS", DEFAULT_CACHE_SECONDS)),
        cors_origins=origins or Settings().cors_origins,
        log_level=(env.get("TIME_TRACKER_LOG_LEVEL") or "INFO").strip().upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO))
