from __future__ import annotations

import logging
import time
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

import requests

from core.config import Settings, load_settings


logger = logging.getLogger(__name__)

JSON_HEADERS = {"accept": "application/json"}


class EntriesFetchError(RuntimeError):
    """Raised when the entry list cannot be retrieved from the feed."""


class UpstreamStatusError(EntriesFetchError):
    """The feed answered with a non-success status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"upstream returned HTTP {status_code}")
        self.status_code = status_code
        self.body = body


def fetch_raw_entries(url: str, *, timeout: float = 10.0) -> List[Dict[str, Any]]:
    try:
        resp = requests.get(url, headers=JSON_HEADERS, timeout=timeout)
    except requests.RequestException as exc:
        raise EntriesFetchError(f"request to entries feed failed: {exc}") from exc

    if not resp.ok:
        raise UpstreamStatusError(resp.status_code, resp.text)

    try:
        data = resp.json()
    except ValueError as exc:
        raise EntriesFetchError("entries feed returned invalid JSON") from exc
    if data is None:
        return []
    if not isinstance(data, list):
        raise EntriesFetchError(f"entries feed returned {type(data).__name__}, expected a list")
    return data


def cache_signature(settings: Settings, now: Optional[float] = None) -> Tuple[str, float, int]:
    """Key for the entry cache: the feed URL plus the current cache window."""
    window = max(1, int(settings.cache_seconds))
    now = time.time() if now is None else now
    return settings.entries_url, settings.timeout, int(now // window)


@lru_cache(maxsize=4)
def _load_entries_cached(sig: Tuple[str, float, int]) -> List[Dict[str, Any]]:
    url, timeout, _ = sig
    entries = fetch_raw_entries(url, timeout=timeout)
    logger.info("loaded %d time entries", len(entries))
    return entries


def load_entries(settings: Optional[Settings] = None) -> List[Dict[str, Any]]:
    """Fetch the raw entry list, reusing the same list object within a cache window."""
    settings = settings or load_settings()
    return _load_entries_cached(cache_signature(settings))


def clear_entries_cache() -> None:
    _load_entries_cached.cache_clear()
