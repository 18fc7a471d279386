"""Core (UI-agnostic) time tracker logic.

This package contains:
- runtime settings and chart palette configuration
- entry normalization and per-employee aggregation (pandas)
- the summary compute function (JSON-serializable payload)
- chart helpers (Altair -> Vega-Lite spec dict)
- retrieval of the raw entry list from the remote feed
"""
