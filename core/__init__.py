"""Core (UI-agnostic) dashboard logic.

This package contains:
- value parsing and header resolution (spreadsheet rows -> pandas)
- filter state and drill-down session
- per-profile KPI and series definitions (JSON-serializable results)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
