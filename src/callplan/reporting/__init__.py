from __future__ import annotations

from .adapters import (
    PandasResultAdapter,
    ResultAdapter,
    agent_hours_frame,
    assignments_frame,
    coverage_frame,
    forecasts_frame,
    schedule_to_dict,
)
from .reporter import Reporter

__all__ = [
    "Reporter",
    "ResultAdapter",
    "PandasResultAdapter",
    "agent_hours_frame",
    "assignments_frame",
    "coverage_frame",
    "forecasts_frame",
    "schedule_to_dict",
]
