from __future__ import annotations

from typing import Any, Iterable, Optional, Protocol, Sequence

import pandas as pd

from callplan.forecasting.models import ForecastResult
from callplan.scheduling.metrics import agent_hours, hour_key
from callplan.scheduling.models import DemandForecast, ScheduleOutput, ScheduleWarning

ASSIGNMENT_COLUMNS = [
    "agent_id",
    "queue_name",
    "start",
    "end",
    "duration_hours",
    "efficiency_score",
    "assignment_type",
]
COVERAGE_COLUMNS = ["queue_name", "hour", "coverage", "required_fte"]
FORECAST_COLUMNS = [
    "queue_name",
    "slot_start",
    "slot_end",
    "forecasted_calls",
    "avg_handle_time_seconds",
    "required_fte",
    "confidence_lower_fte",
    "confidence_upper_fte",
    "sample_count_used",
    "standard_deviation",
]


def assignments_frame(schedule: ScheduleOutput) -> pd.DataFrame:
    rows = [
        {
            "agent_id": a.agent_id,
            "queue_name": a.queue_name,
            "start": a.start,
            "end": a.end,
            "duration_hours": a.duration_hours,
            "efficiency_score": a.efficiency_score,
            "assignment_type": a.assignment_type.value,
        }
        for a in schedule.assignments
    ]
    return pd.DataFrame(rows, columns=ASSIGNMENT_COLUMNS)


def coverage_frame(
    schedule: ScheduleOutput, demand: Iterable[DemandForecast] = ()
) -> pd.DataFrame:
    """
    One row per (queue, hour): supplied coverage next to the peak required FTE
    among the demand slots in that hour. Hours with demand but no coverage
    appear with coverage 0.
    """
    supplied = [
        {"queue_name": queue, "hour": hour, "coverage": value}
        for queue, per_hour in schedule.coverage_by_queue_and_hour.items()
        for hour, value in per_hour.items()
    ]
    required = [
        {
            "queue_name": d.queue_name,
            "hour": d.slot_start.replace(minute=0, second=0, microsecond=0),
            "required_fte": d.required_fte,
        }
        for d in demand
    ]

    df_sup = pd.DataFrame(supplied, columns=["queue_name", "hour", "coverage"])
    df_sup["hour"] = pd.to_datetime(df_sup["hour"])
    df_sup["coverage"] = df_sup["coverage"].astype(float)
    if not required:
        df_sup["required_fte"] = float("nan")
        return df_sup.sort_values(["queue_name", "hour"]).reset_index(drop=True)

    df_req = pd.DataFrame(required)
    df_req["hour"] = pd.to_datetime(df_req["hour"])
    df_req = df_req.groupby(["queue_name", "hour"], as_index=False)[
        "required_fte"
    ].max()
    out = df_sup.merge(df_req, on=["queue_name", "hour"], how="outer")
    out["coverage"] = out["coverage"].fillna(0.0)
    return (
        out[COVERAGE_COLUMNS].sort_values(["queue_name", "hour"]).reset_index(drop=True)
    )


def forecasts_frame(forecasts: Sequence[ForecastResult]) -> pd.DataFrame:
    rows = [{col: getattr(f, col) for col in FORECAST_COLUMNS} for f in forecasts]
    return pd.DataFrame(rows, columns=FORECAST_COLUMNS)


def agent_hours_frame(schedule: ScheduleOutput) -> pd.DataFrame:
    totals = agent_hours(schedule.assignments)
    df = pd.DataFrame(
        {"agent_id": list(totals), "hours": list(totals.values())},
        columns=["agent_id", "hours"],
    )
    return df.sort_values(["hours", "agent_id"], ascending=[False, True]).reset_index(
        drop=True
    )


def schedule_to_dict(schedule: ScheduleOutput) -> dict[str, Any]:
    """JSON-ready response body for a generated schedule."""
    return {
        "assignments": [
            {
                "agentId": a.agent_id,
                "queueName": a.queue_name,
                "startTime": a.start.isoformat(),
                "endTime": a.end.isoformat(),
                "durationHours": a.duration_hours,
                "efficiencyScore": a.efficiency_score,
                "assignmentType": a.assignment_type.value,
            }
            for a in schedule.assignments
        ],
        "qualityMetrics": schedule.quality_metrics.as_dict(),
        "coverageByQueueAndHour": {
            queue: {hour_key(h): v for h, v in sorted(per_hour.items())}
            for queue, per_hour in schedule.coverage_by_queue_and_hour.items()
        },
        "isFeasible": schedule.is_feasible,
        "warnings": [str(w) for w in schedule.warnings],
    }


class ResultAdapter(Protocol):
    """Minimal interface the Reporter needs to work with any schedule result."""

    def is_feasible(self, res: Any) -> bool: ...
    def quality_metrics(self, res: Any) -> dict[str, float]: ...
    def warnings(self, res: Any) -> list[ScheduleWarning]: ...

    def df_assignments(self, res: Any) -> pd.DataFrame: ...
    def df_coverage(self, res: Any) -> pd.DataFrame: ...
    def df_agent_hours(self, res: Any) -> pd.DataFrame: ...
    def df_forecasts(self, res: Any) -> pd.DataFrame: ...


class PandasResultAdapter:
    """Default adapter for a `PlanResult` or a bare `ScheduleOutput`."""

    @staticmethod
    def _schedule(res: Any) -> Optional[ScheduleOutput]:
        if isinstance(res, ScheduleOutput):
            return res
        return getattr(res, "schedule", None)

    def is_feasible(self, res: Any) -> bool:
        schedule = self._schedule(res)
        return bool(schedule is not None and schedule.is_feasible)

    def quality_metrics(self, res: Any) -> dict[str, float]:
        schedule = self._schedule(res)
        return schedule.quality_metrics.as_dict() if schedule is not None else {}

    def warnings(self, res: Any) -> list[ScheduleWarning]:
        schedule = self._schedule(res)
        return list(schedule.warnings) if schedule is not None else []

    def df_assignments(self, res: Any) -> pd.DataFrame:
        schedule = self._schedule(res)
        if schedule is None:
            return pd.DataFrame(columns=ASSIGNMENT_COLUMNS)
        return assignments_frame(schedule)

    def df_coverage(self, res: Any) -> pd.DataFrame:
        schedule = self._schedule(res)
        if schedule is None:
            return pd.DataFrame(columns=COVERAGE_COLUMNS)
        return coverage_frame(schedule, getattr(res, "demand", ()) or ())

    def df_agent_hours(self, res: Any) -> pd.DataFrame:
        schedule = self._schedule(res)
        if schedule is None:
            return pd.DataFrame(columns=["agent_id", "hours"])
        return agent_hours_frame(schedule)

    def df_forecasts(self, res: Any) -> pd.DataFrame:
        return forecasts_frame(getattr(res, "forecasts", ()) or ())
