from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Sequence

from callplan.config import ForecastSettings, ScheduleConstraints
from callplan.forecasting import ForecastResult, HistoricalSample, MovingAverageForecaster
from callplan.scheduling import (
    AgentAvailability,
    AgentSkill,
    DemandForecast,
    ScheduleInput,
    ScheduleOutput,
    generate_schedule,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanResult:
    forecasts: list[ForecastResult]
    demand: list[DemandForecast]
    schedule: ScheduleOutput


def _check_window(queue_names: Sequence[str], start: datetime, end: datetime) -> None:
    if not queue_names:
        raise ValueError("At least one queue name is required.")
    if end <= start:
        raise ValueError("Schedule end date must be after start date.")


def build_demand_curve(
    queue_names: Sequence[str],
    window_start: datetime,
    window_end: datetime,
    samples: Sequence[HistoricalSample],
    settings: ForecastSettings | None = None,
    max_workers: int | None = None,
) -> list[ForecastResult]:
    """Forecast every queue/slot in [window_start, window_end)."""
    _check_window(queue_names, window_start, window_end)
    forecaster = MovingAverageForecaster()
    requests = forecaster.build_window_requests(
        queue_names, window_start, window_end, samples, settings
    )
    return forecaster.forecast_many(requests, max_workers=max_workers)


def plan_schedule(
    queue_names: Sequence[str],
    window_start: datetime,
    window_end: datetime,
    samples: Sequence[HistoricalSample],
    availabilities: Sequence[AgentAvailability],
    skills: Sequence[AgentSkill],
    constraints: ScheduleConstraints | Mapping[str, Any] | None = None,
    settings: ForecastSettings | None = None,
    max_workers: int | None = None,
) -> PlanResult:
    """
    Forecast demand for the window and build a schedule against it.

    Skills for queues outside `queue_names` are ignored. Missing history,
    agents or skills yield an empty or infeasible plan, not an error.
    """
    settings = settings or ForecastSettings()
    forecasts = build_demand_curve(
        queue_names, window_start, window_end, samples, settings, max_workers
    )
    demand = [f.to_demand_forecast() for f in forecasts]

    wanted = set(queue_names)
    relevant_skills = [s for s in skills if s.queue_name in wanted]
    if not samples:
        logger.warning("No historical call data for queues %s", list(queue_names))
    if not relevant_skills:
        logger.warning("No agent skills found for queues %s", list(queue_names))

    if constraints is None or isinstance(constraints, Mapping):
        constraints = ScheduleConstraints.from_mapping(constraints)

    schedule = generate_schedule(
        ScheduleInput(
            availabilities=availabilities,
            skills=relevant_skills,
            demand_forecasts=demand,
            window_start=window_start,
            window_end=window_end,
            constraints=constraints,
            slot_granularity_minutes=settings.slot_granularity_minutes,
        )
    )
    return PlanResult(forecasts=forecasts, demand=demand, schedule=schedule)
