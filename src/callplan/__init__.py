from callplan.config import AvailabilityPolicy, ForecastSettings, ScheduleConstraints
from callplan.forecasting import (
    ForecastRequest,
    ForecastResult,
    HistoricalSample,
    MovingAverageForecaster,
    forecast,
)
from callplan.pipeline import PlanResult, build_demand_curve, plan_schedule
from callplan.scheduling import (
    AgentAvailability,
    AgentSkill,
    AssignmentType,
    DemandForecast,
    QualityMetrics,
    ScheduleAssignment,
    ScheduleGenerator,
    ScheduleInput,
    ScheduleOutput,
    ScheduleWarning,
    Severity,
    generate_schedule,
)

__all__ = [
    "AgentAvailability",
    "AgentSkill",
    "AssignmentType",
    "AvailabilityPolicy",
    "DemandForecast",
    "ForecastRequest",
    "ForecastResult",
    "ForecastSettings",
    "HistoricalSample",
    "MovingAverageForecaster",
    "PlanResult",
    "QualityMetrics",
    "ScheduleAssignment",
    "ScheduleConstraints",
    "ScheduleGenerator",
    "ScheduleInput",
    "ScheduleOutput",
    "ScheduleWarning",
    "Severity",
    "build_demand_curve",
    "forecast",
    "generate_schedule",
    "plan_schedule",
]
