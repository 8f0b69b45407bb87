from callplan.scheduling.availability import AvailabilityTimeline
from callplan.scheduling.generator import ScheduleGenerator, generate_schedule
from callplan.scheduling.merge import merge_consecutive_assignments
from callplan.scheduling.models import (
    AgentAvailability,
    AgentSkill,
    AssignmentType,
    DemandForecast,
    QualityMetrics,
    ScheduleAssignment,
    ScheduleInput,
    ScheduleOutput,
    ScheduleWarning,
    Severity,
)

__all__ = [
    "AgentAvailability",
    "AgentSkill",
    "AssignmentType",
    "AvailabilityTimeline",
    "DemandForecast",
    "QualityMetrics",
    "ScheduleAssignment",
    "ScheduleGenerator",
    "ScheduleInput",
    "ScheduleOutput",
    "ScheduleWarning",
    "Severity",
    "generate_schedule",
    "merge_consecutive_assignments",
]
