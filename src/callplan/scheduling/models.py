from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Mapping, Sequence, TypeAlias

from callplan.config import ScheduleConstraints

AgentId: TypeAlias = int
QueueName: TypeAlias = str

# queue -> hour bucket start -> efficiency-weighted staffing supplied
CoverageMap: TypeAlias = dict[QueueName, dict[datetime, float]]


class AssignmentType(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    WARNING = "WARNING"


@dataclass(frozen=True, slots=True)
class DemandForecast:
    """Required staffing for one queue/time slot (optimizer input)."""

    queue_name: QueueName
    slot_start: datetime
    slot_end: datetime
    forecasted_calls: int
    required_fte: float
    confidence_lower: float = 0.0
    confidence_upper: float = 0.0


@dataclass(frozen=True, slots=True)
class AgentAvailability:
    """A declared window in which an agent is (or is not) available."""

    agent_id: AgentId
    start: datetime
    end: datetime
    is_available: bool = True

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError(
                f"Availability for agent {self.agent_id} must end after it starts."
            )

    def covers(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


@dataclass(frozen=True, slots=True)
class AgentSkill:
    """An agent's proficiency on one queue."""

    agent_id: AgentId
    queue_name: QueueName
    efficiency_coefficient: float
    skill_level: int  # 1=capable, 2=proficient, 3=expert
    is_primary: bool = False

    def __post_init__(self) -> None:
        if self.efficiency_coefficient <= 0:
            raise ValueError("efficiency_coefficient must be > 0.")


@dataclass(frozen=True, slots=True)
class ScheduleAssignment:
    """An agent working one queue over [start, end)."""

    agent_id: AgentId
    queue_name: QueueName
    start: datetime
    end: datetime
    efficiency_score: float
    assignment_type: AssignmentType = AssignmentType.PRIMARY

    @property
    def duration_hours(self) -> float:
        return (self.end - self.start) / timedelta(hours=1)


@dataclass(frozen=True, slots=True)
class ScheduleWarning:
    severity: Severity
    message: str

    @property
    def is_critical(self) -> bool:
        return self.severity is Severity.CRITICAL

    def __str__(self) -> str:
        return f"{self.severity.value}: {self.message}"


@dataclass(frozen=True)
class QualityMetrics:
    """Summary statistics over the final (merged) assignments."""

    total_assignments: int = 0
    total_agent_hours: float = 0.0
    average_efficiency: float = 0.0
    fairness_index: float = 0.0
    coverage_percentage: float = 0.0
    understaffing_slots: int = 0
    overstaffing_slots: int = 0

    def as_dict(self) -> dict[str, float]:
        return {
            "total_assignments": self.total_assignments,
            "total_agent_hours": self.total_agent_hours,
            "average_efficiency": self.average_efficiency,
            "understaffing_slots": self.understaffing_slots,
            "overstaffing_slots": self.overstaffing_slots,
            "coverage_percentage": self.coverage_percentage,
            "fairness_index": self.fairness_index,
        }


@dataclass(frozen=True)
class ScheduleInput:
    availabilities: Sequence[AgentAvailability]
    skills: Sequence[AgentSkill]
    demand_forecasts: Sequence[DemandForecast]
    window_start: datetime
    window_end: datetime
    constraints: ScheduleConstraints = field(default_factory=ScheduleConstraints)
    slot_granularity_minutes: int = 30

    def __post_init__(self) -> None:
        if self.window_end <= self.window_start:
            raise ValueError("Schedule end date must be after start date.")
        if self.slot_granularity_minutes <= 0:
            raise ValueError("slot_granularity_minutes must be > 0.")

        constraints: Any = self.constraints
        if constraints is None or isinstance(constraints, Mapping):
            constraints = ScheduleConstraints.from_mapping(constraints)
        constraints.validate()
        object.__setattr__(self, "constraints", constraints)

        for name in ("availabilities", "skills", "demand_forecasts"):
            object.__setattr__(self, name, tuple(getattr(self, name)))

    @property
    def slot_duration(self) -> timedelta:
        return timedelta(minutes=self.slot_granularity_minutes)

    @property
    def slot_hours(self) -> float:
        return self.slot_granularity_minutes / 60.0


@dataclass(frozen=True)
class ScheduleOutput:
    assignments: list[ScheduleAssignment]
    quality_metrics: QualityMetrics
    coverage_by_queue_and_hour: CoverageMap
    is_feasible: bool
    warnings: list[ScheduleWarning] = field(default_factory=list)

    @property
    def critical_warnings(self) -> list[ScheduleWarning]:
        return [w for w in self.warnings if w.is_critical]

    def quality_metric(self, key: str, default: float | None = None) -> float | None:
        return self.quality_metrics.as_dict().get(key, default)

    def assignments_for(self, agent_id: AgentId) -> list[ScheduleAssignment]:
        return [a for a in self.assignments if a.agent_id == agent_id]
