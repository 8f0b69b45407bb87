# callplan/scheduling/generator.py
from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterator

from callplan.config import HOURS_EPSILON, ScheduleConstraints
from callplan.scheduling.availability import AvailabilityTimeline
from callplan.scheduling.merge import merge_consecutive_assignments
from callplan.scheduling.metrics import (
    build_warnings,
    compute_coverage,
    compute_quality_metrics,
    is_feasible,
)
from callplan.scheduling.models import (
    AgentId,
    AgentSkill,
    AssignmentType,
    DemandForecast,
    QueueName,
    ScheduleAssignment,
    ScheduleInput,
    ScheduleOutput,
)
from callplan.scheduling.scoring import composite_score

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _AgentLoad:
    """Running hour counters for one agent during a single run."""

    daily: dict[date, float]
    consecutive: float = 0.0
    last_end: datetime | None = None
    last_slot: datetime | None = None

    def consecutive_at(self, slot_start: datetime, reset_on_gap: bool) -> float:
        if reset_on_gap and self.last_end != slot_start:
            return 0.0
        return self.consecutive


@dataclass(frozen=True, slots=True)
class _Candidate:
    agent_id: AgentId
    skill: AgentSkill
    score: float


class ScheduleGenerator:
    """
    Greedy, single-pass schedule builder.

    Slots are visited chronologically; for each queue with demand at a slot the
    best-scoring eligible agents are assigned, up to the number of agents the
    demand needs. Raw slot assignments are then merged into shift blocks and
    evaluated. Infeasibility is reported in the output, never raised.
    """

    def __init__(self, schedule_input: ScheduleInput) -> None:
        self.input = schedule_input
        self.constraints: ScheduleConstraints = schedule_input.constraints
        self.slot_hours = schedule_input.slot_hours

        self.timeline = AvailabilityTimeline(
            schedule_input.availabilities, self.constraints.availability_policy
        )

        # agent -> queue -> skill, in declaration order
        self.skills: dict[AgentId, dict[QueueName, AgentSkill]] = {}
        for s in schedule_input.skills:
            self.skills.setdefault(s.agent_id, {})[s.queue_name] = s

        # queue -> slot start -> demand; a later entry for the same slot wins
        self.demand: dict[QueueName, dict[datetime, DemandForecast]] = {}
        for d in schedule_input.demand_forecasts:
            self.demand.setdefault(d.queue_name, {})[d.slot_start] = d

        self._loads: dict[AgentId, _AgentLoad] = defaultdict(
            lambda: _AgentLoad(daily=defaultdict(float))
        )

    def time_slots(self) -> Iterator[datetime]:
        current = self.input.window_start
        while current < self.input.window_end:
            yield current
            current += self.input.slot_duration

    def agents_needed(self, demand: DemandForecast) -> int:
        return int(math.ceil(demand.required_fte / self.slot_hours))

    def candidates(self, queue: QueueName, slot_start: datetime) -> list[_Candidate]:
        """Eligible agents for `queue` at `slot_start`, best score first."""
        c = self.constraints
        found: list[_Candidate] = []
        for agent_id, queues in self.skills.items():
            skill = queues.get(queue)
            if skill is None:
                continue
            if not self.timeline.is_available(agent_id, slot_start):
                continue

            load = self._loads[agent_id]
            if load.last_slot == slot_start:
                continue  # already working another queue in this slot

            daily = load.daily[slot_start.date()]
            consecutive = load.consecutive_at(slot_start, c.reset_consecutive_on_gap)
            if daily + self.slot_hours > c.max_hours_per_day + HOURS_EPSILON:
                continue
            if consecutive + self.slot_hours > c.max_consecutive_hours + HOURS_EPSILON:
                continue

            score = composite_score(
                skill,
                consecutive_hours=consecutive,
                daily_hours=daily,
                efficiency_weight=c.efficiency_weight,
            )
            found.append(_Candidate(agent_id, skill, score))

        # stable: equal scores keep declaration order
        found.sort(key=lambda cand: cand.score, reverse=True)
        return found

    def _assign(
        self, cand: _Candidate, queue: QueueName, slot_start: datetime
    ) -> ScheduleAssignment:
        slot_end = slot_start + self.input.slot_duration
        load = self._loads[cand.agent_id]
        load.consecutive = (
            load.consecutive_at(slot_start, self.constraints.reset_consecutive_on_gap)
            + self.slot_hours
        )
        load.daily[slot_start.date()] += self.slot_hours
        load.last_end = slot_end
        load.last_slot = slot_start

        return ScheduleAssignment(
            agent_id=cand.agent_id,
            queue_name=queue,
            start=slot_start,
            end=slot_end,
            efficiency_score=cand.skill.efficiency_coefficient,
            assignment_type=(
                AssignmentType.PRIMARY
                if cand.skill.is_primary
                else AssignmentType.SECONDARY
            ),
        )

    def assign_slots(self) -> list[ScheduleAssignment]:
        raw: list[ScheduleAssignment] = []
        for slot_start in self.time_slots():
            for queue, per_slot in self.demand.items():
                demand = per_slot.get(slot_start)
                if demand is None or demand.required_fte <= 0:
                    continue

                needed = self.agents_needed(demand)
                chosen = self.candidates(queue, slot_start)[:needed]
                for cand in chosen:
                    raw.append(self._assign(cand, queue, slot_start))

                if len(chosen) < needed:
                    logger.debug(
                        "Short on %s at %s: %d of %d agents",
                        queue,
                        slot_start.isoformat(),
                        len(chosen),
                        needed,
                    )
        return raw

    def run(self) -> ScheduleOutput:
        raw = self.assign_slots()
        assignments = merge_consecutive_assignments(raw)

        demand = [d for per_slot in self.demand.values() for d in per_slot.values()]
        coverage = compute_coverage(assignments)
        metrics = compute_quality_metrics(assignments, demand, coverage)
        warnings = build_warnings(
            assignments, demand, coverage, self.constraints.max_hours_per_day
        )
        feasible = is_feasible(warnings)

        logger.info(
            "Schedule generated: %d slot assignments merged into %d, "
            "coverage %.1f%%, %d warning(s), feasible=%s",
            len(raw),
            len(assignments),
            metrics.coverage_percentage,
            len(warnings),
            feasible,
        )

        return ScheduleOutput(
            assignments=assignments,
            quality_metrics=metrics,
            coverage_by_queue_and_hour=coverage,
            is_feasible=feasible,
            warnings=warnings,
        )


def generate_schedule(schedule_input: ScheduleInput) -> ScheduleOutput:
    """Build a schedule for `schedule_input`. Deterministic and side-effect free."""
    return ScheduleGenerator(schedule_input).run()
