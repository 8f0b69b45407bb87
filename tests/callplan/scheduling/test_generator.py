from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta

import pytest

from callplan.config import ScheduleConstraints
from callplan.scheduling.generator import ScheduleGenerator, generate_schedule
from callplan.scheduling.merge import merge_consecutive_assignments
from callplan.scheduling.models import (
    AgentAvailability,
    AgentSkill,
    AssignmentType,
    DemandForecast,
    ScheduleInput,
    Severity,
)

START = datetime(2025, 12, 1, 8, 0)
END = datetime(2025, 12, 1, 18, 0)


def make_demand(
    queue: str,
    fte: float,
    start: datetime = START,
    end: datetime = END,
    minutes: int = 30,
) -> list[DemandForecast]:
    step = timedelta(minutes=minutes)
    out = []
    slot = start
    while slot < end:
        out.append(DemandForecast(queue, slot, slot + step, int(fte * 10), fte))
        slot += step
    return out


def make_input(
    availabilities,
    skills,
    demand,
    start: datetime = START,
    end: datetime = END,
    constraints=None,
    minutes: int = 30,
) -> ScheduleInput:
    return ScheduleInput(
        availabilities=availabilities,
        skills=skills,
        demand_forecasts=demand,
        window_start=start,
        window_end=end,
        constraints=constraints,
        slot_granularity_minutes=minutes,
    )


def standard_input(n_agents: int, queues: list[str], fte: float = 2.0, **kwargs):
    """Agents 1..n on every queue; every third agent is an expert."""
    avail = [
        AgentAvailability(i, START, START.replace(hour=17))
        for i in range(1, n_agents + 1)
    ]
    skills = [
        AgentSkill(
            agent_id=i,
            queue_name=q,
            efficiency_coefficient=1.3 if i % 3 == 0 else 1.0,
            skill_level=3 if i % 3 == 0 else 2,
            is_primary=q == queues[0],
        )
        for i in range(1, n_agents + 1)
        for q in queues
    ]
    demand = [d for q in queues for d in make_demand(q, fte)]
    return make_input(avail, skills, demand, **kwargs)


def daily_totals(assignments) -> dict[tuple[int, object], float]:
    totals: dict[tuple[int, object], float] = defaultdict(float)
    for a in assignments:
        totals[(a.agent_id, a.start.date())] += a.duration_hours
    return totals


def test_basic_schedule_produces_metrics_and_coverage():
    out = generate_schedule(standard_input(5, ["queue_1"], fte=2.0))

    assert out.assignments
    m = out.quality_metrics
    assert m.total_assignments == len(out.assignments)
    assert m.total_agent_hours > 0
    assert m.average_efficiency > 0
    assert "queue_1" in out.coverage_by_queue_and_hour
    for hour, value in out.coverage_by_queue_and_hour["queue_1"].items():
        assert hour.minute == 0
        assert value >= 0


def test_respects_availability():
    avail = [
        AgentAvailability(1, START, START.replace(hour=12)),
        AgentAvailability(2, START, START.replace(hour=17)),
    ]
    skills = [AgentSkill(1, "sales", 1.0, 2, True), AgentSkill(2, "sales", 1.0, 2, True)]

    out = generate_schedule(make_input(avail, skills, make_demand("sales", 2.0)))

    agent_1 = [a for a in out.assignments if a.agent_id == 1]
    assert agent_1
    assert all(a.start < START.replace(hour=12) for a in agent_1)
    assert all(a.end <= START.replace(hour=12) for a in agent_1)
    assert all(a.start >= START for a in out.assignments)


def test_respects_skills():
    avail = [AgentAvailability(1, START, END), AgentAvailability(2, START, END)]
    skills = [AgentSkill(1, "sales", 1.0, 2, True), AgentSkill(2, "support", 1.0, 2, True)]
    demand = make_demand("sales", 1.0) + make_demand("support", 1.0)

    out = generate_schedule(make_input(avail, skills, demand))

    assert {a.queue_name for a in out.assignments if a.agent_id == 1} == {"sales"}
    assert {a.queue_name for a in out.assignments if a.agent_id == 2} == {"support"}


def test_hard_daily_hour_cap():
    avail = [AgentAvailability(1, START, END)]
    skills = [AgentSkill(1, "sales", 1.0, 2, True)]
    constraints = ScheduleConstraints(max_hours_per_day=6.0)

    out = generate_schedule(
        make_input(avail, skills, make_demand("sales", 10.0), constraints=constraints)
    )

    assert out.assignments
    assert all(hours <= 6.0 for hours in daily_totals(out.assignments).values())
    assert not any("exceeds max hours" in w.message for w in out.warnings)


def test_consecutive_cap_never_exceeded_in_a_single_block():
    out = generate_schedule(standard_input(3, ["sales"], fte=5.0))
    assert all(a.duration_hours <= 6.0 for a in out.assignments)


def test_custom_constraints_from_mapping():
    inp = standard_input(
        4, ["sales"], fte=3.0, constraints={"max_hours_per_day": 4, "max_consecutive_hours": 4}
    )

    out = generate_schedule(inp)

    assert inp.constraints.max_hours_per_day == 4.0
    assert out.assignments
    assert all(hours <= 4.0 for hours in daily_totals(out.assignments).values())


def test_unknown_constraint_key_is_rejected():
    with pytest.raises(ValueError):
        standard_input(1, ["sales"], constraints={"max_hours": 4})


def test_captures_efficiency_coefficient_and_type():
    avail = [AgentAvailability(1, START, END), AgentAvailability(2, START, END)]
    skills = [
        AgentSkill(1, "sales", 1.5, 3, is_primary=True),
        AgentSkill(2, "sales", 1.0, 2, is_primary=False),
    ]

    out = generate_schedule(make_input(avail, skills, make_demand("sales", 1.0)))

    by_agent = {a.agent_id: a for a in out.assignments}
    assert by_agent[1].efficiency_score == 1.5
    assert by_agent[1].assignment_type is AssignmentType.PRIMARY
    assert by_agent[2].assignment_type is AssignmentType.SECONDARY


def test_best_scoring_agent_wins_single_opening():
    # 0.5 FTE in a 30 minute slot -> exactly one agent needed
    demand = make_demand("sales", 0.5, end=START + timedelta(minutes=30))
    avail = [AgentAvailability(i, START, END) for i in (1, 2, 3)]
    skills = [
        AgentSkill(1, "sales", 1.0, 1, True),
        AgentSkill(2, "sales", 1.0, 3, True),
        AgentSkill(3, "sales", 1.0, 2, True),
    ]

    out = generate_schedule(make_input(avail, skills, demand))

    assert [a.agent_id for a in out.assignments] == [2]


def test_equal_scores_keep_declaration_order():
    demand = make_demand("sales", 0.5, end=START + timedelta(minutes=30))
    avail = [AgentAvailability(i, START, END) for i in (7, 3)]
    skills = [AgentSkill(7, "sales", 1.0, 2, True), AgentSkill(3, "sales", 1.0, 2, True)]

    out = generate_schedule(make_input(avail, skills, demand))

    assert [a.agent_id for a in out.assignments] == [7]


def test_agents_needed_uses_slot_hours():
    gen = ScheduleGenerator(standard_input(1, ["sales"]))
    slot = START
    assert gen.agents_needed(DemandForecast("sales", slot, slot, 0, 1.0)) == 2
    assert gen.agents_needed(DemandForecast("sales", slot, slot, 0, 1.1)) == 3
    assert gen.agents_needed(DemandForecast("sales", slot, slot, 0, 0.2)) == 1


def test_no_double_booking_across_queues():
    avail = [AgentAvailability(1, START, END)]
    skills = [AgentSkill(1, "sales", 1.0, 2, True), AgentSkill(1, "support", 1.0, 2, False)]
    demand = make_demand("sales", 1.0) + make_demand("support", 1.0)

    out = generate_schedule(make_input(avail, skills, demand))

    spans = sorted((a.start, a.end) for a in out.assignments)
    for (_, prev_end), (next_start, _) in zip(spans, spans[1:]):
        assert next_start >= prev_end
    assert {a.queue_name for a in out.assignments} == {"sales"}


def test_multiple_queues_are_staffed():
    out = generate_schedule(standard_input(10, ["sales", "support"], fte=1.0))
    assert {a.queue_name for a in out.assignments} == {"sales", "support"}


def test_merges_consecutive_slots_into_shifts():
    out = generate_schedule(standard_input(1, ["sales"], fte=0.5))

    assert len(out.assignments) <= 8
    assert any(a.duration_hours > 0.5 for a in out.assignments)
    assert merge_consecutive_assignments(out.assignments) == out.assignments


@pytest.mark.parametrize("minutes", [15, 60])
def test_different_granularities(minutes):
    avail = [AgentAvailability(1, START, END), AgentAvailability(2, START, END)]
    skills = [AgentSkill(1, "sales", 1.0, 2, True), AgentSkill(2, "sales", 1.0, 2, True)]
    demand = make_demand("sales", 1.0, minutes=minutes)

    out = generate_schedule(make_input(avail, skills, demand, minutes=minutes))

    assert out.assignments
    assert all(a.start.minute % minutes == 0 for a in out.assignments)


def test_no_agents_is_infeasible_not_an_error():
    out = generate_schedule(make_input([], [], make_demand("sales", 2.0)))

    assert out.assignments == []
    assert out.is_feasible is False
    assert out.warnings
    assert all(w.severity is Severity.CRITICAL for w in out.warnings)
    assert out.quality_metrics.fairness_index == 0.0
    assert out.quality_metrics.coverage_percentage == 0.0


def test_no_demand_is_feasible_and_empty():
    out = generate_schedule(
        make_input(
            [AgentAvailability(1, START, END)],
            [AgentSkill(1, "sales", 1.0, 2, True)],
            [],
        )
    )

    assert out.assignments == []
    assert out.is_feasible is True
    assert out.warnings == []
    assert out.quality_metrics.total_assignments == 0


def test_zero_fte_demand_is_not_scheduled_but_counts_as_covered():
    out = generate_schedule(standard_input(3, ["sales"], fte=0.0))

    assert out.assignments == []
    assert out.is_feasible is True
    assert out.quality_metrics.coverage_percentage == 100.0


def test_invalid_window_rejected():
    with pytest.raises(ValueError):
        make_input([], [], [], start=END, end=START)


# -----------------------------
# End-to-end single agent
# -----------------------------
def single_agent_input(reset: bool) -> ScheduleInput:
    return make_input(
        [AgentAvailability(1, START, END)],
        [AgentSkill(1, "sales", 1.0, 2, is_primary=True)],
        make_demand("sales", 1.0),
        constraints=ScheduleConstraints(reset_consecutive_on_gap=reset),
    )


def test_single_agent_legacy_counter_gives_one_block():
    out = generate_schedule(single_agent_input(reset=False))

    assert len(out.assignments) == 1
    block = out.assignments[0]
    assert (block.agent_id, block.queue_name) == (1, "sales")
    assert block.start == START
    assert block.end == START.replace(hour=14)
    assert out.is_feasible is False
    assert out.critical_warnings
    # hours 14..17 uncovered, two slots each
    assert len(out.critical_warnings) == 8
    assert out.quality_metrics.coverage_percentage == pytest.approx(60.0)


def test_single_agent_counter_resets_after_gap():
    out = generate_schedule(single_agent_input(reset=True))

    spans = [(a.start, a.end) for a in out.assignments]
    assert spans == [
        (START, START.replace(hour=14)),
        (START.replace(hour=14, minute=30), START.replace(hour=16, minute=30)),
    ]
    assert out.quality_metrics.total_agent_hours == pytest.approx(8.0)
    assert out.quality_metrics.fairness_index == pytest.approx(1.0)
    assert out.is_feasible is False
    assert len(out.critical_warnings) == 2
    assert all("17:00" in str(w) for w in out.critical_warnings)
    assert str(out.critical_warnings[0]).startswith(
        'CRITICAL: Severe understaffing in queue "sales" at 2025-12-01 17:00'
    )


@pytest.mark.parametrize("reset,day_two_hours", [(True, 4.0), (False, 2.0)])
def test_overnight_gap_and_consecutive_counter(reset, day_two_hours):
    day2 = START + timedelta(days=1)
    avail = [
        AgentAvailability(1, START, START.replace(hour=17)),
        AgentAvailability(1, day2, day2.replace(hour=17)),
    ]
    demand = make_demand("sales", 0.5, START, START.replace(hour=12)) + make_demand(
        "sales", 0.5, day2, day2.replace(hour=12)
    )

    out = generate_schedule(
        make_input(
            avail,
            [AgentSkill(1, "sales", 1.0, 2, True)],
            demand,
            end=day2.replace(hour=18),
            constraints=ScheduleConstraints(reset_consecutive_on_gap=reset),
        )
    )

    totals = daily_totals(out.assignments)
    assert totals[(1, START.date())] == pytest.approx(4.0)
    assert totals[(1, day2.date())] == pytest.approx(day_two_hours)


def test_overlapping_availability_policy_changes_schedule():
    avail = [
        AgentAvailability(1, START, END, True),
        AgentAvailability(1, START.replace(hour=12), START.replace(hour=13), False),
    ]
    skills = [AgentSkill(1, "sales", 1.0, 2, True)]
    demand = make_demand("sales", 0.5, START.replace(hour=11), START.replace(hour=14))

    any_out = generate_schedule(make_input(avail, skills, demand))
    latest_out = generate_schedule(
        make_input(
            avail,
            skills,
            demand,
            constraints={"availability_policy": "latest_declared"},
        )
    )

    assert [(a.start.hour, a.end.hour) for a in any_out.assignments] == [(11, 14)]
    assert [(a.start.hour, a.end.hour) for a in latest_out.assignments] == [
        (11, 12),
        (13, 14),
    ]


def test_generated_schedules_never_flag_daily_overrun():
    out = generate_schedule(standard_input(6, ["sales", "support"], fte=4.0))
    assert not any("exceeds max hours" in w.message for w in out.warnings)
    for a in out.assignments:
        assert a.start >= START and a.end <= START.replace(hour=17)


def test_block_across_midnight_counts_hours_per_calendar_day():
    night_start = datetime(2025, 12, 1, 22, 0)
    night_end = datetime(2025, 12, 2, 4, 0)
    inp = make_input(
        [AgentAvailability(1, night_start, night_end)],
        [AgentSkill(1, "sales", 1.0, 2, True)],
        make_demand("sales", 0.5, night_start, night_end),
        start=night_start,
        end=night_end,
        constraints={"max_hours_per_day": 4, "max_consecutive_hours": 6},
    )

    out = generate_schedule(inp)

    # 2h on the first day, 4h on the second: both within the cap
    assert [(a.start, a.end) for a in out.assignments] == [(night_start, night_end)]
    assert not any("exceeds max hours" in w.message for w in out.warnings)
    assert out.is_feasible
