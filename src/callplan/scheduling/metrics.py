from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Iterable, Iterator, Sequence

from callplan.config import (
    COVERED_THRESHOLD,
    CRITICAL_THRESHOLD,
    HOURS_EPSILON,
    OVERSTAFFING_THRESHOLD,
)
from callplan.scheduling.models import (
    AgentId,
    CoverageMap,
    DemandForecast,
    QualityMetrics,
    ScheduleAssignment,
    ScheduleWarning,
    Severity,
)

HOUR_KEY_FORMAT = "%Y-%m-%d %H:00"


def hour_bucket(instant: datetime) -> datetime:
    return instant.replace(minute=0, second=0, microsecond=0)


def hour_key(instant: datetime) -> str:
    return instant.strftime(HOUR_KEY_FORMAT)


def hours_touched(start: datetime, end: datetime) -> Iterator[datetime]:
    """Yield the start of every clock hour overlapping [start, end)."""
    current = hour_bucket(start)
    while current < end:
        yield current
        current += timedelta(hours=1)


def compute_coverage(assignments: Iterable[ScheduleAssignment]) -> CoverageMap:
    """Accumulate each assignment's efficiency score into every hour it touches."""
    coverage: CoverageMap = {}
    for a in assignments:
        per_hour = coverage.setdefault(a.queue_name, {})
        for bucket in hours_touched(a.start, a.end):
            per_hour[bucket] = per_hour.get(bucket, 0.0) + a.efficiency_score
    return coverage


def coverage_for(coverage: CoverageMap, demand: DemandForecast) -> float:
    return coverage.get(demand.queue_name, {}).get(hour_bucket(demand.slot_start), 0.0)


def agent_hours(assignments: Iterable[ScheduleAssignment]) -> dict[AgentId, float]:
    totals: dict[AgentId, float] = defaultdict(float)
    for a in assignments:
        totals[a.agent_id] += a.duration_hours
    return dict(totals)


def agent_daily_hours(
    assignments: Iterable[ScheduleAssignment],
) -> dict[tuple[AgentId, date], float]:
    """Hours per (agent, calendar day); blocks crossing midnight are split."""
    totals: dict[tuple[AgentId, date], float] = defaultdict(float)
    for a in assignments:
        start = a.start
        while start < a.end:
            midnight = datetime.combine(
                start.date() + timedelta(days=1), time(), tzinfo=start.tzinfo
            )
            part_end = min(a.end, midnight)
            hours = (part_end - start).total_seconds() / 3600
            totals[(a.agent_id, start.date())] += hours
            start = part_end
    return dict(totals)


def jain_fairness(values: Sequence[float]) -> float:
    """Jain's index (sum x)^2 / (n * sum x^2); 0.0 for an empty or all-zero input."""
    sum_sq = sum(v * v for v in values)
    if not values or sum_sq == 0:
        return 0.0
    total = sum(values)
    return (total * total) / (len(values) * sum_sq)


def compute_quality_metrics(
    assignments: Sequence[ScheduleAssignment],
    demand: Iterable[DemandForecast],
    coverage: CoverageMap | None = None,
) -> QualityMetrics:
    """
    Summarise a (merged) schedule against the demand it was built for.

    Every demand entry is scored against the coverage of its hour bucket,
    including entries whose required FTE is zero.
    """
    if coverage is None:
        coverage = compute_coverage(assignments)

    total_hours = sum(a.duration_hours for a in assignments)
    average_efficiency = (
        sum(a.efficiency_score for a in assignments) / len(assignments)
        if assignments
        else 0.0
    )

    covered = total = under = over = 0
    for d in demand:
        total += 1
        actual = coverage_for(coverage, d)
        required = d.required_fte
        if actual >= required * COVERED_THRESHOLD:
            covered += 1
        if actual < required:
            under += 1
        elif actual > required * OVERSTAFFING_THRESHOLD:
            over += 1

    return QualityMetrics(
        total_assignments=len(assignments),
        total_agent_hours=total_hours,
        average_efficiency=average_efficiency,
        fairness_index=jain_fairness(list(agent_hours(assignments).values())),
        coverage_percentage=(covered / total) * 100 if total else 0.0,
        understaffing_slots=under,
        overstaffing_slots=over,
    )


def build_warnings(
    assignments: Sequence[ScheduleAssignment],
    demand: Iterable[DemandForecast],
    coverage: CoverageMap,
    max_hours_per_day: float,
) -> list[ScheduleWarning]:
    warnings: list[ScheduleWarning] = []

    for d in demand:
        actual = coverage_for(coverage, d)
        required = d.required_fte
        if actual < required * CRITICAL_THRESHOLD:
            warnings.append(
                ScheduleWarning(
                    Severity.CRITICAL,
                    'Severe understaffing in queue "%s" at %s (%.1f FTE required, %.1f assigned)'
                    % (d.queue_name, hour_key(d.slot_start), required, actual),
                )
            )
        elif actual < required * COVERED_THRESHOLD:
            warnings.append(
                ScheduleWarning(
                    Severity.WARNING,
                    'Understaffing in queue "%s" at %s (%.1f FTE required, %.1f assigned)'
                    % (d.queue_name, hour_key(d.slot_start), required, actual),
                )
            )

    # Should never fire: the daily cap is enforced during candidate filtering
    for (agent_id, day), hours in agent_daily_hours(assignments).items():
        if hours > max_hours_per_day + HOURS_EPSILON:
            warnings.append(
                ScheduleWarning(
                    Severity.WARNING,
                    "Agent %d exceeds max hours on %s (%.1f hours assigned, max %.1f)"
                    % (agent_id, day.isoformat(), hours, max_hours_per_day),
                )
            )

    return warnings


def is_feasible(warnings: Iterable[ScheduleWarning]) -> bool:
    return not any(w.severity is Severity.CRITICAL for w in warnings)
