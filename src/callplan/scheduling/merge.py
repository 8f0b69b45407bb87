from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from callplan.scheduling.models import AgentId, QueueName, ScheduleAssignment


def merge_consecutive_assignments(
    assignments: Iterable[ScheduleAssignment],
) -> list[ScheduleAssignment]:
    """
    Coalesce back-to-back assignments for the same (agent, queue) into blocks.

    A run continues while one assignment's end equals the next one's start.
    The merged block keeps the efficiency score and assignment type of the
    first slot in the run. Output is grouped by (agent, queue) in first-seen
    order, each group sorted by start. Merging a merged list is a no-op.
    """
    groups: dict[tuple[AgentId, QueueName], list[ScheduleAssignment]] = {}
    for a in assignments:
        groups.setdefault((a.agent_id, a.queue_name), []).append(a)

    merged: list[ScheduleAssignment] = []
    for items in groups.values():
        items.sort(key=lambda a: a.start)
        current = items[0]
        for nxt in items[1:]:
            if current.end == nxt.start:
                current = replace(current, end=nxt.end)
            else:
                merged.append(current)
                current = nxt
        merged.append(current)
    return merged
