from __future__ import annotations

import bisect
from collections import defaultdict
from datetime import datetime
from typing import Iterable, Sequence

from callplan.config import AvailabilityPolicy
from callplan.scheduling.models import AgentAvailability, AgentId

Segment = tuple[datetime, datetime]


def _union(intervals: Iterable[Segment]) -> list[Segment]:
    """Merge overlapping or touching intervals into a sorted disjoint list."""
    merged: list[Segment] = []
    for start, end in sorted(intervals):
        if merged and start <= merged[-1][1]:
            prev_start, prev_end = merged[-1]
            merged[-1] = (prev_start, max(prev_end, end))
        else:
            merged.append((start, end))
    return merged


def _latest_declared(declared: Sequence[AgentAvailability]) -> list[Segment]:
    """
    Resolve overlapping declarations so that, for every instant, the interval
    declared last among those covering it decides the flag.
    """
    bounds = sorted({a.start for a in declared} | {a.end for a in declared})
    available: list[Segment] = []
    for seg_start, seg_end in zip(bounds, bounds[1:]):
        flag = None
        for a in declared:
            if a.start <= seg_start and seg_end <= a.end:
                flag = a.is_available
        if flag:
            available.append((seg_start, seg_end))
    return _union(available)


class AvailabilityTimeline:
    """
    Per-agent, non-overlapping timeline of available time.

    Built once per scheduling run; `is_available` is a binary search over the
    agent's sorted segments.
    """

    def __init__(
        self,
        availabilities: Iterable[AgentAvailability],
        policy: AvailabilityPolicy = AvailabilityPolicy.ANY_AVAILABLE,
    ) -> None:
        self.policy = AvailabilityPolicy(policy)

        declared: dict[AgentId, list[AgentAvailability]] = defaultdict(list)
        for a in availabilities:
            declared[a.agent_id].append(a)

        self._segments: dict[AgentId, list[Segment]] = {}
        for agent_id, items in declared.items():
            if self.policy is AvailabilityPolicy.LATEST_DECLARED:
                segments = _latest_declared(items)
            else:
                segments = _union((a.start, a.end) for a in items if a.is_available)
            self._segments[agent_id] = segments

        self._starts = {
            agent_id: [s for s, _ in segments]
            for agent_id, segments in self._segments.items()
        }

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._segments

    @property
    def agent_ids(self) -> list[AgentId]:
        return list(self._segments)

    def segments(self, agent_id: AgentId) -> list[Segment]:
        return list(self._segments.get(agent_id, []))

    def is_available(self, agent_id: AgentId, instant: datetime) -> bool:
        """True iff `instant` lies in [start, end) of an available segment."""
        starts = self._starts.get(agent_id)
        if not starts:
            return False
        idx = bisect.bisect_right(starts, instant) - 1
        if idx < 0:
            return False
        return instant < self._segments[agent_id][idx][1]
