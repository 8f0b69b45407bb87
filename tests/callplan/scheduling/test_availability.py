from __future__ import annotations

from datetime import datetime

import pytest

from callplan.config import AvailabilityPolicy
from callplan.scheduling.availability import AvailabilityTimeline
from callplan.scheduling.models import AgentAvailability


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 12, 1, hour, minute)


def test_half_open_interval():
    tl = AvailabilityTimeline([AgentAvailability(1, at(8), at(12))])

    assert tl.is_available(1, at(8))
    assert tl.is_available(1, at(11, 30))
    assert not tl.is_available(1, at(12))
    assert not tl.is_available(1, at(7, 59))


def test_unknown_agent_is_unavailable():
    tl = AvailabilityTimeline([AgentAvailability(1, at(8), at(12))])
    assert not tl.is_available(2, at(9))
    assert 2 not in tl


def test_touching_and_overlapping_windows_are_merged():
    tl = AvailabilityTimeline(
        [
            AgentAvailability(1, at(8), at(10)),
            AgentAvailability(1, at(10), at(12)),
            AgentAvailability(1, at(11), at(13)),
            AgentAvailability(1, at(15), at(16)),
        ]
    )
    assert tl.segments(1) == [(at(8), at(13)), (at(15), at(16))]
    assert not tl.is_available(1, at(14))


def test_any_available_ors_conflicting_flags():
    tl = AvailabilityTimeline(
        [
            AgentAvailability(1, at(8), at(17), True),
            AgentAvailability(1, at(12), at(13), False),
        ],
        AvailabilityPolicy.ANY_AVAILABLE,
    )
    assert tl.is_available(1, at(12, 30))


def test_unavailable_only_window_never_available():
    tl = AvailabilityTimeline([AgentAvailability(1, at(8), at(17), False)])
    assert not tl.is_available(1, at(9))
    assert tl.segments(1) == []


@pytest.mark.parametrize(
    "declared,expected",
    [
        pytest.param(
            [
                AgentAvailability(1, at(8), at(17), True),
                AgentAvailability(1, at(12), at(13), False),
            ],
            [(at(8), at(12)), (at(13), at(17))],
            id="later-block-out",
        ),
        pytest.param(
            [
                AgentAvailability(1, at(12), at(13), False),
                AgentAvailability(1, at(8), at(17), True),
            ],
            [(at(8), at(17))],
            id="later-reopen",
        ),
    ],
)
def test_latest_declared_wins(declared, expected):
    tl = AvailabilityTimeline(declared, AvailabilityPolicy.LATEST_DECLARED)
    assert tl.segments(1) == expected


def test_policy_accepts_string_value():
    tl = AvailabilityTimeline([], "latest_declared")
    assert tl.policy is AvailabilityPolicy.LATEST_DECLARED


def test_availability_must_end_after_start():
    with pytest.raises(ValueError):
        AgentAvailability(1, at(12), at(12))
