from __future__ import annotations

from callplan.config import (
    BALANCE_HORIZON_HOURS,
    DEFAULT_SKILL_MULTIPLIER,
    FATIGUE_HORIZON_HOURS,
    PRIMARY_BONUS,
    SKILL_MULTIPLIERS,
)
from callplan.scheduling.models import AgentSkill


def skill_multiplier(skill_level: int) -> float:
    return SKILL_MULTIPLIERS.get(skill_level, DEFAULT_SKILL_MULTIPLIER)


def fatigue_factor(consecutive_hours: float) -> float:
    return 1.0 - consecutive_hours / FATIGUE_HORIZON_HOURS


def balance_factor(daily_hours: float) -> float:
    return 1.0 - daily_hours / BALANCE_HORIZON_HOURS


def composite_score(
    skill: AgentSkill,
    *,
    consecutive_hours: float,
    daily_hours: float,
    efficiency_weight: float,
) -> float:
    """
    Rank a candidate agent for a slot. Higher is better.

    score = efficiency * weight * skill tier * primary bonus * fatigue * balance

    The fatigue and balance factors are not clamped; a negative score simply
    sorts last.
    """
    primary = PRIMARY_BONUS if skill.is_primary else 1.0
    return (
        skill.efficiency_coefficient
        * efficiency_weight
        * skill_multiplier(skill.skill_level)
        * primary
        * fatigue_factor(consecutive_hours)
        * balance_factor(daily_hours)
    )
