from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Mapping

logger = logging.getLogger(__name__)

### FIXED SCORING / EVALUATION CONSTANTS ###

# Coverage above this multiple of required FTE counts as overstaffed
OVERSTAFFING_THRESHOLD: float = 1.2
# Coverage at or above this fraction of required FTE counts as covered
COVERED_THRESHOLD: float = 0.9
# Coverage below this fraction of required FTE is a critical shortfall
CRITICAL_THRESHOLD: float = 0.7

# Composite score shaping
FATIGUE_HORIZON_HOURS: float = 12.0
BALANCE_HORIZON_HOURS: float = 10.0
PRIMARY_BONUS: float = 1.2
SKILL_MULTIPLIERS: dict[int, float] = {3: 1.5, 2: 1.0, 1: 0.7}
DEFAULT_SKILL_MULTIPLIER: float = 0.5

# Forecast confidence band width, in standard deviations
CONFIDENCE_Z: float = 1.5

# Float slack when comparing accumulated hours against caps
HOURS_EPSILON: float = 1e-9

_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}


def _parse_flag(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"{key} must be a boolean, got {value!r}.")


class AvailabilityPolicy(str, Enum):
    """How conflicting overlapping availability intervals are resolved."""

    ANY_AVAILABLE = "any_available"
    LATEST_DECLARED = "latest_declared"


@dataclass
class ForecastSettings:
    """Default parameters for a single-slot demand forecast."""

    slot_granularity_minutes: int = 30
    lookback_weeks: int = 4

    # Service targets (carried through, not used by the workload model)
    target_service_level: float = 0.80
    target_answer_time_seconds: int = 20

    # Workload model
    shrinkage_factor: float = 0.25
    target_occupancy: float = 0.85

    # Fallback band when historical volumes have no spread
    confidence_interval_pct: float = 0.15

    def validate(self) -> None:
        """
        Validate the settings have sensible values before forecasting.
        """
        if self.slot_granularity_minutes <= 0:
            raise ValueError("slot_granularity_minutes must be > 0.")
        if self.lookback_weeks <= 0:
            raise ValueError("lookback_weeks must be > 0.")
        if not (0.0 <= self.shrinkage_factor < 1.0):
            raise ValueError("shrinkage_factor must be within [0, 1).")
        if not (0.0 < self.target_occupancy <= 1.0):
            raise ValueError("target_occupancy must be within (0, 1].")
        if self.confidence_interval_pct < 0.0:
            raise ValueError("confidence_interval_pct must be non-negative.")
        if not (0.0 <= self.target_service_level <= 1.0):
            raise ValueError("target_service_level must be within [0, 1].")
        if self.target_answer_time_seconds < 0:
            raise ValueError("target_answer_time_seconds must be non-negative.")


@dataclass(frozen=True)
class ScheduleConstraints:
    """
    Recognised scheduling options and their defaults.

    max_hours_per_day:
        Hard cap on an agent's assigned hours within one calendar day.
    max_consecutive_hours:
        Hard cap on an unbroken run of back-to-back assigned slots.
    efficiency_weight:
        Multiplier applied to the efficiency coefficient in the composite score.
    reset_consecutive_on_gap:
        Start a new run when a slot does not begin at the agent's last assigned
        end. Set False to keep one running counter for the whole window.
    availability_policy:
        Precedence rule for overlapping availability intervals.
    """

    max_hours_per_day: float = 8.0
    max_consecutive_hours: float = 6.0
    efficiency_weight: float = 3.0
    reset_consecutive_on_gap: bool = True
    availability_policy: AvailabilityPolicy = AvailabilityPolicy.ANY_AVAILABLE

    def __post_init__(self) -> None:
        if not isinstance(self.availability_policy, AvailabilityPolicy):
            object.__setattr__(
                self,
                "availability_policy",
                AvailabilityPolicy(self.availability_policy),
            )

    def validate(self) -> None:
        if self.max_hours_per_day <= 0:
            raise ValueError("max_hours_per_day must be > 0.")
        if self.max_consecutive_hours <= 0:
            raise ValueError("max_consecutive_hours must be > 0.")
        if self.efficiency_weight < 0:
            raise ValueError("efficiency_weight must be non-negative.")

    @classmethod
    def from_mapping(
        cls, mapping: Mapping[str, Any] | None, *, strict: bool = True
    ) -> "ScheduleConstraints":
        """
        Build constraints from a loosely-typed mapping (e.g. a request payload).

        Unknown keys raise ValueError when `strict`, otherwise they are dropped
        and logged.
        """
        if not mapping:
            return cls()

        known = {f.name for f in fields(cls)}
        unknown = sorted(k for k in mapping if k not in known)
        if unknown:
            if strict:
                raise ValueError(f"Unknown schedule constraint(s): {', '.join(unknown)}")
            logger.warning("Ignoring unknown schedule constraint(s): %s", unknown)

        values = {k: v for k, v in mapping.items() if k in known}
        for key in ("max_hours_per_day", "max_consecutive_hours", "efficiency_weight"):
            if key in values:
                values[key] = float(values[key])
        if "reset_consecutive_on_gap" in values:
            values["reset_consecutive_on_gap"] = _parse_flag(
                "reset_consecutive_on_gap", values["reset_consecutive_on_gap"]
            )

        constraints = cls(**values)
        constraints.validate()
        return constraints

    def as_dict(self) -> dict[str, Any]:
        return {
            "max_hours_per_day": self.max_hours_per_day,
            "max_consecutive_hours": self.max_consecutive_hours,
            "efficiency_weight": self.efficiency_weight,
            "reset_consecutive_on_gap": self.reset_consecutive_on_gap,
            "availability_policy": self.availability_policy.value,
        }
