from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Sequence

from callplan.config import ForecastSettings
from callplan.scheduling.models import DemandForecast


@dataclass(frozen=True, slots=True)
class HistoricalSample:
    """Observed call volume for one queue and time slot."""

    queue_name: str
    timestamp: datetime
    call_count: int
    average_handle_time_seconds: float

    def __post_init__(self) -> None:
        if self.call_count < 0:
            raise ValueError("call_count must be non-negative.")
        if self.average_handle_time_seconds < 0:
            raise ValueError("average_handle_time_seconds must be non-negative.")

    @property
    def day_of_week(self) -> int:
        """ISO day of week (1=Monday .. 7=Sunday)."""
        return self.timestamp.isoweekday()

    @property
    def hour(self) -> int:
        return self.timestamp.hour

    @property
    def minute(self) -> int:
        return self.timestamp.minute


@dataclass(frozen=True)
class ForecastRequest:
    """Everything needed to forecast one queue/time slot."""

    queue_name: str
    target_slot_start: datetime
    historical_samples: Sequence[HistoricalSample] = ()
    slot_granularity_minutes: int = 30
    lookback_weeks: int = 4
    target_service_level: float = 0.80
    target_answer_time_seconds: int = 20
    shrinkage_factor: float = 0.25
    target_occupancy: float = 0.85
    confidence_interval_pct: float = 0.15

    def __post_init__(self) -> None:
        object.__setattr__(self, "historical_samples", tuple(self.historical_samples))
        self.settings.validate()

    @classmethod
    def from_settings(
        cls,
        queue_name: str,
        target_slot_start: datetime,
        historical_samples: Sequence[HistoricalSample],
        settings: ForecastSettings | None = None,
    ) -> "ForecastRequest":
        s = settings or ForecastSettings()
        return cls(
            queue_name=queue_name,
            target_slot_start=target_slot_start,
            historical_samples=historical_samples,
            slot_granularity_minutes=s.slot_granularity_minutes,
            lookback_weeks=s.lookback_weeks,
            target_service_level=s.target_service_level,
            target_answer_time_seconds=s.target_answer_time_seconds,
            shrinkage_factor=s.shrinkage_factor,
            target_occupancy=s.target_occupancy,
            confidence_interval_pct=s.confidence_interval_pct,
        )

    @property
    def settings(self) -> ForecastSettings:
        return ForecastSettings(
            slot_granularity_minutes=self.slot_granularity_minutes,
            lookback_weeks=self.lookback_weeks,
            target_service_level=self.target_service_level,
            target_answer_time_seconds=self.target_answer_time_seconds,
            shrinkage_factor=self.shrinkage_factor,
            target_occupancy=self.target_occupancy,
            confidence_interval_pct=self.confidence_interval_pct,
        )

    @property
    def target_slot_end(self) -> datetime:
        return self.target_slot_start + timedelta(minutes=self.slot_granularity_minutes)

    @property
    def lookback_start(self) -> datetime:
        return self.target_slot_start - timedelta(weeks=self.lookback_weeks)


@dataclass(frozen=True)
class ForecastResult:
    """
    Forecast for one queue/time slot.

    A result with sample_count_used == 0 is the explicit "no data" state, not an
    error; its metadata carries a `warning` entry.
    """

    queue_name: str
    slot_start: datetime
    slot_end: datetime
    forecasted_calls: float
    avg_handle_time_seconds: float
    required_fte: float
    confidence_lower_fte: float
    confidence_upper_fte: float
    sample_count_used: int
    standard_deviation: float
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def forecasted_calls_rounded(self) -> int:
        # half-up, not banker's rounding
        return int(math.floor(self.forecasted_calls + 0.5))

    @property
    def required_agents(self) -> int:
        """Whole agents needed (ceiling of the FTE requirement)."""
        return int(math.ceil(self.required_fte))

    @property
    def confidence_interval_width(self) -> float:
        return self.confidence_upper_fte - self.confidence_lower_fte

    @property
    def has_data(self) -> bool:
        return self.sample_count_used > 0

    def to_demand_forecast(self) -> DemandForecast:
        """Convert to the optimizer's demand record."""
        return DemandForecast(
            queue_name=self.queue_name,
            slot_start=self.slot_start,
            slot_end=self.slot_end,
            forecasted_calls=self.forecasted_calls_rounded,
            required_fte=self.required_fte,
            confidence_lower=self.confidence_lower_fte,
            confidence_upper=self.confidence_upper_fte,
        )
