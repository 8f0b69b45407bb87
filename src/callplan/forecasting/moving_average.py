# callplan/forecasting/moving_average.py
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, time, timedelta
from typing import Iterable, Sequence

import numpy as np

from callplan.config import CONFIDENCE_Z, ForecastSettings
from callplan.forecasting.models import ForecastRequest, ForecastResult, HistoricalSample

logger = logging.getLogger(__name__)

ALGORITHM = "moving_average"
NO_DATA_WARNING = "No historical data available for this time slot"


def required_fte(
    calls: float,
    avg_handle_time_seconds: float,
    slot_granularity_minutes: int,
    target_occupancy: float,
    shrinkage_factor: float,
) -> float:
    """
    Staff needed to absorb `calls` in one slot.

    workload / (slot seconds * occupancy), inflated by 1 / (1 - shrinkage).
    """
    if calls <= 0:
        return 0.0
    workload = calls * avg_handle_time_seconds
    per_agent = slot_granularity_minutes * 60 * target_occupancy
    return (workload / per_agent) / (1.0 - shrinkage_factor)


def matching_samples(request: ForecastRequest) -> list[HistoricalSample]:
    """
    Samples for the same queue, weekday, hour and minute as the target slot,
    inside [target - lookback, target), newest first, at most `lookback_weeks`.
    """
    target = request.target_slot_start
    lookback_start = request.lookback_start
    matches = [
        s
        for s in request.historical_samples
        if s.queue_name == request.queue_name
        and s.day_of_week == target.isoweekday()
        and s.hour == target.hour
        and s.minute == target.minute
        and lookback_start <= s.timestamp < target
    ]
    matches.sort(key=lambda s: s.timestamp, reverse=True)
    return matches[: request.lookback_weeks]


class MovingAverageForecaster:
    """Matching-slot moving average over the previous weeks."""

    algorithm = ALGORITHM

    def forecast(self, request: ForecastRequest) -> ForecastResult:
        matches = matching_samples(request)
        if not matches:
            logger.debug(
                "No history for %s at %s", request.queue_name, request.target_slot_start
            )
            return self._empty(request)

        calls = np.array([s.call_count for s in matches], dtype=float)
        aht = np.array([s.average_handle_time_seconds for s in matches], dtype=float)

        mean_calls = float(calls.mean())
        mean_aht = float(aht.mean())
        # population std (ddof=0)
        std = float(calls.std()) if len(calls) >= 2 else 0.0

        if std > 0:
            low_calls = max(0.0, mean_calls - CONFIDENCE_Z * std)
            high_calls = mean_calls + CONFIDENCE_Z * std
        else:
            low_calls = mean_calls * (1 - request.confidence_interval_pct)
            high_calls = mean_calls * (1 + request.confidence_interval_pct)

        def fte(n: float) -> float:
            return required_fte(
                n,
                mean_aht,
                request.slot_granularity_minutes,
                request.target_occupancy,
                request.shrinkage_factor,
            )

        return ForecastResult(
            queue_name=request.queue_name,
            slot_start=request.target_slot_start,
            slot_end=request.target_slot_end,
            forecasted_calls=mean_calls,
            avg_handle_time_seconds=mean_aht,
            required_fte=fte(mean_calls),
            confidence_lower_fte=fte(low_calls),
            confidence_upper_fte=fte(high_calls),
            sample_count_used=len(matches),
            standard_deviation=std,
            metadata={
                "algorithm": self.algorithm,
                "lookback_weeks": request.lookback_weeks,
                "historical_calls": [s.call_count for s in matches],
            },
        )

    def _empty(self, request: ForecastRequest) -> ForecastResult:
        return ForecastResult(
            queue_name=request.queue_name,
            slot_start=request.target_slot_start,
            slot_end=request.target_slot_end,
            forecasted_calls=0.0,
            avg_handle_time_seconds=0.0,
            required_fte=0.0,
            confidence_lower_fte=0.0,
            confidence_upper_fte=0.0,
            sample_count_used=0,
            standard_deviation=0.0,
            metadata={"algorithm": self.algorithm, "warning": NO_DATA_WARNING},
        )

    def forecast_many(
        self, requests: Iterable[ForecastRequest], max_workers: int | None = None
    ) -> list[ForecastResult]:
        """
        Forecast every request, returning results in input order.

        Slots are independent, so with `max_workers > 1` they are spread over a
        thread pool.
        """
        requests = list(requests)
        if max_workers is None or max_workers <= 1 or len(requests) < 2:
            results = [self.forecast(r) for r in requests]
        else:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                results = list(pool.map(self.forecast, requests))

        empty = sum(1 for r in results if not r.has_data)
        logger.info(
            "Forecast %d slot(s), %d without history", len(results), empty
        )
        return results

    @staticmethod
    def build_window_requests(
        queue_names: Sequence[str],
        window_start: datetime,
        window_end: datetime,
        samples: Sequence[HistoricalSample],
        settings: ForecastSettings | None = None,
    ) -> list[ForecastRequest]:
        """One request per queue per slot in [window_start, window_end)."""
        s = settings or ForecastSettings()
        s.validate()
        step = timedelta(minutes=s.slot_granularity_minutes)
        samples = tuple(samples)

        requests: list[ForecastRequest] = []
        current = window_start
        while current < window_end:
            for queue in queue_names:
                requests.append(
                    ForecastRequest.from_settings(queue, current, samples, s)
                )
            current += step
        return requests

    @classmethod
    def build_daily_requests(
        cls,
        queue_name: str,
        day: date,
        samples: Sequence[HistoricalSample],
        start_hour: int = 8,
        end_hour: int = 17,
        settings: ForecastSettings | None = None,
    ) -> list[ForecastRequest]:
        """Requests covering `start_hour` to `end_hour` on `day` for one queue."""
        if end_hour <= start_hour:
            raise ValueError("end_hour must be after start_hour.")
        day_start = datetime.combine(day, time(hour=start_hour))
        day_end = datetime.combine(day, time()) + timedelta(hours=end_hour)
        return cls.build_window_requests(
            [queue_name], day_start, day_end, samples, settings
        )


def forecast(request: ForecastRequest) -> ForecastResult:
    """Module-level shortcut for a single-slot forecast."""
    return MovingAverageForecaster().forecast(request)
