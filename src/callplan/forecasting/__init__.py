from callplan.forecasting.models import ForecastRequest, ForecastResult, HistoricalSample
from callplan.forecasting.moving_average import MovingAverageForecaster, forecast

__all__ = [
    "ForecastRequest",
    "ForecastResult",
    "HistoricalSample",
    "MovingAverageForecaster",
    "forecast",
]
