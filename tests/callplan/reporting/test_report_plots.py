from __future__ import annotations

from datetime import datetime, timedelta

import matplotlib

matplotlib.use("Agg", force=True)
from callplan.forecasting.models import ForecastResult
from callplan.pipeline import PlanResult
from callplan.reporting.adapters import PandasResultAdapter
from callplan.reporting.plots import show_coverage_vs_required, show_forecast_band
from callplan.reporting.text_report import ReportDocument, set_active_report
from callplan.scheduling.models import (
    DemandForecast,
    QualityMetrics,
    ScheduleAssignment,
    ScheduleOutput,
)

T8 = datetime(2025, 12, 1, 8)
HALF = timedelta(minutes=30)


def make_plan() -> PlanResult:
    queues = ("sales", "support")
    forecasts = [
        ForecastResult(q, T8, T8 + HALF, 10.0, 200.0, 1.2, 1.0, 1.4, 4, 1.5)
        for q in queues
    ]
    demand = [DemandForecast(q, T8, T8 + HALF, 10, 1.2) for q in queues]
    schedule = ScheduleOutput(
        assignments=[ScheduleAssignment(1, "sales", T8, T8 + HALF, 1.0)],
        quality_metrics=QualityMetrics(total_assignments=1),
        coverage_by_queue_and_hour={"sales": {T8: 1.0}},
        is_feasible=True,
    )
    return PlanResult(forecasts=forecasts, demand=demand, schedule=schedule)


def test_coverage_chart_per_queue(monkeypatch):
    saved = []
    monkeypatch.setattr(
        "callplan.reporting.plots._save_and_show", lambda fig, name: saved.append(name)
    )

    names = show_coverage_vs_required(make_plan(), PandasResultAdapter())

    assert names == saved == ["coverage_sales.png", "coverage_support.png"]


def test_forecast_band_attaches_to_active_report(monkeypatch, tmp_path):
    saved = []
    monkeypatch.setattr(
        "callplan.reporting.plots._save_and_show", lambda fig, name: saved.append(name)
    )
    doc = ReportDocument(tmp_path / "report.pdf")
    set_active_report(doc)
    try:
        show_forecast_band(make_plan(), PandasResultAdapter())
    finally:
        set_active_report(None)

    assert saved == ["forecast_sales.png", "forecast_support.png"]
    assert len(doc.figures) == 2


def test_plots_skip_when_disabled_or_empty(monkeypatch):
    def fail_save(fig, name):
        raise AssertionError(f"unexpected save of {name}")

    monkeypatch.setattr("callplan.reporting.plots._save_and_show", fail_save)
    adapter = PandasResultAdapter()
    plan = make_plan()

    assert show_coverage_vs_required(plan, adapter, enable_plot=False) == []
    assert show_forecast_band(plan.schedule, adapter) == []
