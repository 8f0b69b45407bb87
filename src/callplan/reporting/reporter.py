from __future__ import annotations

from pathlib import Path
from typing import Any

from callplan.config import ScheduleConstraints
from callplan.reporting.adapters import PandasResultAdapter, ResultAdapter
from callplan.reporting.plots import show_coverage_vs_required, show_forecast_band
from callplan.reporting.text_report import (
    ReportDocument,
    render_text_report,
    set_active_report,
)


class Reporter:
    """High-level orchestrator: renders the text report, charts and PDF."""

    def __init__(
        self,
        constraints: ScheduleConstraints | None = None,
        adapter: ResultAdapter | None = None,
        num_print_examples: int = 6,
        enable_plots: bool = True,
        report_path: Path = Path("outputs/report.pdf"),
    ) -> None:
        self.constraints = constraints or ScheduleConstraints()
        self.adapter: ResultAdapter = adapter or PandasResultAdapter()
        self.num_print_examples = num_print_examples
        self.enable_plots = enable_plots
        self.report_path = report_path

    def render_text_report(self, res: object) -> None:
        """Public entry point for callers that want text reporting only."""
        render_text_report(
            self.constraints,
            self.adapter,
            res,
            num_print_examples=self.num_print_examples,
        )

    def post_run(self, res: Any) -> None:
        """Render the report (and optional charts) for a plan or schedule."""
        report_doc = ReportDocument(self.report_path)
        set_active_report(report_doc)
        try:
            self.render_text_report(res)
            if not self.enable_plots:
                return
            show_forecast_band(res, self.adapter, enable_plot=self.enable_plots)
            show_coverage_vs_required(res, self.adapter, enable_plot=self.enable_plots)
        finally:
            set_active_report(None)
            report_doc.write()
