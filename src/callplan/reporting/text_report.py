from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.backends.backend_pdf import PdfPages

from .adapters import ResultAdapter

# A4 portrait, in inches
PAGE_SIZE = (8.27, 11.69)
LINES_PER_PAGE = 90


def _text_page(
    pdf: PdfPages, x: float, y: float, text: str, **text_kwargs: Any
) -> None:
    fig, ax = plt.subplots(figsize=PAGE_SIZE)
    ax.axis("off")
    ax.text(x, y, text, **text_kwargs)
    pdf.savefig(fig, bbox_inches="tight")
    plt.close(fig)


class ReportDocument:
    """
    Collects the printed report and its charts, then writes them to one PDF.

    Text goes first, split over as many pages as it needs; each chart follows
    on its own page.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.lines: list[str] = []
        self.figures: list[plt.Figure] = []

    def add_text(self, text: str) -> None:
        self.lines.extend(text.splitlines() or [""])

    def add_figure(self, fig: plt.Figure) -> None:
        self.figures.append(fig)

    def pages(self) -> list[str]:
        return [
            "\n".join(self.lines[i : i + LINES_PER_PAGE])
            for i in range(0, len(self.lines), LINES_PER_PAGE)
        ]

    def write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with PdfPages(self.path) as pdf:
            for page in self.pages():
                _text_page(
                    pdf,
                    0.01,
                    0.99,
                    page,
                    ha="left",
                    va="top",
                    fontsize=8,
                    family="monospace",
                )
            if not self.lines and not self.figures:
                _text_page(
                    pdf,
                    0.5,
                    0.5,
                    "Report contains no data.",
                    ha="center",
                    va="center",
                    fontsize=12,
                )
            for fig in self.figures:
                pdf.savefig(fig, bbox_inches="tight")
                plt.close(fig)


_ACTIVE_REPORT: Optional[ReportDocument] = None


def set_active_report(doc: Optional[ReportDocument]) -> None:
    """Route subsequent `_log_print` output and charts into `doc` (or stop, with None)."""
    global _ACTIVE_REPORT
    _ACTIVE_REPORT = doc


def get_active_report() -> Optional[ReportDocument]:
    return _ACTIVE_REPORT


def _log_print(*args: Any, sep: str = " ") -> None:
    line = sep.join(str(a) for a in args)
    print(line)
    if _ACTIVE_REPORT is not None:
        _ACTIVE_REPORT.add_text(line)


def _fmt_float(x: float | None, nd: int = 2) -> str:
    if x is None or pd.isna(x):
        return "nan"
    return f"{float(x):.{nd}f}"


def _print_hours_histogram(df_hours: pd.DataFrame) -> None:
    if df_hours.empty or "hours" not in df_hours.columns:
        _log_print("\nHours distribution: (no agents assigned)")
        return
    hours_series = pd.to_numeric(df_hours["hours"], errors="coerce").dropna()
    counts = hours_series.value_counts().sort_index()
    _log_print("\nHours distribution (agents at each total):")
    for h, n in counts.items():
        bar = "#" * min(int(n), 50)
        _log_print(f"  {h:>5.1f}h : {n:>4} agents  {bar}")


def _print_coverage_gaps(df_cov: pd.DataFrame, top: int) -> None:
    if df_cov.empty or df_cov["required_fte"].isna().all():
        _log_print("\nCoverage gaps: (no demand)")
        return
    gaps = df_cov.assign(deficit=df_cov["required_fte"] - df_cov["coverage"])
    gaps = gaps[gaps["deficit"] > 0]
    if gaps.empty:
        _log_print("\nCoverage gaps: every demanded hour meets its peak requirement.")
        return
    _log_print(f"\nLargest coverage gaps (top {top}):")
    _log_print(
        gaps.sort_values("deficit", ascending=False)
        .head(top)
        .to_string(index=False, float_format=lambda v: f"{v:.2f}")
    )


def render_text_report(
    constraints: Any,
    adapter: ResultAdapter,
    res: Any,
    *,
    num_print_examples: int = 6,
) -> None:
    feasible = adapter.is_feasible(res)
    metrics = adapter.quality_metrics(res)
    warnings = adapter.warnings(res)

    _log_print(f"Schedule status: {'FEASIBLE' if feasible else 'INFEASIBLE'}")

    df_fc = adapter.df_forecasts(res)
    if not df_fc.empty:
        no_data = int((df_fc["sample_count_used"] == 0).sum())
        _log_print(
            f"\nForecast: {len(df_fc)} slot(s) | "
            f"total calls={df_fc['forecasted_calls'].sum():,.0f} | "
            f"peak FTE={_fmt_float(df_fc['required_fte'].max())} | "
            f"slots without history={no_data}"
        )

    if metrics:
        _log_print(
            f"\nAssignments={int(metrics['total_assignments'])} | "
            f"agent hours={_fmt_float(metrics['total_agent_hours'], 1)} | "
            f"avg efficiency={_fmt_float(metrics['average_efficiency'])} | "
            f"fairness={_fmt_float(metrics['fairness_index'], 3)}"
        )
        _log_print(
            f"Coverage={_fmt_float(metrics['coverage_percentage'], 1)}% of demand slots | "
            f"understaffed={int(metrics['understaffing_slots'])} | "
            f"overstaffed={int(metrics['overstaffing_slots'])}"
        )

    max_day = getattr(constraints, "max_hours_per_day", None)
    max_run = getattr(constraints, "max_consecutive_hours", None)
    if max_day is not None and max_run is not None:
        _log_print(
            f"Limits: max {max_day:g}h per day, max {max_run:g}h consecutive"
        )

    df_asg = adapter.df_assignments(res)
    if not df_asg.empty:
        _log_print(f"\nAssignments (first {num_print_examples}):")
        _log_print(df_asg.head(num_print_examples).to_string(index=False))

    df_hours = adapter.df_agent_hours(res)
    if not df_hours.empty:
        hrs = df_hours["hours"].to_numpy(dtype=float)
        std = float(np.std(hrs, ddof=1)) if hrs.size > 1 else float("nan")
        _log_print(
            "\nHours across agents: "
            f"mean={_fmt_float(float(np.mean(hrs)))} | std={_fmt_float(std)} | "
            f"min={_fmt_float(float(hrs.min()))} | max={_fmt_float(float(hrs.max()))}"
        )
        if max_day is not None:
            over = df_hours[df_hours["hours"] > max_day]
            if not over.empty:
                _log_print(
                    f"{len(over)} agent(s) work more than {max_day:g}h over the window "
                    "(multi-day windows only)."
                )

    _print_coverage_gaps(adapter.df_coverage(res), top=num_print_examples)

    if warnings:
        critical = sum(1 for w in warnings if w.is_critical)
        _log_print(f"\nWarnings: {len(warnings)} ({critical} critical)")
        for w in warnings[:num_print_examples]:
            _log_print(f"  - {w}")
        if len(warnings) > num_print_examples:
            _log_print(f"  - ... {len(warnings) - num_print_examples} more")
    else:
        _log_print("\nWarnings: none")

    _print_hours_histogram(df_hours)
