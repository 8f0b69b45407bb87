from __future__ import annotations

from pathlib import Path
from typing import Any

import matplotlib.dates as mdates
import matplotlib.pyplot as plt
import pandas as pd

from .adapters import ResultAdapter
from .text_report import get_active_report


def _save_and_show(fig: plt.Figure, filename: str) -> None:
    """Persist the plot under outputs/ and show it."""
    out_dir = Path("outputs")
    out_dir.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_dir / filename, dpi=fig.dpi, bbox_inches="tight")
    plt.show()


def _style_axes(ax: plt.Axes) -> None:
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    for spine in ax.spines.values():
        spine.set_zorder(0)
    ax.xaxis.set_major_formatter(mdates.DateFormatter("%d %b %H:%M"))
    ax.tick_params(axis="x", labelrotation=45)


def _attach(fig: plt.Figure) -> None:
    report = get_active_report()
    if report is not None:
        report.add_figure(fig)


def show_coverage_vs_required(
    res: Any, adapter: ResultAdapter, enable_plot: bool = True
) -> list[str]:
    """
    One chart per queue: hourly efficiency-weighted coverage as bars with the
    peak required FTE of each hour as a step line. Returns the saved filenames.
    """
    if not enable_plot:
        return []

    df = adapter.df_coverage(res)
    if df.empty:
        return []

    saved: list[str] = []
    for queue, grp in df.groupby("queue_name", sort=True):
        grp = grp.sort_values("hour")
        hours = pd.to_datetime(grp["hour"])

        fig, ax = plt.subplots(figsize=(7.5, 4), dpi=150)
        ax.set_title(f'Coverage vs required FTE: "{queue}"', pad=20)
        ax.bar(
            hours,
            grp["coverage"],
            width=1 / 24 * 0.9,
            align="edge",
            color="tab:blue",
            alpha=0.6,
            edgecolor="none",
            label="Coverage (efficiency-weighted)",
        )
        if grp["required_fte"].notna().any():
            ax.step(
                hours,
                grp["required_fte"].fillna(0.0),
                where="post",
                color="black",
                linewidth=1,
                label="Required FTE (peak in hour)",
            )
        ax.set_ylim(bottom=0)
        ax.set_xlabel("Hour")
        ax.set_ylabel("FTE")
        _style_axes(ax)
        ax.legend(loc="upper right", fontsize=7)
        fig.tight_layout()

        filename = f"coverage_{queue}.png".replace(" ", "_")
        _save_and_show(fig, filename)
        _attach(fig)
        saved.append(filename)
    return saved


def show_forecast_band(
    res: Any, adapter: ResultAdapter, enable_plot: bool = True
) -> list[str]:
    """Forecast FTE per slot with its confidence band, one chart per queue."""
    if not enable_plot:
        return []

    df = adapter.df_forecasts(res)
    if df.empty:
        return []

    saved: list[str] = []
    for queue, grp in df.groupby("queue_name", sort=True):
        grp = grp.sort_values("slot_start")
        slots = pd.to_datetime(grp["slot_start"])

        fig, ax = plt.subplots(figsize=(7.5, 4), dpi=150)
        ax.set_title(f'Forecast demand: "{queue}"', pad=20)
        ax.fill_between(
            slots,
            grp["confidence_lower_fte"],
            grp["confidence_upper_fte"],
            step="post",
            color="tab:orange",
            alpha=0.25,
            label="Confidence band",
        )
        ax.step(
            slots,
            grp["required_fte"],
            where="post",
            color="tab:orange",
            linewidth=1.5,
            label="Required FTE",
        )
        ax.set_ylim(bottom=0)
        ax.set_xlabel("Slot start")
        ax.set_ylabel("FTE")
        _style_axes(ax)
        ax.legend(loc="upper right", fontsize=7)
        fig.tight_layout()

        filename = f"forecast_{queue}.png".replace(" ", "_")
        _save_and_show(fig, filename)
        _attach(fig)
        saved.append(filename)
    return saved
