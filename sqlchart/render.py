"""Server-side rendering of the chart for screenshots.

The page draws with Oracle JET; screenshots are drawn from the same session
values with matplotlib so they do not depend on a browser being attached.
"""

from __future__ import annotations

import io
import os
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from sqlchart.state import ChartSession, ChartType
from sqlchart.table import Series

WAITING_TITLE = "<<WAITING FOR DATA>>"
DEFAULT_DPI = 100


def _values(series: Series, width: int) -> np.ndarray:
    # None -> nan leaves a gap in lines and areas
    values = np.asarray(series.items, dtype=float)
    if values.size < width:
        values = np.concatenate([values, np.full(width - values.size, np.nan)])
    return values[:width]


def _plot_bars(ax, series: Sequence[Series], x: np.ndarray, width: int) -> None:
    count = max(len(series), 1)
    bar_width = 0.8 / count
    for index, item in enumerate(series):
        offset = (index - (count - 1) / 2.0) * bar_width
        ax.bar(x + offset, np.nan_to_num(_values(item, width)), width=bar_width, label=item.name)


def _plot_pie(ax, series: Sequence[Series]) -> None:
    totals: List[float] = []
    labels: List[str] = []
    for item in series:
        total = float(np.nansum(np.asarray(item.items, dtype=float))) if item.items else 0.0
        if total > 0:
            totals.append(total)
            labels.append(item.name)
    if not totals:
        ax.axis("off")
        return
    ax.pie(totals, labels=labels, autopct="%1.0f%%", startangle=90, counterclock=False)
    ax.axis("equal")


def render_chart_png(
    session: ChartSession,
    width: Optional[int] = None,
    height: Optional[int] = None,
    dpi: int = DEFAULT_DPI,
) -> bytes:
    width = width or session.width
    height = height or session.height
    figsize = (width / dpi, height / dpi)
    groups = list(session.groups)
    series = list(session.series)
    chart_type = ChartType(session.chart_type)

    fig, ax = plt.subplots(figsize=figsize, dpi=dpi)
    try:
        if not series or (chart_type != ChartType.PIE and not groups):
            ax.text(0.5, 0.5, WAITING_TITLE, ha="center", va="center", transform=ax.transAxes, color="0.5")
            ax.set_xticks([])
            ax.set_yticks([])
        elif chart_type == ChartType.PIE:
            _plot_pie(ax, series)
        else:
            n_groups = len(groups)
            x = np.arange(n_groups)
            if chart_type == ChartType.BAR:
                _plot_bars(ax, series, x, n_groups)
            elif chart_type == ChartType.COMBO:
                _plot_bars(ax, series[:1], x, n_groups)
                for item in series[1:]:
                    ax.plot(x, _values(item, n_groups), marker="o", label=item.name)
            elif chart_type == ChartType.LINE:
                for item in series:
                    ax.plot(x, _values(item, n_groups), marker="o", label=item.name)
            elif chart_type == ChartType.AREA:
                for item in series:
                    ax.fill_between(x, _values(item, n_groups), alpha=0.5, label=item.name)
            elif chart_type == ChartType.LINE_WITH_AREA:
                for item in series:
                    values = _values(item, n_groups)
                    (line,) = ax.plot(x, values, marker="o", label=item.name)
                    ax.fill_between(x, values, alpha=0.2, color=line.get_color())
            ax.set_xticks(x)
            ax.set_xticklabels(groups)
            ax.grid(True, axis="y", alpha=0.3)

        ax.set_title(session.title or WAITING_TITLE)
        _, labels = ax.get_legend_handles_labels()
        if labels and chart_type != ChartType.PIE:
            ax.legend(loc="best", fontsize="small")

        buf = io.BytesIO()
        fig.savefig(buf, format="png", dpi=dpi)
        return buf.getvalue()
    finally:
        plt.close(fig)


def screenshot_path(directory: Union[str, Path], millis: int, attempt: int = 0) -> Path:
    suffix = f"_{attempt}" if attempt else ""
    return Path(directory) / f"ojchart_{millis}{suffix}.png"


def write_screenshot(png_bytes: bytes, directory: Union[str, Path], millis: int) -> Path:
    """Write ``png_bytes`` next to earlier screenshots without replacing any of them."""
    os.makedirs(directory, exist_ok=True)
    attempt = 0
    while True:
        path = screenshot_path(directory, millis, attempt)
        try:
            with open(path, "xb") as fh:
                fh.write(png_bytes)
            return path
        except FileExistsError:
            attempt += 1


def save_screenshot(session: ChartSession, directory: Union[str, Path], millis: int) -> Tuple[Path, int]:
    png_bytes = render_chart_png(session)
    return write_screenshot(png_bytes, directory, millis), len(png_bytes)
