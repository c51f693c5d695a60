"""
visualize.py
Plotting utilities for the mine-count dataset.
- plot_year_bar: horizontal bar chart of mines per state for one year.
- plot_rank_changes: bump chart showing state rank changes across years.

These functions are GUI-agnostic and can be called from PyQt handlers.
"""

from typing import List, Optional, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .attributes import attribute_year, extract_attributes
from .loader import MineDataset


def _load_df(obj: Union[MineDataset, pd.DataFrame], attributes: Optional[List[str]] = None) -> pd.DataFrame:
    if isinstance(obj, pd.DataFrame):
        return obj.copy()
    if isinstance(obj, MineDataset):
        attrs = attributes or extract_attributes(obj.features)
        return obj.to_frame(attrs)
    raise ValueError("Provide a MineDataset or a pandas DataFrame.")


def _finish(fig, output_path: Optional[str]):
    if output_path:
        fig.savefig(output_path, dpi=150)
        plt.close(fig)
        return fig
    plt.show(block=False)
    return fig


def plot_year_bar(
    data: Union[MineDataset, pd.DataFrame],
    attribute: str,
    output_path: Optional[str] = None,
    top_n: Optional[int] = None,
):
    """Show or save a bar chart of mines per state for one year attribute."""
    df = _load_df(data)
    if df.empty:
        raise ValueError("No data to plot.")
    if attribute not in df.columns:
        raise ValueError(f"Data does not contain attribute '{attribute}'.")
    series = df[attribute].dropna().sort_values(ascending=False)
    if series.empty:
        raise ValueError(f"No values for '{attribute}'.")
    if top_n:
        series = series.head(top_n)

    fig, ax = plt.subplots(figsize=(7, max(3, 0.25 * len(series))))
    ax.barh([str(i) for i in series.index[::-1]], series.values[::-1], color="#ff7800", edgecolor="#000")
    ax.set_xlabel("Number of mines")
    ax.set_ylabel("State")
    ax.set_title(f"Mines per State, {attribute_year(attribute)}")
    plt.tight_layout()
    return _finish(fig, output_path)


def plot_rank_changes(
    data: Union[MineDataset, pd.DataFrame],
    output_path: Optional[str] = None,
    top_n: Optional[int] = 10,
    show_state_labels: bool = False,
):
    """
    Build a bump chart of rank (1 = most mines) vs year.

    The states shown are the top_n by mean count across all years.
    """
    df = _load_df(data)
    if df.empty:
        raise ValueError("No data to plot.")
    ranks = df.rank(axis=0, ascending=False, method="min")
    if top_n:
        order = df.mean(axis=1).sort_values(ascending=False).head(top_n).index
        ranks = ranks.loc[order]

    years = [attribute_year(col) for col in ranks.columns]
    positions = np.arange(len(years))
    fig, ax = plt.subplots()
    lines = []
    for state, row in ranks.iterrows():
        series = row.to_numpy(dtype=float)
        line, = ax.plot(positions, series, marker='o', label=str(state))
        lines.append(line)
        if show_state_labels:
            mask = ~np.isnan(series)
            if mask.any():
                last = np.flatnonzero(mask)[-1]
                ax.text(positions[last] + 0.1, series[last], str(state), fontsize=8, va='center')

    ax.set_xticks(positions)
    ax.set_xticklabels(years, rotation=45 if len(years) > 6 else 0)
    ax.invert_yaxis()
    ax.set_xlabel("Year")
    ax.set_ylabel("Rank (1 = most mines)")
    ax.set_title("State Rank Changes Over Time")
    ax.legend(lines, [str(s) for s in ranks.index], title="State", bbox_to_anchor=(1.02, 1), loc="upper left")
    plt.tight_layout()
    return _finish(fig, output_path)
