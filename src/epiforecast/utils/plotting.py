"""
===========================================================
plotting.py
Author: Veronica Scerra
Last Updated: 2026-10-16
===========================================================
Figures for fitted projections: observed counts against the
confidence and prediction bands, and the Rt band.
"""
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.axes import Axes

from ..uncertainty import EnsembleBands
from .data_utils import ObservedSeries


def plot_projection(series: ObservedSeries,
                    bands: EnsembleBands,
                    cumulative: bool = False,
                    ax: Optional[Axes] = None,
                    title: Optional[str] = None) -> Axes:
    """
    Observed cases with model (confidence) and observation (prediction) bands.

    Parameters
    ----------
    series : ObservedSeries
        Data the model was fitted to
    bands : EnsembleBands
        Output of TrajectoryEnsemble.bands()
    cumulative : bool
        Plot cumulative cases over the projection window instead of daily incidence
    ax : matplotlib.axes.Axes, optional
        Axes to plot on. If None, creates new figure

    Returns
    -------
    ax : matplotlib.axes.Axes
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 6))

    if cumulative:
        t = bands.projection_times
        ci, pi = bands.cumulative_confidence, bands.cumulative_prediction
        ax.plot(series.times, series.cumulative, "ko", ms=3, label="Observed (cumulative)")
        ax.set_ylabel("Cumulative cases")
    else:
        t = bands.times
        ci, pi = bands.incidence_confidence, bands.incidence_prediction
        ax.plot(series.times, series.cases, "ko", ms=3, label="Observed")
        ax.set_ylabel("Daily cases")

    lo, hi = (100 * q for q in bands.quantiles)
    ax.fill_between(t, pi.lower, pi.upper, color="tab:blue", alpha=0.15,
                    label=f"Prediction interval ({lo:g}-{hi:g}%)")
    ax.fill_between(t, ci.lower, ci.upper, color="tab:blue", alpha=0.35,
                    label=f"Confidence interval ({lo:g}-{hi:g}%)")
    ax.plot(t, ci.median, color="tab:blue", lw=2, label="Median")
    ax.axvline(series.last_time, color="grey", ls=":", lw=1)

    ax.set_xlabel("Days since epidemic start")
    if title:
        ax.set_title(title)
    ax.legend()
    ax.grid(alpha=0.25)
    return ax


def plot_rt(bands: EnsembleBands, ax: Optional[Axes] = None, title: Optional[str] = None) -> Axes:
    """Rt median and band with the Rt = 1 threshold"""
    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 4))
    ax.fill_between(bands.times, bands.rt.lower, bands.rt.upper, color="tab:red", alpha=0.3)
    ax.plot(bands.times, bands.rt.median, color="tab:red", lw=2, label="Rt")
    ax.axhline(1.0, color="black", ls="--", lw=1)
    ax.set_ylim(bottom=0, top=max(1.5, float(np.nanmax(bands.rt.upper)) * 1.05))
    ax.set_xlabel("Days since epidemic start")
    ax.set_ylabel("Reproduction number")
    if title:
        ax.set_title(title)
    ax.grid(alpha=0.25)
    return ax
