"""
===========================================================
reproduction.py
Author: Veronica Scerra
Last Updated: 2026-10-15
===========================================================

Description:
    Reproduction number of the SEIRD model with decaying transmission.

    Rt(t) = beta(t) / gamma
    R0    = beta0 / gamma

Notes:
    - Ensemble bands for Rt are produced by UncertaintyEngine from the
      same parameter draws as the incidence bands.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
from typing import Optional, Sequence

import numpy as np

from .parameters import ParameterVector
from .seird import transmission_rate, transmission_rate_over


def reproduction_number(t: float, params: ParameterVector) -> float:
    return transmission_rate(t, params) / params.gamma


def reproduction_number_over(times: Sequence[float], params: ParameterVector) -> np.ndarray:
    return transmission_rate_over(times, params) / params.gamma


def basic_reproduction_number(params: ParameterVector) -> float:
    return params.beta0 / params.gamma


def threshold_crossing_time(params: ParameterVector, threshold: float = 1.0) -> Optional[float]:
    """
    Time at which Rt drops to threshold after the intervention.

    Returns None when Rt never crosses it from above: R0 is already at or
    below the threshold, the post-intervention floor beta0*beta1/gamma stays
    at or above it, or transmission does not decay (k == 0).
    """
    target = threshold * params.gamma
    floor = params.beta0 * params.beta1
    if params.beta0 <= target or floor >= target or params.k <= 0:
        return None
    return float(params.tau1 + np.log((params.beta0 - floor) / (target - floor)) / params.k)
