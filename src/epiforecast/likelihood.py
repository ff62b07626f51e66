"""
===========================================================
likelihood.py
Author: Veronica Scerra
Last Updated: 2026-10-15
===========================================================

Description:
    Poisson observation model linking the SEIRD cumulative-case
    tracker to observed daily case counts.

API:
    PoissonLikelihood(series, spec, context)
      - expected_incidence(params) -> ndarray
      - negative_log_likelihood(params) -> float
      - __call__(theta) -> float     (optimizer objective)

Notes:
    - The observation grid is shifted by the reporting-delay offset and
      extended by one step past the last observation; incidence for
      observation i is C(t_i+1) - C(t_i).
    - Failed or unstable integrations return PENALTY instead of raising,
      so the optimizer simply rejects the point.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import logging
import warnings

import numpy as np
from scipy.stats import poisson

from .context import SimulationContext, SolverConfig
from .exceptions import NumericalInstabilityError
from .parameters import ParameterSpec, ParameterVector
from .seird import SEIRDModel
from .utils.data_utils import ObservedSeries

logger = logging.getLogger(__name__)

PENALTY = 1e10


def incidence_from_cumulative(cumulative: np.ndarray, solver: SolverConfig) -> np.ndarray:
    """
    First differences of the cumulative tracker.

    Negative differences larger than the solver tolerance mean the
    integration broke down and raise NumericalInstabilityError.
    Rounding-level negatives are set to zero.
    """
    increments = np.diff(cumulative)
    if not np.all(np.isfinite(increments)):
        raise NumericalInstabilityError("non-finite incidence")
    tolerance = solver.rtol * max(float(np.max(np.abs(cumulative))), 1.0) + solver.atol
    if np.any(increments < -tolerance):
        raise NumericalInstabilityError(f"negative incidence (min {increments.min():.3g})")
    if np.any(increments < 0):
        warnings.warn(f"rounding-level negative incidence set to zero (min {increments.min():.3g})",
                      RuntimeWarning)
    return np.maximum(increments, 0.0)


def observation_grid(series: ObservedSeries, offset: float) -> np.ndarray:
    """Observed times shifted by the offset, plus one extra step past the last observation"""
    step = float(series.times[-1] - series.times[-2]) if len(series) > 1 else 1.0
    times = np.append(series.times, series.times[-1] + step)
    return times + offset


class PoissonLikelihood:
    """
    Negative log-likelihood of daily case counts under the SEIRD model.

    Parameters:
    series: ObservedSeries. Observed daily counts
    spec: ParameterSpec. Fixed/free assignment of the model parameters
    context: SimulationContext. Population, solver settings
    """

    def __init__(self, series: ObservedSeries, spec: ParameterSpec, context: SimulationContext):
        self.series = series
        self.spec = spec
        self.context = context
        self.n_evaluations = 0

    def expected_incidence(self, params: ParameterVector) -> np.ndarray:
        """Model-expected cases for each observation interval"""
        model = SEIRDModel(params, self.context.population)
        _, y = model.simulate(observation_grid(self.series, params.offset),
                              self.context.initial_state(), self.context.solver)
        return incidence_from_cumulative(y[5], self.context.solver)

    def negative_log_likelihood(self, params: ParameterVector) -> float:
        incidence = self.expected_incidence(params)
        with np.errstate(divide="ignore", invalid="ignore"):
            ll = poisson.logpmf(self.series.cases, incidence).sum()
        return float(-ll)

    def __call__(self, theta: np.ndarray) -> float:
        self.n_evaluations += 1
        params = self.spec.to_natural(theta)
        try:
            value = self.negative_log_likelihood(params)
        except NumericalInstabilityError as e:
            logger.debug("penalised evaluation at %s: %s", params, e)
            return PENALTY
        if not np.isfinite(value):
            logger.debug("non-finite likelihood at %s", params)
            return PENALTY
        return value
