"""
===========================================================
uncertainty.py
Author: Veronica Scerra
Last Updated: 2026-10-16
===========================================================

Description:
    Parametric-bootstrap projections. Parameter vectors are drawn from
    the asymptotic normal distribution of the MLE (point estimate and
    inverse-Hessian covariance on the unconstrained scale), the model
    is re-integrated for each draw, and the ensemble is summarised as
    quantile bands.

API:
    UncertaintyEngine(fit, series, context)
      - draw_parameters() -> ndarray (n_draws, n_free)
      - simulate(times=None, horizon=100) -> TrajectoryEnsemble
    TrajectoryEnsemble.bands() -> EnsembleBands
    EnsembleBands.to_dataframe() -> pd.DataFrame

Notes:
    - Confidence band: quantiles of the model-expected incidence
      (parameter uncertainty only).
    - Prediction band: quantiles of one Poisson realisation per draw
      (parameter + observation uncertainty).
    - Draw i uses its own generator seeded by (seed, i); sequential and
      threaded runs give identical ensembles.
    - Cumulative cases are only projected past the last observation,
      starting from the observed total.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .context import SimulationContext
from .exceptions import ConfigurationError, CovarianceError, NumericalInstabilityError
from .fitting.estimation import FitResult
from .likelihood import incidence_from_cumulative
from .reproduction import reproduction_number_over
from .seird import SEIRDModel
from .utils.data_utils import ObservedSeries

logger = logging.getLogger(__name__)


def covariance_factor(covariance: Optional[np.ndarray], n_free: int) -> np.ndarray:
    """
    Square-root factor L with L @ L.T == covariance.

    Raises CovarianceError for a missing, misshapen, non-finite,
    non-symmetric or indefinite covariance. A zero matrix is valid.
    """
    if covariance is None:
        raise CovarianceError("fit has no covariance (singular Hessian)")
    cov = np.asarray(covariance, dtype=float)
    if cov.shape != (n_free, n_free):
        raise CovarianceError(f"covariance shape {cov.shape} does not match {n_free} free parameters")
    if not np.all(np.isfinite(cov)):
        raise CovarianceError("covariance has non-finite entries")
    scale = max(float(np.max(np.abs(cov))), 1.0)
    if not np.allclose(cov, cov.T, rtol=0.0, atol=1e-10 * scale):
        raise CovarianceError("covariance is not symmetric")
    w, V = np.linalg.eigh(cov)
    if w.size and w.min() < -1e-10 * scale:
        raise CovarianceError(f"covariance is not positive semi-definite (min eigenvalue {w.min():.3g})")
    return V * np.sqrt(np.clip(w, 0.0, None))


@dataclass(frozen=True, eq=False)
class Band:
    lower: np.ndarray
    median: np.ndarray
    upper: np.ndarray


def _band(matrix: np.ndarray, quantiles: Tuple[float, float]) -> Band:
    lower, median, upper = np.quantile(matrix, [quantiles[0], 0.5, quantiles[1]], axis=1)
    return Band(lower, median, upper)


@dataclass(frozen=True, eq=False)
class EnsembleBands:
    """
    Interval bands over the projection grid.

    incidence_confidence / incidence_prediction: over times
    cumulative_confidence / cumulative_prediction: over projection_times
    rt: over times
    """
    times: np.ndarray
    projection_times: np.ndarray
    quantiles: Tuple[float, float]
    incidence_confidence: Band
    incidence_prediction: Band
    cumulative_confidence: Band
    cumulative_prediction: Band
    rt: Band

    def to_dataframe(self) -> pd.DataFrame:
        """One row per grid time; cumulative columns are NaN inside the data window"""
        df = pd.DataFrame({"time": self.times})
        for prefix, band in (("incidence_ci", self.incidence_confidence),
                             ("incidence_pi", self.incidence_prediction),
                             ("rt", self.rt)):
            df[f"{prefix}_lower"] = band.lower
            df[f"{prefix}_median"] = band.median
            df[f"{prefix}_upper"] = band.upper

        post = np.isin(self.times, self.projection_times)
        for prefix, band in (("cumulative_ci", self.cumulative_confidence),
                             ("cumulative_pi", self.cumulative_prediction)):
            for name, values in (("lower", band.lower), ("median", band.median), ("upper", band.upper)):
                column = np.full(len(self.times), np.nan)
                column[post] = values
                df[f"{prefix}_{name}"] = column
        return df


@dataclass(frozen=True, eq=False)
class TrajectoryEnsemble:
    """
    Simulated trajectories, one column per draw.

    parameters: (n_draws, n_free) unconstrained draws
    model, observed, rt: (len(times), n_draws)
    cumulative_model, cumulative_observed: (len(projection_times), n_draws)
    """
    times: np.ndarray
    projection_times: np.ndarray
    parameters: np.ndarray
    model: np.ndarray
    observed: np.ndarray
    cumulative_model: np.ndarray
    cumulative_observed: np.ndarray
    rt: np.ndarray
    quantiles: Tuple[float, float]

    @property
    def n_draws(self) -> int:
        return self.model.shape[1]

    def bands(self) -> EnsembleBands:
        q = self.quantiles
        return EnsembleBands(
            times=self.times,
            projection_times=self.projection_times,
            quantiles=q,
            incidence_confidence=_band(self.model, q),
            incidence_prediction=_band(self.observed, q),
            cumulative_confidence=_band(self.cumulative_model, q),
            cumulative_prediction=_band(self.cumulative_observed, q),
            rt=_band(self.rt, q),
        )


class UncertaintyEngine:
    """
    Ensemble simulator for a converged fit.

    Parameters:
    fit: FitResult. Must be converged and carry a valid covariance
    series: ObservedSeries. The data the fit was made to
    context: SimulationContext. Seed, draw count, solver, workers
    """

    def __init__(self, fit: FitResult, series: ObservedSeries, context: SimulationContext):
        fit.require_converged()
        self.fit = fit
        self.series = series
        self.context = context
        self._factor = covariance_factor(fit.covariance, len(fit.free_names))

    def _draw(self, rng: np.random.Generator) -> np.ndarray:
        z = rng.standard_normal(len(self.fit.free_names))
        return self.fit.theta + self._factor @ z

    def draw_parameters(self) -> np.ndarray:
        """All parameter draws, row i drawn from generator i"""
        n_free = len(self.fit.free_names)
        draws = np.empty((self.context.n_draws, n_free))
        for i in range(self.context.n_draws):
            draws[i] = self._draw(self.context.generator(i))
        return draws

    def _simulate_draw(self, index: int, times: np.ndarray):
        rng = self.context.generator(index)
        theta = self._draw(rng)
        params = self.fit.spec.to_natural(theta)
        shifted = times + params.offset
        try:
            _, y = SEIRDModel(params, self.context.population).simulate(
                shifted, self.context.initial_state(), self.context.solver)
            expected = np.concatenate([[0.0], incidence_from_cumulative(y[5], self.context.solver)])
        except NumericalInstabilityError as e:
            raise NumericalInstabilityError(f"draw {index}: {e}") from e
        observed = rng.poisson(expected)
        return theta, expected, observed, reproduction_number_over(shifted, params)

    def default_times(self, horizon: float = 100.0) -> np.ndarray:
        """Daily grid from 0 to horizon days past the last observation"""
        return np.arange(0.0, self.series.last_time + horizon + 1.0, 1.0)

    def simulate(self, times: Optional[Sequence[float]] = None, horizon: float = 100.0) -> TrajectoryEnsemble:
        """ Run the ensemble over a time grid.

        Parameters:
        times: array-like, optional. Increasing, non-negative grid (days since the
            epidemic start anchor) reaching past the last observation.
            Defaults to default_times(horizon).
        horizon: float. Projection length used for the default grid

        Returns:
        ensemble: TrajectoryEnsemble
        """
        times = self.default_times(horizon) if times is None else np.asarray(times, dtype=float)
        if times.ndim != 1 or len(times) < 2 or np.any(np.diff(times) <= 0) or times[0] < 0:
            raise ConfigurationError("times must be a non-negative, strictly increasing grid of length >= 2")
        post = times > self.series.last_time
        if not post.any():
            raise ConfigurationError(f"time grid must extend past the last observation (t={self.series.last_time})")

        n = self.context.n_draws
        logger.info("Simulating %d draws over %d time points (%d workers)",
                    n, len(times), self.context.n_workers)

        def run(index: int):
            return self._simulate_draw(index, times)

        if self.context.n_workers > 1:
            with ThreadPoolExecutor(max_workers=self.context.n_workers) as executor:
                results = list(executor.map(run, range(n)))
        else:
            results = [run(i) for i in range(n)]

        parameters = np.array([r[0] for r in results]).reshape(n, -1)
        model = np.column_stack([r[1] for r in results])
        observed = np.column_stack([r[2] for r in results]).astype(float)
        rt = np.column_stack([r[3] for r in results])

        total = float(self.series.total_cases)
        cumulative_model = total + np.cumsum(model[post], axis=0)
        cumulative_observed = total + np.cumsum(observed[post], axis=0)

        return TrajectoryEnsemble(
            times=times,
            projection_times=times[post],
            parameters=parameters,
            model=model,
            observed=observed,
            cumulative_model=cumulative_model,
            cumulative_observed=cumulative_observed,
            rt=rt,
            quantiles=self.context.quantiles,
        )
