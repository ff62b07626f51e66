"""
===========================================================
estimation.py
Author: Veronica Scerra
Last Updated: 2026-10-15
===========================================================

Description:
    Maximum-likelihood fit of the SEIRD model to daily case counts.
    Nelder-Mead over the unconstrained free-parameter vector, then a
    finite-difference Hessian at the optimum whose inverse is the
    asymptotic covariance of the estimator.

Example Usage:
    from epiforecast.fitting.estimation import fit_mle
    spec = ParameterSpec.from_mappings(
        fixed={"beta1": 0.0, "offset": -np.inf, "f": 0.5,
               "sigma": 1/9.3, "gamma": 1/7.4},
        free={"beta0": np.log(2/7.4), "k": np.log(0.1), "tau1": 30},
    )
    fit = fit_mle(series, spec, SimulationContext(seed=1))

Notes:
    - Convergence is decided by scipy's own stopping rule (xatol/fatol).
    - A non-converged fit is returned, flagged; it is never replaced by
      a fallback estimate.
    - A singular Hessian leaves covariance=None.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import numpy as np
from scipy.optimize import minimize

from ..context import SimulationContext
from ..exceptions import ConfigurationError, ConvergenceError
from ..likelihood import PoissonLikelihood
from ..parameters import ParameterSpec, ParameterVector
from ..reproduction import basic_reproduction_number
from ..utils.data_utils import ObservedSeries

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EstimatorConfig:
    """
    maxiter: int. Nelder-Mead iteration budget
    xatol, fatol: float. Simplex size / function value tolerances
    hessian_step: float. Relative finite-difference step for the Hessian
    """
    maxiter: int = 5000
    xatol: float = 1e-6
    fatol: float = 1e-8
    hessian_step: float = 1e-3


@dataclass(frozen=True, eq=False)
class FitResult:
    """Point estimate, covariance (unconstrained scale) and convergence status"""
    estimate: ParameterVector
    theta: np.ndarray
    free_names: Tuple[str, ...]
    covariance: Optional[np.ndarray]
    hessian: np.ndarray
    converged: bool
    message: str
    neg_log_likelihood: float
    n_iterations: int
    n_evaluations: int
    n_observations: int
    spec: ParameterSpec

    @property
    def aic(self) -> float:
        return 2 * len(self.free_names) + 2 * self.neg_log_likelihood

    @property
    def bic(self) -> float:
        return len(self.free_names) * np.log(self.n_observations) + 2 * self.neg_log_likelihood

    def standard_errors(self) -> Dict[str, float]:
        """Standard errors on the unconstrained scale (NaN without covariance)"""
        if self.covariance is None:
            return {n: float("nan") for n in self.free_names}
        se = np.sqrt(np.clip(np.diag(self.covariance), 0.0, None))
        return dict(zip(self.free_names, map(float, se)))

    def require_converged(self) -> None:
        if not self.converged:
            raise ConvergenceError(f"fit did not converge: {self.message}")

    def summary(self) -> Dict[str, object]:
        return {
            "converged": self.converged,
            "message": self.message,
            "neg_log_likelihood": self.neg_log_likelihood,
            "AIC": self.aic,
            "BIC": self.bic,
            "n_iterations": self.n_iterations,
            "n_evaluations": self.n_evaluations,
            "R0": basic_reproduction_number(self.estimate),
            "estimate": self.estimate.as_dict(),
            "standard_errors": self.standard_errors(),
        }


def fd_hessian(f: Callable[[np.ndarray], float], x0: np.ndarray, h: np.ndarray) -> np.ndarray:
    """Central finite-difference Hessian of f at x0 with per-coordinate steps h"""
    n = x0.size
    H = np.zeros((n, n), dtype=float)
    f0 = f(x0)
    eye = np.eye(n)
    for i in range(n):
        f_plus = f(x0 + h[i] * eye[i])
        f_minus = f(x0 - h[i] * eye[i])
        H[i, i] = (f_plus - 2.0 * f0 + f_minus) / (h[i] ** 2)
    for i in range(n):
        for j in range(i + 1, n):
            f_pp = f(x0 + h[i] * eye[i] + h[j] * eye[j])
            f_pm = f(x0 + h[i] * eye[i] - h[j] * eye[j])
            f_mp = f(x0 - h[i] * eye[i] + h[j] * eye[j])
            f_mm = f(x0 - h[i] * eye[i] - h[j] * eye[j])
            H[i, j] = H[j, i] = (f_pp - f_pm - f_mp + f_mm) / (4.0 * h[i] * h[j])
    return H


def _invert_hessian(H: np.ndarray) -> Optional[np.ndarray]:
    if not np.all(np.isfinite(H)):
        logger.warning("Hessian has non-finite entries; no covariance available")
        return None
    try:
        cov = np.linalg.inv(H)
    except np.linalg.LinAlgError:
        logger.warning("Hessian is singular; no covariance available")
        return None
    return (cov + cov.T) / 2.0


def fit_mle(
        series: ObservedSeries,
        spec: ParameterSpec,
        context: SimulationContext,
        config: Optional[EstimatorConfig] = None
) -> FitResult:
    """Fit the free parameters of spec to series by maximum likelihood.

    Parameters:
    series: ObservedSeries. Observed daily case counts
    spec: ParameterSpec. Fixed values and start values of free parameters
    context: SimulationContext. Population and solver settings
    config: EstimatorConfig, optional. Iteration budget and tolerances

    Returns:
    fit: FitResult. Natural-space estimate, covariance, convergence status
    """
    config = config or EstimatorConfig()
    if spec.n_free == 0:
        raise ConfigurationError("nothing to estimate: every parameter is fixed")

    objective = PoissonLikelihood(series, spec, context)
    x0 = spec.start_vector()
    logger.info("Fitting %s from start %s", spec.free_names, dict(zip(spec.free_names, x0)))

    result = minimize(
        fun=objective,
        x0=x0,
        method="Nelder-Mead",
        options={"maxiter": config.maxiter, "xatol": config.xatol, "fatol": config.fatol},
    )
    theta = np.asarray(result.x, dtype=float)
    converged = bool(result.success)
    if converged:
        logger.info("Converged after %d iterations: nll=%.4f", result.nit, result.fun)
    else:
        logger.warning("Nelder-Mead did not converge: %s", result.message)

    steps = config.hessian_step * np.maximum(np.abs(theta), 1.0)
    hessian = fd_hessian(objective, theta, steps)
    covariance = _invert_hessian(hessian)

    return FitResult(
        estimate=spec.to_natural(theta),
        theta=theta,
        free_names=spec.free_names,
        covariance=covariance,
        hessian=hessian,
        converged=converged,
        message=str(result.message),
        neg_log_likelihood=float(result.fun),
        n_iterations=int(result.nit),
        n_evaluations=objective.n_evaluations,
        n_observations=len(series),
        spec=spec,
    )
