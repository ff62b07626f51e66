"""
===========================================================
seird.py
Author: Veronica Scerra
Last Updated: 2026-10-14
===========================================================
SEIRD model with a decaying transmission rate
=============================================

Compartmental model for an outbreak with a control intervention
whose effect builds up gradually rather than instantly.

Model Structure:
    S -> E -> I -> R
              ↓
              D
    C: cumulative E->I transitions (proxy for cumulative cases)

Transmission rate:
    beta(t) = beta0                                        t <  tau1
    beta(t) = beta0*beta1 + (beta0 - beta0*beta1)*e^(-k(t-tau1))   t >= tau1

Notes:
    - Force of infection is beta(t) * S * I / N with N the initial
      population (S + E + I + R + D, deaths included), held constant.
    - Integration is delegated to scipy.integrate.solve_ivp. Non-finite
      parameters, rates above MAX_RATE and unusable output grids raise
      NumericalInstabilityError before the solver is called.

License: MIT
===========================================================
"""

from __future__ import annotations
import logging
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
from scipy.integrate import solve_ivp

from .context import SolverConfig
from .exceptions import NumericalInstabilityError
from .parameters import ParameterVector

logger = logging.getLogger(__name__)

COMPARTMENTS = ("S", "E", "I", "R", "D", "C")

# per-day ceiling on beta0, sigma and gamma accepted by simulate()
MAX_RATE = 1e3


def transmission_rate(t: float, params: ParameterVector) -> float:
    """beta(t) at a single time point"""
    if t < params.tau1:
        return params.beta0
    floor = params.beta0 * params.beta1
    return floor + (params.beta0 - floor) * np.exp(-params.k * (t - params.tau1))


def transmission_rate_over(times: Sequence[float], params: ParameterVector) -> np.ndarray:
    """transmission_rate mapped over a sequence of times"""
    return np.array([transmission_rate(float(t), params) for t in times], dtype=float)


class SEIRDModel:
    """
    SEIRD model with cumulative-case tracker.

    Parameters:
    params: ParameterVector. Natural-space parameters
    population: float. Initial (constant) population size N
    """

    def __init__(self, params: ParameterVector, population: float):
        self.params = params
        self.N = float(population)

    def derivatives(self, t: float, y: np.ndarray) -> np.ndarray:
        """
        Parameters:
        t: float. Current time
        y: array-like. Current state [S, E, I, R, D, C]

        Returns:
        dydt: ndarray. [dS, dE, dI, dR, dD, dC]
        """
        S, E, I, R, D, C = y
        p = self.params

        infection = transmission_rate(t, p) * S * I / self.N
        onset = p.sigma * E
        removal = p.gamma * I

        dS = -infection
        dE = infection - onset
        dI = onset - removal
        dR = (1.0 - p.f) * removal
        dD = p.f * removal
        dC = onset
        return np.array([dS, dE, dI, dR, dD, dC])

    def simulate(
            self,
            t_eval: Sequence[float],
            y0: np.ndarray,
            solver: Optional[SolverConfig] = None
    ) -> Tuple[np.ndarray, np.ndarray]:
        """ Integrate from t=0 and report the state at t_eval.

        Parameters:
        t_eval: array-like. Increasing, non-negative output times
        y0: array-like. State at t=0 [S, E, I, R, D, C]
        solver: SolverConfig, optional. Method and tolerances

        Returns:
        t: ndarray. Output times
        y: ndarray. Solution with shape (6, len(t)), rows [S, E, I, R, D, C]
        """
        solver = solver or SolverConfig()
        t_eval = np.asarray(t_eval, dtype=float)
        self._check_integrable(t_eval)

        with np.errstate(over="ignore", invalid="ignore"):
            try:
                solution = solve_ivp(
                    fun=self.derivatives,
                    t_span=(0.0, float(t_eval[-1])),
                    y0=np.asarray(y0, dtype=float),
                    method=solver.method,
                    t_eval=t_eval,
                    rtol=solver.rtol,
                    atol=solver.atol,
                )
            except ValueError as e:
                raise NumericalInstabilityError(f"ODE solver rejected the problem: {e}") from e

        if not solution.success:
            raise NumericalInstabilityError(f"ODE solver failed: {solution.message}")
        if solution.y.shape[1] != len(t_eval) or not np.all(np.isfinite(solution.y)):
            raise NumericalInstabilityError(f"ODE solution is incomplete or non-finite for {self.params}")
        return solution.t, solution.y

    def _check_integrable(self, t_eval: np.ndarray) -> None:
        values = np.array(list(self.params.as_dict().values()), dtype=float)
        if not np.all(np.isfinite(values)):
            raise NumericalInstabilityError(f"non-finite parameters {self.params}")
        fastest = max(self.params.beta0, self.params.sigma, self.params.gamma)
        if fastest > MAX_RATE:
            raise NumericalInstabilityError(f"rate {fastest:.3g}/day exceeds {MAX_RATE:g}/day")
        if t_eval.ndim != 1 or len(t_eval) == 0 or not np.all(np.isfinite(t_eval)):
            raise NumericalInstabilityError("output times must be finite")
        if t_eval[0] < 0 or np.any(np.diff(t_eval) <= 0):
            raise NumericalInstabilityError("output times are not non-negative and strictly increasing")

    @staticmethod
    def summary(t: np.ndarray, y: np.ndarray) -> Dict[str, float]:
        """Peak timing and size, deaths and cumulative cases of a trajectory"""
        S, E, I, R, D, C = y
        N0 = S[0] + E[0] + I[0] + R[0] + D[0]
        peak_idx = int(np.argmax(I))
        return {
            "peak_day": float(t[peak_idx]),
            "peak_infectious": float(I[peak_idx]),
            "peak_prevalence": float(I[peak_idx] / N0),
            "deaths": float(D[-1]),
            "cumulative_cases": float(C[-1]),
            "attack_rate": float((N0 - S[-1]) / N0),
        }
