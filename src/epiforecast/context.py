"""
===========================================================
context.py
Author: Veronica Scerra
Last Updated: 2026-10-12
===========================================================

Description:
    Caller-owned simulation context: random seed, ensemble size,
    population size and ODE solver settings. One context is created
    by the caller and handed to the likelihood, the estimator and
    the uncertainty engine; nothing in the package keeps global state.

API:
    SolverConfig(method="LSODA", rtol=1e-8, atol=1e-8)
    SimulationContext(seed=None, n_draws=10_000, population=1e6, ...)
      - generator(draw_index) -> np.random.Generator
      - initial_state() -> ndarray [S, E, I, R, D, C]

Notes:
    - Draw i always gets the stream seeded by (seed, i), so the
      ensemble can be run in any order or in parallel.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

from .exceptions import ConfigurationError

# ODE solvers accepted by scipy.integrate.solve_ivp
SOLVER_METHODS = ("RK45", "RK23", "DOP853", "Radau", "BDF", "LSODA")


@dataclass(frozen=True)
class SolverConfig:
    """
    Settings for scipy.integrate.solve_ivp.

    rtol must be tight (<= 1e-6) so repeated likelihood evaluations
    are deterministic and smooth enough for the optimizer.
    """
    method: str = "LSODA"
    rtol: float = 1e-8
    atol: float = 1e-8

    def __post_init__(self):
        if self.method not in SOLVER_METHODS:
            raise ConfigurationError(f"Unknown solver method '{self.method}'. Use one of {SOLVER_METHODS}")
        if not (0 < self.rtol <= 1e-6):
            raise ConfigurationError(f"rtol must be in (0, 1e-6], got {self.rtol}")
        if self.atol <= 0:
            raise ConfigurationError(f"atol must be positive, got {self.atol}")


@dataclass(frozen=True)
class SimulationContext:
    """
    Configuration and random-stream owner for one analysis.

    Attributes:
    seed: int, optional. Base seed for the ensemble draws. None draws fresh OS entropy once.
    n_draws: int. Number of parameter draws in the ensemble
    population: float. Initial population size N (one initial infectious individual)
    solver: SolverConfig. ODE integration settings
    n_workers: int. Threads used for the ensemble (1 = sequential loop)
    quantiles: tuple. Lower/upper quantiles for the interval bands
    """
    seed: Optional[int] = None
    n_draws: int = 10_000
    population: float = 1e6
    solver: SolverConfig = field(default_factory=SolverConfig)
    n_workers: int = 1
    quantiles: Tuple[float, float] = (0.025, 0.975)

    def __post_init__(self):
        if self.n_draws < 1:
            raise ConfigurationError(f"n_draws must be >= 1, got {self.n_draws}")
        if self.population <= 1:
            raise ConfigurationError(f"population must exceed 1, got {self.population}")
        if self.n_workers < 1:
            raise ConfigurationError(f"n_workers must be >= 1, got {self.n_workers}")
        if self.n_workers > 1 and self.solver.method == "LSODA":
            # ODEPACK's LSODA keeps its state in shared common blocks
            raise ConfigurationError("LSODA is not thread-safe; choose another solver method when n_workers > 1")
        lo, hi = self.quantiles
        if not (0.0 < lo < hi < 1.0):
            raise ConfigurationError(f"quantiles must satisfy 0 < lower < upper < 1, got {self.quantiles}")
        if self.seed is None:
            # fix the entropy once so every generator() call shares one base stream
            object.__setattr__(self, "seed", int(np.random.SeedSequence().entropy))

    def generator(self, draw_index: int) -> np.random.Generator:
        """Independent generator for one ensemble draw"""
        return np.random.default_rng(np.random.SeedSequence(self.seed, spawn_key=(int(draw_index),)))

    def initial_state(self) -> np.ndarray:
        # S, E, I, R, D, C: one infectious individual in a fully susceptible population
        return np.array([self.population - 1.0, 0.0, 1.0, 0.0, 0.0, 0.0])
