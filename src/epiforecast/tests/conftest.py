import numpy as np
import pytest

from epiforecast.context import SimulationContext
from epiforecast.fitting.estimation import FitResult
from epiforecast.parameters import ParameterSpec, ParameterVector
from epiforecast.utils.data_utils import ObservedSeries

CASES = [0, 1, 0, 2, 1, 3, 2, 4, 3, 5]
SIGMA = 1 / 9.3
GAMMA = 1 / 7.4


@pytest.fixture
def series():
    return ObservedSeries.daily(CASES, name="synthetic")


@pytest.fixture
def context():
    return SimulationContext(seed=2014, n_draws=40)


@pytest.fixture
def scenario_spec():
    """beta1 fixed to zero, no reporting delay; beta0, k, tau1 estimated"""
    return ParameterSpec.from_mappings(
        fixed={"sigma": SIGMA, "gamma": GAMMA, "f": 0.5, "beta1": 0.0, "offset": -np.inf},
        free={"beta0": np.log(2 / 7.4), "k": np.log(0.1), "tau1": 30.0},
    )


@pytest.fixture
def params():
    return ParameterVector(beta0=0.3, beta1=0.4, k=0.05, tau1=20.0, f=0.6,
                           offset=0.0, sigma=SIGMA, gamma=GAMMA)


def make_fit(spec, theta, covariance, converged=True):
    """FitResult built directly, without running the optimizer"""
    theta = np.asarray(theta, dtype=float)
    return FitResult(
        estimate=spec.to_natural(theta),
        theta=theta,
        free_names=spec.free_names,
        covariance=None if covariance is None else np.asarray(covariance, dtype=float),
        hessian=np.eye(len(theta)),
        converged=converged,
        message="constructed",
        neg_log_likelihood=0.0,
        n_iterations=0,
        n_evaluations=0,
        n_observations=len(CASES),
        spec=spec,
    )


@pytest.fixture
def projection_spec():
    """Two free parameters (beta0, k) around a growing-then-controlled epidemic"""
    return ParameterSpec.from_mappings(
        fixed={"sigma": SIGMA, "gamma": GAMMA, "f": 0.5, "beta1": 0.2,
               "offset": -np.inf, "tau1": 15.0},
        free={"beta0": np.log(0.6), "k": np.log(0.1)},
    )
