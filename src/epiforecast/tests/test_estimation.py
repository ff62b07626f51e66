import numpy as np
import pytest

from epiforecast.context import SimulationContext
from epiforecast.exceptions import ConfigurationError, ConvergenceError
from epiforecast.fitting.estimation import EstimatorConfig, fd_hessian, fit_mle
from epiforecast.likelihood import PoissonLikelihood
from epiforecast.parameters import ParameterSpec
from epiforecast.uncertainty import UncertaintyEngine
from epiforecast.utils.data_utils import ObservedSeries

from .conftest import CASES, GAMMA, SIGMA


@pytest.fixture(scope="module")
def scenario_fit():
    series = ObservedSeries.daily(CASES)
    spec = ParameterSpec.from_mappings(
        fixed={"sigma": SIGMA, "gamma": GAMMA, "f": 0.5, "beta1": 0.0, "offset": -np.inf},
        free={"beta0": np.log(2 / 7.4), "k": np.log(0.1), "tau1": 30.0},
    )
    context = SimulationContext(seed=7, n_draws=20)
    return series, spec, context, fit_mle(series, spec, context)


def test_scenario_converges_to_growing_epidemic(scenario_fit):
    """Rising counts give a converged fit with beta0 > gamma"""
    _, _, _, fit = scenario_fit
    assert fit.converged
    assert fit.estimate.beta0 > 0
    assert fit.estimate.beta0 > fit.estimate.gamma
    assert fit.free_names == ("beta0", "k", "tau1")
    assert fit.estimate.beta1 == 0.0
    assert fit.estimate.offset == 0.0


def test_estimate_is_a_local_minimum(scenario_fit):
    """No single-coordinate perturbation improves the negative log-likelihood"""
    series, spec, context, fit = scenario_fit
    lik = PoissonLikelihood(series, spec, context)
    best = lik(fit.theta)
    assert best == pytest.approx(fit.neg_log_likelihood, abs=1e-9)

    for i in range(len(fit.theta)):
        for delta in (-0.05, 0.05):
            theta = fit.theta.copy()
            theta[i] += delta
            assert lik(theta) >= best - 1e-4


def test_fit_summary(scenario_fit):
    _, _, _, fit = scenario_fit
    summary = fit.summary()
    assert summary["converged"] is True
    assert summary["R0"] == pytest.approx(fit.estimate.beta0 / GAMMA)
    assert summary["AIC"] == pytest.approx(2 * 3 + 2 * fit.neg_log_likelihood)
    assert set(summary["standard_errors"]) == {"beta0", "k", "tau1"}


def test_single_parameter_fit_has_covariance(series, context):
    spec = ParameterSpec.from_mappings(
        fixed={"sigma": SIGMA, "gamma": GAMMA, "f": 0.5, "beta1": 0.0, "offset": -np.inf,
               "k": 0.1, "tau1": 30.0},
        free={"beta0": np.log(2 / 7.4)},
    )
    fit = fit_mle(series, spec, context)
    assert fit.converged
    assert fit.covariance.shape == (1, 1)
    assert fit.covariance[0, 0] > 0
    assert fit.hessian[0, 0] > 0
    fit.require_converged()


def test_iteration_budget_exhausted_is_reported(series, scenario_spec, context):
    fit = fit_mle(series, scenario_spec, context, EstimatorConfig(maxiter=3))
    assert not fit.converged
    with pytest.raises(ConvergenceError):
        fit.require_converged()
    with pytest.raises(ConvergenceError):
        UncertaintyEngine(fit, series, context)


def test_all_fixed_is_invalid(series, context):
    spec = ParameterSpec.from_mappings(
        fixed={"beta0": 0.3, "sigma": SIGMA, "gamma": GAMMA, "f": 0.5, "beta1": 0.0,
               "offset": -np.inf, "k": 0.1, "tau1": 30.0},
    )
    with pytest.raises(ConfigurationError):
        fit_mle(series, spec, context)


def test_fd_hessian_of_quadratic():
    A = np.array([[2.0, 0.5], [0.5, 1.0]])

    def f(x):
        return 0.5 * x @ A @ x

    H = fd_hessian(f, np.array([0.3, -0.2]), np.array([1e-3, 1e-3]))
    np.testing.assert_allclose(H, A, atol=1e-6)
