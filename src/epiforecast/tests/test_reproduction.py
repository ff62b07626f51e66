import numpy as np
import pytest

from epiforecast.reproduction import (
    basic_reproduction_number,
    reproduction_number,
    reproduction_number_over,
    threshold_crossing_time,
)


def test_rt_at_origin_is_r0_when_suppression_comes_later(params):
    p = params.replace(beta1=0.0, tau1=30.0)
    assert reproduction_number(0.0, p) == p.beta0 / p.gamma
    assert basic_reproduction_number(p) == p.beta0 / p.gamma


def test_rt_follows_transmission_rate(params):
    times = np.array([0.0, params.tau1, params.tau1 + 30, params.tau1 + 500])
    rt = reproduction_number_over(times, params)
    assert rt[0] == pytest.approx(params.beta0 / params.gamma)
    assert rt[1] == pytest.approx(params.beta0 / params.gamma)
    assert rt[-1] == pytest.approx(params.beta0 * params.beta1 / params.gamma, rel=1e-6)
    assert np.all(np.diff(rt) <= 0)


def test_threshold_crossing_time(params):
    t1 = threshold_crossing_time(params)
    assert t1 > params.tau1
    assert reproduction_number(t1, params) == pytest.approx(1.0)


def test_threshold_never_crossed(params):
    # floor beta0*beta1/gamma stays above one
    assert threshold_crossing_time(params.replace(beta1=0.9)) is None
    # already below one before the intervention
    assert threshold_crossing_time(params.replace(beta0=0.1)) is None
    assert threshold_crossing_time(params.replace(k=0.0)) is None
