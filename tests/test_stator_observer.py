import math

import pytest

from imobserver.estimators.params import IMParams, default_motor_params
from imobserver.estimators.stator_observer import StatorObserver


def test_constant_current_drops_the_inductive_term():
    p = default_motor_params()
    obs = StatorObserver()
    obs.step(3.0, -2.0, 50.0, 20.0, p)
    es_al, es_be = obs.step(3.0, -2.0, 40.0, 10.0, p)

    assert es_al == (40.0 - p.Rs*3.0) * p.inv_Kr
    assert es_be == (10.0 - p.Rs*(-2.0)) * p.inv_Kr


def test_backward_difference_uses_previous_sample():
    p = default_motor_params()
    obs = StatorObserver()
    obs.step(1.0, 0.5, 0.0, 0.0, p)
    es_al, es_be = obs.step(1.2, 0.1, 30.0, -5.0, p)

    dis_al = (1.2 - 1.0) / p.dt
    dis_be = (0.1 - 0.5) / p.dt
    assert es_al == pytest.approx((30.0 - p.Rs*1.2 - p.sigma_Ls*dis_al) * p.inv_Kr)
    assert es_be == pytest.approx((-5.0 - p.Rs*0.1 - p.sigma_Ls*dis_be) * p.inv_Kr)
    assert (obs.is_al_prev, obs.is_be_prev) == (1.2, 0.1)


def test_first_tick_differentiates_from_zero():
    p = default_motor_params()
    obs = StatorObserver()
    es_al, es_be = obs.step(2.0, 0.0, 10.0, 0.0, p)
    assert es_al == pytest.approx((10.0 - p.Rs*2.0 - p.sigma_Ls*2.0/p.dt) * p.inv_Kr)
    assert es_be == 0.0


def test_measurement_noise_is_not_filtered():
    p = default_motor_params()
    obs = StatorObserver()
    obs.step(1.0, 0.0, 0.0, 0.0, p)
    lo, _ = obs.step(1.0 - 0.01, 0.0, 0.0, 0.0, p)
    hi, _ = obs.step(1.0 + 0.01, 0.0, 0.0, 0.0, p)
    # sample-to-sample current jumps show up in full through sigma_Ls/dt
    swing = lo - hi
    assert swing == pytest.approx((p.sigma_Ls*0.03/p.dt + p.Rs*0.02) * p.inv_Kr)


def test_reset_returns_to_zero_state():
    p = default_motor_params()
    obs = StatorObserver()
    obs.step(1.0, 2.0, 3.0, 4.0, p)
    obs.reset()
    assert (obs.is_al_prev, obs.is_be_prev, obs.es_al, obs.es_be) == (0.0, 0.0, 0.0, 0.0)


def test_zero_magnetizing_inductance_propagates_non_finite():
    p = IMParams(Rs=0.4, Rr=0.8, Ls=0.07, Lr=0.07, Lm=0.0, p=2, dt=1e-4).derive()
    obs = StatorObserver()
    es_al, es_be = obs.step(1.0, 1.0, 10.0, 10.0, p)
    assert not math.isfinite(es_al)
    assert not math.isfinite(es_be)


def test_zero_sample_period_propagates_non_finite():
    p = IMParams(Rs=0.4, Rr=0.8, Ls=0.07, Lr=0.07, Lm=0.068, p=2, dt=0.0).derive()
    obs = StatorObserver()
    es_al, _ = obs.step(1.0, 0.0, 10.0, 0.0, p)
    assert not math.isfinite(es_al)


def test_sample_period_is_read_on_every_step():
    p = default_motor_params()
    p.dt = 2e-4   # no derive(): the differentiator still follows dt
    obs = StatorObserver()
    es_al, _ = obs.step(2.0, 0.0, 10.0, 0.0, p)
    assert es_al == pytest.approx((10.0 - p.Rs*2.0 - p.sigma_Ls*2.0/2e-4) * p.inv_Kr)
