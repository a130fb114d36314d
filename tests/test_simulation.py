import json
import math
from pathlib import Path

import matplotlib
matplotlib.use("Agg")
import numpy as np
import pandas as pd
import pytest

from imobserver.estimators.params import IMParams, InvalidParameterError, default_motor_params
from imobserver.estimators.rotor_observer import RotorObserver
from imobserver.estimators.stator_observer import StatorObserver
from imobserver.metrics.metrics import convergence_tick, final_error_percent, rmse, settling_time
from imobserver.sim.logger import SimLogger
from imobserver.sim.motor_im_ab import CurrentFedIM
from imobserver.sim.scenarios import ObserverScenario, load_catalog
from imobserver.sim.simulator import run_batch, simulate_observer

DT = 1e-4
CATALOG = Path(__file__).resolve().parents[1] / "scenarios" / "observer_catalog.json"


def _wrap(a):
    return (a + math.pi) % (2*math.pi) - math.pi


# ---- plant ----

def test_plant_flux_settles_on_d_axis():
    p = default_motor_params(DT)
    plant = CurrentFedIM(p, i_d=10.0, i_q=10.0)
    for _ in range(6000):
        plant.step(150.0, DT)

    y = plant.outputs(plant.x, 150.0)
    assert y["psi_mag"] == pytest.approx(plant.steady_state_flux(), rel=1e-2)
    assert abs(_wrap(y["psi_ang"] - plant.x[2])) < 1e-2
    assert y["omega_s"] == pytest.approx(150.0 + p.inv_Tr)


def test_plant_rejects_impossible_inductances():
    p = IMParams(Rs=0.4, Rr=0.8, Ls=0.05, Lr=0.05, Lm=0.06, p=2, dt=DT).derive()
    with pytest.raises(ValueError):
        CurrentFedIM(p, i_d=1.0, i_q=0.0)


def test_voltage_model_recovers_plant_flux_derivative():
    p = default_motor_params(DT)
    plant = CurrentFedIM(p, i_d=10.0, i_q=10.0)
    obs = StatorObserver()
    for _ in range(3000):
        y = plant.outputs(plant.x, 150.0)
        es_al, es_be = obs.step(y["is_al"], y["is_be"], y["us_al"], y["us_be"], p)
        plant.step(150.0, DT)

    scale = math.hypot(y["er_al"], y["er_be"])
    assert es_al == pytest.approx(y["er_al"], abs=1e-2 * scale)
    assert es_be == pytest.approx(y["er_be"], abs=1e-2 * scale)


def test_current_model_tracks_plant_at_low_speed():
    p = default_motor_params(DT)
    plant = CurrentFedIM(p, i_d=10.0, i_q=10.0)
    obs = RotorObserver()
    for _ in range(6000):
        y = plant.outputs(plant.x, 20.0)
        obs.step(y["is_al"], y["is_be"], 20.0, p)
        plant.step(20.0, DT)

    assert obs.flux_magnitude == pytest.approx(y["psi_mag"], rel=1e-2)
    assert abs(_wrap(obs.flux_angle - y["psi_ang"])) < 1e-2


# ---- metrics ----

def test_rmse_and_final_error():
    assert rmse([1.0, 3.0], [1.0, 1.0]) == pytest.approx(math.sqrt(2.0))
    assert final_error_percent([0.0, 99.0], 100.0) == pytest.approx(1.0)
    assert final_error_percent([0.0, 0.5], 0.0) == pytest.approx(50.0)
    assert final_error_percent([], 1.0) == math.inf


def test_convergence_tick_and_settling_time():
    y = np.array([0.0, 50.0, 99.5, 102.0, 99.8, 100.2])
    t = np.arange(y.size) * 0.1
    assert convergence_tick(y, 100.0, tol_pct=1.0) == 4
    assert settling_time(t, y, 100.0, tol_pct=1.0) == pytest.approx(0.4)
    assert settling_time(t, y, 100.0, tol_pct=5.0) == pytest.approx(0.2)

    never = np.array([0.0, 100.0, 50.0])
    assert convergence_tick(never, 100.0) is None
    assert settling_time(t[:3], never, 100.0) == math.inf


# ---- logger ----

def test_logger_decimates_and_builds_frame():
    rec = SimLogger(decim=3)
    for k in range(10):
        rec.append(t=k*0.1, y=k)
    assert len(rec) == 4
    df = rec.to_dataframe()
    assert list(df.columns) == ["t", "y"]
    assert df["y"].tolist() == [0.0, 3.0, 6.0, 9.0]


# ---- scenarios ----

def test_scenario_speed_profile_and_overrides():
    sc = ObserverScenario().with_overrides({"id": "step", "omega_e_step": 25.0, "t_step": 0.2})
    assert sc.scenario_id == "step"
    assert sc.omega_e(0.1) == 150.0
    assert sc.omega_e(0.2) == 175.0
    assert sc.n_ticks == 10000

    reg = sc.reg_params()
    assert (reg.out_min, reg.out_max) == (-sc.omega_max, sc.omega_max)
    assert reg.dt == sc.dt


def test_scenario_rejects_unknown_keys():
    with pytest.raises(ValueError):
        ObserverScenario().with_overrides({"omega": 100.0})


def test_repo_catalog_loads():
    motor, scenarios = load_catalog(CATALOG)
    assert motor.validate() is motor
    ids = [sc.scenario_id for sc in scenarios]
    assert ids[0] == "S0_nominal"
    assert len(ids) == len(set(ids))
    step = next(sc for sc in scenarios if sc.omega_e_step)
    assert step.i_d == 10.0


def test_catalog_with_duplicate_ids_is_rejected(tmp_path):
    cat = {
        "nominal": {"motor": {"Rs": 0.4, "Rr": 0.8, "Ls": 0.07, "Lr": 0.07, "Lm": 0.068, "p": 2}},
        "scenarios": [{"id": "a"}, {"id": "a", "noise_std": 0.01}],
    }
    path = tmp_path / "cat.json"
    path.write_text(json.dumps(cat), encoding="utf-8")
    with pytest.raises(ValueError):
        load_catalog(path)


def test_catalog_without_scenarios_is_rejected(tmp_path):
    path = tmp_path / "cat.json"
    path.write_text(json.dumps({"nominal": {}}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_catalog(path)


# ---- simulation ----

def test_short_simulation_produces_trace_and_metrics():
    sc = ObserverScenario(scenario_id="short", t_end=0.05)
    df, met = simulate_observer(sc, decim=10)

    assert isinstance(df, pd.DataFrame)
    assert len(df) == 51
    for col in ("t", "omega_e", "omega_e_hat", "err", "psi_mag", "fr_mag_sl", "fr_mag_s"):
        assert col in df.columns
    assert np.all(np.isfinite(df["omega_e_hat"].values))
    assert set(met) == {
        "final_speed_error_%", "speed_rmse", "settling_s", "converged_at_s",
        "final_flux_angle_err_rad", "final_flux_mag_err_%", "final_speed_hat",
    }


def test_noisy_simulation_is_reproducible():
    sc = ObserverScenario(t_end=0.02, noise_std=0.05, seed=3)
    a, _ = simulate_observer(sc)
    b, _ = simulate_observer(sc)
    pd.testing.assert_frame_equal(a, b)


def test_simulation_rejects_invalid_motor():
    bad = IMParams(Rs=0.4, Rr=0.8, Ls=0.05, Lr=0.05, Lm=0.06, p=2).derive()
    with pytest.raises(InvalidParameterError):
        simulate_observer(ObserverScenario(t_end=0.01), motor=bad)


def test_simulation_rejects_bad_multiplier():
    with pytest.raises(ValueError):
        simulate_observer(ObserverScenario(t_end=0.01, mult={"Ls": 1.1}))


def test_batch_writes_traces_plots_and_metrics(tmp_path):
    cat = {
        "nominal": {
            "motor": {"Rs": 0.435, "Rr": 0.816, "Ls": 0.0713, "Lr": 0.0713, "Lm": 0.0693, "p": 2},
            "scenario": {"t_end": 0.01},
        },
        "scenarios": [{"id": "a"}, {"id": "b", "mult": {"Rr": 1.2}}],
    }
    path = tmp_path / "cat.json"
    path.write_text(json.dumps(cat), encoding="utf-8")

    out = Path(run_batch(str(path), out_dir=str(tmp_path / "out")))
    assert (out / "csv" / "a.csv").exists()
    assert (out / "plots" / "b.png").exists()
    metrics = pd.read_csv(out / "metrics_all.csv")
    assert metrics["scenario"].tolist() == ["a", "b"]
