from __future__ import annotations

from imobserver.control.regulators import PIRegulator, RegParams
from imobserver.estimators.params import IMParams
from imobserver.estimators.rotor_observer import RotorObserver, flux_polar
from imobserver.estimators.stator_observer import StatorObserver


class AdaptiveSpeedObserver:
    """Sensorless rotor speed estimator (model reference adaptive system).

    The stator observer (voltage model, speed independent) is the reference
    and the rotor observer (current model) the adjustable model. Their back-EMF
    mismatch projected on the stator current,

        err = is_al*(es_be - er_be) - is_be*(es_al - er_al)

    drives a PI regulator whose clamped output is the electrical speed
    estimate. The rotor observer is always fed the estimate produced on the
    previous tick, which breaks the speed -> flux -> error -> speed cycle.

    The regulator limits set the plausible electrical speed range.

    Convergence holds for motoring operation only (torque current and speed
    of the same sign); when regenerating the estimate settles off the true speed.
    """

    def __init__(self, reg: RegParams):
        self.stat_obs = StatorObserver()
        self.rot_obs = RotorObserver()
        self.reg = PIRegulator(reg)
        self.reset()

    def reset(self):
        self.stat_obs.reset()
        self.rot_obs.reset()
        self.reg.reset()
        self.omega_e = 0.0
        self.error = 0.0
        self.flux_angle = 0.0
        self.flux_magnitude = 0.0

    def step(self, is_al: float, is_be: float, us_al: float, us_be: float,
             p: IMParams) -> float:
        es_al, es_be = self.stat_obs.step(is_al, is_be, us_al, us_be, p)
        fr_al, fr_be, er_al, er_be = self.rot_obs.step(is_al, is_be, self.omega_e, p)

        self.error = is_al*(es_be - er_be) - is_be*(es_al - er_al)
        self.omega_e = self.reg.step(self.error)

        self.flux_angle, self.flux_magnitude = flux_polar(fr_al, fr_be)
        return self.omega_e

    def outputs(self) -> dict:
        so, ro = self.stat_obs, self.rot_obs
        return dict(
            es_al=so.es_al, es_be=so.es_be,
            er_al=ro.er_al, er_be=ro.er_be,
            fr_al=ro.fr_al, fr_be=ro.fr_be,
            omega_e_hat=self.omega_e, err=self.error,
            flux_angle=self.flux_angle, flux_magnitude=self.flux_magnitude,
        )
