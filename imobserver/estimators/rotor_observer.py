from __future__ import annotations
import math

from imobserver.estimators.params import IMParams
from imobserver.sim.integrators import tustin_step


def flux_polar(fr_al: float, fr_be: float) -> tuple[float, float]:
    """Rotor flux angle (rad, from alpha toward beta) and magnitude."""
    return math.atan2(fr_be, fr_al), math.hypot(fr_al, fr_be)


class RotorObserver:
    """Current-model rotor flux observer.

    Per axis:  er = (Lm*is - fr)/Tr -/+ omega_e*fr_other,  fr = ∫ er dt
    The alpha axis is integrated first; the beta cross term then uses the
    freshly updated alpha flux.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        self.er_al_prev = 0.0
        self.er_be_prev = 0.0
        self.fr_al_prev = 0.0
        self.fr_be_prev = 0.0
        self.fr_al = 0.0
        self.fr_be = 0.0
        self.er_al = 0.0
        self.er_be = 0.0

    def step(self, is_al: float, is_be: float, omega_e: float,
             p: IMParams) -> tuple[float, float, float, float]:
        self.er_al = (is_al*p.Lm - self.fr_al)*p.inv_Tr - omega_e*self.fr_be
        self.fr_al = tustin_step(self.fr_al_prev, self.er_al, self.er_al_prev, p.dt)
        self.er_al_prev = self.er_al
        self.fr_al_prev = self.fr_al

        self.er_be = (is_be*p.Lm - self.fr_be)*p.inv_Tr + omega_e*self.fr_al
        self.fr_be = tustin_step(self.fr_be_prev, self.er_be, self.er_be_prev, p.dt)
        self.er_be_prev = self.er_be
        self.fr_be_prev = self.fr_be

        return self.fr_al, self.fr_be, self.er_al, self.er_be

    @property
    def flux_angle(self) -> float:
        return flux_polar(self.fr_al, self.fr_be)[0]

    @property
    def flux_magnitude(self) -> float:
        return flux_polar(self.fr_al, self.fr_be)[1]
