from __future__ import annotations
import numpy as np

from imobserver.estimators.params import IMParams
from imobserver.sim.integrators import rk4_step

class CurrentFedIM:
    """Current-fed IM in the stationary alpha/beta frame, speed imposed.

    x = [psi_r_al, psi_r_be, theta_s]

    The stator current is a rotating vector (i_d + j*i_q)*exp(j*theta_s);
    theta_s advances at the synchronous speed omega_e + omega_sl, where the
    slip is the steady-state value for rotor-flux orientation, so the rotor
    flux settles on the d axis of the commanded current.
    """
    def __init__(self, params: IMParams, i_d: float, i_q: float, x0: np.ndarray | None = None):
        self.p = params
        if params.det() <= 0:
            raise ValueError("Invalid inductances: Ls*Lr must be > Lm^2.")
        self.i_d = float(i_d)
        self.i_q = float(i_q)
        self.x = np.zeros(3, dtype=float) if x0 is None else np.array(x0, dtype=float)

    @property
    def omega_sl(self) -> float:
        if self.i_d == 0.0:
            return 0.0
        return self.p.inv_Tr * self.i_q / self.i_d

    def stator_current(self, theta_s: float) -> tuple[float, float]:
        c, s = np.cos(theta_s), np.sin(theta_s)
        return self.i_d*c - self.i_q*s, self.i_d*s + self.i_q*c

    def f(self, x: np.ndarray, omega_e: float) -> np.ndarray:
        psi_al, psi_be, theta_s = x
        p = self.p
        is_al, is_be = self.stator_current(theta_s)

        dpsi_al = (p.Lm*is_al - psi_al)*p.inv_Tr - omega_e*psi_be
        dpsi_be = (p.Lm*is_be - psi_be)*p.inv_Tr + omega_e*psi_al
        dtheta = omega_e + self.omega_sl
        return np.array([dpsi_al, dpsi_be, dtheta], dtype=float)

    def step(self, omega_e: float, dt: float) -> None:
        self.x = rk4_step(lambda xx: self.f(xx, omega_e), self.x, dt)

    def outputs(self, x: np.ndarray, omega_e: float) -> dict:
        """Terminal quantities at state x: us = Rs*is + sigma_Ls*dis/dt + (Lm/Lr)*dpsi_r/dt."""
        psi_al, psi_be, theta_s = x
        p = self.p
        is_al, is_be = self.stator_current(theta_s)
        omega_s = omega_e + self.omega_sl
        dis_al, dis_be = -omega_s*is_be, omega_s*is_al

        dpsi_al, dpsi_be, _ = self.f(x, omega_e)
        k_r = p.Lm / p.Lr
        us_al = p.Rs*is_al + p.sigma_Ls*dis_al + k_r*dpsi_al
        us_be = p.Rs*is_be + p.sigma_Ls*dis_be + k_r*dpsi_be
        return dict(
            is_al=is_al, is_be=is_be, us_al=us_al, us_be=us_be,
            psi_al=psi_al, psi_be=psi_be,
            er_al=dpsi_al, er_be=dpsi_be,
            psi_mag=float(np.hypot(psi_al, psi_be)),
            psi_ang=float(np.arctan2(psi_be, psi_al)),
            omega_e=omega_e, omega_s=omega_s,
        )

    def steady_state_flux(self) -> float:
        return self.p.Lm * self.i_d
