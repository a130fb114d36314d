from __future__ import annotations
from dataclasses import dataclass

from imobserver.sim.integrators import tustin_step

@dataclass
class RegParams:
    kp: float
    ki: float = 0.0
    kd: float = 0.0
    dt: float = 1.0
    out_min: float = 0.0
    out_max: float = 0.0
    kaw: float = 0.0  # anti-windup back-calc gain

    def __post_init__(self):
        if self.out_min > self.out_max:
            raise ValueError(f"out_min ({self.out_min}) > out_max ({self.out_max})")
        if not self.dt > 0.0:
            raise ValueError(f"dt must be > 0, got {self.dt}")

    def clamp(self, u: float) -> float:
        # comparisons are false for nan, so nan passes through unclamped
        if u > self.out_max:
            u = self.out_max
        if u < self.out_min:
            u = self.out_min
        return u


class PRegulator:
    def __init__(self, p: RegParams):
        self.p = p
        self.reset()

    def reset(self):
        self.out = 0.0

    def step(self, e: float) -> float:
        self.out = self.p.clamp(self.p.kp * e)
        return self.out


class PIRegulator:
    """PI block with trapezoidal integral and output clamp.

    The integral state is not limited unless kaw > 0, in which case the
    saturation excess is fed back into it (back-calculation).
    """
    def __init__(self, p: RegParams):
        self.p = p
        self.reset()

    def reset(self):
        self.p_out = 0.0
        self.i_out = 0.0
        self.i_prev_in = 0.0
        self.out = 0.0

    def _integrate(self, e: float) -> float:
        i_in = self.p.ki * e
        self.i_out = tustin_step(self.i_out, i_in, self.i_prev_in, self.p.dt)
        self.i_prev_in = i_in
        return self.i_out

    def _anti_windup(self, u_unsat: float, u_sat: float) -> None:
        if self.p.kaw > 0.0:
            self.i_out += (u_sat - u_unsat) * self.p.kaw

    def step(self, e: float) -> float:
        self.p_out = self.p.kp * e
        u_unsat = self.p_out + self._integrate(e)
        self.out = self.p.clamp(u_unsat)
        self._anti_windup(u_unsat, self.out)
        return self.out


class _BackwardDifference:
    """Derivative of kd*e by backward difference; needs d_prev_in and d_out state."""
    def _reset_derivative(self):
        self.d_out = 0.0
        self.d_prev_in = 0.0

    def _differentiate(self, e: float) -> float:
        d_in = self.p.kd * e
        self.d_out = (d_in - self.d_prev_in) / self.p.dt
        self.d_prev_in = d_in
        return self.d_out


class PDRegulator(_BackwardDifference):
    def __init__(self, p: RegParams):
        self.p = p
        self.reset()

    def reset(self):
        self.p_out = 0.0
        self._reset_derivative()
        self.out = 0.0

    def step(self, e: float) -> float:
        self.p_out = self.p.kp * e
        self.out = self.p.clamp(self.p_out + self._differentiate(e))
        return self.out


class PIDRegulator(PIRegulator, _BackwardDifference):
    def reset(self):
        super().reset()
        self._reset_derivative()

    def step(self, e: float) -> float:
        self.p_out = self.p.kp * e
        u_unsat = self.p_out + self._integrate(e) + self._differentiate(e)
        self.out = self.p.clamp(u_unsat)
        self._anti_windup(u_unsat, self.out)
        return self.out
