from __future__ import annotations

from imobserver.estimators.params import IMParams, ieee_div


class StatorObserver:
    """Voltage-model back-EMF estimator in the stationary alpha/beta frame.

    es = (us - Rs*is - sigma_Ls * dis/dt) * Lr/Lm

    dis/dt is a plain backward difference over one sample, so measurement
    noise on the currents is amplified by 1/dt. No filtering is applied.
    It divides by p.dt directly, so dt = 0 gives non-finite output.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        self.is_al_prev = 0.0
        self.is_be_prev = 0.0
        self.es_al = 0.0
        self.es_be = 0.0

    def step(self, is_al: float, is_be: float, us_al: float, us_be: float,
             p: IMParams) -> tuple[float, float]:
        dis_al = ieee_div(is_al - self.is_al_prev, p.dt)
        self.is_al_prev = is_al

        dis_be = ieee_div(is_be - self.is_be_prev, p.dt)
        self.is_be_prev = is_be

        self.es_al = (us_al - p.Rs*is_al - p.sigma_Ls*dis_al) * p.inv_Kr
        self.es_be = (us_be - p.Rs*is_be - p.sigma_Ls*dis_be) * p.inv_Kr
        return self.es_al, self.es_be
