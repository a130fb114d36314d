from __future__ import annotations
from dataclasses import dataclass, field, fields, replace
import math
from typing import Dict


class InvalidParameterError(ValueError):
    """Raised by IMParams.validate() for physically meaningless motor constants."""


_BASE_FIELDS = ("Rs", "Rr", "Ls", "Lr", "Lm", "p", "dt")


@dataclass
class IMParams:
    """Induction motor constants plus the coefficients the observers use.

    Base constants are plain attributes. inv_Tr, inv_Kr and sigma_Ls
    are only refreshed by derive(); change a base constant and derive() again
    before the next tick.
    """
    Rs: float = 0.0
    Rr: float = 0.0
    Ls: float = 0.0
    Lr: float = 0.0
    Lm: float = 0.0
    p: int = 0
    dt: float = 1.0

    inv_Tr: float = field(default=0.0, init=False)    # Rr/Lr
    inv_Kr: float = field(default=0.0, init=False)    # Lr/Lm
    sigma_Ls: float = field(default=0.0, init=False)  # stator leakage inductance
    _derived_from: tuple | None = field(default=None, init=False, repr=False, compare=False)

    def _base(self) -> tuple:
        return tuple(getattr(self, k) for k in _BASE_FIELDS)

    def derive(self) -> "IMParams":
        # IEEE division: zero inductances give inf/nan instead of raising
        self.inv_Tr = ieee_div(self.Rr, self.Lr)
        self.inv_Kr = ieee_div(self.Lr, self.Lm)
        self.sigma_Ls = (1.0 - ieee_div(self.Lm * self.Lm, self.Ls * self.Lr)) * self.Ls
        self._derived_from = self._base()
        return self

    @property
    def is_stale(self) -> bool:
        return self._derived_from != self._base()

    def det(self) -> float:
        return self.Ls * self.Lr - self.Lm**2

    @property
    def rotor_time_constant(self) -> float:
        return ieee_div(self.Lr, self.Rr)

    def validate(self) -> "IMParams":
        """Reject constants the per-tick math cannot run on.

        Intended for start-up only; the observers themselves never check.
        """
        for name in ("dt", "Ls", "Lr", "Lm"):
            v = float(getattr(self, name))
            if not math.isfinite(v) or v <= 0.0:
                raise InvalidParameterError(f"{name} must be finite and > 0, got {v!r}")
        for name in ("Rs", "Rr"):
            v = float(getattr(self, name))
            if not math.isfinite(v) or v < 0.0:
                raise InvalidParameterError(f"{name} must be finite and >= 0, got {v!r}")
        if int(self.p) <= 0:
            raise InvalidParameterError(f"pole pairs must be >= 1, got {self.p!r}")
        if self.det() <= 0.0:
            raise InvalidParameterError("Invalid inductances: Ls*Lr must be > Lm^2.")
        if self.is_stale:
            raise InvalidParameterError("derived coefficients are stale, call derive() first")
        return self

    def scaled(self, mult: Dict[str, float]) -> "IMParams":
        """Return a re-derived copy with parameter multipliers applied.

        Supported keys:
          - Rs, Rr, Lm: direct scaling
          - Lsigma: scales stator/rotor leakage inductances while keeping Lm constant
        """
        unknown = set(mult) - {"Rs", "Rr", "Lm", "Lsigma"}
        if unknown:
            raise ValueError(f"unsupported multipliers: {sorted(unknown)}")

        Lls = self.Ls - self.Lm
        Llr = self.Lr - self.Lm
        Lm = self.Lm * float(mult.get("Lm", 1.0))
        f = float(mult.get("Lsigma", 1.0))
        out = replace(
            self,
            Rs=self.Rs * float(mult.get("Rs", 1.0)),
            Rr=self.Rr * float(mult.get("Rr", 1.0)),
            Lm=Lm,
            Ls=Lm + Lls * f,
            Lr=Lm + Llr * f,
        )
        return out.derive()

    def as_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self) if not f.name.startswith("_")}


def ieee_div(a: float, b: float) -> float:
    if b != 0.0:
        return a / b
    if a == 0.0 or math.isnan(a):
        return math.nan
    return math.copysign(math.inf, a) * math.copysign(1.0, b)


def default_motor_params(dt: float = 1e-4) -> IMParams:
    Rs = 0.435
    Rr = 0.816
    Lls = 0.002
    Llr = 0.002
    Lm = 0.0693
    Ls = Lls + Lm
    Lr = Llr + Lm
    p = 2
    return IMParams(Rs=Rs, Rr=Rr, Ls=Ls, Lr=Lr, Lm=Lm, p=p, dt=dt).derive()
