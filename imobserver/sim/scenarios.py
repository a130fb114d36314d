from __future__ import annotations
from dataclasses import dataclass, field, fields, replace
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Tuple

from imobserver.control.regulators import RegParams
from imobserver.estimators.params import IMParams

log = logging.getLogger(__name__)

@dataclass(frozen=True)
class ObserverScenario:
    """One observer run: true speed profile, current command, gains, disturbances.

    Speeds are electrical rad/s. `mult` scales the observer's copy of the
    motor constants (keys as IMParams.scaled) to study parameter mismatch.
    """
    scenario_id: str = "nominal"
    omega_e0: float = 150.0
    omega_e_step: float = 0.0
    t_step: float = 0.5
    i_d: float = 10.0
    i_q: float = 10.0
    dt: float = 1e-4
    t_end: float = 1.0
    kp: float = 0.03
    ki: float = 50.0
    kaw: float = 0.0
    omega_max: float = 1000.0
    noise_std: float = 0.0
    seed: int = 0
    mult: Dict[str, float] = field(default_factory=dict)

    def omega_e(self, t: float) -> float:
        return self.omega_e0 + (self.omega_e_step if t >= self.t_step else 0.0)

    @property
    def n_ticks(self) -> int:
        return int(round(self.t_end / self.dt))

    def reg_params(self) -> RegParams:
        return RegParams(kp=self.kp, ki=self.ki, dt=self.dt,
                         out_min=-self.omega_max, out_max=self.omega_max, kaw=self.kaw)

    def with_overrides(self, cfg: Dict[str, Any]) -> "ObserverScenario":
        cfg = dict(cfg)
        if "id" in cfg:
            cfg["scenario_id"] = cfg.pop("id")
        known = {f.name for f in fields(self)}
        unknown = set(cfg) - known
        if unknown:
            raise ValueError(f"unknown scenario keys: {sorted(unknown)}")
        return replace(self, **cfg)


def motor_from_dict(mp: Dict[str, Any], dt: float) -> IMParams:
    return IMParams(
        Rs=float(mp["Rs"]),
        Rr=float(mp["Rr"]),
        Ls=float(mp["Ls"]),
        Lr=float(mp["Lr"]),
        Lm=float(mp["Lm"]),
        p=int(mp["p"]),
        dt=float(dt),
    ).derive()


def load_catalog(catalog_path: str | Path) -> Tuple[IMParams, List[ObserverScenario]]:
    """Read a scenario catalog.

    Layout: {"nominal": {"motor": {...}, "scenario": {...}},
             "scenarios": [{"id": "...", <ObserverScenario overrides>}, ...]}
    """
    catalog = json.loads(Path(catalog_path).read_text(encoding="utf-8"))
    if not isinstance(catalog, dict) or not isinstance(catalog.get("scenarios"), list):
        raise ValueError(f"{catalog_path}: expected an object with a 'scenarios' list")
    nom = catalog["nominal"]

    base = ObserverScenario().with_overrides(nom.get("scenario", {}))
    motor = motor_from_dict(nom["motor"], base.dt)

    scenarios = [base.with_overrides(sc) for sc in catalog["scenarios"]]
    ids = [sc.scenario_id for sc in scenarios]
    if len(set(ids)) != len(ids):
        raise ValueError(f"{catalog_path}: duplicate scenario ids")
    log.info("loaded %d scenarios from %s", len(scenarios), catalog_path)
    return motor, scenarios
