from __future__ import annotations

import numpy as np


def rmse(y: np.ndarray, yref: np.ndarray) -> float:
    y = np.asarray(y, dtype=float)
    yref = np.asarray(yref, dtype=float)
    return float(np.sqrt(np.mean((y - yref) ** 2)))


def final_error_percent(y: np.ndarray, yref_final: float) -> float:
    """Relative error of the last sample, in percent of |yref_final|."""
    y = np.asarray(y, dtype=float)
    if y.size == 0:
        return float("inf")
    if yref_final == 0:
        return float(abs(y[-1]) * 100.0)
    return float(abs(y[-1] - yref_final) / abs(yref_final) * 100.0)


def _inside_from(y: np.ndarray, yref_final: float, tol_pct: float) -> int | None:
    band = abs(yref_final) * (tol_pct / 100.0)
    inside = np.abs(y - yref_final) <= band
    if inside.size == 0 or not inside[-1]:
        return None
    outside = np.flatnonzero(~inside)
    return 0 if outside.size == 0 else int(outside[-1]) + 1


def convergence_tick(y: np.ndarray, yref_final: float, tol_pct: float = 1.0) -> int | None:
    """Index of the first sample after which y stays inside the ±tol_pct% band.

    None if the last sample is outside the band.
    """
    return _inside_from(np.asarray(y, dtype=float), yref_final, tol_pct)


def settling_time(t: np.ndarray, y: np.ndarray, yref_final: float, tol_pct: float = 2.0) -> float:
    """Settling time (s) using ±tol_pct% band around yref_final.

    If never settles, return inf.
    """
    t = np.asarray(t, dtype=float)
    y = np.asarray(y, dtype=float)
    if t.size == 0:
        return float("inf")
    k = _inside_from(y, yref_final, tol_pct)
    if k is None:
        return float("inf")
    return float(t[k] - t[0])
