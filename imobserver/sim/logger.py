from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List
import pandas as pd

@dataclass
class SimLogger:
    """Column-wise trace recorder; every `decim`-th call to append() is kept."""
    decim: int = 1
    records: Dict[str, List[float]] = field(default_factory=dict)
    _calls: int = field(default=0, repr=False)

    def append(self, **kwargs: float) -> None:
        keep = self._calls % max(1, self.decim) == 0
        self._calls += 1
        if not keep:
            return
        for k, v in kwargs.items():
            self.records.setdefault(k, []).append(float(v))

    def __len__(self) -> int:
        return max((len(v) for v in self.records.values()), default=0)

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(self.records)
