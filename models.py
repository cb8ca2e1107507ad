"""Common data models used across the project."""

from dataclasses import dataclass, field
import numpy as np
import pandas as pd
from typing import Any, Dict, List, Optional, Tuple

@dataclass(frozen=True)
class FittedModel:
    """Data class for fitted ARIMA/VAR models"""
    kind: str  # One of: 'arima', 'var'
    columns: Tuple[str, ...]
    order: Tuple[int, ...]  # (p, d, q) for ARIMA, (lag,) for VAR
    params: Dict[str, float]
    std_errors: Dict[str, float]
    pvalues: Dict[str, float]
    residuals: pd.DataFrame
    aic: float
    bic: float
    roots: np.ndarray  # Characteristic polynomial roots
    last_day: int
    day_stride: int
    selection: str = 'manual'  # One of: 'manual', 'auto'
    results: Any = field(default=None, repr=False, compare=False)

    @property
    def label(self) -> str:
        order = ','.join(str(o) for o in self.order)
        if self.kind == 'arima':
            return f"ARIMA({order}) {self.columns[0]}"
        return f"VAR({order}) {'/'.join(self.columns)}"

    @property
    def is_stable(self) -> bool:
        """All characteristic roots outside the unit circle"""
        return bool(np.all(np.abs(self.roots) > 1.0))

@dataclass(frozen=True)
class ForecastResult:
    """Data class for a forecast path with interval bounds"""
    model_label: str
    column: str
    frame: pd.DataFrame  # Columns: step, Day, forecast, lower, upper, se
    alpha: float = 0.05

    @property
    def half_widths(self) -> pd.Series:
        return self.frame['forecast'] - self.frame['lower']

    @property
    def days(self) -> pd.Series:
        return self.frame['Day']

    def __len__(self) -> int:
        return len(self.frame)

@dataclass(frozen=True)
class EACFResult:
    """Data class for an extended autocorrelation table"""
    values: pd.DataFrame  # Rows: AR order, columns: MA order
    symbols: pd.DataFrame  # 'x' significant, 'o' not
    bounds: pd.DataFrame

    def candidate_orders(self, max_candidates: int = 3, depth: int = 3,
                         width: int = 4) -> List[Tuple[int, int]]:
        """
        Upper-left vertices of triangles of 'o' entries, smallest p+q first.

        Only the first `depth` rows and `width` columns of each triangle are
        checked, so isolated 'x' cells far from the vertex do not hide it.
        """
        n_ar, n_ma = self.symbols.shape
        is_o = (self.symbols == 'o').to_numpy()
        candidates = []
        for p in range(n_ar):
            for q in range(n_ma):
                triangle_clear = all(
                    is_o[p + i, q + j]
                    for i in range(min(depth, n_ar - p))
                    for j in range(i, min(i + width, n_ma - q))
                )
                if triangle_clear:
                    candidates.append((p, q))
        candidates.sort(key=lambda pq: (pq[0] + pq[1], pq[0]))
        return candidates[:max_candidates]

@dataclass
class SeriesDiagnostics:
    """Data class for the identification diagnostics of one series"""
    name: str
    n_obs: int
    acf: np.ndarray
    pacf: np.ndarray
    eacf: Optional[EACFResult]
    unit_root_tests: Dict[str, Dict[str, float]]
    differenced: Optional['SeriesDiagnostics'] = None
