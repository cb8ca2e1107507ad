from typing import Dict, List, Optional, Sequence, Tuple
import logging
import warnings

import numpy as np
import pandas as pd
import pmdarima as pm
from statsmodels.tsa.api import VAR
from statsmodels.tsa.arima.model import ARIMA

from config.model_config import DAY_COL
from models import FittedModel

logger = logging.getLogger(__name__)


def characteristic_roots(coefs: Sequence[np.ndarray]) -> np.ndarray:
    """
    Roots of det(I - A_1 z - ... - A_p z^p) = 0 from the companion matrix.

    Args:
        coefs: Lag coefficient matrices A_1..A_p, each (k, k). Scalars are
               accepted for the univariate case.

    Returns:
        Roots sorted by modulus, largest first. Zero eigenvalues (roots at
        infinity) are dropped.
    """
    mats = [np.atleast_2d(np.asarray(c, dtype=float)) for c in coefs]
    if not mats:
        return np.array([], dtype=complex)

    k = mats[0].shape[0]
    p = len(mats)
    companion = np.zeros((k * p, k * p))
    companion[:k, :] = np.hstack(mats)
    if p > 1:
        companion[k:, :-k] = np.eye(k * (p - 1))

    eigenvalues = np.linalg.eigvals(companion)
    eigenvalues = eigenvalues[np.abs(eigenvalues) > 1e-12]
    roots = 1.0 / eigenvalues
    return roots[np.argsort(np.abs(roots))[::-1]]


class ModelEstimator:
    """Fits ARIMA and VAR models on the resampled table"""

    def __init__(self, day_stride: int = 5,
                 auto_max_p: int = 5,
                 auto_max_d: int = 2,
                 auto_max_q: int = 5):
        """
        Initialize estimator

        Args:
            day_stride: Day distance between consecutive observations
            auto_max_p: Largest AR order of the automatic search
            auto_max_d: Largest differencing order of the automatic search
            auto_max_q: Largest MA order of the automatic search
        """
        self.day_stride = day_stride
        self.auto_max_p = auto_max_p
        self.auto_max_d = auto_max_d
        self.auto_max_q = auto_max_q
        self.logger = logging.getLogger('forecasting.estimator')

    @staticmethod
    def _last_day(df: pd.DataFrame) -> int:
        if DAY_COL in df.columns:
            return int(df[DAY_COL].iloc[-1])
        return len(df)

    def _check_stability(self, fitted: FittedModel):
        if fitted.roots.size == 0:
            return
        min_modulus = float(np.min(np.abs(fitted.roots)))
        if fitted.is_stable:
            self.logger.info(f"{fitted.label}: stable, smallest root modulus {min_modulus:.4f}")
        else:
            self.logger.warning(
                f"{fitted.label}: characteristic root inside the unit circle "
                f"(smallest modulus {min_modulus:.4f}), forecasts may be unreliable"
            )

    def fit_arima(self, df: pd.DataFrame, column: str,
                  order: Tuple[int, int, int] = (2, 1, 1),
                  selection: str = 'manual') -> FittedModel:
        """Estimate ARIMA(p, d, q) on one column by maximum likelihood"""
        if column not in df.columns:
            raise ValueError(f"Column {column} not in data")
        series = df[column].astype(float).reset_index(drop=True)
        if series.isna().any():
            raise ValueError(f"Column {column} contains missing values")

        order = tuple(int(o) for o in order)
        self.logger.info(f"Fitting ARIMA{order} on {column} ({len(series)} obs)")

        with warnings.catch_warnings():
            warnings.simplefilter('ignore', UserWarning)
            results = ARIMA(series, order=order).fit()

        mle_retvals = getattr(results, 'mle_retvals', None) or {}
        if mle_retvals.get('converged') is False:
            self.logger.warning(f"ARIMA{order} on {column}: optimizer did not converge")

        fitted = FittedModel(
            kind='arima',
            columns=(column,),
            order=order,
            params=dict(results.params),
            std_errors=dict(results.bse),
            pvalues=dict(results.pvalues),
            # The first d residuals are undifferenced levels
            residuals=pd.DataFrame({column: np.asarray(results.resid)[order[1]:]}),
            aic=float(results.aic),
            bic=float(results.bic),
            roots=characteristic_roots(list(results.arparams)),
            last_day=self._last_day(df),
            day_stride=self.day_stride,
            selection=selection,
            results=results
        )

        self.logger.info(
            f"Estimated {fitted.label}:\n"
            + "\n".join(
                f"  {name}: {value:.4f} (se {fitted.std_errors[name]:.4f})"
                for name, value in fitted.params.items()
            )
            + f"\n  AIC: {fitted.aic:.2f}  BIC: {fitted.bic:.2f}"
        )
        self._check_stability(fitted)
        return fitted

    def select_arima_order(self, df: pd.DataFrame, column: str) -> Tuple[int, int, int]:
        """Search (p, d, q) within the configured bounds by AIC"""
        series = df[column].astype(float).to_numpy()
        search = pm.auto_arima(
            series,
            seasonal=False,
            start_p=0, start_q=0,
            max_p=self.auto_max_p,
            max_d=self.auto_max_d,
            max_q=self.auto_max_q,
            information_criterion='aic',
            stepwise=True,
            suppress_warnings=True,
            error_action='ignore',
            trace=False
        )
        order = tuple(int(o) for o in search.order)
        self.logger.info(f"Automatic order search on {column}: ARIMA{order}, AIC {search.aic():.2f}")
        return order

    def fit_auto_arima(self, df: pd.DataFrame, column: str) -> FittedModel:
        """Fit the order chosen by the automatic search, for comparison only"""
        order = self.select_arima_order(df, column)
        return self.fit_arima(df, column, order=order, selection='auto')

    def fit_var(self, df: pd.DataFrame, columns: Sequence[str], lag: int = 2) -> FittedModel:
        """Estimate a VAR(lag) with a constant on two or more columns"""
        columns = list(columns)
        if len(columns) < 2:
            raise ValueError("VAR needs at least two columns")
        missing = [c for c in columns if c not in df.columns]
        if missing:
            raise ValueError(f"Columns not in data: {missing}")

        data = df[columns].astype(float).reset_index(drop=True)
        if data.isna().any().any():
            raise ValueError(f"VAR input contains missing values in {columns}")

        self.logger.info(f"Fitting VAR({lag}) on {columns} ({len(data)} obs)")
        results = VAR(data).fit(lag, trend='c')

        def flatten(frame: pd.DataFrame) -> Dict[str, float]:
            return {
                f"{equation}:{term}": float(frame.loc[term, equation])
                for equation in frame.columns
                for term in frame.index
            }

        fitted = FittedModel(
            kind='var',
            columns=tuple(columns),
            order=(int(results.k_ar),),
            params=flatten(results.params),
            std_errors=flatten(results.stderr),
            pvalues=flatten(results.pvalues),
            residuals=pd.DataFrame(np.asarray(results.resid), columns=columns),
            aic=float(results.aic),
            bic=float(results.bic),
            roots=characteristic_roots(list(results.coefs)),
            last_day=self._last_day(df),
            day_stride=self.day_stride,
            results=results
        )

        self.logger.info(
            f"Estimated {fitted.label}:\n"
            f"  Coefficients:\n{results.params.round(4).to_string()}\n"
            f"  AIC: {fitted.aic:.4f}  BIC: {fitted.bic:.4f}"
        )
        self._check_stability(fitted)
        return fitted

    def lag_coefficients(self, fitted: FittedModel) -> List[pd.DataFrame]:
        """Per-lag VAR coefficient tables with standard errors and p-values"""
        if fitted.kind != 'var':
            raise ValueError("Lag coefficient tables are only defined for VAR models")

        tables = []
        for lag in range(1, fitted.order[0] + 1):
            rows = []
            for equation in fitted.columns:
                for regressor in fitted.columns:
                    key = f"{equation}:L{lag}.{regressor}"
                    rows.append({
                        'equation': equation,
                        'regressor': regressor,
                        'coef': fitted.params[key],
                        'se': fitted.std_errors[key],
                        'pvalue': fitted.pvalues[key]
                    })
            tables.append(pd.DataFrame(rows))
        return tables
