"""
Identification diagnostics for univariate series.
ACF/PACF values, the extended autocorrelation table, unit-root tests and
residual whiteness checks. Everything here is advisory: the model orders used
downstream come from the configuration.
"""

import logging
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
import statsmodels.api as sm
from arch.unitroot import ADF, KPSS
from statsmodels.stats.diagnostic import acorr_ljungbox
from statsmodels.tsa.stattools import acf, pacf

from models import EACFResult, SeriesDiagnostics

logger = logging.getLogger(__name__)


def default_lags(n_obs: int) -> int:
    """Default correlogram length, min(10*log10(n), n-1)"""
    if n_obs < 2:
        raise ValueError("Need at least two observations")
    return max(1, min(int(10 * np.log10(n_obs)), n_obs - 1))


class SeriesDiagnoser:
    """Computes order-identification summaries for a series"""

    def __init__(self, ar_max: int = 7, ma_max: int = 13, nlags: Optional[int] = None):
        self.ar_max = ar_max
        self.ma_max = ma_max
        self.nlags = nlags
        self.logger = logging.getLogger('forecasting.diagnostics')

    @staticmethod
    def _clean(series) -> pd.Series:
        values = pd.Series(np.asarray(series, dtype=float)).dropna()
        return values.reset_index(drop=True)

    def compute_acf(self, series, nlags: Optional[int] = None) -> np.ndarray:
        """Autocorrelations for lags 1..nlags"""
        x = self._clean(series)
        nlags = nlags or self.nlags or default_lags(len(x))
        return acf(x, nlags=nlags, fft=True)[1:]

    def compute_pacf(self, series, nlags: Optional[int] = None) -> np.ndarray:
        """Partial autocorrelations for lags 1..nlags"""
        x = self._clean(series)
        nlags = nlags or self.nlags or default_lags(len(x))
        # Yule-Walker PACF needs nlags < n/2
        nlags = min(nlags, len(x) // 2 - 1)
        return pacf(x, nlags=nlags, method='ywm')[1:]

    def compute_eacf(self, series, ar_max: Optional[int] = None,
                     ma_max: Optional[int] = None) -> EACFResult:
        """
        Extended autocorrelation table (Tsay and Tiao, 1984).

        For AR order k and MA order j, the j-th iterated AR(k) regression adds
        the lagged residuals of the previous iterations as regressors. Its AR
        coefficients filter the series, and the cell holds the lag j+1
        autocorrelation of the filtered series. Cells are marked 'x' when
        |r| > 2/sqrt(n - k - j).

        Args:
            series: Observations in time order
            ar_max: Largest AR order (rows 0..ar_max)
            ma_max: Largest MA order (columns 0..ma_max)

        Returns:
            EACFResult with values, symbols and bounds tables
        """
        ar_max = self.ar_max if ar_max is None else ar_max
        ma_max = self.ma_max if ma_max is None else ma_max

        z = self._clean(series)
        z = z - z.mean()
        n = len(z)
        if n <= 2 * (ar_max + ma_max) + 10:
            raise ValueError(
                f"Series too short for a {ar_max}x{ma_max} EACF table: {n} observations"
            )

        values = np.zeros((ar_max + 1, ma_max + 1))
        values[0, :] = acf(z, nlags=ma_max + 1, fft=True)[1:]

        for k in range(1, ar_max + 1):
            residuals: List[pd.Series] = []
            z_lags = {f'z_lag{i}': z.shift(i) for i in range(1, k + 1)}

            for j in range(ma_max + 1):
                regressors = dict(z_lags)
                for h in range(1, j + 1):
                    regressors[f'e{j - h}_lag{h}'] = residuals[j - h].shift(h)

                data = pd.concat([z.rename('z'), pd.DataFrame(regressors)], axis=1).dropna()
                fit = sm.OLS(data['z'], data.drop(columns='z')).fit()
                residuals.append(fit.resid.reindex(z.index))

                phi = fit.params.iloc[:k].to_numpy()
                filtered = z.copy()
                for i in range(1, k + 1):
                    filtered = filtered - phi[i - 1] * z.shift(i)
                filtered = filtered.dropna()

                values[k, j] = acf(filtered, nlags=j + 1, fft=True)[j + 1]

        ar_index = pd.Index(range(ar_max + 1), name='AR')
        ma_index = pd.Index(range(ma_max + 1), name='MA')
        bounds = np.array([
            [2.0 / np.sqrt(n - k - j) for j in range(ma_max + 1)]
            for k in range(ar_max + 1)
        ])
        symbols = np.where(np.abs(values) > bounds, 'x', 'o')

        result = EACFResult(
            values=pd.DataFrame(values, index=ar_index, columns=ma_index),
            symbols=pd.DataFrame(symbols, index=ar_index, columns=ma_index),
            bounds=pd.DataFrame(bounds, index=ar_index, columns=ma_index)
        )
        self.logger.debug("EACF symbols:\n" + result.symbols.to_string())
        return result

    def unit_root_tests(self, series) -> Dict[str, Dict[str, float]]:
        """ADF (null: unit root) and KPSS (null: stationary) test summaries"""
        x = self._clean(series)
        tests = {}
        # Fixed Schwert bandwidth; the automatic one fails on short stationary series
        for name, test in (('adf', ADF(x)), ('kpss', KPSS(x, lags=-1))):
            tests[name] = {
                'stat': float(test.stat),
                'pvalue': float(test.pvalue),
                'lags': int(test.lags)
            }
        return tests

    def residual_whiteness(self, residuals, lags: int = 10) -> pd.DataFrame:
        """Ljung-Box statistics of model residuals"""
        x = self._clean(residuals)
        lags = min(lags, len(x) - 1)
        return acorr_ljungbox(x, lags=[lags])

    def diagnose(self, series, name: str, include_difference: bool = True,
                 with_eacf: bool = True) -> SeriesDiagnostics:
        """Run the full set of identification diagnostics for one series"""
        x = self._clean(series)

        eacf = None
        if with_eacf:
            try:
                eacf = self.compute_eacf(x)
            except ValueError as e:
                self.logger.warning(f"Skipping EACF for {name}: {str(e)}")

        result = SeriesDiagnostics(
            name=name,
            n_obs=len(x),
            acf=self.compute_acf(x),
            pacf=self.compute_pacf(x),
            eacf=eacf,
            unit_root_tests=self.unit_root_tests(x)
        )

        adf = result.unit_root_tests['adf']
        kpss = result.unit_root_tests['kpss']
        self.logger.info(
            f"Diagnostics for {name} ({len(x)} obs):\n"
            f"  ADF stat: {adf['stat']:.3f} (p={adf['pvalue']:.3f})\n"
            f"  KPSS stat: {kpss['stat']:.3f} (p={kpss['pvalue']:.3f})\n"
            f"  ACF[1..3]: {np.round(result.acf[:3], 3)}\n"
            f"  PACF[1..3]: {np.round(result.pacf[:3], 3)}"
        )
        if eacf is not None:
            self.logger.info(f"  EACF candidate (p, q): {eacf.candidate_orders()}")

        if include_difference:
            result.differenced = self.diagnose(
                x.diff().dropna(), f"diff({name})",
                include_difference=False, with_eacf=with_eacf
            )
        return result
