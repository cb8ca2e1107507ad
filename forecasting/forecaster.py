from typing import Dict, Optional
import logging

import numpy as np
import pandas as pd
from scipy import stats as scipy_stats

from config.model_config import DAY_COL
from models import FittedModel, ForecastResult

logger = logging.getLogger(__name__)

FORECAST_COLUMNS = ['step', DAY_COL, 'forecast', 'lower', 'upper', 'se']


class ModelForecaster:
    """Projects fitted ARIMA/VAR models forward with interval bounds"""

    def __init__(self, horizon: int = 20, alpha: float = 0.05):
        if horizon < 1:
            raise ValueError(f"Forecast horizon must be >= 1, got {horizon}")
        self.horizon = horizon
        self.alpha = alpha
        self.z_value = float(scipy_stats.norm.ppf(1 - alpha / 2))
        self.logger = logging.getLogger('forecasting.forecaster')

    def _resolve_horizon(self, horizon: Optional[int]) -> int:
        if horizon is None:
            return self.horizon
        if horizon < 1:
            raise ValueError(f"Forecast horizon must be >= 1, got {horizon}")
        return int(horizon)

    def _future_days(self, fitted: FittedModel, horizon: int) -> np.ndarray:
        steps = np.arange(1, horizon + 1)
        return fitted.last_day + steps * fitted.day_stride

    def _build_frame(self, fitted: FittedModel, horizon: int,
                     mean: np.ndarray, se: np.ndarray) -> pd.DataFrame:
        mean = np.asarray(mean, dtype=float)
        se = np.asarray(se, dtype=float)
        return pd.DataFrame({
            'step': np.arange(1, horizon + 1),
            DAY_COL: self._future_days(fitted, horizon),
            'forecast': mean,
            'lower': mean - self.z_value * se,
            'upper': mean + self.z_value * se,
            'se': se
        }, columns=FORECAST_COLUMNS)

    def forecast_arima(self, fitted: FittedModel, horizon: Optional[int] = None) -> ForecastResult:
        """Point forecasts with Gaussian bounds, mean +/- z * forecast standard error"""
        if fitted.kind != 'arima':
            raise ValueError(f"Expected an ARIMA model, got {fitted.kind}")
        horizon = self._resolve_horizon(horizon)

        prediction = fitted.results.get_forecast(steps=horizon)
        frame = self._build_frame(
            fitted, horizon,
            np.asarray(prediction.predicted_mean),
            np.asarray(prediction.se_mean)
        )

        result = ForecastResult(
            model_label=fitted.label,
            column=fitted.columns[0],
            frame=frame,
            alpha=self.alpha
        )
        self._log_forecast(result)
        return result

    def forecast_var(self, fitted: FittedModel,
                     horizon: Optional[int] = None) -> Dict[str, ForecastResult]:
        """Joint recursive forecast of every VAR series from its last lag observations"""
        if fitted.kind != 'var':
            raise ValueError(f"Expected a VAR model, got {fitted.kind}")
        horizon = self._resolve_horizon(horizon)

        results = fitted.results
        last_obs = np.asarray(results.endog)[-results.k_ar:]
        mean = results.forecast(last_obs, steps=horizon)
        # Forecast MSE matrices, one (k, k) block per step
        mse = results.forecast_cov(steps=horizon)
        se = np.sqrt(np.array([np.diag(block) for block in mse]))

        forecasts = {}
        for i, column in enumerate(fitted.columns):
            forecasts[column] = ForecastResult(
                model_label=fitted.label,
                column=column,
                frame=self._build_frame(fitted, horizon, mean[:, i], se[:, i]),
                alpha=self.alpha
            )
            self._log_forecast(forecasts[column])
        return forecasts

    def _log_forecast(self, result: ForecastResult):
        frame = result.frame
        widths = result.half_widths
        self.logger.info(
            f"Forecast {result.model_label} -> {result.column}:\n"
            f"  Days: {int(frame[DAY_COL].iloc[0])} to {int(frame[DAY_COL].iloc[-1])}\n"
            f"  First/last point: {frame['forecast'].iloc[0]:.4f} / {frame['forecast'].iloc[-1]:.4f}\n"
            f"  Half-width first/last: {widths.iloc[0]:.4f} / {widths.iloc[-1]:.4f}"
        )
        if np.any(np.diff(widths.to_numpy()) < -1e-9):
            self.logger.warning(f"Interval half-widths shrink along the horizon for {result.model_label}")

    def compare_interval_widths(self, arima: ForecastResult, var: ForecastResult) -> pd.DataFrame:
        """Per-step half-width comparison of an ARIMA and a VAR forecast of one column"""
        if arima.column != var.column:
            raise ValueError(f"Forecasts are for different columns: {arima.column} vs {var.column}")
        steps = min(len(arima), len(var))

        table = pd.DataFrame({
            'step': arima.frame['step'].iloc[:steps].to_numpy(),
            DAY_COL: arima.frame[DAY_COL].iloc[:steps].to_numpy(),
            'arima_half_width': arima.half_widths.iloc[:steps].to_numpy(),
            'var_half_width': var.half_widths.iloc[:steps].to_numpy()
        })
        table['difference'] = table['arima_half_width'] - table['var_half_width']
        table['ratio'] = table['var_half_width'] / table['arima_half_width']

        self.logger.info(
            f"Interval half-width comparison for {arima.column} "
            f"({arima.model_label} vs {var.model_label}):\n"
            + table.round(4).to_string(index=False)
        )
        return table
