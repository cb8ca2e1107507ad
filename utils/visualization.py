from typing import Dict, List, Optional, Sequence
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from pathlib import Path
from scipy import stats as scipy_stats
from statsmodels.graphics.tsaplots import plot_acf, plot_pacf
import logging

from config.model_config import DAY_COL
from models import EACFResult, ForecastResult

logger = logging.getLogger(__name__)

class ForecastVisualizer:
    """Visualization utilities for diagnostics and forecasts"""

    def __init__(self, style: str = 'seaborn-v0_8-whitegrid'):
        """
        Initialize visualizer

        Parameters:
        -----------
        style : str
            Matplotlib style to use.
            Available styles can be listed with `plt.style.available`
        """
        # Set style safely with fallback options
        try:
            plt.style.use(style)
        except OSError:
            plt.style.use('default')
            logger.warning(f"Style '{style}' not found, using default style")

        self.colors = plt.rcParams['axes.prop_cycle'].by_key()['color']

    @staticmethod
    def _finish(fig: plt.Figure, save_path: Optional[Path]) -> plt.Figure:
        fig.tight_layout()
        if save_path:
            fig.savefig(save_path)
        return fig

    def plot_series(self,
                    df: pd.DataFrame,
                    columns: Sequence[str],
                    title: Optional[str] = None,
                    save_path: Optional[Path] = None) -> plt.Figure:
        """
        Plot one line chart per column against Day

        Parameters:
        -----------
        df : DataFrame
            Table with a Day column and the series to plot
        columns : list
            Columns to plot
        title : str, optional
            Plot title
        save_path : Path, optional
            Path to save figure
        """
        if len(df) == 0 or len(columns) == 0:
            raise ValueError("Empty input data")

        n = len(columns)
        fig, axes = plt.subplots(n, 1, figsize=(12, 3 * n), sharex=True)
        axes = np.atleast_1d(axes)

        for i, (ax, column) in enumerate(zip(axes, columns)):
            ax.plot(df[DAY_COL], df[column], color=self.colors[i % len(self.colors)])
            ax.set_ylabel(column)
            ax.grid(True)
        axes[-1].set_xlabel(DAY_COL)

        if title:
            fig.suptitle(title)

        return self._finish(fig, save_path)

    def plot_qq(self,
                series: pd.Series,
                title: Optional[str] = None,
                save_path: Optional[Path] = None) -> plt.Figure:
        """Normal QQ plot of a series"""
        values = pd.Series(series).dropna()
        if values.empty:
            raise ValueError("Empty input data")

        fig, ax = plt.subplots(figsize=(6, 6))
        scipy_stats.probplot(values, dist='norm', plot=ax)
        ax.set_title(title or f"Normal QQ plot - {values.name}")

        return self._finish(fig, save_path)

    def plot_correlograms(self,
                          series: pd.Series,
                          lags: Optional[int] = None,
                          title: Optional[str] = None,
                          save_path: Optional[Path] = None) -> plt.Figure:
        """ACF and PACF side by side"""
        values = pd.Series(series).dropna()
        if lags is not None:
            lags = min(lags, len(values) // 2 - 1)

        fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(12, 4))
        plot_acf(values, lags=lags, ax=ax1, alpha=0.05, zero=False)
        plot_pacf(values, lags=lags, ax=ax2, alpha=0.05, zero=False, method='ywm')
        ax1.set_title('ACF')
        ax2.set_title('PACF')

        if title:
            fig.suptitle(title)

        return self._finish(fig, save_path)

    def plot_eacf(self,
                  eacf: EACFResult,
                  title: Optional[str] = None,
                  save_path: Optional[Path] = None) -> plt.Figure:
        """
        Heatmap of EACF values annotated with the x/o symbols

        The upper-left vertex of a triangle of 'o' cells suggests (p, q).
        """
        fig, ax = plt.subplots(figsize=(12, 6))
        sns.heatmap(
            eacf.values.abs() / eacf.bounds,
            annot=eacf.symbols.to_numpy(),
            fmt='',
            cmap='Reds',
            vmin=0,
            vmax=3,
            cbar_kws={'label': '|EACF| / bound'},
            ax=ax
        )
        ax.set_xlabel('MA order')
        ax.set_ylabel('AR order')
        ax.set_title(title or 'Extended ACF')

        return self._finish(fig, save_path)

    def _draw_forecast(self, ax, forecast: ForecastResult, color: str, label: Optional[str] = None):
        frame = forecast.frame
        ax.plot(frame[DAY_COL], frame['forecast'], color=color, linestyle='--',
                label=label or forecast.model_label)
        ax.fill_between(frame[DAY_COL], frame['lower'], frame['upper'], color=color, alpha=0.2,
                        label=f"{int(round((1 - forecast.alpha) * 100))}% interval")

    def plot_forecast(self,
                      history: pd.DataFrame,
                      forecast: ForecastResult,
                      history_window: int = 60,
                      title: Optional[str] = None,
                      save_path: Optional[Path] = None) -> plt.Figure:
        """
        Plot the tail of the observed series with the forecast path and band

        Parameters:
        -----------
        history : DataFrame
            Resampled table containing Day and the forecast column
        forecast : ForecastResult
            Forecast to draw
        history_window : int
            Number of trailing observations to show
        """
        tail = history.tail(history_window)

        fig, ax = plt.subplots(figsize=(12, 6))
        ax.plot(tail[DAY_COL], tail[forecast.column], color=self.colors[0], label='Observed')
        self._draw_forecast(ax, forecast, self.colors[1])
        ax.set_xlabel(DAY_COL)
        ax.set_ylabel(forecast.column)
        ax.set_title(title or forecast.model_label)
        ax.legend()
        ax.grid(True)

        return self._finish(fig, save_path)

    def plot_forecast_comparison(self,
                                 history: pd.DataFrame,
                                 forecasts: List[ForecastResult],
                                 history_window: int = 60,
                                 title: Optional[str] = None,
                                 save_path: Optional[Path] = None) -> plt.Figure:
        """Overlay several forecasts of the same column"""
        if not forecasts:
            raise ValueError("No forecasts to compare")
        column = forecasts[0].column
        if any(f.column != column for f in forecasts):
            raise ValueError("Forecasts must share one column")

        tail = history.tail(history_window)
        fig, ax = plt.subplots(figsize=(12, 6))
        ax.plot(tail[DAY_COL], tail[column], color=self.colors[0], label='Observed')
        for i, forecast in enumerate(forecasts, start=1):
            self._draw_forecast(ax, forecast, self.colors[i % len(self.colors)])
        ax.set_xlabel(DAY_COL)
        ax.set_ylabel(column)
        ax.set_title(title or f"Forecast comparison - {column}")
        ax.legend()
        ax.grid(True)

        return self._finish(fig, save_path)

    def plot_interval_widths(self,
                             width_table: pd.DataFrame,
                             title: Optional[str] = None,
                             save_path: Optional[Path] = None) -> plt.Figure:
        """Half-widths by horizon step for the ARIMA and VAR forecasts"""
        fig, ax = plt.subplots(figsize=(10, 5))
        ax.plot(width_table['step'], width_table['arima_half_width'], marker='o',
                color=self.colors[1], label='ARIMA')
        ax.plot(width_table['step'], width_table['var_half_width'], marker='s',
                color=self.colors[2], label='VAR')
        ax.set_xlabel('Horizon step')
        ax.set_ylabel('Interval half-width')
        ax.set_title(title or 'Forecast interval half-widths')
        ax.legend()
        ax.grid(True)

        return self._finish(fig, save_path)

    def close_all(self):
        """Close all open figures"""
        plt.close('all')

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close_all()

    def plot_results(self, results: Dict, output_path: Path, history_window: int = 60,
                     show_plots: bool = False):
        """Plot pipeline results and save to output directory"""
        try:
            output_path.mkdir(parents=True, exist_ok=True)

            resampled = results['resampled']
            forecasts = results['forecasts']
            if not forecasts:
                raise ValueError("No forecasts to plot")

            self.plot_series(resampled, results['series_columns'], title='Resampled series',
                             save_path=output_path / 'series.png')

            for name, diagnostics in results['diagnostics'].items():
                stem = name.replace('.', '_')
                self.plot_qq(resampled[name], save_path=output_path / f"{stem}_qq.png")
                self.plot_correlograms(resampled[name], title=name,
                                       save_path=output_path / f"{stem}_acf_pacf.png")
                if diagnostics.differenced is not None:
                    self.plot_correlograms(resampled[name].diff().dropna(), title=f"diff({name})",
                                           save_path=output_path / f"{stem}_diff_acf_pacf.png")
                if diagnostics.eacf is not None:
                    self.plot_eacf(diagnostics.eacf, title=f"EACF - {name}",
                                   save_path=output_path / f"{stem}_eacf.png")
                if show_plots:
                    plt.show()
                self.close_all()

            for key, forecast in forecasts.items():
                self.plot_forecast(resampled, forecast, history_window=history_window,
                                   save_path=output_path / f"forecast_{key}.png")

            for column, table in results['width_tables'].items():
                stem = column.replace('.', '_')
                self.plot_forecast_comparison(
                    resampled,
                    [forecasts[f"arima_{stem}"], forecasts[f"var_{stem}"]],
                    history_window=history_window,
                    save_path=output_path / f"comparison_{stem}.png"
                )
                self.plot_interval_widths(table, title=f"Interval half-widths - {column}",
                                          save_path=output_path / f"widths_{stem}.png")

            if show_plots:
                plt.show()

            self.close_all()

        except Exception as e:
            logging.getLogger('utils.visualization').error(f"Error plotting results: {str(e)}")
            raise
