#!/usr/bin/env python
"""
Forecasting pipeline for VIX, gold, USD/JPY and news sentiment.
Loads and merges the CSV sources, resamples, runs identification diagnostics,
fits ARIMA and VAR models, forecasts and compares interval widths.
"""
import sys
from pathlib import Path
import logging
from datetime import datetime
from typing import Any, Dict, Optional
import traceback
import warnings

import pandas as pd

# Add project root to path
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.append(str(project_root))

from config.model_config import ModelConfig
from data_manager.data_loader import DataLoader
from data_manager.resampler import resample_every_kth
from forecasting.diagnostics import SeriesDiagnoser
from forecasting.estimator import ModelEstimator
from forecasting.forecaster import ModelForecaster
from utils.progress import ProgressMonitor
from utils.visualization import ForecastVisualizer

PIPELINE_STAGES = ['load', 'resample', 'diagnostics', 'fit', 'forecast', 'report']


def column_key(column: str) -> str:
    """File- and key-safe form of a column name"""
    return column.replace('.', '_')


def setup_logging(output_dir: Path) -> logging.Logger:
    """
    Configure logging with both file and console handlers

    Parameters:
    -----------
    output_dir : Path
        Directory for log file

    Returns:
    --------
    logging.Logger
        Configured logger
    """
    # Create logs directory
    log_dir = output_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    # Create timestamped log file
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"forecast_run_{timestamp}.log"

    # Component loggers propagate to the root logger
    root = logging.getLogger()
    root.setLevel(logging.INFO)

    # File handler
    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(
        logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    )

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(
        logging.Formatter('%(message)s')
    )

    root.addHandler(file_handler)
    root.addHandler(console_handler)

    return logging.getLogger("forecast_pipeline")


def initialize_components(config: Optional[ModelConfig] = None,
                          logger: logging.Logger = None) -> Dict:
    """Initialize all analysis components"""
    if logger is None:
        logger = logging.getLogger('forecast_pipeline')
    config = (config or ModelConfig()).validate()

    logger.info("Creating diagnoser...")
    diagnoser = SeriesDiagnoser(ar_max=config.eacf_ar_max, ma_max=config.eacf_ma_max)

    logger.info("Creating estimator...")
    estimator = ModelEstimator(
        day_stride=config.resample_stride,
        auto_max_p=config.auto_max_p,
        auto_max_d=config.auto_max_d,
        auto_max_q=config.auto_max_q
    )

    logger.info("Creating forecaster...")
    forecaster = ModelForecaster(horizon=config.forecast_horizon, alpha=config.alpha)

    logger.info("Creating visualizer...")
    visualizer = ForecastVisualizer()

    return {
        'config': config,
        'diagnoser': diagnoser,
        'estimator': estimator,
        'forecaster': forecaster,
        'visualizer': visualizer
    }


def load_market_data(data_dir: Path, config: ModelConfig, logger: logging.Logger) -> pd.DataFrame:
    """Load and merge the CSV sources"""
    logger.info(f"Loading market data from {data_dir}...")
    try:
        loader = DataLoader(data_dir, config=config)
        return loader.load_and_clean_data()
    except Exception as e:
        logger.error(f"Error loading data: {str(e)}")
        logger.error(f"Traceback: {traceback.format_exc()}")
        raise


def run_analysis(components: Dict, merged: pd.DataFrame, output_dir: Path,
                 logger: logging.Logger, monitor: Any = None,
                 make_plots: bool = True) -> Dict:
    """Run the analysis pipeline on the merged table"""
    logger.info("Starting analysis pipeline...")
    config: ModelConfig = components['config']

    def checkpoint(name: str):
        if monitor is not None:
            monitor.checkpoint(name)

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        series_columns = list(dict.fromkeys([*config.arima_targets, *config.var_columns]))

        # Resample
        resampled = resample_every_kth(merged, k=config.resample_stride)
        if config.export_csv:
            DataLoader.export_csv(merged, output_dir / "merged.csv")
            DataLoader.export_csv(resampled, output_dir / "resampled.csv")
        checkpoint('resample')

        # Diagnostics
        diagnoser = components['diagnoser']
        diagnostics = {
            column: diagnoser.diagnose(resampled[column], column)
            for column in series_columns
        }
        checkpoint('diagnostics')

        # Fit
        estimator = components['estimator']
        models = {}
        auto_models = {}
        for column in config.arima_targets:
            key = f"arima_{column_key(column)}"
            models[key] = estimator.fit_arima(resampled, column, order=config.arima_order)
            auto_models[key] = estimator.fit_auto_arima(resampled, column)
            logger.info(
                f"{column}: manual ARIMA{models[key].order} AIC {models[key].aic:.2f} vs "
                f"automatic ARIMA{auto_models[key].order} AIC {auto_models[key].aic:.2f}"
            )
        models['var'] = estimator.fit_var(resampled, config.var_columns, lag=config.var_lag)

        residual_tests = {
            f"{key}:{column}": diagnoser.residual_whiteness(model.residuals[column])
            for key, model in models.items()
            for column in model.residuals.columns
        }
        for key, table in residual_tests.items():
            logger.info(f"Ljung-Box on {key} residuals:\n{table.to_string()}")
        checkpoint('fit')

        # Forecast
        forecaster = components['forecaster']
        forecasts = {}
        for column in config.arima_targets:
            key = f"arima_{column_key(column)}"
            forecasts[key] = forecaster.forecast_arima(models[key])
        for column, forecast in forecaster.forecast_var(models['var']).items():
            forecasts[f"var_{column_key(column)}"] = forecast

        width_tables = {}
        for column in config.arima_targets:
            if column in config.var_columns:
                stem = column_key(column)
                width_tables[column] = forecaster.compare_interval_widths(
                    forecasts[f"arima_{stem}"], forecasts[f"var_{stem}"]
                )
                width_tables[column].to_csv(output_dir / f"interval_widths_{stem}.csv", index=False)
        checkpoint('forecast')

        results = {
            'merged': merged,
            'resampled': resampled,
            'series_columns': series_columns,
            'diagnostics': diagnostics,
            'models': models,
            'auto_models': auto_models,
            'residual_tests': residual_tests,
            'forecasts': forecasts,
            'width_tables': width_tables
        }

        # Report
        if make_plots:
            logger.info("Generating visualizations...")
            components['visualizer'].plot_results(
                results=results,
                output_path=output_dir / "plots",
                history_window=config.history_window,
                show_plots=config.show_plots
            )
        checkpoint('report')

        logger.info("Pipeline completed successfully")
        return results

    except Exception as e:
        logger.error(f"Error in analysis pipeline: {str(e)}")
        logger.error(f"Traceback: {traceback.format_exc()}")
        raise


def main(data_dir: Optional[Path] = None, output_dir: Optional[Path] = None,
         config_path: Optional[Path] = None):
    """Main entry point with configuration and setup"""
    root_dir = Path(__file__).parent
    data_dir = Path(data_dir or root_dir / "data")
    output_dir = Path(output_dir or root_dir / "results")
    output_dir.mkdir(parents=True, exist_ok=True)

    logger = setup_logging(output_dir)
    logger.info("Starting forecasting pipeline...")

    # statsmodels warns on every frequency-less index
    warnings.filterwarnings('ignore', module='statsmodels')

    try:
        config_path = Path(config_path or root_dir / "config" / "model_config.json")
        config = ModelConfig.from_json(config_path) if config_path.exists() else ModelConfig()

        monitor = ProgressMonitor(total=len(PIPELINE_STAGES), desc="Forecast pipeline", logger=logger)
        try:
            merged = load_market_data(data_dir, config, logger)
            monitor.checkpoint('load')

            components = initialize_components(config, logger)
            return run_analysis(components, merged, output_dir, logger, monitor)
        finally:
            monitor.close()

    except Exception as e:
        logger.error(f"Pipeline failed: {str(e)}")
        raise


if __name__ == '__main__':
    main()
