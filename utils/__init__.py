"""Reporting and progress utilities for the forecasting pipeline"""

from .visualization import ForecastVisualizer
from .progress import ProgressMonitor

__all__ = ['ForecastVisualizer', 'ProgressMonitor']
