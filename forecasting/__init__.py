"""
Time-series modeling package for the market indicators.
Implements order-identification diagnostics, ARIMA/VAR estimation and forecasting.
"""

from .diagnostics import SeriesDiagnoser
from .estimator import ModelEstimator, characteristic_roots
from .forecaster import ModelForecaster
from models import FittedModel, ForecastResult, EACFResult, SeriesDiagnostics

__all__ = ['SeriesDiagnoser', 'ModelEstimator', 'characteristic_roots', 'ModelForecaster',
           'FittedModel', 'ForecastResult', 'EACFResult', 'SeriesDiagnostics']
