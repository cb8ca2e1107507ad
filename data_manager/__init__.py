"""
Data management package for the forecasting pipeline.
Handles CSV loading, merging, validation and resampling.
"""

from .data_loader import DataLoader, ParseError
from .data_validator import DataValidator
from .resampler import resample_every_kth

__all__ = ['DataLoader', 'ParseError', 'DataValidator', 'resample_every_kth']
