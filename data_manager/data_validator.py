"""
Data validation for the merged market table.
"""

import logging
from typing import List, Tuple

import pandas as pd
import numpy as np

from config.model_config import (
    DATE_COL, FX_COL, GOLD_PRICE_COL, GOLD_VOLUME_COL, VIX_COL,
    NEXT_CLOSE_COL, SENTIMENT_COL, DAY_COL, REQUIRED_COLUMNS, MERGED_COLUMNS
)

logger = logging.getLogger(__name__)


class DataValidator:
    """Validates the merged table produced by the loader and the resampler."""

    def __init__(self):
        # Plausible ranges; values outside are logged, not rejected
        self.validation_bounds = {
            FX_COL: {'min': 0, 'max': 1000},
            GOLD_PRICE_COL: {'min': 0, 'max': 100000},
            GOLD_VOLUME_COL: {'min': 0, 'max': np.inf},
            VIX_COL: {'min': 0, 'max': 200},
            SENTIMENT_COL: {'min': -10, 'max': 10}
        }

    def validate_merged(self, df: pd.DataFrame) -> Tuple[bool, List[str]]:
        """
        Validates the merged market table.

        Args:
            df: DataFrame from DataLoader.merge_sources

        Returns:
            Tuple of (is_valid, list_of_issues)
        """
        issues = []

        missing_cols = [col for col in MERGED_COLUMNS if col not in df.columns]
        if missing_cols:
            issues.append(f"Missing required columns: {missing_cols}")
            return False, issues

        # Required fields are never null after cleaning
        for col in REQUIRED_COLUMNS:
            missing_count = df[col].isna().sum()
            if missing_count > 0:
                issues.append(f"Column {col} has {missing_count} missing values")

        issues.extend(self.check_day_index(df[DAY_COL]))
        issues.extend(self.check_next_close(df))

        if not df[DATE_COL].is_monotonic_increasing:
            issues.append(f"{DATE_COL} is not sorted ascending")
        if not df[DATE_COL].is_unique:
            issues.append(f"{DATE_COL} has {df[DATE_COL].duplicated().sum()} repeated trading days")

        for warning in self.check_bounds(df):
            logger.warning(warning)

        return len(issues) == 0, issues

    def check_bounds(self, df: pd.DataFrame) -> List[str]:
        """Values outside the plausible ranges. Advisory, never fails validation."""
        warnings = []
        for col, bounds in self.validation_bounds.items():
            if col in df.columns:
                warnings.extend(self._validate_bounds(df[col], bounds['min'], bounds['max'], col))
        return warnings

    def check_day_index(self, days: pd.Series) -> List[str]:
        """Day must run 1..N with no gaps."""
        expected = np.arange(1, len(days) + 1)
        if not np.array_equal(days.to_numpy(), expected):
            return [f"{DAY_COL} is not a contiguous 1-based index"]
        return []

    def check_next_close(self, df: pd.DataFrame) -> List[str]:
        """Next.Close at Day i is VIX.Close at Day i-1 and missing at Day 1."""
        issues = []
        if len(df) == 0:
            return issues

        if not pd.isna(df[NEXT_CLOSE_COL].iloc[0]):
            issues.append(f"{NEXT_CLOSE_COL} should be missing on the first day")

        previous = df[VIX_COL].to_numpy()[:-1]
        shifted = df[NEXT_CLOSE_COL].to_numpy()[1:]
        if not np.allclose(shifted, previous, equal_nan=True):
            issues.append(f"{NEXT_CLOSE_COL} does not match the previous {VIX_COL}")
        return issues

    def check_resampled(self, resampled: pd.DataFrame, n_rows: int, stride: int) -> List[str]:
        """Resampled table has ceil(N/K) rows with Day values on the stride grid."""
        issues = []
        expected_len = -(-n_rows // stride)
        if len(resampled) != expected_len:
            issues.append(f"Expected {expected_len} resampled rows, got {len(resampled)}")

        days = resampled[DAY_COL].to_numpy()
        if len(days) and np.any((days - days[0]) % stride != 0):
            issues.append(f"Resampled {DAY_COL} values are off the stride {stride} grid")
        if np.any(np.diff(days) <= 0):
            issues.append(f"Resampled {DAY_COL} values are not increasing")
        return issues

    def _validate_bounds(self, series: pd.Series, min_val: float, max_val: float, name: str) -> List[str]:
        """Validates that values fall within expected bounds."""
        issues = []

        # Check for values below minimum
        below_min = series[series < min_val]
        if not below_min.empty:
            issues.append(
                f"{name}: {len(below_min)} values below minimum of {min_val} "
                f"(first occurrence at index {below_min.index[0]})"
            )

        # Check for values above maximum
        above_max = series[series > max_val]
        if not above_max.empty:
            issues.append(
                f"{name}: {len(above_max)} values above maximum of {max_val} "
                f"(first occurrence at index {above_max.index[0]})"
            )

        return issues
