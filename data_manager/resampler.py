"""Downsampling of the merged daily table"""

import logging

import pandas as pd

from config.model_config import DAY_COL

logger = logging.getLogger(__name__)


def resample_every_kth(df: pd.DataFrame, k: int = 5) -> pd.DataFrame:
    """
    Keep every kth row of a Day-ordered table, starting from the first.

    Daily observations behave close to a random walk, so the models are fitted
    on a sparser grid. The stride counts rows, not calendar business days.
    Original Day values are preserved.
    """
    if k < 1:
        raise ValueError(f"Resample stride must be >= 1, got {k}")
    if not df[DAY_COL].is_monotonic_increasing:
        df = df.sort_values(DAY_COL)

    resampled = df.iloc[::k].reset_index(drop=True)
    logger.info(f"Resampled {len(df):,} rows with stride {k} -> {len(resampled):,} rows")
    return resampled
