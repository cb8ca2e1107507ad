"""Configuration constants for the forecasting pipeline."""

import json
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Tuple, Union

logger = logging.getLogger(__name__)

# Column names of the merged table
DATE_COL = 'Date'
FX_COL = 'USD.JPY'
GOLD_PRICE_COL = 'Gold.Price'
GOLD_VOLUME_COL = 'Gold.Volume'
VIX_COL = 'VIX.Close'
NEXT_CLOSE_COL = 'Next.Close'
SENTIMENT_COL = 'News.Sentiment'
DAY_COL = 'Day'

REQUIRED_COLUMNS = [FX_COL, GOLD_PRICE_COL, GOLD_VOLUME_COL, VIX_COL, SENTIMENT_COL]
MERGED_COLUMNS = [DATE_COL, FX_COL, GOLD_PRICE_COL, GOLD_VOLUME_COL,
                  VIX_COL, NEXT_CLOSE_COL, SENTIMENT_COL, DAY_COL]

MARKET_DATE_FORMAT = '%m/%d/%Y'
SENTIMENT_DATE_FORMAT = '%Y-%m-%d'


@dataclass
class ModelConfig:
    """Tunable constants for a single pipeline run"""
    resample_stride: int = 5
    arima_order: Tuple[int, int, int] = (2, 1, 1)
    var_lag: int = 2
    forecast_horizon: int = 20
    history_window: int = 60
    alpha: float = 0.05

    # Bounds for the automatic order search
    auto_max_p: int = 5
    auto_max_d: int = 2
    auto_max_q: int = 5

    # EACF table size
    eacf_ar_max: int = 7
    eacf_ma_max: int = 13

    arima_targets: Tuple[str, ...] = (VIX_COL, GOLD_PRICE_COL)
    var_columns: Tuple[str, ...] = (VIX_COL, SENTIMENT_COL)

    fx_file: str = 'USD_JPY.csv'
    gold_file: str = 'Gold.csv'
    vix_file: str = 'VIX.csv'
    sentiment_file: str = 'news_sentiment.csv'

    export_csv: bool = True
    show_plots: bool = False

    def validate(self) -> 'ModelConfig':
        """Raise ValueError for values the pipeline cannot run with"""
        if self.resample_stride < 1:
            raise ValueError(f"resample_stride must be >= 1, got {self.resample_stride}")
        if self.forecast_horizon < 1:
            raise ValueError(f"forecast_horizon must be >= 1, got {self.forecast_horizon}")
        if self.history_window < 1:
            raise ValueError(f"history_window must be >= 1, got {self.history_window}")
        if self.var_lag < 1:
            raise ValueError(f"var_lag must be >= 1, got {self.var_lag}")
        if len(self.arima_order) != 3 or any(o < 0 for o in self.arima_order):
            raise ValueError(f"arima_order must be three non-negative ints, got {self.arima_order}")
        if len(self.var_columns) < 2:
            raise ValueError("VAR needs at least two columns")
        if not 0 < self.alpha < 1:
            raise ValueError(f"alpha must be in (0, 1), got {self.alpha}")

        known = set(REQUIRED_COLUMNS)
        unknown = [c for c in (*self.arima_targets, *self.var_columns) if c not in known]
        if unknown:
            raise ValueError(f"Unknown model columns: {unknown}")
        return self

    def with_overrides(self, **overrides) -> 'ModelConfig':
        """Return a copy with the given fields replaced"""
        return replace(self, **overrides).validate()

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> 'ModelConfig':
        """Load overrides for a subset of fields from a JSON file"""
        with open(path) as f:
            raw = json.load(f)

        names = {f.name for f in fields(cls)}
        unknown = set(raw) - names
        if unknown:
            raise ValueError(f"Unknown configuration keys in {path}: {sorted(unknown)}")

        # JSON has no tuples
        for key in ('arima_order', 'arima_targets', 'var_columns'):
            if key in raw:
                raw[key] = tuple(raw[key])

        logger.info(f"Loaded configuration overrides from {path}: {sorted(raw)}")
        return cls(**raw).validate()
