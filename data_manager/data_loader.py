"""
Data loader for the market indicator forecasting pipeline.
Reads the exchange rate, gold, VIX and news sentiment CSVs and merges them
into one row per trading day.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Union

import pandas as pd

from config.model_config import (
    ModelConfig, DATE_COL, FX_COL, GOLD_PRICE_COL, GOLD_VOLUME_COL, VIX_COL,
    NEXT_CLOSE_COL, SENTIMENT_COL, DAY_COL, MERGED_COLUMNS,
    MARKET_DATE_FORMAT, SENTIMENT_DATE_FORMAT
)
from data_manager.data_validator import DataValidator

logger = logging.getLogger(__name__)


class ParseError(ValueError):
    """Raised when a CSV field cannot be parsed as a number or date"""


def _to_numeric(values: pd.Series, source: str) -> pd.Series:
    """Parse a price/volume column, accepting '$' prefixes and thousands separators"""
    if pd.api.types.is_numeric_dtype(values):
        return values.astype(float)

    cleaned = (values.astype('string')
               .str.strip()
               .str.replace('$', '', regex=False)
               .str.replace(',', '', regex=False))
    try:
        return pd.to_numeric(cleaned, errors='raise').astype(float)
    except (ValueError, TypeError) as e:
        raise ParseError(f"Malformed numeric value in {source}: {e}") from e


def _to_dates(values: pd.Series, fmt: str, source: str) -> pd.Series:
    try:
        return pd.to_datetime(values, format=fmt, errors='raise')
    except (ValueError, TypeError) as e:
        raise ParseError(f"Malformed date in {source} (expected {fmt}): {e}") from e


class DataLoader:
    def __init__(self, data_dir: Union[str, Path], config: Optional[ModelConfig] = None):
        """Initialize data loader with the directory holding the input CSVs."""
        self.data_dir = Path(data_dir)
        self.config = config or ModelConfig()
        self.validator = DataValidator()

    def _read_csv(self, file_name: str) -> pd.DataFrame:
        path = self.data_dir / file_name
        if not path.exists():
            raise FileNotFoundError(f"Input file not found: {path}")

        df = pd.read_csv(path, dtype={'Date': str, 'date': str}, skipinitialspace=True)
        df.columns = [c.strip() for c in df.columns]
        logger.info(f"Read {len(df):,} rows from {path.name}")
        return df

    def _load_market_file(self, file_name: str, columns: Dict[str, str]) -> pd.DataFrame:
        """Load a market CSV keeping the date string and renaming value columns"""
        df = self._read_csv(file_name)

        missing = [c for c in [DATE_COL, *columns] if c not in df.columns]
        if missing:
            raise ParseError(f"{file_name} is missing columns: {missing}")

        out = pd.DataFrame({DATE_COL: df[DATE_COL].str.strip()})
        for source_col, target_col in columns.items():
            out[target_col] = _to_numeric(df[source_col], f"{file_name}:{source_col}")

        duplicated = out[DATE_COL].duplicated(keep='first') & out[DATE_COL].notna()
        if duplicated.any():
            logger.warning(
                f"Dropping {duplicated.sum()} duplicate dates in {file_name}, keeping first observation"
            )
            out = out[~duplicated]
        return out

    def load_exchange_rate(self) -> pd.DataFrame:
        return self._load_market_file(self.config.fx_file, {'Close': FX_COL})

    def load_gold(self) -> pd.DataFrame:
        return self._load_market_file(
            self.config.gold_file,
            {'Close': GOLD_PRICE_COL, 'Volume': GOLD_VOLUME_COL}
        )

    def load_vix(self) -> pd.DataFrame:
        return self._load_market_file(self.config.vix_file, {'Close': VIX_COL})

    def load_sentiment(self) -> pd.DataFrame:
        """Load the sentiment CSV with its date column parsed to calendar dates"""
        file_name = self.config.sentiment_file
        df = self._read_csv(file_name)

        missing = [c for c in ['date', SENTIMENT_COL] if c not in df.columns]
        if missing:
            raise ParseError(f"{file_name} is missing columns: {missing}")

        sentiment = pd.DataFrame({
            DATE_COL: _to_dates(df['date'].str.strip(), SENTIMENT_DATE_FORMAT, file_name),
            SENTIMENT_COL: _to_numeric(df[SENTIMENT_COL], f"{file_name}:{SENTIMENT_COL}")
        })

        duplicated = sentiment[DATE_COL].duplicated(keep='first')
        if duplicated.any():
            logger.warning(
                f"Dropping {duplicated.sum()} duplicate sentiment dates, keeping first observation"
            )
            sentiment = sentiment[~duplicated]

        return sentiment

    def load_sources(self) -> Dict[str, pd.DataFrame]:
        """Read all four CSV sources as-is"""
        return {
            'exchange_rate': self.load_exchange_rate(),
            'gold': self.load_gold(),
            'vix': self.load_vix(),
            'sentiment': self.load_sentiment()
        }

    def merge_sources(self, sources: Dict[str, pd.DataFrame]) -> pd.DataFrame:
        """
        Join the raw sources into one row per trading day.

        Args:
            sources: Output of load_sources()

        Returns:
            DataFrame with the merged columns, sorted by date, Day = 1..N
        """
        market = sources['exchange_rate'].merge(sources['gold'], on=DATE_COL, how='outer')
        market = market.merge(sources['vix'], on=DATE_COL, how='outer')
        n_joined = len(market)

        market = market.dropna(subset=[DATE_COL, FX_COL, GOLD_PRICE_COL, GOLD_VOLUME_COL, VIX_COL])
        market[DATE_COL] = _to_dates(market[DATE_COL], MARKET_DATE_FORMAT, 'market data')

        merged = market.merge(sources['sentiment'], on=DATE_COL, how='left')
        n_market = len(merged)
        merged = merged.dropna(subset=[SENTIMENT_COL])

        merged = merged.sort_values(DATE_COL).reset_index(drop=True)
        merged[NEXT_CLOSE_COL] = merged[VIX_COL].shift(1)
        merged[DAY_COL] = range(1, len(merged) + 1)
        merged = merged[MERGED_COLUMNS]

        logger.info(
            f"Merged market data:\n"
            f"  Joined rows: {n_joined:,}\n"
            f"  Complete market rows: {n_market:,}\n"
            f"  Rows with sentiment: {len(merged):,}"
        )
        if len(merged):
            logger.info(
                f"  Date range: {merged[DATE_COL].min():%Y-%m-%d} to {merged[DATE_COL].max():%Y-%m-%d}"
            )
        return merged

    def load_and_clean_data(self) -> pd.DataFrame:
        """Load all sources, merge and validate the merged table."""
        merged = self.merge_sources(self.load_sources())

        is_valid, issues = self.validator.validate_merged(merged)
        if not is_valid:
            raise ValueError("Merged data failed validation:\n  " + "\n  ".join(issues))

        self._log_data_quality_summary(merged)
        return merged

    def _log_data_quality_summary(self, merged: pd.DataFrame):
        """Log summary statistics of the merged table."""
        summary = merged[[FX_COL, GOLD_PRICE_COL, VIX_COL, SENTIMENT_COL]].describe().T
        logger.info("Data Quality Summary:\n" + summary[['mean', 'std', 'min', 'max']].to_string())

    @staticmethod
    def export_csv(df: pd.DataFrame, path: Union[str, Path]) -> Path:
        """Write a snapshot of a merged or resampled table"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(path, index=False, date_format=SENTIMENT_DATE_FORMAT)
        logger.info(f"Exported {len(df):,} rows to {path}")
        return path
