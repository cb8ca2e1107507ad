import sys
import os

# Add project root to Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.append(project_root)

import pytest
import numpy as np
import pandas as pd
from config.model_config import (
    ModelConfig, FX_COL, GOLD_PRICE_COL, GOLD_VOLUME_COL, VIX_COL,
    NEXT_CLOSE_COL, SENTIMENT_COL, DAY_COL, REQUIRED_COLUMNS
)
from data_manager.data_loader import DataLoader, ParseError
from data_manager.data_validator import DataValidator


def write_sources(data_dir, dates, sentiment_dates=None, drop_gold=(), fx_override=None):
    """Write the four CSV sources for the given business days"""
    rng = np.random.RandomState(7)
    n = len(dates)
    market_dates = [d.strftime('%m/%d/%Y') for d in dates]

    fx = pd.DataFrame({'Date': market_dates, 'Close': 140 + rng.normal(0, 1, n).cumsum()})
    if fx_override is not None:
        fx['Close'] = fx['Close'].astype(object)
        fx.loc[0, 'Close'] = fx_override
    gold = pd.DataFrame({
        'Date': market_dates,
        'Close': [f"${v:,.2f}" for v in 1800 + rng.normal(0, 5, n).cumsum()],
        'Volume': rng.randint(1000, 5000, n)
    })
    gold = gold.drop(index=list(drop_gold))
    vix = pd.DataFrame({
        'Date': market_dates,
        'Open': 20.0,
        'Close': 20 + rng.normal(0, 1, n).cumsum() * 0.1
    })
    # Market CSVs are often newest first
    fx.iloc[::-1].to_csv(data_dir / 'USD_JPY.csv', index=False)
    gold.iloc[::-1].to_csv(data_dir / 'Gold.csv', index=False)
    vix.iloc[::-1].to_csv(data_dir / 'VIX.csv', index=False)

    sentiment_dates = dates if sentiment_dates is None else sentiment_dates
    sentiment = pd.DataFrame({
        'date': [d.strftime('%Y-%m-%d') for d in sentiment_dates],
        'News.Sentiment': rng.normal(0, 0.1, len(sentiment_dates))
    })
    sentiment.to_csv(data_dir / 'news_sentiment.csv', index=False)
    return fx, gold, vix, sentiment


@pytest.fixture
def business_days():
    return pd.bdate_range('1990-01-02', periods=60)


@pytest.fixture
def loader(tmp_path, business_days):
    write_sources(tmp_path, business_days)
    return DataLoader(tmp_path, config=ModelConfig())


def test_merged_columns_and_order(loader, business_days):
    """Merged table has one sorted row per trading day"""
    merged = loader.load_and_clean_data()

    assert len(merged) == len(business_days)
    assert list(merged.columns) == ['Date', FX_COL, GOLD_PRICE_COL, GOLD_VOLUME_COL,
                                    VIX_COL, NEXT_CLOSE_COL, SENTIMENT_COL, DAY_COL]
    assert merged['Date'].is_monotonic_increasing
    assert pd.api.types.is_datetime64_any_dtype(merged['Date'])
    assert merged['Date'].iloc[0] == pd.Timestamp('1990-01-02')


def test_required_fields_non_null(loader):
    merged = loader.load_and_clean_data()
    assert not merged[REQUIRED_COLUMNS].isna().any().any()


def test_day_contiguous_from_one(loader):
    merged = loader.load_and_clean_data()
    assert merged[DAY_COL].tolist() == list(range(1, len(merged) + 1))


def test_next_close_is_previous_vix(loader):
    """Next.Close at Day i equals VIX.Close at Day i-1"""
    merged = loader.load_and_clean_data()

    assert pd.isna(merged[NEXT_CLOSE_COL].iloc[0])
    np.testing.assert_allclose(
        merged[NEXT_CLOSE_COL].iloc[1:].to_numpy(),
        merged[VIX_COL].iloc[:-1].to_numpy()
    )


def test_dollar_prices_parsed(tmp_path, business_days):
    """Gold prices with '$' and thousands separators parse as floats"""
    _, gold, _, _ = write_sources(tmp_path, business_days)
    merged = DataLoader(tmp_path).load_and_clean_data()

    expected = float(gold['Close'].iloc[0].replace('$', '').replace(',', ''))
    assert merged[GOLD_PRICE_COL].iloc[0] == pytest.approx(expected)


def test_incomplete_rows_dropped(tmp_path, business_days):
    """Rows missing gold or sentiment are filtered out silently"""
    sentiment_dates = business_days.delete([10, 11])
    write_sources(tmp_path, business_days, sentiment_dates=sentiment_dates, drop_gold=(3,))

    merged = DataLoader(tmp_path).load_and_clean_data()

    assert len(merged) == len(business_days) - 3
    assert business_days[3] not in set(merged['Date'])
    assert business_days[10] not in set(merged['Date'])
    assert merged[DAY_COL].tolist() == list(range(1, len(merged) + 1))


def test_duplicate_sentiment_dates(tmp_path, business_days):
    sentiment_dates = business_days.append(business_days[:5])
    write_sources(tmp_path, business_days, sentiment_dates=sentiment_dates)

    merged = DataLoader(tmp_path).load_and_clean_data()
    assert len(merged) == len(business_days)


def test_duplicate_market_dates(tmp_path, business_days):
    """A repeated row in a market file still yields one row per trading day"""
    write_sources(tmp_path, business_days)
    vix = pd.read_csv(tmp_path / 'VIX.csv', dtype={'Date': str})
    vix = pd.concat([vix, vix.iloc[[4]]], ignore_index=True)
    vix.to_csv(tmp_path / 'VIX.csv', index=False)

    merged = DataLoader(tmp_path).load_and_clean_data()

    assert len(merged) == len(business_days)
    assert merged['Date'].is_unique


def test_wide_sentiment_scale_accepted(tmp_path, business_days):
    """Out-of-range values are logged, not rejected"""
    write_sources(tmp_path, business_days)
    sentiment = pd.read_csv(tmp_path / 'news_sentiment.csv', dtype={'date': str})
    sentiment['News.Sentiment'] = sentiment['News.Sentiment'] * 200 + 50
    sentiment.to_csv(tmp_path / 'news_sentiment.csv', index=False)

    merged = DataLoader(tmp_path).load_and_clean_data()

    assert len(merged) == len(business_days)
    assert DataValidator().check_bounds(merged)


def test_malformed_numeric_raises(tmp_path, business_days):
    write_sources(tmp_path, business_days, fx_override='abc')
    with pytest.raises(ParseError):
        DataLoader(tmp_path).load_and_clean_data()


def test_malformed_date_raises(tmp_path, business_days):
    write_sources(tmp_path, business_days)
    sentiment = pd.read_csv(tmp_path / 'news_sentiment.csv')
    sentiment.loc[0, 'date'] = '02/01/1990'
    sentiment.to_csv(tmp_path / 'news_sentiment.csv', index=False)

    with pytest.raises(ParseError):
        DataLoader(tmp_path).load_and_clean_data()


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        DataLoader(tmp_path).load_and_clean_data()


def test_export_csv(loader, tmp_path):
    merged = loader.load_and_clean_data()
    path = DataLoader.export_csv(merged, tmp_path / 'out' / 'merged.csv')

    exported = pd.read_csv(path)
    assert len(exported) == len(merged)
    assert exported['Date'].iloc[0] == '1990-01-02'


def test_validator_flags_gaps(loader):
    merged = loader.load_and_clean_data()
    broken = merged.copy()
    broken.loc[5, DAY_COL] = 100

    is_valid, issues = DataValidator().validate_merged(broken)
    assert not is_valid
    assert any(DAY_COL in issue for issue in issues)


def test_validator_flags_repeated_dates(loader):
    merged = loader.load_and_clean_data()
    broken = merged.copy()
    broken.loc[3, 'Date'] = broken.loc[2, 'Date']

    is_valid, issues = DataValidator().validate_merged(broken)
    assert not is_valid
    assert any('repeated' in issue for issue in issues)


def test_validator_flags_missing_values(loader):
    merged = loader.load_and_clean_data()
    broken = merged.copy()
    broken.loc[2, SENTIMENT_COL] = np.nan

    is_valid, issues = DataValidator().validate_merged(broken)
    assert not is_valid
    assert any(SENTIMENT_COL in issue for issue in issues)


if __name__ == '__main__':
    pytest.main([__file__])
