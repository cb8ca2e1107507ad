import sys
import os
import pytest
import numpy as np
import pandas as pd
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

# Add project root to Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.append(project_root)

from config.model_config import DAY_COL, VIX_COL, SENTIMENT_COL
from forecasting.diagnostics import SeriesDiagnoser
from models import ForecastResult
from utils.visualization import ForecastVisualizer

@pytest.fixture
def visualizer():
    """Create visualizer instance"""
    viz = ForecastVisualizer()
    yield viz
    viz.close_all()

@pytest.fixture
def sample_history():
    """Create a resampled-style table"""
    np.random.seed(42)
    n = 120
    return pd.DataFrame({
        VIX_COL: 20 + np.random.normal(0, 1, n).cumsum() * 0.5,
        SENTIMENT_COL: np.random.normal(0, 0.1, n),
        DAY_COL: 1 + 5 * np.arange(n)
    })

def make_forecast(history, label, column=VIX_COL, horizon=10, spread=1.0):
    last_day = history[DAY_COL].iloc[-1]
    mean = np.full(horizon, history[column].iloc[-1])
    se = spread * np.sqrt(np.arange(1, horizon + 1))
    frame = pd.DataFrame({
        'step': np.arange(1, horizon + 1),
        DAY_COL: last_day + 5 * np.arange(1, horizon + 1),
        'forecast': mean,
        'lower': mean - 1.96 * se,
        'upper': mean + 1.96 * se,
        'se': se
    })
    return ForecastResult(model_label=label, column=column, frame=frame)

@pytest.fixture
def width_table():
    steps = np.arange(1, 11)
    return pd.DataFrame({
        'step': steps,
        DAY_COL: 600 + 5 * steps,
        'arima_half_width': np.sqrt(steps) * 2.0,
        'var_half_width': np.sqrt(steps) * 1.5
    })

def test_style_fallback():
    """Unknown style falls back to default"""
    viz = ForecastVisualizer(style='no-such-style')
    assert len(viz.colors) > 0
    viz.close_all()

def test_plot_series(visualizer, sample_history, tmp_path):
    """Test series plotting"""
    save_path = tmp_path / 'series.png'
    fig = visualizer.plot_series(sample_history, [VIX_COL, SENTIMENT_COL],
                                 title='Series', save_path=save_path)

    assert isinstance(fig, plt.Figure)
    assert len(fig.axes) == 2
    assert save_path.exists()

def test_plot_series_empty(visualizer):
    with pytest.raises(ValueError):
        visualizer.plot_series(pd.DataFrame(columns=[DAY_COL, VIX_COL]), [VIX_COL])

def test_plot_qq(visualizer, sample_history, tmp_path):
    save_path = tmp_path / 'qq.png'
    fig = visualizer.plot_qq(sample_history[VIX_COL], save_path=save_path)

    assert isinstance(fig, plt.Figure)
    assert save_path.exists()

def test_plot_qq_empty(visualizer):
    with pytest.raises(ValueError):
        visualizer.plot_qq(pd.Series([np.nan, np.nan]))

def test_plot_correlograms(visualizer, sample_history, tmp_path):
    save_path = tmp_path / 'acf.png'
    fig = visualizer.plot_correlograms(sample_history[VIX_COL], lags=20, save_path=save_path)

    assert len(fig.axes) == 2
    assert save_path.exists()

def test_plot_eacf(visualizer, sample_history, tmp_path):
    eacf = SeriesDiagnoser(ar_max=3, ma_max=5).compute_eacf(sample_history[VIX_COL].diff().dropna())
    save_path = tmp_path / 'eacf.png'
    fig = visualizer.plot_eacf(eacf, save_path=save_path)

    assert isinstance(fig, plt.Figure)
    assert save_path.exists()

def test_plot_forecast(visualizer, sample_history, tmp_path):
    """Test forecast plotting"""
    forecast = make_forecast(sample_history, 'ARIMA(2,1,1) VIX.Close')
    save_path = tmp_path / 'forecast.png'
    fig = visualizer.plot_forecast(sample_history, forecast, history_window=30, save_path=save_path)

    ax = fig.axes[0]
    observed = ax.get_lines()[0]
    assert len(observed.get_xdata()) == 30
    assert save_path.exists()

def test_plot_forecast_comparison(visualizer, sample_history, tmp_path):
    forecasts = [
        make_forecast(sample_history, 'ARIMA(2,1,1) VIX.Close', spread=1.0),
        make_forecast(sample_history, 'VAR(2) VIX.Close/News.Sentiment', spread=0.8)
    ]
    save_path = tmp_path / 'comparison.png'
    fig = visualizer.plot_forecast_comparison(sample_history, forecasts, save_path=save_path)

    # Observed line plus one forecast path per model
    assert len(fig.axes[0].get_lines()) == 3
    assert save_path.exists()

def test_plot_forecast_comparison_invalid(visualizer, sample_history):
    with pytest.raises(ValueError):
        visualizer.plot_forecast_comparison(sample_history, [])

    mixed = [
        make_forecast(sample_history, 'a', column=VIX_COL),
        make_forecast(sample_history, 'b', column=SENTIMENT_COL)
    ]
    with pytest.raises(ValueError):
        visualizer.plot_forecast_comparison(sample_history, mixed)

def test_plot_interval_widths(visualizer, width_table, tmp_path):
    save_path = tmp_path / 'widths.png'
    fig = visualizer.plot_interval_widths(width_table, save_path=save_path)

    assert len(fig.axes[0].get_lines()) == 2
    assert save_path.exists()

def test_context_manager(sample_history):
    with ForecastVisualizer() as viz:
        viz.plot_series(sample_history, [VIX_COL])
        assert plt.get_fignums()
    assert not plt.get_fignums()

if __name__ == '__main__':
    pytest.main([__file__])
