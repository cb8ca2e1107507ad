"""Script to generate identification diagnostics without fitting models"""

import logging
from pathlib import Path
import sys

# Add parent directory to path
sys.path.append(str(Path(__file__).parent.parent))

from config.model_config import ModelConfig
from data_manager.data_loader import DataLoader
from data_manager.resampler import resample_every_kth
from forecasting.diagnostics import SeriesDiagnoser
from utils.visualization import ForecastVisualizer

def main():
    # Set up logging
    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger('diagnostic_plots')

    root_dir = Path(__file__).parent.parent
    config = ModelConfig()

    try:
        merged = DataLoader(root_dir / "data", config=config).load_and_clean_data()
        resampled = resample_every_kth(merged, k=config.resample_stride)

        diagnoser = SeriesDiagnoser(ar_max=config.eacf_ar_max, ma_max=config.eacf_ma_max)
        output_dir = root_dir / "results" / "diagnostics"
        output_dir.mkdir(parents=True, exist_ok=True)

        columns = list(dict.fromkeys([*config.arima_targets, *config.var_columns]))
        with ForecastVisualizer() as viz:
            viz.plot_series(resampled, columns, title='Resampled series',
                            save_path=output_dir / "series.png")

            for column in columns:
                logger.info(f"Generating diagnostics for {column}...")
                stem = column.replace('.', '_')
                diagnostics = diagnoser.diagnose(resampled[column], column)

                viz.plot_qq(resampled[column], save_path=output_dir / f"{stem}_qq.png")
                viz.plot_correlograms(resampled[column], title=column,
                                      save_path=output_dir / f"{stem}_acf_pacf.png")
                if diagnostics.eacf is not None:
                    diagnostics.eacf.symbols.to_csv(output_dir / f"{stem}_eacf.csv")
                    viz.plot_eacf(diagnostics.eacf, title=f"EACF - {column}",
                                  save_path=output_dir / f"{stem}_eacf.png")
                viz.close_all()

        logger.info(f"Diagnostics saved to {output_dir}")

    except Exception as e:
        logger.error(f"Error generating diagnostics: {str(e)}")
        raise

if __name__ == "__main__":
    main()
