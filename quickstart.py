"""Quick start script for GRU Return Forecast.

Demonstrates the complete workflow: load -> insights -> train -> evaluate -> forecast

Usage:
    python quickstart.py [CSV_URL_OR_PATH] [EPOCHS]
"""

import asyncio
import sys

from loguru import logger

from gru_forecast import ForecastSession, PipelineConfig
from gru_forecast.data import get_source
from gru_forecast.logging_utils import configure_logging


def banner(title: str) -> None:
    logger.info("=" * 80)
    logger.info(title)
    logger.info("=" * 80)


async def main(location: str, epochs) -> None:
    """Run complete demo workflow."""
    config = PipelineConfig.from_env(epochs=epochs)
    session = ForecastSession(config)

    # Step 1: Load data
    banner("STEP 1: DATA LOADING")
    await session.load(get_source(location, timeout=config.request_timeout))

    # Step 2: Insights
    banner("STEP 2: INSIGHTS")
    insights = session.get_insights()
    logger.info(f"Date range: {insights.basic.date_range}")
    logger.info(f"Total return: {insights.basic.total_return:.2%}")
    logger.info(f"Max drawdown: {insights.basic.max_drawdown:.2%}")
    logger.info(f"Annualized volatility: {insights.returns.annualized_volatility:.2%}")
    logger.info(f"Sharpe ratio: {insights.returns.sharpe_ratio:.2f}")
    logger.info(f"Trend: {insights.trends.current_trend}")

    # Step 3: Windows
    banner("STEP 3: WINDOWING")
    dataset = session.prepare_data()
    logger.info(f"Train windows: {dataset.n_train}, test windows: {dataset.n_test}")

    # Step 4: Train
    banner("STEP 4: MODEL TRAINING")
    async for progress in session.train_events():
        logger.info(
            f"Epoch {progress.epoch_index + 1}/{progress.epochs} | "
            f"Loss: {progress.loss:.6f} | {progress.elapsed_seconds:.1f}s"
        )

    # Step 5: Evaluate
    banner("STEP 5: EVALUATION")
    metrics = session.evaluate()
    logger.info(f"Test RMSE: {metrics.rmse:.6f}, MSE: {metrics.mse:.6f}")
    for key, value in session.backtest_test_split().items():
        logger.info(f"  {key}: {value:.6f}")

    # Step 6: Forecast
    banner("STEP 6: FORECASTING")
    forecast = session.forecast()
    for entry in forecast.entries:
        logger.info(
            f"Day +{entry.day_offset}: return {entry.predicted_return_pct:+.3f}% -> "
            f"{entry.projected_price:.2f} ({entry.price_delta:+.2f})"
        )

    session.dispose()
    banner("DEMO COMPLETE!")


if __name__ == "__main__":
    configure_logging()
    location = sys.argv[1] if len(sys.argv) > 1 else PipelineConfig.from_env().data_url
    epochs = sys.argv[2] if len(sys.argv) > 2 else None
    asyncio.run(main(location, epochs))
