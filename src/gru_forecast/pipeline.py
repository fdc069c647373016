"""
Forecasting session: the caller-owned state for one loaded price series.

Ties together parsing, analytics, windowing, the sequence model and the
forecast composer. All long-running steps are coroutines so a UI event
loop stays responsive: the download runs in a worker thread and training
yields after every epoch.
"""

import asyncio
from typing import AsyncIterator, Dict, List, Optional

import numpy as np
from loguru import logger

from gru_forecast.config import PipelineConfig, resolve_config
from gru_forecast.data.providers import IDataSource, get_source
from gru_forecast.errors import InsufficientDataError, NoDataError
from gru_forecast.evaluation.metrics import point_forecast_metrics
from gru_forecast.features.analytics import compute_insights
from gru_forecast.features.returns import PricePoint, compute_returns, parse_price_csv
from gru_forecast.features.windows import WindowedDataset, prepare_dataset
from gru_forecast.forecast.composer import ForecastComposer
from gru_forecast.models.base import EpochCallback, TrainEndCallback
from gru_forecast.models.sequence_model import SequenceModel
from gru_forecast.schemas import (
    EvaluationMetrics,
    Forecast,
    HistoricalData,
    Insights,
    TrainingProgress,
    TrainingSummary,
)


class ForecastSession:
    """
    Owns the price series, its derived data, and one SequenceModel.

    Reloading data disposes the windowed dataset and releases the model.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        model: Optional[SequenceModel] = None,
    ):
        self.config = resolve_config(config)
        self.model = model or SequenceModel(config=self.config)

        self.points: List[PricePoint] = []
        self.returns: np.ndarray = np.array([], dtype=float)
        self.dataset: Optional[WindowedDataset] = None
        self.last_training: Optional[TrainingSummary] = None
        self._insights: Insights = Insights()

    # ------------------------------------------------------------------ #
    #  Loading
    # ------------------------------------------------------------------ #

    def load_text(self, content: str) -> List[PricePoint]:
        """Parse CSV text and recompute returns and insights."""
        self.dispose()

        points = parse_price_csv(content)
        returns = compute_returns(points)
        insights = compute_insights(points, returns)

        # Swap all derived state at once
        self.points, self.returns, self._insights = points, returns, insights

        logger.info(f"Data loaded: samples={len(points)}, returns={len(returns)}")
        return self.points

    async def load(self, source: Optional[IDataSource] = None) -> List[PricePoint]:
        """Fetch CSV text from ``source`` (default: ``config.data_url``) and load it."""
        source = source or get_source(self.config.data_url, timeout=self.config.request_timeout)
        content = await asyncio.to_thread(source.fetch_text)
        return self.load_text(content)

    def prepare_data(
        self,
        window_size: Optional[int] = None,
        horizon: Optional[int] = None,
        test_split: Optional[float] = None,
    ) -> WindowedDataset:
        """Normalize returns and build the chronological train/test windows."""
        window_size = window_size or self.config.window_size
        horizon = horizon or self.config.prediction_horizon
        test_split = self.config.test_split if test_split is None else test_split

        # A failed build leaves the previous dataset and model untouched
        dataset = prepare_dataset(self.returns, window_size, horizon, test_split)

        if window_size != self.model.window_size or horizon != self.model.horizon:
            logger.info(f"Resizing model to window={window_size}, horizon={horizon}")
            self.model.release()
            self.model.window_size = window_size
            self.model.horizon = horizon

        self.dataset = dataset
        logger.info(
            f"Prepared dataset: train={self.dataset.n_train}, test={self.dataset.n_test}"
        )
        return self.dataset

    def _require_dataset(self) -> WindowedDataset:
        if self.dataset is None:
            raise NoDataError("Training data not loaded. Please load data first.")
        return self.dataset

    # ------------------------------------------------------------------ #
    #  Presentation contract
    # ------------------------------------------------------------------ #

    def get_insights(self) -> Insights:
        return self._insights

    def get_historical_data(self) -> Optional[HistoricalData]:
        if not self.points:
            return None
        normalized = self.dataset.normalized.tolist() if self.dataset is not None else []
        return HistoricalData(
            dates=[p.date_label for p in self.points],
            prices=[p.price for p in self.points],
            returns=self.returns.tolist(),
            normalized_returns=normalized,
        )

    def denormalize(self, value):
        """Map normalized model outputs back to returns."""
        if self.dataset is None:
            raise NoDataError("Normalization parameters not available")
        return self.dataset.params.denormalize(value)

    # ------------------------------------------------------------------ #
    #  Training / evaluation
    # ------------------------------------------------------------------ #

    async def train(
        self,
        epochs=None,
        on_epoch_end: Optional[EpochCallback] = None,
        on_train_end: Optional[TrainEndCallback] = None,
    ) -> Optional[TrainingSummary]:
        """
        Train on the prepared train split.

        Returns None when a training run is already in flight.
        """
        dataset = self._require_dataset()
        summary = await self.model.train_async(
            dataset.train_inputs,
            dataset.train_targets,
            epochs=epochs if epochs is not None else self.config.epochs,
            on_epoch_end=on_epoch_end,
            on_train_end=on_train_end,
        )
        if summary is not None:
            self.last_training = summary
        return summary

    async def train_events(self, epochs=None) -> AsyncIterator[TrainingProgress]:
        """
        Train and yield one TrainingProgress per completed epoch.

        The summary is stored on ``last_training``. Training errors are
        raised after the events that preceded them have been yielded.
        Closing the iterator early cancels the run.
        """
        queue: asyncio.Queue = asyncio.Queue()
        done = object()

        task = asyncio.ensure_future(
            self.train(epochs=epochs, on_epoch_end=lambda _, progress: queue.put_nowait(progress))
        )
        task.add_done_callback(lambda _: queue.put_nowait(done))

        try:
            while True:
                item = await queue.get()
                if item is done:
                    break
                yield item
        finally:
            # Consumer stopped early: cancel the run and wait for it to unwind
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

        # Re-raise training failures
        task.result()

    def evaluate(self) -> EvaluationMetrics:
        """Loss/MSE/RMSE on the test split (fallback values if unavailable)."""
        if self.dataset is None:
            return self.model.evaluate(None, None)
        return self.model.evaluate(self.dataset.test_inputs, self.dataset.test_targets)

    def backtest_test_split(self) -> Dict[str, float]:
        """
        Point metrics of the model on the test split, in return units.

        Raises:
            InsufficientDataError: if the test split is empty
        """
        dataset = self._require_dataset()
        if dataset.n_test == 0:
            raise InsufficientDataError("Test split is empty")

        prediction = self.model.predict(dataset.test_inputs)
        y_true = dataset.params.denormalize(dataset.test_targets)
        y_pred = dataset.params.denormalize(prediction.values)

        metrics = point_forecast_metrics(y_true, y_pred)
        logger.info(f"Test split metrics: {metrics}")
        return metrics

    # ------------------------------------------------------------------ #
    #  Forecasting
    # ------------------------------------------------------------------ #

    def forecast(self) -> Forecast:
        """Project the next ``horizon`` days from the latest window."""
        dataset = self._require_dataset()
        if not self.points:
            raise NoDataError("No price data loaded")

        composer = ForecastComposer(self.model)
        return composer.compose(dataset.normalized, dataset.params, self.points[-1].price)

    def dispose(self) -> None:
        """Drop the windowed dataset and release the model. Idempotent."""
        self.dataset = None
        self.last_training = None
        self.model.release()
