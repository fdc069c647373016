"""Base interface for sequence forecasters."""

from abc import ABC, abstractmethod
from typing import Callable, Optional

import numpy as np

from gru_forecast.schemas import EvaluationMetrics, TrainingProgress, TrainingSummary

EpochCallback = Callable[[int, TrainingProgress], None]
TrainEndCallback = Callable[[float], None]


class BaseForecaster(ABC):
    """
    Interface for forecasting models.
    Implement this to plug another regressor into the pipeline.
    """

    @abstractmethod
    def build(self) -> None:
        """Construct a fresh model, discarding existing weights."""
        pass

    @abstractmethod
    def train(
        self,
        inputs: np.ndarray,
        targets: np.ndarray,
        epochs=None,
        on_epoch_end: Optional[EpochCallback] = None,
        on_train_end: Optional[TrainEndCallback] = None,
    ) -> Optional[TrainingSummary]:
        """
        Fit the model.

        Args:
            inputs: (N, window, 1) training windows
            targets: (N, horizon) training targets
            epochs: Requested epochs (coerced to >= 1)
            on_epoch_end: Called with (epoch_index, progress) after every epoch
            on_train_end: Called once with total seconds when the run ends

        Returns:
            Training summary, or None if the call was rejected
        """
        pass

    @abstractmethod
    def predict(self, window: np.ndarray):
        """Predict ``horizon`` normalized returns for one window or a batch."""
        pass

    @abstractmethod
    def evaluate(self, test_inputs: np.ndarray, test_targets: np.ndarray) -> EvaluationMetrics:
        """Compute held-out loss metrics."""
        pass

    @abstractmethod
    def release(self) -> None:
        """Free model resources. Safe to call repeatedly."""
        pass
