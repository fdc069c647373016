"""
Lifecycle wrapper around GRURegressor: build, train, predict, evaluate, release.

Training runs epoch by epoch as a generator so the same loop can be
driven synchronously or from an asyncio task that yields between epochs.
"""

import asyncio
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Generator, Optional

import numpy as np
import torch
import torch.nn as nn
from loguru import logger
from sklearn.metrics import mean_squared_error
from torch.utils.data import DataLoader, TensorDataset
from tqdm import tqdm

from gru_forecast.config import (
    FALLBACK_LOSS,
    FALLBACK_MSE,
    FALLBACK_RMSE,
    PipelineConfig,
    coerce_epochs,
    resolve_config,
)
from gru_forecast.errors import (
    InputMissingError,
    InsufficientDataError,
    TrainingFailedError,
)
from gru_forecast.models.base import BaseForecaster, EpochCallback, TrainEndCallback
from gru_forecast.models.gru_regressor import GRURegressor
from gru_forecast.schemas import EvaluationMetrics, TrainingProgress, TrainingSummary


class ModelState(str, Enum):
    UNBUILT = "unbuilt"
    BUILT = "built"
    TRAINED = "trained"


@dataclass
class Prediction:
    """Model output. ``degraded`` marks the all-zero fallback."""

    values: np.ndarray
    degraded: bool = False


def fallback_metrics() -> EvaluationMetrics:
    return EvaluationMetrics(
        loss=FALLBACK_LOSS,
        mse=FALLBACK_MSE,
        rmse=FALLBACK_RMSE,
        degraded=True,
    )


class SequenceModel(BaseForecaster):
    """
    Owns one GRURegressor and its optimizer.

    States: UNBUILT -> BUILT -> TRAINED. ``release()`` returns to UNBUILT.
    Not reentrant: a training call made while another is running is
    rejected and returns None.
    """

    def __init__(
        self,
        window_size: Optional[int] = None,
        horizon: Optional[int] = None,
        config: Optional[PipelineConfig] = None,
        device: str = "cuda" if torch.cuda.is_available() else "cpu",
    ):
        """
        Initialize the sequence model.

        Args:
            window_size: Input window length (defaults to config)
            horizon: Forecast horizon (defaults to config)
            config: Pipeline configuration
            device: 'cuda' or 'cpu'
        """
        self.config = resolve_config(config)
        self.window_size = window_size or self.config.window_size
        self.horizon = horizon or self.config.prediction_horizon
        self.device = device

        self.model: Optional[GRURegressor] = None
        self.optimizer: Optional[torch.optim.Optimizer] = None
        self.loss_fn = nn.MSELoss()
        self.state = ModelState.UNBUILT
        self.history: Optional[TrainingSummary] = None
        self._training = False

    @property
    def is_built(self) -> bool:
        return self.model is not None

    @property
    def is_trained(self) -> bool:
        return self.state == ModelState.TRAINED

    @property
    def is_training(self) -> bool:
        return self._training

    # ------------------------------------------------------------------ #
    #  Build / release
    # ------------------------------------------------------------------ #

    def build(self) -> GRURegressor:
        """Build a fresh GRU regressor and Adam optimizer."""
        if self.model is not None:
            self.release()

        torch.manual_seed(self.config.seed)
        np.random.seed(self.config.seed)

        self.model = GRURegressor(
            window_size=self.window_size,
            horizon=self.horizon,
            hidden_size=self.config.hidden_units,
        ).to(self.device)
        self.optimizer = torch.optim.Adam(self.model.parameters(), lr=self.config.learning_rate)
        self.state = ModelState.BUILT

        logger.info(
            f"Built model on {self.device}: GRU({self.config.hidden_units}) -> "
            f"Dense({self.horizon}), Adam(lr={self.config.learning_rate}), loss=MSE"
        )
        return self.model

    def release(self) -> None:
        """Free the model and optimizer. Idempotent."""
        if self.model is not None:
            logger.info("Releasing model")
        self.model = None
        self.optimizer = None
        self.state = ModelState.UNBUILT
        if torch.cuda.is_available():
            torch.cuda.empty_cache()

    # ------------------------------------------------------------------ #
    #  Training
    # ------------------------------------------------------------------ #

    def train(
        self,
        inputs: np.ndarray,
        targets: np.ndarray,
        epochs=None,
        on_epoch_end: Optional[EpochCallback] = None,
        on_train_end: Optional[TrainEndCallback] = None,
    ) -> Optional[TrainingSummary]:
        """
        Train synchronously.

        Raises:
            TrainingFailedError: if the fit loop raises; the model is still
                marked trained with whatever weights it reached
        """
        run = self._start_run(inputs, targets, epochs, on_epoch_end, on_train_end)
        if run is None:
            return None
        while True:
            try:
                next(run)
            except StopIteration as stop:
                return stop.value

    async def train_async(
        self,
        inputs: np.ndarray,
        targets: np.ndarray,
        epochs=None,
        on_epoch_end: Optional[EpochCallback] = None,
        on_train_end: Optional[TrainEndCallback] = None,
    ) -> Optional[TrainingSummary]:
        """Same contract as ``train``, yielding to the event loop after every epoch."""
        run = self._start_run(inputs, targets, epochs, on_epoch_end, on_train_end)
        if run is None:
            return None
        try:
            while True:
                try:
                    next(run)
                except StopIteration as stop:
                    return stop.value
                await asyncio.sleep(0)
        finally:
            run.close()

    def _start_run(
        self,
        inputs: np.ndarray,
        targets: np.ndarray,
        epochs,
        on_epoch_end: Optional[EpochCallback],
        on_train_end: Optional[TrainEndCallback],
    ) -> Optional[Generator[int, None, TrainingSummary]]:
        """Validate a training request and claim the model, or reject it."""
        if self._training:
            logger.warning("Already training, ignoring new training request")
            return None

        if inputs is None or targets is None:
            raise InputMissingError("Training data not provided")

        x = np.asarray(inputs, dtype=np.float32)
        y = np.asarray(targets, dtype=np.float32)
        if len(x) == 0:
            raise InsufficientDataError("No training samples available")

        if self.model is None:
            logger.info("Model not built, building now...")
            self.build()

        actual_epochs = coerce_epochs(epochs if epochs is not None else self.config.epochs)
        batch_size = min(self.config.batch_size, len(x))

        # Hold out the chronological tail for validation, no shuffling
        n_fit = int(math.floor(len(x) * (1 - self.config.validation_split)))
        if n_fit <= 0 or n_fit >= len(x):
            n_fit = len(x)

        logger.info(
            f"Training configuration: epochs={actual_epochs}, batch_size={batch_size}, "
            f"samples={len(x)}, validation={len(x) - n_fit}"
        )

        self._training = True
        return self._run_epochs(
            x[:n_fit],
            y[:n_fit],
            x[n_fit:],
            y[n_fit:],
            actual_epochs,
            batch_size,
            on_epoch_end,
            on_train_end,
        )

    def _run_epochs(
        self,
        train_x: np.ndarray,
        train_y: np.ndarray,
        val_x: np.ndarray,
        val_y: np.ndarray,
        epochs: int,
        batch_size: int,
        on_epoch_end: Optional[EpochCallback],
        on_train_end: Optional[TrainEndCallback],
    ) -> Generator[int, None, TrainingSummary]:
        model = self.model
        optimizer = self.optimizer
        start_time = time.perf_counter()
        train_losses = []
        val_losses = []

        try:
            train_loader = self._create_dataloader(train_x, train_y, batch_size)
            val_loader = None
            if len(val_x) > 0:
                val_loader = self._create_dataloader(val_x, val_y, batch_size)

            logger.info(f"Starting training for {epochs} epochs")

            for epoch in range(epochs):
                train_loss = self._train_epoch(model, optimizer, train_loader, epoch, epochs)
                train_losses.append(train_loss)

                val_loss = None
                if val_loader is not None:
                    val_loss = self._validate_epoch(model, val_loader)
                    val_losses.append(val_loss)

                elapsed = time.perf_counter() - start_time
                if val_loss is not None:
                    logger.info(
                        f"Epoch {epoch + 1}/{epochs} - "
                        f"Train Loss: {train_loss:.6f}, Val Loss: {val_loss:.6f}"
                    )
                else:
                    logger.info(f"Epoch {epoch + 1}/{epochs} - Train Loss: {train_loss:.6f}")

                progress = TrainingProgress(
                    epoch_index=epoch,
                    epochs=epochs,
                    loss=train_loss,
                    validation_loss=val_loss,
                    elapsed_seconds=elapsed,
                    percent_complete=(epoch + 1) / epochs * 100,
                    epochs_remaining=epochs - epoch - 1,
                )
                self._notify_epoch_end(on_epoch_end, epoch, progress)
                yield epoch

        except GeneratorExit:
            logger.warning(f"Training abandoned after {len(train_losses)} epochs")
            self._mark_trained(model)
            self._training = False
            raise
        except Exception as e:
            total_time = time.perf_counter() - start_time
            logger.error(f"Training failed with error: {e}")
            self._mark_trained(model)
            self._training = False
            self._notify_train_end(on_train_end, total_time)
            raise TrainingFailedError(f"Training failed: {e}") from e
        finally:
            self._training = False

        total_time = time.perf_counter() - start_time
        self._mark_trained(model)
        logger.info(f"Training completed in {total_time:.1f} seconds")

        summary = TrainingSummary(
            epochs=epochs,
            batch_size=batch_size,
            train_samples=len(train_x),
            validation_samples=len(val_x),
            train_loss=train_losses,
            val_loss=val_losses,
            training_time=total_time,
        )
        self.history = summary
        self._notify_train_end(on_train_end, total_time)
        return summary

    def _mark_trained(self, model: Optional[GRURegressor]) -> None:
        # A release() during the run detaches the model; keep UNBUILT then
        if model is not None and self.model is model:
            self.state = ModelState.TRAINED

    def _train_epoch(
        self,
        model: GRURegressor,
        optimizer: torch.optim.Optimizer,
        train_loader: DataLoader,
        epoch: int,
        epochs: int,
    ) -> float:
        """Run one training epoch with MSE loss."""
        model.train()
        total_loss = 0.0
        n_batches = 0

        batches = tqdm(
            train_loader,
            desc=f"Epoch {epoch + 1}/{epochs}",
            leave=False,
            disable=not self.config.show_progress,
        )
        for x_batch, y_batch in batches:
            x_batch = x_batch.to(self.device)
            y_batch = y_batch.to(self.device)

            predictions = model(x_batch)
            loss = self.loss_fn(predictions, y_batch)

            if not torch.isfinite(loss):
                logger.warning("Non-finite loss encountered, skipping batch")
                continue

            optimizer.zero_grad()
            loss.backward()
            optimizer.step()

            total_loss += loss.item()
            n_batches += 1

        if n_batches == 0:
            return float("nan")
        return total_loss / n_batches

    def _validate_epoch(self, model: GRURegressor, val_loader: DataLoader) -> float:
        """Run validation epoch with MSE loss."""
        model.eval()
        total_loss = 0.0
        n_batches = 0

        with torch.no_grad():
            for x_batch, y_batch in val_loader:
                predictions = model(x_batch.to(self.device))
                loss = self.loss_fn(predictions, y_batch.to(self.device))
                total_loss += loss.item()
                n_batches += 1

        return total_loss / max(n_batches, 1)

    def _create_dataloader(self, x: np.ndarray, y: np.ndarray, batch_size: int) -> DataLoader:
        """Create an unshuffled DataLoader from numpy arrays."""
        dataset = TensorDataset(torch.from_numpy(x), torch.from_numpy(y))
        return DataLoader(dataset, batch_size=batch_size, shuffle=False)

    @staticmethod
    def _notify_epoch_end(
        callback: Optional[EpochCallback],
        epoch: int,
        progress: TrainingProgress,
    ) -> None:
        if callback is None:
            return
        try:
            callback(epoch, progress)
        except Exception as e:
            logger.warning(f"on_epoch_end callback error: {e}")

    @staticmethod
    def _notify_train_end(callback: Optional[TrainEndCallback], total_time: float) -> None:
        if callback is None:
            return
        try:
            callback(total_time)
        except Exception as e:
            logger.warning(f"on_train_end callback error: {e}")

    # ------------------------------------------------------------------ #
    #  Inference
    # ------------------------------------------------------------------ #

    def predict(self, window: np.ndarray) -> Prediction:
        """
        Predict normalized returns for the next ``horizon`` days.

        Args:
            window: (window, 1) or (window,) for one window, (N, window, 1)
                for a batch

        Returns:
            Prediction with values of shape (horizon,) or (N, horizon);
            all zeros with ``degraded=True`` on numeric failure

        Raises:
            InputMissingError: if ``window`` is None or empty
        """
        if self.model is None:
            logger.warning("Model not built, building now...")
            self.build()

        if window is None:
            raise InputMissingError("Input data not provided")
        if np.size(window) == 0:
            raise InputMissingError("Input window is empty")

        x = None
        single = True
        try:
            x = np.asarray(window, dtype=np.float32)
            single = x.ndim == 1 or (x.ndim == 2 and x.shape[-1] == self.model.input_size)
            if single:
                x = x.reshape(1, -1, self.model.input_size)

            self.model.eval()
            with torch.no_grad():
                output = self.model(torch.from_numpy(x).to(self.device)).cpu().numpy()

            if not np.all(np.isfinite(output)):
                raise ValueError("non-finite prediction")

            return Prediction(values=output[0] if single else output)

        except Exception as e:
            logger.error(f"Prediction error: {e}")
            if single or x is None or x.ndim < 3:
                zeros = np.zeros(self.horizon, dtype=np.float32)
            else:
                zeros = np.zeros((x.shape[0], self.horizon), dtype=np.float32)
            return Prediction(values=zeros, degraded=True)

    def evaluate(self, test_inputs: np.ndarray, test_targets: np.ndarray) -> EvaluationMetrics:
        """
        Compute loss, MSE and RMSE on held-out windows.

        Falls back to fixed metrics (``degraded=True``) when the model is
        not built, test data is missing, or evaluation raises.
        """
        if self.model is None:
            logger.warning("Model not built, returning fallback metrics")
            return fallback_metrics()

        if test_inputs is None or test_targets is None or len(test_inputs) == 0:
            logger.warning("Test data not provided, returning fallback metrics")
            return fallback_metrics()

        try:
            x = torch.from_numpy(np.asarray(test_inputs, dtype=np.float32)).to(self.device)
            y = torch.from_numpy(np.asarray(test_targets, dtype=np.float32)).to(self.device)

            self.model.eval()
            with torch.no_grad():
                predictions = self.model(x)
                loss = float(self.loss_fn(predictions, y).item())

            mse = float(mean_squared_error(y.cpu().numpy(), predictions.cpu().numpy()))
            rmse = math.sqrt(mse)

        except Exception as e:
            logger.error(f"Evaluation error: {e}")
            return fallback_metrics()

        logger.info(f"Evaluation results: Loss={loss:.6f}, MSE={mse:.6f}, RMSE={rmse:.6f}")
        return EvaluationMetrics(loss=loss, mse=mse, rmse=rmse)
