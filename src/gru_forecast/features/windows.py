"""
Normalization, sliding windows and chronological train/test split.

LEAKAGE CHECK: every input window covers [i, i+window) and its target
covers [i+window, i+window+horizon). Train windows always start before
test windows; nothing is shuffled across the split boundary.
"""

from dataclasses import dataclass, field
from typing import Sequence, Tuple

import numpy as np
from loguru import logger

from gru_forecast.errors import InsufficientDataError, NoDataError


@dataclass(frozen=True)
class NormalizationParams:
    """Min-max scaling bounds over the return series."""

    min: float
    max: float

    @property
    def range(self) -> float:
        # Flat series: substitute a unit range
        span = self.max - self.min
        return span if span != 0 else 1.0

    def normalize(self, values):
        return (np.asarray(values, dtype=float) - self.min) / self.range

    def denormalize(self, values):
        return np.asarray(values, dtype=float) * self.range + self.min


@dataclass
class WindowedDataset:
    """Windowed, chronologically split dataset."""

    train_inputs: np.ndarray  # (N_train, window, 1)
    train_targets: np.ndarray  # (N_train, horizon)
    test_inputs: np.ndarray  # (N_test, window, 1)
    test_targets: np.ndarray  # (N_test, horizon)
    params: NormalizationParams
    window_size: int
    horizon: int
    normalized: np.ndarray = field(default_factory=lambda: np.array([], dtype=float))
    train_indices: np.ndarray = field(default_factory=lambda: np.array([], dtype=int))
    test_indices: np.ndarray = field(default_factory=lambda: np.array([], dtype=int))

    @property
    def n_train(self) -> int:
        return len(self.train_inputs)

    @property
    def n_test(self) -> int:
        return len(self.test_inputs)


def normalize(returns: Sequence[float]) -> Tuple[np.ndarray, NormalizationParams]:
    """
    Min-max scale returns to [0, 1].

    Raises:
        NoDataError: if ``returns`` is empty
    """
    values = np.asarray(returns, dtype=float)
    if values.size == 0:
        raise NoDataError("No returns data available")

    params = NormalizationParams(min=float(values.min()), max=float(values.max()))
    return params.normalize(values), params


def window_count(n: int, window_size: int, horizon: int) -> int:
    """Number of (input, target) windows that fit in ``n`` observations."""
    return max(0, n - window_size - horizon + 1)


def build_windows(
    normalized: Sequence[float],
    window_size: int,
    horizon: int,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Slice sliding input windows and their multi-step targets.

    Args:
        normalized: Normalized return series
        window_size: Input window length
        horizon: Number of future steps per target

    Returns:
        (inputs, targets):
            - inputs: (N, window_size, 1)
            - targets: (N, horizon)

    Raises:
        InsufficientDataError: if fewer than ``window_size + horizon`` values exist
    """
    series = np.asarray(normalized, dtype=np.float32)
    n_windows = window_count(len(series), window_size, horizon)
    if n_windows == 0:
        raise InsufficientDataError(
            f"Not enough data for training. Need at least {window_size + horizon} returns, "
            f"got {len(series)}"
        )

    inputs = np.stack([series[i : i + window_size] for i in range(n_windows)])
    targets = np.stack(
        [series[i + window_size : i + window_size + horizon] for i in range(n_windows)]
    )

    logger.info(f"Created {n_windows} windows: window={window_size}, horizon={horizon}")
    return inputs[..., np.newaxis], targets


def split_windows(
    inputs: np.ndarray,
    targets: np.ndarray,
    test_fraction: float = 0.2,
) -> Tuple[Tuple[np.ndarray, np.ndarray], Tuple[np.ndarray, np.ndarray], int]:
    """
    Split windows chronologically at ``floor(N * (1 - test_fraction))``.

    Returns:
        ((train_inputs, train_targets), (test_inputs, test_targets), split_idx)
    """
    if not 0.0 <= test_fraction < 1.0:
        raise ValueError(f"test_fraction must be in [0, 1), got {test_fraction}")

    n = len(inputs)
    split_idx = int(np.floor(n * (1 - test_fraction)))

    logger.info(
        f"Time split: train={split_idx}, test={n - split_idx} (test_fraction={test_fraction:.2f})"
    )
    return (
        (inputs[:split_idx], targets[:split_idx]),
        (inputs[split_idx:], targets[split_idx:]),
        split_idx,
    )


def prepare_dataset(
    returns: Sequence[float],
    window_size: int = 60,
    horizon: int = 5,
    test_fraction: float = 0.2,
) -> WindowedDataset:
    """Normalize returns, build windows and split them into train/test."""
    values = np.asarray(returns, dtype=float)
    if values.size == 0:
        raise NoDataError("No returns data available")
    if window_count(values.size, window_size, horizon) == 0:
        raise InsufficientDataError(
            f"Not enough data for training. Need at least {window_size + horizon} returns, "
            f"got {values.size}"
        )

    normalized, params = normalize(values)
    inputs, targets = build_windows(normalized, window_size, horizon)
    (train_x, train_y), (test_x, test_y), split_idx = split_windows(inputs, targets, test_fraction)

    starts = np.arange(len(inputs))
    return WindowedDataset(
        train_inputs=train_x,
        train_targets=train_y,
        test_inputs=test_x,
        test_targets=test_y,
        params=params,
        window_size=window_size,
        horizon=horizon,
        normalized=normalized,
        train_indices=starts[:split_idx],
        test_indices=starts[split_idx:],
    )
