from __future__ import annotations

import numpy as np
import pytest

from gru_forecast.errors import InsufficientDataError, NoDataError
from gru_forecast.features import (
    NormalizationParams,
    build_windows,
    normalize,
    prepare_dataset,
    split_windows,
    window_count,
)


def test_normalize_scales_to_unit_interval() -> None:
    returns = np.array([0.02, -0.0098, 0.0396, -0.0571])
    normalized, params = normalize(returns)

    assert params.min == pytest.approx(-0.0571)
    assert params.max == pytest.approx(0.0396)
    assert normalized.min() == pytest.approx(0.0)
    assert normalized.max() == pytest.approx(1.0)


def test_denormalize_round_trip() -> None:
    returns = np.random.default_rng(3).normal(0.0, 0.01, size=200)
    normalized, params = normalize(returns)

    assert np.allclose(params.denormalize(normalized), returns, atol=1e-12)


def test_flat_series_uses_unit_range() -> None:
    returns = np.full(6, 0.01)
    normalized, params = normalize(returns)

    assert params.range == 1.0
    assert np.allclose(normalized, 0.0)
    assert np.allclose(params.denormalize(normalized), returns)


def test_normalize_empty_raises() -> None:
    with pytest.raises(NoDataError):
        normalize([])


def test_window_boundary_off_by_one() -> None:
    window_size, horizon = 5, 3
    too_short = np.linspace(0.0, 1.0, window_size + horizon - 1)
    exact = np.linspace(0.0, 1.0, window_size + horizon)

    assert window_count(len(too_short), window_size, horizon) == 0
    with pytest.raises(InsufficientDataError):
        build_windows(too_short, window_size, horizon)

    inputs, targets = build_windows(exact, window_size, horizon)
    assert inputs.shape == (1, window_size, 1)
    assert targets.shape == (1, horizon)


def test_windows_slice_contiguous_ranges() -> None:
    series = np.arange(10, dtype=float) / 10
    inputs, targets = build_windows(series, window_size=3, horizon=2)

    assert inputs.shape == (6, 3, 1)
    assert targets.shape == (6, 2)
    for i in range(6):
        assert np.allclose(inputs[i, :, 0], series[i : i + 3])
        assert np.allclose(targets[i], series[i + 3 : i + 5])


def test_split_is_floor_of_train_fraction() -> None:
    inputs = np.zeros((7, 4, 1))
    targets = np.zeros((7, 2))
    (train_x, train_y), (test_x, test_y), split_idx = split_windows(inputs, targets, 0.2)

    assert split_idx == 5
    assert len(train_x) == len(train_y) == 5
    assert len(test_x) == len(test_y) == 2


def test_split_rejects_invalid_fraction() -> None:
    with pytest.raises(ValueError, match="test_fraction"):
        split_windows(np.zeros((4, 2, 1)), np.zeros((4, 1)), 1.0)


@pytest.mark.parametrize("test_fraction", [0.05, 0.2, 0.5, 0.9])
def test_train_windows_precede_test_windows(test_fraction: float) -> None:
    returns = np.random.default_rng(11).normal(0.0, 0.01, size=120)
    ds = prepare_dataset(returns, window_size=10, horizon=4, test_fraction=test_fraction)

    assert ds.n_train + ds.n_test == window_count(120, 10, 4)
    assert ds.n_train > 0 and ds.n_test > 0
    assert ds.train_indices.max() < ds.test_indices.min()
    # Order inside each partition is preserved
    assert np.all(np.diff(ds.train_indices) == 1)
    assert np.all(np.diff(ds.test_indices) == 1)


def test_prepare_dataset_defaults() -> None:
    returns = np.random.default_rng(5).normal(0.0, 0.01, size=100)
    ds = prepare_dataset(returns)

    assert ds.window_size == 60 and ds.horizon == 5
    assert ds.n_train == 28
    assert ds.n_test == 8
    assert ds.train_inputs.shape == (28, 60, 1)
    assert ds.test_targets.shape == (8, 5)
    assert ds.train_inputs.dtype == np.float32
    assert isinstance(ds.params, NormalizationParams)
    assert len(ds.normalized) == 100


def test_prepare_dataset_errors() -> None:
    with pytest.raises(NoDataError):
        prepare_dataset([])
    with pytest.raises(InsufficientDataError):
        prepare_dataset(np.zeros(64), window_size=60, horizon=5)
