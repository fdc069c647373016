from __future__ import annotations

from datetime import date, timedelta

import numpy as np
import pytest

from gru_forecast.config import PipelineConfig


def make_csv(prices, start: date = date(2023, 1, 2)) -> str:
    lines = ["Date;Price"]
    for i, price in enumerate(prices):
        day = start + timedelta(days=i)
        lines.append(f"{day:%d.%m.%Y};{price}")
    return "\n".join(lines) + "\n"


def random_walk(n: int, seed: int = 7, start: float = 100.0) -> list[float]:
    rng = np.random.default_rng(seed)
    steps = rng.normal(0.0005, 0.01, size=n - 1)
    prices = start * np.cumprod(np.concatenate([[1.0], 1.0 + steps]))
    return [round(float(p), 4) for p in prices]


@pytest.fixture
def small_config() -> PipelineConfig:
    return PipelineConfig(
        window_size=8,
        prediction_horizon=3,
        epochs=2,
        batch_size=16,
        seed=0,
    )


@pytest.fixture
def training_arrays() -> tuple[np.ndarray, np.ndarray]:
    rng = np.random.default_rng(0)
    x = rng.uniform(0.0, 1.0, size=(40, 8, 1)).astype(np.float32)
    y = rng.uniform(0.0, 1.0, size=(40, 3)).astype(np.float32)
    return x, y
