from __future__ import annotations

import numpy as np
import pytest

from gru_forecast.errors import InsufficientDataError, NoDataError
from gru_forecast.features import NormalizationParams
from gru_forecast.forecast import ForecastComposer, compound_prices
from gru_forecast.models import Prediction


class StubModel:
    """Returns a fixed normalized forecast and records its inputs."""

    def __init__(self, outputs, window_size: int = 4, trained: bool = True, degraded: bool = False):
        self.outputs = np.asarray(outputs, dtype=np.float32)
        self.window_size = window_size
        self.is_trained = trained
        self.degraded = degraded
        self.calls = []

    def predict(self, window):
        self.calls.append(np.array(window))
        return Prediction(values=self.outputs, degraded=self.degraded)


PARAMS = NormalizationParams(min=-0.05, max=0.05)


def test_compound_prices() -> None:
    assert compound_prices(100.0, [0.1, -0.1]) == pytest.approx([110.0, 99.0])
    assert compound_prices(50.0, []) == []


def test_compose_applies_returns_multiplicatively() -> None:
    model = StubModel([0.5, 0.6, 0.4])
    forecast = ForecastComposer(model).compose(np.linspace(0.0, 1.0, 10), PARAMS, 100.0)

    assert forecast.predicted_returns == pytest.approx([0.0, 0.01, -0.01], abs=1e-6)
    prices = [e.projected_price for e in forecast.entries]
    assert prices == pytest.approx([100.0, 101.0, 99.99], abs=1e-4)
    assert [e.price_delta for e in forecast.entries] == pytest.approx([0.0, 1.0, -0.01], abs=1e-4)
    assert [e.predicted_return_pct for e in forecast.entries] == pytest.approx(
        [0.0, 1.0, -1.0], abs=1e-4
    )
    assert [e.day_offset for e in forecast.entries] == [1, 2, 3]
    assert forecast.last_price == 100.0
    assert not forecast.degraded


def test_compose_queries_model_once_with_latest_window() -> None:
    series = np.linspace(0.0, 1.0, 10)
    model = StubModel([0.5, 0.5, 0.5])
    ForecastComposer(model).compose(series, PARAMS, 100.0)

    assert len(model.calls) == 1
    assert model.calls[0].shape == (4, 1)
    assert np.allclose(model.calls[0][:, 0], series[-4:])


def test_compose_requires_full_window() -> None:
    model = StubModel([0.5])
    with pytest.raises(InsufficientDataError):
        ForecastComposer(model).compose([0.1, 0.2, 0.3], PARAMS, 100.0)
    assert model.calls == []


def test_compose_requires_normalization_params() -> None:
    with pytest.raises(NoDataError):
        ForecastComposer(StubModel([0.5])).compose(np.zeros(10), None, 100.0)


def test_degraded_prediction_is_flagged() -> None:
    model = StubModel([0.0, 0.0], degraded=True, trained=False)
    forecast = ForecastComposer(model).compose(np.zeros(10), PARAMS, 100.0)

    assert forecast.degraded
    # A zero normalized output maps back to the minimum return
    assert forecast.predicted_returns == pytest.approx([-0.05, -0.05])
    assert forecast.entries[-1].projected_price == pytest.approx(100.0 * 0.95 * 0.95)
