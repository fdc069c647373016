from __future__ import annotations

import asyncio

import numpy as np
import pytest

from gru_forecast.data import LocalCSVSource
from gru_forecast.errors import InsufficientDataError, NoDataError
from gru_forecast.models import ModelState
from gru_forecast.pipeline import ForecastSession
from gru_forecast.schemas import Insights

from conftest import make_csv, random_walk


@pytest.fixture
def session(small_config) -> ForecastSession:
    s = ForecastSession(config=small_config)
    s.load_text(make_csv(random_walk(60)))
    return s


def test_load_computes_returns_and_insights(session) -> None:
    assert len(session.points) == 60
    assert len(session.returns) == 59
    assert session.get_insights().basic.total_days == 60

    history = session.get_historical_data()
    assert history.dates[0] == "02.01.2023"
    assert len(history.prices) == 60
    assert len(history.returns) == 59
    assert history.normalized_returns == []


def test_prepare_data_splits_windows(session) -> None:
    dataset = session.prepare_data()

    assert dataset.n_train == 39
    assert dataset.n_test == 10
    assert dataset.train_inputs.shape == (39, 8, 1)
    assert len(session.get_historical_data().normalized_returns) == 59


def test_full_run(session) -> None:
    session.prepare_data()
    summary = asyncio.run(session.train())

    assert summary.epochs == 2
    assert session.last_training is summary
    assert session.model.is_trained

    metrics = session.evaluate()
    assert not metrics.degraded
    assert metrics.rmse == pytest.approx(np.sqrt(metrics.mse))

    forecast = session.forecast()
    assert len(forecast.entries) == 3
    assert forecast.last_price == session.points[-1].price

    backtest = session.backtest_test_split()
    assert set(backtest) == {"rmse", "mae", "directional_accuracy"}
    assert 0.0 <= backtest["directional_accuracy"] <= 1.0


def test_train_before_prepare_raises(session) -> None:
    with pytest.raises(NoDataError):
        asyncio.run(session.train())
    with pytest.raises(NoDataError):
        session.forecast()


def test_evaluate_without_dataset_falls_back(session) -> None:
    assert session.evaluate().degraded


def test_train_events_stream_progress(session) -> None:
    session.prepare_data()

    async def collect():
        return [event async for event in session.train_events()]

    events = asyncio.run(collect())

    assert [e.epoch_index for e in events] == [0, 1]
    assert events[-1].epochs_remaining == 0
    assert session.last_training is not None


def test_concurrent_session_training_runs_once(session) -> None:
    session.prepare_data()

    async def run_both():
        return await asyncio.gather(session.train(), session.train())

    results = asyncio.run(run_both())

    assert sum(r is None for r in results) == 1
    assert sum(r is not None for r in results) == 1


def test_denormalize_requires_prepared_data(session) -> None:
    with pytest.raises(NoDataError):
        session.denormalize(0.5)

    dataset = session.prepare_data()
    assert np.allclose(session.denormalize(dataset.normalized), session.returns)


def test_prepare_data_resizes_model(session) -> None:
    session.model.build()
    session.prepare_data(window_size=10, horizon=2)

    assert session.model.state == ModelState.UNBUILT
    assert session.model.window_size == 10
    assert session.model.horizon == 2
    assert session.forecast().entries[-1].day_offset == 2


def test_failed_resize_keeps_previous_dataset_and_model(session) -> None:
    previous = session.prepare_data()
    asyncio.run(session.train())

    with pytest.raises(InsufficientDataError):
        session.prepare_data(horizon=80)

    assert session.dataset is previous
    assert session.model.horizon == 3
    assert session.model.state == ModelState.TRAINED
    assert len(session.forecast().entries) == 3
    assert asyncio.run(session.train()) is not None


def test_closing_train_events_early_cancels_run(session) -> None:
    session.prepare_data()

    async def take_first():
        events = session.train_events(epochs=50)
        first = await events.__anext__()
        await events.aclose()
        return first

    first = asyncio.run(take_first())

    assert first.epoch_index == 0
    assert not session.model.is_training
    assert session.model.state == ModelState.TRAINED
    assert session.last_training is None

    assert asyncio.run(session.train(epochs=1)) is not None


def test_reload_disposes_dataset_and_model(session) -> None:
    session.prepare_data()
    asyncio.run(session.train())

    session.load_text(make_csv(random_walk(70, seed=3)))

    assert session.dataset is None
    assert session.last_training is None
    assert session.model.state == ModelState.UNBUILT
    assert len(session.points) == 70


def test_async_load_from_local_file(tmp_path, small_config) -> None:
    path = tmp_path / "prices.csv"
    path.write_text(make_csv([100.0, 101.0, 102.5]), encoding="utf-8")

    s = ForecastSession(config=small_config)
    points = asyncio.run(s.load(LocalCSVSource(str(path))))

    assert [p.price for p in points] == [100.0, 101.0, 102.5]


def test_empty_csv(small_config) -> None:
    s = ForecastSession(config=small_config)
    s.load_text("Date;Price\n")

    assert s.get_insights() == Insights()
    assert s.get_historical_data() is None
    with pytest.raises(NoDataError):
        s.prepare_data()


def test_short_series_cannot_be_windowed(small_config) -> None:
    s = ForecastSession(config=small_config)
    s.load_text(make_csv(random_walk(10)))

    with pytest.raises(InsufficientDataError):
        s.prepare_data()
    with pytest.raises(NoDataError):
        s.backtest_test_split()
