"""
Compose a multi-day price path from one forecast vector.

The model is queried once on the latest window. Each denormalized
predicted return is then applied multiplicatively to the running price:

    price_k = price_{k-1} * (1 + r_k)
"""

from typing import List, Sequence

import numpy as np
from loguru import logger

from gru_forecast.errors import InsufficientDataError, NoDataError
from gru_forecast.features.windows import NormalizationParams
from gru_forecast.models.sequence_model import SequenceModel
from gru_forecast.schemas import Forecast, ForecastEntry


def compound_prices(last_price: float, returns: Sequence[float]) -> List[float]:
    """Running price after applying each return in turn."""
    prices = []
    price = float(last_price)
    for r in returns:
        price = price * (1.0 + float(r))
        prices.append(price)
    return prices


class ForecastComposer:
    """Turns a trained SequenceModel into a projected price path."""

    def __init__(self, model: SequenceModel):
        self.model = model

    def compose(
        self,
        normalized: Sequence[float],
        params: NormalizationParams,
        last_price: float,
    ) -> Forecast:
        """
        Forecast the next ``horizon`` days from the most recent window.

        Args:
            normalized: Normalized return series; its last ``window_size``
                values form the model input
            params: Normalization bounds used to denormalize outputs
            last_price: Last observed price

        Returns:
            Forecast with per-day entries
        """
        if params is None:
            raise NoDataError("Normalization parameters not available")

        window_size = self.model.window_size
        series = np.asarray(normalized, dtype=np.float32)
        if len(series) < window_size:
            raise InsufficientDataError(
                f"Need {window_size} normalized returns for a forecast window, got {len(series)}"
            )

        if not self.model.is_trained:
            logger.warning("Forecasting with an untrained model")

        window = series[-window_size:].reshape(window_size, 1)
        prediction = self.model.predict(window)

        predicted_returns = params.denormalize(prediction.values)
        prices = compound_prices(last_price, predicted_returns)

        entries = [
            ForecastEntry(
                day_offset=day,
                predicted_return=float(r),
                predicted_return_pct=float(r) * 100,
                projected_price=price,
                price_delta=price - last_price,
            )
            for day, (r, price) in enumerate(zip(predicted_returns, prices), start=1)
        ]

        logger.info(
            f"Forecast for {len(entries)} days from {last_price:.2f}: final={prices[-1]:.2f}"
        )

        return Forecast(
            last_price=float(last_price),
            predicted_returns=[float(r) for r in predicted_returns],
            entries=entries,
            degraded=prediction.degraded,
        )
