"""
Descriptive statistics over the price and return series.

All statistics are population moments (divide by N). Values are plain
fractions; percent formatting belongs to the presentation layer.
"""

from typing import List, Sequence

import numpy as np
import pandas as pd
from loguru import logger

from gru_forecast.config import TRADING_DAYS_PER_YEAR
from gru_forecast.features.returns import PricePoint
from gru_forecast.schemas import (
    BasicStats,
    Insights,
    ReturnStats,
    TrendStats,
    VolatilityStats,
)

ROLLING_VOL_WINDOW = 20
SHORT_SMA = 50
LONG_SMA = 200


def compute_sma(prices: Sequence[float], period: int) -> np.ndarray:
    """
    Simple moving average over trailing ``period`` prices.

    Returns an empty array when fewer than ``period`` prices exist.
    """
    if len(prices) < period:
        return np.array([], dtype=float)
    sma = pd.Series(prices, dtype=float).rolling(window=period).mean()
    return sma.iloc[period - 1 :].to_numpy()


def compute_max_drawdown(prices: Sequence[float]) -> float:
    """Largest (peak - price) / peak, with the running peak starting at the first price."""
    if len(prices) == 0:
        return 0.0
    series = np.asarray(prices, dtype=float)
    peaks = np.maximum.accumulate(series)
    return float(np.max((peaks - series) / peaks))


def compute_rolling_volatility(
    returns: Sequence[float],
    window: int = ROLLING_VOL_WINDOW,
) -> np.ndarray:
    """
    Annualized volatility over trailing windows of ``min(window, len(returns))`` samples.

    Each window's population std is scaled by sqrt(252).
    """
    if len(returns) == 0:
        return np.array([], dtype=float)
    window = min(window, len(returns))
    vol = pd.Series(returns, dtype=float).rolling(window=window).std(ddof=0)
    return vol.iloc[window - 1 :].to_numpy() * np.sqrt(TRADING_DAYS_PER_YEAR)


def classify_trend(sma_short: np.ndarray, sma_long: np.ndarray) -> str:
    """Bullish if the latest short SMA is above the latest long SMA, Bearish otherwise."""
    if len(sma_short) > 0 and len(sma_long) > 0 and sma_short[-1] > sma_long[-1]:
        return "Bullish"
    return "Bearish"


def compute_insights(points: List[PricePoint], returns: Sequence[float]) -> Insights:
    """
    Build the analytics snapshot.

    Args:
        points: Chronologically ordered price points
        returns: Simple daily returns derived from ``points``

    Returns:
        Insights; the default instance when there are no returns
    """
    if not points or len(returns) == 0:
        logger.info("No return data, using default insights")
        return Insights()

    prices = np.array([p.price for p in points], dtype=float)
    rets = np.asarray(returns, dtype=float)

    first_price = float(prices[0])
    last_price = float(prices[-1])

    mean_return = float(np.mean(rets))
    std_return = float(np.std(rets))
    annual_factor = np.sqrt(TRADING_DAYS_PER_YEAR)
    # Zero dispersion has no meaningful Sharpe
    sharpe = mean_return / std_return * annual_factor if std_return > 0 else 0.0

    sma_short = compute_sma(prices, SHORT_SMA)
    sma_long = compute_sma(prices, LONG_SMA)
    rolling_vol = compute_rolling_volatility(rets)

    start_label = points[0].date_label
    end_label = points[-1].date_label

    insights = Insights(
        basic=BasicStats(
            total_days=len(points),
            date_range=f"{start_label} to {end_label}",
            start_date=start_label,
            end_date=end_label,
            first_price=first_price,
            last_price=last_price,
            total_return=(last_price - first_price) / first_price,
            max_drawdown=compute_max_drawdown(prices),
        ),
        returns=ReturnStats(
            mean_daily_return=mean_return,
            std_daily_return=std_return,
            annualized_volatility=std_return * annual_factor,
            sharpe_ratio=float(sharpe),
            positive_days=float(np.mean(rets > 0)),
        ),
        trends=TrendStats(
            current_trend=classify_trend(sma_short, sma_long),
            sma50=float(sma_short[-1]) if len(sma_short) else None,
            sma200=float(sma_long[-1]) if len(sma_long) else None,
        ),
        volatility=VolatilityStats(
            current_rolling_vol=float(rolling_vol[-1]),
            avg_rolling_vol=float(np.mean(rolling_vol)),
        ),
    )

    logger.info(
        f"Insights: days={len(points)}, total_return={insights.basic.total_return:.4f}, "
        f"max_drawdown={insights.basic.max_drawdown:.4f}, trend={insights.trends.current_trend}"
    )
    return insights
