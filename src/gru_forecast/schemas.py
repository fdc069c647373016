"""Pydantic schemas for values handed to the presentation layer."""

from typing import List, Optional

from pydantic import BaseModel, Field


class BasicStats(BaseModel):
    """Series-level totals."""

    total_days: int = 0
    date_range: str = "N/A"
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    first_price: float = 0.0
    last_price: float = 0.0
    total_return: float = Field(0.0, description="(last - first) / first, as a fraction")
    max_drawdown: float = Field(0.0, description="Largest peak-to-trough decline, as a fraction")


class ReturnStats(BaseModel):
    """Daily return statistics (population moments)."""

    mean_daily_return: float = 0.0
    std_daily_return: float = 0.0
    annualized_volatility: float = 0.0
    sharpe_ratio: float = 0.0
    positive_days: float = Field(0.0, description="Fraction of days with a positive return")


class TrendStats(BaseModel):
    """Moving-average trend snapshot."""

    current_trend: str = "N/A"
    sma50: Optional[float] = None
    sma200: Optional[float] = None


class VolatilityStats(BaseModel):
    """Rolling annualized volatility."""

    current_rolling_vol: float = 0.0
    avg_rolling_vol: float = 0.0


class Insights(BaseModel):
    """
    Read-only analytics snapshot.

    ``Insights()`` is the empty-data state: every numeric field is zero and
    labels are "N/A".
    """

    basic: BasicStats = Field(default_factory=BasicStats)
    returns: ReturnStats = Field(default_factory=ReturnStats)
    trends: TrendStats = Field(default_factory=TrendStats)
    volatility: VolatilityStats = Field(default_factory=VolatilityStats)


class HistoricalData(BaseModel):
    """Chart payload for the loaded series."""

    dates: List[str]
    prices: List[float]
    returns: List[float]
    normalized_returns: List[float] = Field(default_factory=list)


class TrainingProgress(BaseModel):
    """Per-epoch progress event."""

    epoch_index: int = Field(..., description="Zero-based epoch index")
    epochs: int
    loss: float
    validation_loss: Optional[float] = None
    elapsed_seconds: float
    percent_complete: float
    epochs_remaining: int


class TrainingSummary(BaseModel):
    """Outcome of an accepted training call."""

    epochs: int
    batch_size: int
    train_samples: int
    validation_samples: int
    train_loss: List[float]
    val_loss: List[float]
    training_time: float


class EvaluationMetrics(BaseModel):
    """Held-out metrics. ``degraded`` marks the fixed fallback values."""

    loss: float
    mse: float
    rmse: float
    degraded: bool = False


class ForecastEntry(BaseModel):
    """One projected trading day."""

    day_offset: int
    predicted_return: float
    predicted_return_pct: float
    projected_price: float
    price_delta: float = Field(..., description="projected_price - last known price")


class Forecast(BaseModel):
    """Forecast vector and its compounded price path."""

    last_price: float
    predicted_returns: List[float]
    entries: List[ForecastEntry]
    degraded: bool = False
