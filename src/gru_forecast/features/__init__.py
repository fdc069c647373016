"""Feature engineering module."""

from .analytics import (
    classify_trend,
    compute_insights,
    compute_max_drawdown,
    compute_rolling_volatility,
    compute_sma,
)
from .returns import PricePoint, compute_returns, parse_date, parse_price_csv
from .windows import (
    NormalizationParams,
    WindowedDataset,
    build_windows,
    normalize,
    prepare_dataset,
    split_windows,
    window_count,
)

__all__ = [
    "PricePoint",
    "parse_date",
    "parse_price_csv",
    "compute_returns",
    "compute_sma",
    "compute_max_drawdown",
    "compute_rolling_volatility",
    "classify_trend",
    "compute_insights",
    "NormalizationParams",
    "WindowedDataset",
    "normalize",
    "window_count",
    "build_windows",
    "split_windows",
    "prepare_dataset",
]
