"""
GRU Return Forecast

Daily price analytics and multi-step return forecasting with a
single-layer GRU regressor.
"""

__version__ = "0.1.0"

from . import data, evaluation, features, forecast, models
from .config import PipelineConfig
from .pipeline import ForecastSession

__all__ = ["data", "features", "models", "evaluation", "forecast", "PipelineConfig", "ForecastSession"]
