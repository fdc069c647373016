"""Models module."""

from .base import BaseForecaster
from .gru_regressor import GRURegressor
from .sequence_model import ModelState, Prediction, SequenceModel, fallback_metrics

__all__ = [
    "BaseForecaster",
    "GRURegressor",
    "ModelState",
    "Prediction",
    "SequenceModel",
    "fallback_metrics",
]
