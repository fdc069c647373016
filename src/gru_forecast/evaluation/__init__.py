"""Evaluation metrics module."""

from .metrics import directional_accuracy, point_forecast_metrics

__all__ = [
    "directional_accuracy",
    "point_forecast_metrics",
]
