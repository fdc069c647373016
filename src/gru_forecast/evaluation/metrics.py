"""Point-forecast metrics on denormalized returns."""

from typing import Dict

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error


def directional_accuracy(
    y_true: np.ndarray,
    y_pred: np.ndarray,
) -> float:
    """
    Compute directional accuracy (% of correct sign predictions).

    Args:
        y_true: Observed values
        y_pred: Predicted values

    Returns:
        Directional accuracy (0-1)
    """
    y_true = np.asarray(y_true, dtype=float).flatten()
    y_pred = np.asarray(y_pred, dtype=float).flatten()
    if y_true.size == 0:
        return 0.0
    return float(np.mean(np.sign(y_true) == np.sign(y_pred)))


def point_forecast_metrics(
    y_true: np.ndarray,
    y_pred: np.ndarray,
) -> Dict[str, float]:
    """
    Compute standard point forecast metrics (RMSE, MAE, directional accuracy).

    Args:
        y_true: Observed values
        y_pred: Predicted values

    Returns:
        Dict with rmse, mae, directional_accuracy
    """
    y_true = np.asarray(y_true, dtype=float).flatten()
    y_pred = np.asarray(y_pred, dtype=float).flatten()

    rmse = float(np.sqrt(mean_squared_error(y_true, y_pred)))
    mae = float(mean_absolute_error(y_true, y_pred))

    return {
        "rmse": rmse,
        "mae": mae,
        "directional_accuracy": directional_accuracy(y_true, y_pred),
    }
