"""
GRU regressor for multi-step return forecasting.

A single GRU layer encodes the input window; only the last time step's
hidden output feeds a linear head that emits all horizon steps at once.
"""

import torch
import torch.nn as nn
from loguru import logger


class GRURegressor(nn.Module):
    """
    Deterministic GRU regressor.

    Architecture:
    - GRU encoder (tanh candidate activation, single layer)
    - Linear output head producing ``horizon`` point predictions

    Inference is a single forward pass; the model is not re-queried per
    horizon step.
    """

    def __init__(
        self,
        window_size: int = 60,
        horizon: int = 5,
        hidden_size: int = 16,
        input_size: int = 1,
    ):
        """
        Initialize GRU Regressor.

        Args:
            window_size: Length of the input window
            horizon: Number of future steps predicted
            hidden_size: GRU hidden units
            input_size: Features per time step
        """
        super().__init__()

        self.window_size = window_size
        self.horizon = horizon
        self.hidden_size = hidden_size
        self.input_size = input_size

        self.rnn = nn.GRU(
            input_size=input_size,
            hidden_size=hidden_size,
            num_layers=1,
            batch_first=True,
        )
        self.output_layer = nn.Linear(hidden_size, horizon)
        self._init_weights()

        logger.info(
            f"Initialized GRURegressor: hidden={hidden_size}, window={window_size}, "
            f"horizon={horizon}, input={input_size}"
        )

    def _init_weights(self):
        """Glorot-uniform kernels, orthogonal recurrent weights, zero biases."""
        for name, param in self.named_parameters():
            if "weight_hh" in name:
                nn.init.orthogonal_(param)
            elif "weight" in name:
                nn.init.xavier_uniform_(param)
            elif "bias" in name:
                nn.init.zeros_(param)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """
        Args:
            x: (batch, window_size, input_size) or (batch, window_size)

        Returns:
            predictions: (batch, horizon)
        """
        if x.dim() == 2:
            x = x.unsqueeze(-1)

        rnn_output, _ = self.rnn(x)
        last_step = rnn_output[:, -1, :]  # (B, hidden)
        return self.output_layer(last_step)
