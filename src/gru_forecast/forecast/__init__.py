"""Forecast composition module."""

from .composer import ForecastComposer, compound_prices

__all__ = ["ForecastComposer", "compound_prices"]
