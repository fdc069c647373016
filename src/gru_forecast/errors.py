"""Typed exceptions for the forecasting pipeline."""


class ForecastPipelineError(RuntimeError):
    """Base pipeline failure."""


class MalformedInputError(ForecastPipelineError):
    """A single input row could not be parsed. Recovered by dropping the row."""


class InsufficientDataError(ForecastPipelineError):
    """Not enough observations for the requested stage."""


class NoDataError(ForecastPipelineError):
    """An operation needs data that has not been loaded."""


class TrainingFailedError(ForecastPipelineError):
    """The fit loop raised. The model stays usable with its partial weights."""


class InputMissingError(ForecastPipelineError):
    """Prediction or training was requested without input data."""
