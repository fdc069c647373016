"""Data ingestion module."""

from .providers import HTTPCSVSource, IDataSource, LocalCSVSource, get_source

__all__ = [
    "IDataSource",
    "HTTPCSVSource",
    "LocalCSVSource",
    "get_source",
]
