"""CSV source interfaces and implementations for price data ingestion."""

from abc import ABC, abstractmethod
from pathlib import Path

import requests
from loguru import logger


class IDataSource(ABC):
    """Interface for raw price sources. Implement this to add new sources."""

    @abstractmethod
    def fetch_text(self) -> str:
        """
        Fetch raw ``date;price`` CSV text.

        Returns:
            File contents including the header row
        """
        pass

    @property
    @abstractmethod
    def location(self) -> str:
        """Human-readable source location."""
        pass


class HTTPCSVSource(IDataSource):
    """
    CSV file served over HTTP(S), e.g. a raw GitHub URL.
    """

    def __init__(self, url: str, timeout: float = 30.0):
        """
        Initialize HTTP source.

        Args:
            url: File URL
            timeout: Request timeout in seconds
        """
        self.url = url
        self.timeout = timeout

    @property
    def location(self) -> str:
        return self.url

    def fetch_text(self) -> str:
        logger.info(f"Downloading price data from {self.url}")
        try:
            response = requests.get(self.url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Failed to load data from {self.url}: {e}")
            raise

        logger.info(f"Downloaded {len(response.content)} bytes")
        return response.text


class LocalCSVSource(IDataSource):
    """CSV file on the local filesystem."""

    def __init__(self, path: str):
        self.path = Path(path)

    @property
    def location(self) -> str:
        return str(self.path)

    def fetch_text(self) -> str:
        logger.info(f"Reading price data from {self.path}")
        with self.path.open("r", encoding="utf-8") as fh:
            return fh.read()


def get_source(location: str, **kwargs) -> IDataSource:
    """
    Factory function to get the appropriate source.

    Args:
        location: http(s) URL or filesystem path
        **kwargs: Source-specific arguments (``timeout`` for HTTP)

    Returns:
        Configured IDataSource instance
    """
    if location.lower().startswith(("http://", "https://")):
        return HTTPCSVSource(location, timeout=kwargs.get("timeout", 30.0))
    return LocalCSVSource(location)
