"""
Price parsing and simple daily returns.

Input rows are ``date;price`` with a header line. Parsing is best-effort:
bad rows are dropped, never raised to the caller.
"""

import math
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

import numpy as np
import pandas as pd
from loguru import logger

from gru_forecast.errors import MalformedInputError

DELIMITER = ";"
DATE_FORMAT = "%d.%m.%Y"


@dataclass(frozen=True)
class PricePoint:
    """Single dated close price."""

    date_label: str
    date: Optional[date]
    price: float


def parse_date(date_str: str) -> Optional[date]:
    """
    Parse a ``DD.MM.YYYY`` date, falling back to a generic parse.

    Returns None when neither parse succeeds.
    """
    text = date_str.strip()
    if not text:
        return None
    try:
        return pd.to_datetime(text, format=DATE_FORMAT).date()
    except (ValueError, TypeError):
        pass
    try:
        parsed = pd.to_datetime(text)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    return parsed.date()


def parse_row(line: str) -> PricePoint:
    """Parse one ``date;price`` row or raise MalformedInputError."""
    parts = line.split(DELIMITER)
    if len(parts) < 2:
        raise MalformedInputError(f"expected at least 2 fields, got {len(parts)}")

    date_label = parts[0].strip()
    try:
        price = float(parts[1].strip())
    except ValueError:
        raise MalformedInputError(f"non-numeric price {parts[1].strip()!r}")

    if not math.isfinite(price) or price <= 0:
        raise MalformedInputError(f"price must be finite and positive, got {price}")

    return PricePoint(date_label=date_label, date=parse_date(date_label), price=price)


def sort_points(points: List[PricePoint]) -> List[PricePoint]:
    """
    Order points by calendar date.

    Rows with an unparsable date keep their original slot; dated rows are
    stably sorted into the remaining slots, so ties keep input order.
    """
    dated_slots = [i for i, p in enumerate(points) if p.date is not None]
    dated_sorted = sorted((points[i] for i in dated_slots), key=lambda p: p.date)

    ordered = list(points)
    for slot, point in zip(dated_slots, dated_sorted):
        ordered[slot] = point
    return ordered


def parse_price_csv(content: str) -> List[PricePoint]:
    """
    Parse semicolon-delimited price text into chronologically ordered points.

    Args:
        content: Raw CSV text, first line is a header

    Returns:
        List of PricePoint sorted by date
    """
    lines = content.strip().splitlines()
    points: List[PricePoint] = []
    dropped = 0

    for line_no, raw in enumerate(lines[1:], start=2):
        line = raw.strip()
        if not line:
            continue
        try:
            points.append(parse_row(line))
        except MalformedInputError as e:
            dropped += 1
            logger.debug(f"Dropping row {line_no}: {e}")

    undated = sum(1 for p in points if p.date is None)
    if undated:
        logger.warning(f"{undated} rows have unparsable dates and keep their input position")

    logger.info(f"Parsed {len(points)} price rows ({dropped} dropped)")
    return sort_points(points)


def compute_returns(points: List[PricePoint]) -> np.ndarray:
    """
    Compute simple daily returns: r_i = (P_{i+1} - P_i) / P_i.

    Returns an empty array when fewer than two points exist; callers must
    check the length before use.
    """
    if len(points) < 2:
        return np.array([], dtype=float)

    prices = np.array([p.price for p in points], dtype=float)
    return np.diff(prices) / prices[:-1]
