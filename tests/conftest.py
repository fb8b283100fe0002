"""
Shared test fixtures and helpers for progressive indicator tests.
"""

from decimal import Decimal

import pytest

from progressive_signals.types import Bar


def make_bar(
    index: int,
    open_: float,
    high: float,
    low: float,
    close: float,
    delta: float = None,
    timestamp: int = None,
    symbol: str = "TEST",
    interval: str = "1m",
) -> Bar:
    """Helper to create Bar objects for testing.

    Args:
        index: Bar index in the sequence
        open_: Opening price
        high: High price
        low: Low price
        close: Closing price
        delta: Optional volume delta
        timestamp: Unix open time (defaults to 1700000000 + index * 60)

    Returns:
        Bar with Decimal prices and a 60 second span
    """
    open_time = timestamp if timestamp is not None else 1700000000 + index * 60
    return Bar(
        symbol=symbol,
        interval=interval,
        open_time=open_time,
        close_time=open_time + 60,
        open=Decimal(str(open_)),
        high=Decimal(str(high)),
        low=Decimal(str(low)),
        close=Decimal(str(close)),
        delta=Decimal(str(delta)) if delta is not None else None,
    )


def make_bars(rows, start: int = 0, **kwargs):
    """Bars from (open, high, low, close) or (open, high, low, close, delta) tuples."""
    return [make_bar(start + i, *row, **kwargs) for i, row in enumerate(rows)]


def bars_from_closes(closes, spread: float = 0.5, start: int = 0):
    """Bars whose high/low sit `spread` around the close."""
    return [
        make_bar(start + i, c, c + spread, c - spread, c)
        for i, c in enumerate(closes)
    ]


@pytest.fixture
def trending_bars():
    """A rise, a drop and a recovery: enough structure for every indicator."""
    closes = (
        [100 + i for i in range(15)]
        + [114 - 1.5 * i for i in range(1, 15)]
        + [93 + 1.2 * i for i in range(1, 15)]
    )
    return bars_from_closes(closes)
