"""Core data types for progressive indicators."""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from .errors import InvalidInputError
from .numeric import to_decimal


def _check_finite(name: str, value: Any, open_time: int) -> None:
    if not isinstance(value, Decimal) or not value.is_finite():
        raise InvalidInputError(f"Bar at open_time {open_time}: {name} must be a finite Decimal, got {value!r}")


class PivotKind(Enum):
    """Kind of a local extremum."""
    HIGH = "high"
    LOW = "low"

    @property
    def opposite(self) -> "PivotKind":
        return PivotKind.LOW if self is PivotKind.HIGH else PivotKind.HIGH


@dataclass(frozen=True)
class Bar:
    """
    Single OHLC bar for one (symbol, interval) series.

    Times are Unix epoch seconds. Prices and volumes are Decimal so that
    percentage and ratio comparisons never drift.

    Attributes:
        symbol: Instrument symbol (e.g. "BTCUSDT").
        interval: Bar interval label (e.g. "1m").
        open_time: Epoch seconds when the bar opened.
        close_time: Epoch seconds when the bar closed.
        open, high, low, close: Prices.
        buy_volume: Optional aggressive buy volume.
        sell_volume: Optional aggressive sell volume.
        delta: Optional precomputed volume delta (buy - sell).
    """
    symbol: str
    interval: str
    open_time: int
    close_time: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    buy_volume: Optional[Decimal] = None
    sell_volume: Optional[Decimal] = None
    delta: Optional[Decimal] = None

    def __post_init__(self):
        for name in ("open", "high", "low", "close"):
            _check_finite(name, getattr(self, name), self.open_time)
        for name in ("buy_volume", "sell_volume", "delta"):
            value = getattr(self, name)
            if value is not None:
                _check_finite(name, value, self.open_time)

    @property
    def volume_delta(self) -> Decimal:
        """Delta if present, else buy - sell if both volumes exist, else 0."""
        if self.delta is not None:
            return self.delta
        if self.buy_volume is not None and self.sell_volume is not None:
            return self.buy_volume - self.sell_volume
        return Decimal("0")

    @property
    def date(self) -> datetime:
        return datetime.fromtimestamp(self.open_time, tz=timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "symbol": self.symbol,
            "interval": self.interval,
            "open_time": self.open_time,
            "close_time": self.close_time,
            "open": str(self.open),
            "high": str(self.high),
            "low": str(self.low),
            "close": str(self.close),
            "buy_volume": str(self.buy_volume) if self.buy_volume is not None else None,
            "sell_volume": str(self.sell_volume) if self.sell_volume is not None else None,
            "delta": str(self.delta) if self.delta is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Bar":
        """Create from dictionary."""
        def optional(key: str) -> Optional[Decimal]:
            value = data.get(key)
            return to_decimal(value) if value is not None else None

        return cls(
            symbol=data.get("symbol", ""),
            interval=data.get("interval", ""),
            open_time=int(data["open_time"]),
            close_time=int(data["close_time"]),
            open=to_decimal(data["open"]),
            high=to_decimal(data["high"]),
            low=to_decimal(data["low"]),
            close=to_decimal(data["close"]),
            buy_volume=optional("buy_volume"),
            sell_volume=optional("sell_volume"),
            delta=optional("delta"),
        )


@dataclass(frozen=True)
class SwingPoint:
    """A confirmed swing point (local extremum) in a numeric series."""
    index: int
    value: Decimal
    kind: PivotKind
    timestamp: int

    @property
    def is_high(self) -> bool:
        return self.kind is PivotKind.HIGH

    @property
    def is_low(self) -> bool:
        return self.kind is PivotKind.LOW

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "value": str(self.value),
            "kind": self.kind.value,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SwingPoint":
        return cls(
            index=data["index"],
            value=Decimal(data["value"]),
            kind=PivotKind(data["kind"]),
            timestamp=data["timestamp"],
        )
