"""
Swing Detector

Symmetric-window local extremum scanner, usable over any numeric series
(prices, closes, volume delta).

A point at index i is a swing High when, within [i - lookback, i + lookback]:
- no neighbor is strictly greater, and
- no earlier neighbor is equal.

The second rule makes a flat top mark only its first index. Swing Lows use
the mirrored rule. Points without `lookback` neighbors on both sides are never
candidates, so the last `lookback` points of a series are unconfirmed.

detect_swings() is a pure function over a finite series. SwingIndicator runs
the same classification progressively: it keeps a rolling window of
2 * lookback + 1 bars and confirms (or rejects) the center bar on each new bar.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Deque, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from .config import SwingConfig
from .constants import MAX_SWING_RECORDS
from .contract import IndicatorOutput, Params, check_order, replay
from .errors import InvalidConfigError
from .numeric import ZERO
from .shapes import MarkerShape
from .types import Bar, PivotKind, SwingPoint

logger = logging.getLogger(__name__)

BOTH_KINDS = (PivotKind.HIGH, PivotKind.LOW)


class SeriesPoint(NamedTuple):
    """One sample of a numeric series: absolute index, value, timestamp."""
    index: int
    value: Decimal
    timestamp: int


def _is_high(values: Sequence[Decimal], i: int, lookback: int) -> bool:
    center = values[i]
    for j in range(i - lookback, i):
        if values[j] >= center:
            return False
    for j in range(i + 1, i + lookback + 1):
        if values[j] > center:
            return False
    return True


def _is_low(values: Sequence[Decimal], i: int, lookback: int) -> bool:
    center = values[i]
    for j in range(i - lookback, i):
        if values[j] <= center:
            return False
    for j in range(i + 1, i + lookback + 1):
        if values[j] < center:
            return False
    return True


def classify(
    values: Sequence[Decimal],
    i: int,
    lookback: int,
    kinds: Tuple[PivotKind, ...] = BOTH_KINDS,
) -> Optional[PivotKind]:
    """
    Classify values[i] as HIGH, LOW or neither. HIGH wins when both apply.

    The caller guarantees lookback neighbors exist on both sides of i.
    """
    if PivotKind.HIGH in kinds and _is_high(values, i, lookback):
        return PivotKind.HIGH
    if PivotKind.LOW in kinds and _is_low(values, i, lookback):
        return PivotKind.LOW
    return None


def detect_swings(
    series: Sequence[SeriesPoint],
    lookback: int,
    kinds: Tuple[PivotKind, ...] = BOTH_KINDS,
) -> List[SwingPoint]:
    """
    Find swing points in a series.

    Args:
        series: Ordered (index, value, timestamp) samples.
        lookback: Neighbors required on each side.
        kinds: Restrict detection to these kinds (default both).

    Returns:
        Swing points ordered by index. Empty if len(series) < 2 * lookback + 1.

    Raises:
        InvalidConfigError: If lookback < 1.

    Example:
        >>> pts = [SeriesPoint(i, Decimal(v), i) for i, v in enumerate([1, 3, 2, 0, 2])]
        >>> [(s.index, s.kind.value) for s in detect_swings(pts, 1)]
        [(1, 'high'), (3, 'low')]
    """
    if lookback < 1:
        raise InvalidConfigError(f"lookback must be >= 1, got {lookback}")
    if len(series) < 2 * lookback + 1:
        return []

    values = [p.value for p in series]
    swings = []
    for i in range(lookback, len(series) - lookback):
        kind = classify(values, i, lookback, kinds)
        if kind is not None:
            point = series[i]
            swings.append(SwingPoint(point.index, point.value, kind, point.timestamp))
    return swings


def price_series(bars: Sequence[Bar], attribute: str = "close", start_index: int = 0) -> List[SeriesPoint]:
    """Series of one bar attribute ("high", "low", "close"...) keyed by open_time."""
    return [
        SeriesPoint(start_index + i, getattr(bar, attribute), bar.open_time)
        for i, bar in enumerate(bars)
    ]


def delta_series(bars: Sequence[Bar], start_index: int = 0) -> List[SeriesPoint]:
    """Volume delta series (see Bar.volume_delta)."""
    return [
        SeriesPoint(start_index + i, bar.volume_delta, bar.open_time)
        for i, bar in enumerate(bars)
    ]


def detect_bar_swings(
    bars: Sequence[Bar],
    lookback: int,
    source: str = "high-low",
    start_index: int = 0,
) -> List[SwingPoint]:
    """
    Swing points of a bar sequence.

    With source "high-low", highs are found on bar highs and lows on bar lows.
    With "close", both come from closes. A bar yields at most one swing; an
    outside bar that is both a swing high and a swing low counts as a High.
    """
    if source == "close":
        return detect_swings(price_series(bars, "close", start_index), lookback)
    highs = detect_swings(price_series(bars, "high", start_index), lookback, (PivotKind.HIGH,))
    high_indices = {s.index for s in highs}
    lows = [
        s for s in detect_swings(price_series(bars, "low", start_index), lookback, (PivotKind.LOW,))
        if s.index not in high_indices
    ]
    return sorted(highs + lows, key=lambda s: s.index)


def _swing_marker(swing: SwingPoint) -> MarkerShape:
    if swing.is_high:
        return MarkerShape(swing.timestamp, swing.value, "above", "SH")
    return MarkerShape(swing.timestamp, swing.value, "below", "SL")


@dataclass
class SwingState:
    """
    Carried state of the progressive swing detector.

    Attributes:
        window: Last 2 * lookback + 1 bars.
        bar_count: Bars consumed so far (absolute index of the next bar).
        swings: Confirmed swings, oldest first, capped at MAX_SWING_RECORDS.
        last_open_time: open_time of the last consumed bar.
    """
    window: Deque[Bar] = field(default_factory=deque)
    bar_count: int = 0
    swings: List[SwingPoint] = field(default_factory=list)
    last_open_time: Optional[int] = None

    def latest(self, kind: PivotKind) -> Optional[SwingPoint]:
        for swing in reversed(self.swings):
            if swing.kind is kind:
                return swing
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "window": [bar.to_dict() for bar in self.window],
            "bar_count": self.bar_count,
            "swings": [s.to_dict() for s in self.swings],
            "last_open_time": self.last_open_time,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SwingState":
        return cls(
            window=deque(Bar.from_dict(b) for b in data.get("window", [])),
            bar_count=data.get("bar_count", 0),
            swings=[SwingPoint.from_dict(s) for s in data.get("swings", [])],
            last_open_time=data.get("last_open_time"),
        )


class SwingIndicator:
    """Progressive swing high/low detector (id "swings")."""

    indicator_id = "swings"
    name = "Swing Points"
    description = "Symmetric-window swing highs and lows"
    config_class = SwingConfig

    def parse_config(self, params: Params) -> SwingConfig:
        if isinstance(params, SwingConfig):
            return params
        return SwingConfig.from_params(params)

    def required_warmup(self, config: SwingConfig) -> int:
        return 2 * config.lookback + 1

    def new_state(self, config: SwingConfig) -> SwingState:
        return SwingState()

    def initialize(self, history: Iterable[Bar], config: SwingConfig) -> SwingState:
        _, state = replay(self, history, config, self.new_state(config))
        return state

    def state_from_dict(self, data: Dict[str, Any]) -> SwingState:
        return SwingState.from_dict(data)

    def empty_output(self, config: SwingConfig) -> IndicatorOutput:
        return IndicatorOutput(values={"swingHigh": ZERO, "swingLow": ZERO})

    def consume(self, bar: Bar, config: SwingConfig, state: SwingState) -> Tuple[IndicatorOutput, SwingState]:
        check_order(bar, state.last_open_time)

        size = 2 * config.lookback + 1
        state.window.append(bar)
        while len(state.window) > size:
            state.window.popleft()
        state.bar_count += 1
        state.last_open_time = bar.open_time

        markers = []
        if len(state.window) == size:
            start = state.bar_count - size
            center = config.lookback
            window = list(state.window)
            for swing in detect_bar_swings(window, config.lookback, config.source, start):
                if swing.index != start + center:
                    continue
                state.swings.append(swing)
                markers.append(_swing_marker(swing))
                logger.debug("Swing %s at index %d: %s", swing.kind.value, swing.index, swing.value)
            if len(state.swings) > MAX_SWING_RECORDS:
                del state.swings[:len(state.swings) - MAX_SWING_RECORDS]

        high = state.latest(PivotKind.HIGH)
        low = state.latest(PivotKind.LOW)
        output = IndicatorOutput(
            values={
                "swingHigh": high.value if high else ZERO,
                "swingLow": low.value if low else ZERO,
            },
            markers=markers,
            extras={"swings": [s.to_dict() for s in state.swings]},
        )
        return output, state
