"""
Divergence Matcher

Pairs swing points of a price series with swing points of a second series
(volume delta) to classify divergences:

    Bullish:        price lower low,   series higher (or equal) low
    Bearish:        price higher high, series lower (or equal) high
    HiddenBullish:  price higher low,  series lower (or equal) low
    HiddenBearish:  price lower high,  series higher (or equal) high

For every later price swing i, earlier price swings j of the same kind are
visited from i - 1 back to i - max_lookback // 10. The divisor applies to
swing positions, not bars, and is kept literally. The matching series swing
for a price swing is the one of the same kind closest in bar index; the first
candidate wins a distance tie.

Hidden divergences are only reported when include_hidden is set.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Deque, Dict, Iterable, List, Optional, Sequence, Tuple

from .config import DivergenceConfig
from .constants import DIVERGENCE_LOOKBACK_DIVISOR
from .contract import IndicatorOutput, Params, check_order, replay
from .numeric import ZERO
from .shapes import MarkerShape
from .swing_detector import delta_series, detect_bar_swings, detect_swings
from .types import Bar, PivotKind, SwingPoint

logger = logging.getLogger(__name__)


class DivergenceType(Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    HIDDEN_BULLISH = "hidden_bullish"
    HIDDEN_BEARISH = "hidden_bearish"

    @property
    def is_bullish(self) -> bool:
        return self in (DivergenceType.BULLISH, DivergenceType.HIDDEN_BULLISH)


@dataclass(frozen=True)
class Divergence:
    """A divergence between two matched swing pairs. Recomputed, never stored."""
    type: DivergenceType
    price_start: Decimal
    price_end: Decimal
    series_start: Decimal
    series_end: Decimal
    timestamp: int
    start_index: int
    end_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "price_start": str(self.price_start),
            "price_end": str(self.price_end),
            "series_start": str(self.series_start),
            "series_end": str(self.series_end),
            "timestamp": self.timestamp,
            "start_index": self.start_index,
            "end_index": self.end_index,
        }


def find_nearest_swing(swings: Sequence[SwingPoint], target_index: int, kind: PivotKind) -> Optional[SwingPoint]:
    """Swing of the given kind closest to target_index; the first one wins ties."""
    nearest = None
    best = None
    for swing in swings:
        if swing.kind is not kind:
            continue
        distance = abs(swing.index - target_index)
        if best is None or distance < best:
            best = distance
            nearest = swing
    return nearest


# (divergence type, swing kind, price test, series test) per pass.
# Tests compare (later, earlier).
_PASSES = (
    (DivergenceType.BULLISH, PivotKind.LOW, lambda a, b: a < b, lambda a, b: a >= b),
    (DivergenceType.BEARISH, PivotKind.HIGH, lambda a, b: a > b, lambda a, b: a <= b),
)
_HIDDEN_PASSES = (
    (DivergenceType.HIDDEN_BULLISH, PivotKind.LOW, lambda a, b: a > b, lambda a, b: a <= b),
    (DivergenceType.HIDDEN_BEARISH, PivotKind.HIGH, lambda a, b: a < b, lambda a, b: a >= b),
)


def find_divergences(
    price_swings: Sequence[SwingPoint],
    series_swings: Sequence[SwingPoint],
    max_lookback: int,
    include_hidden: bool = False,
) -> List[Divergence]:
    """
    Match price swings against series swings.

    Args:
        price_swings: Price swing points ordered by index.
        series_swings: Second-series swing points (e.g. delta) ordered by index.
        max_lookback: Bar lookback parameter; price swings are paired at most
            max_lookback // 10 positions apart.
        include_hidden: Also report hidden (continuation) divergences.

    Returns:
        All regular bullish records, then regular bearish, then (optionally)
        hidden bullish and hidden bearish. Empty when either input has fewer
        than 2 swings.
    """
    if len(price_swings) < 2 or len(series_swings) < 2:
        return []

    reach = max_lookback // DIVERGENCE_LOOKBACK_DIVISOR
    passes = _PASSES + _HIDDEN_PASSES if include_hidden else _PASSES
    divergences = []
    for div_type, kind, price_test, series_test in passes:
        for i in range(1, len(price_swings)):
            later = price_swings[i]
            if later.kind is not kind:
                continue
            for j in range(i - 1, max(0, i - reach) - 1, -1):
                earlier = price_swings[j]
                if earlier.kind is not kind or not price_test(later.value, earlier.value):
                    continue
                series_later = find_nearest_swing(series_swings, later.index, kind)
                series_earlier = find_nearest_swing(series_swings, earlier.index, kind)
                if series_later is None or series_earlier is None:
                    continue
                if series_test(series_later.value, series_earlier.value):
                    divergences.append(Divergence(
                        type=div_type,
                        price_start=earlier.value,
                        price_end=later.value,
                        series_start=series_earlier.value,
                        series_end=series_later.value,
                        timestamp=later.timestamp,
                        start_index=earlier.index,
                        end_index=later.index,
                    ))
    return divergences


@dataclass
class DivergenceState:
    """
    Carried state of the divergence indicator: a rolling bar window.

    Attributes:
        window: Last DivergenceConfig.window_size bars.
        bar_count: Bars consumed so far.
        last_open_time: open_time of the last consumed bar.
    """
    window: Deque[Bar] = field(default_factory=deque)
    bar_count: int = 0
    last_open_time: Optional[int] = None

    @property
    def start_index(self) -> int:
        """Absolute index of the oldest bar in the window."""
        return self.bar_count - len(self.window)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "window": [bar.to_dict() for bar in self.window],
            "bar_count": self.bar_count,
            "last_open_time": self.last_open_time,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DivergenceState":
        return cls(
            window=deque(Bar.from_dict(b) for b in data.get("window", [])),
            bar_count=data.get("bar_count", 0),
            last_open_time=data.get("last_open_time"),
        )


class DivergenceIndicator:
    """Price vs. volume-delta divergence detector (id "delta_div")."""

    indicator_id = "delta_div"
    name = "Delta Divergence"
    description = "Divergences between price swings and volume delta swings"
    config_class = DivergenceConfig

    def parse_config(self, params: Params) -> DivergenceConfig:
        if isinstance(params, DivergenceConfig):
            return params
        return DivergenceConfig.from_params(params)

    def required_warmup(self, config: DivergenceConfig) -> int:
        return 2 * config.swing_lookback + 1

    def new_state(self, config: DivergenceConfig) -> DivergenceState:
        return DivergenceState()

    def initialize(self, history: Iterable[Bar], config: DivergenceConfig) -> DivergenceState:
        _, state = replay(self, history, config, self.new_state(config))
        return state

    def state_from_dict(self, data: Dict[str, Any]) -> DivergenceState:
        return DivergenceState.from_dict(data)

    def empty_output(self, config: DivergenceConfig) -> IndicatorOutput:
        return IndicatorOutput(
            values={"delta": ZERO, "divergenceSignal": ZERO, "divergenceCount": ZERO},
            extras={"divergences": [], "priceSwings": [], "deltaSwings": []},
        )

    def consume(self, bar: Bar, config: DivergenceConfig, state: DivergenceState) -> Tuple[IndicatorOutput, DivergenceState]:
        check_order(bar, state.last_open_time)
        state.window.append(bar)
        while len(state.window) > config.window_size:
            state.window.popleft()
        state.bar_count += 1
        state.last_open_time = bar.open_time

        window = list(state.window)
        start = state.start_index
        price_swings = detect_bar_swings(window, config.swing_lookback, "high-low", start)
        delta_swings = detect_swings(delta_series(window, start), config.swing_lookback)
        divergences = find_divergences(price_swings, delta_swings, config.div_lookback, config.hidden)
        if divergences:
            logger.debug("%d divergence(s) in window ending at bar %d", len(divergences), state.bar_count - 1)

        markers = [
            MarkerShape(
                d.timestamp, d.price_end,
                "below" if d.type.is_bullish else "above",
                d.type.value,
            )
            for d in divergences
        ]
        output = IndicatorOutput(
            values={
                "delta": bar.volume_delta,
                "divergenceSignal": Decimal(1) if divergences else ZERO,
                "divergenceCount": Decimal(len(divergences)),
            },
            markers=markers,
            extras={
                "divergences": [d.to_dict() for d in divergences],
                "priceSwings": [s.to_dict() for s in price_swings],
                "deltaSwings": [s.to_dict() for s in delta_swings],
            },
        )
        return output, state
