"""
ZigZag Pivot Tracker

Sequential pivot confirmation using a percentage deviation threshold and a
minimum bar spacing (depth).

State machine:

    Seeking  - buffer the first 2 * depth bars. The seed pivot is whichever of
               (highest high, lowest low) occurs first; the first occurrence of
               each extreme counts, and an index tie seeds a Low.
    Tracking - starting depth bars after the current pivot, follow the running
               extreme of the opposite kind. When it has moved at least
               deviation% of the current pivot price in the pivot's direction,
               confirm it as the new pivot and start over from there.

Because the running extreme only changes when the scanned bar is more extreme,
a confirmation always lands on the bar being scanned. The tracker is therefore
fully incremental after seeding: one consume() per bar gives the same pivots as
a batch scan of the whole history.

The unconfirmed running extreme is reported as the provisional tail. It is
provisional until superseded: the drawn line may move as new bars arrive.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .config import ZigZagConfig
from .constants import MAX_PIVOT_RECORDS
from .contract import IndicatorOutput, Params, check_order, replay
from .numeric import ZERO, percent_change, percent_of
from .shapes import LineShape
from .types import Bar, PivotKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ZigZagPivot:
    """
    A confirmed ZigZag pivot.

    Attributes:
        index: Absolute bar index in the series.
        timestamp: open_time of the pivot bar.
        price: Pivot price.
        kind: HIGH or LOW. Consecutive pivots alternate.
        percent_change: Absolute percent move from the previous pivot
            (0 for the seed pivot).
    """
    index: int
    timestamp: int
    price: Decimal
    kind: PivotKind
    percent_change: Decimal = ZERO

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "timestamp": self.timestamp,
            "price": str(self.price),
            "kind": self.kind.value,
            "percent_change": str(self.percent_change),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ZigZagPivot":
        return cls(
            index=data["index"],
            timestamp=data["timestamp"],
            price=Decimal(data["price"]),
            kind=PivotKind(data["kind"]),
            percent_change=Decimal(data.get("percent_change", "0")),
        )


def _pivot_price(bar: Bar, kind: PivotKind, source: str) -> Decimal:
    if source == "close":
        return bar.close
    return bar.high if kind is PivotKind.HIGH else bar.low


def find_seed_pivot(bars: Sequence[Bar], source: str = "high-low", start_index: int = 0) -> Optional[ZigZagPivot]:
    """
    Pick the first pivot from a seed window.

    Returns the highest high or the lowest low, whichever comes first (a Low
    on a tie), or None for an empty window.
    """
    if not bars:
        return None
    high_price = _pivot_price(bars[0], PivotKind.HIGH, source)
    low_price = _pivot_price(bars[0], PivotKind.LOW, source)
    high_index = low_index = 0
    for i in range(1, len(bars)):
        high = _pivot_price(bars[i], PivotKind.HIGH, source)
        low = _pivot_price(bars[i], PivotKind.LOW, source)
        if high > high_price:
            high_price, high_index = high, i
        if low < low_price:
            low_price, low_index = low, i

    if high_index < low_index:
        return ZigZagPivot(start_index + high_index, bars[high_index].open_time, high_price, PivotKind.HIGH)
    return ZigZagPivot(start_index + low_index, bars[low_index].open_time, low_price, PivotKind.LOW)


@dataclass
class ZigZagState:
    """
    Carried state of the ZigZag tracker.

    Attributes:
        bar_count: Bars consumed so far.
        seed_bars: Buffered bars while seeking (empty once tracking).
        pivots: Confirmed pivots, oldest first, capped at MAX_PIVOT_RECORDS.
        scan_start: First absolute index eligible for the next confirmation.
        extreme_price: Running extreme of the kind being searched for.
        extreme_index: Index of the running extreme.
        extreme_time: open_time of the running extreme.
        last_open_time: open_time of the last consumed bar.
    """
    bar_count: int = 0
    seed_bars: List[Bar] = field(default_factory=list)
    pivots: List[ZigZagPivot] = field(default_factory=list)
    scan_start: int = 0
    extreme_price: Optional[Decimal] = None
    extreme_index: Optional[int] = None
    extreme_time: Optional[int] = None
    last_open_time: Optional[int] = None

    @property
    def is_seeking(self) -> bool:
        return not self.pivots

    @property
    def current_pivot(self) -> Optional[ZigZagPivot]:
        return self.pivots[-1] if self.pivots else None

    def provisional(self) -> Optional[Dict[str, Any]]:
        """Running unconfirmed extreme, or None."""
        current = self.current_pivot
        if current is None or self.extreme_price is None:
            return None
        return {
            "index": self.extreme_index,
            "timestamp": self.extreme_time,
            "price": str(self.extreme_price),
            "kind": current.kind.opposite.value,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bar_count": self.bar_count,
            "seed_bars": [bar.to_dict() for bar in self.seed_bars],
            "pivots": [p.to_dict() for p in self.pivots],
            "scan_start": self.scan_start,
            "extreme_price": str(self.extreme_price) if self.extreme_price is not None else None,
            "extreme_index": self.extreme_index,
            "extreme_time": self.extreme_time,
            "last_open_time": self.last_open_time,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ZigZagState":
        extreme = data.get("extreme_price")
        return cls(
            bar_count=data.get("bar_count", 0),
            seed_bars=[Bar.from_dict(b) for b in data.get("seed_bars", [])],
            pivots=[ZigZagPivot.from_dict(p) for p in data.get("pivots", [])],
            scan_start=data.get("scan_start", 0),
            extreme_price=Decimal(extreme) if extreme is not None else None,
            extreme_index=data.get("extreme_index"),
            extreme_time=data.get("extreme_time"),
            last_open_time=data.get("last_open_time"),
        )


class ZigZagIndicator:
    """Progressive ZigZag pivot tracker (id "zigzag")."""

    indicator_id = "zigzag"
    name = "ZigZag"
    description = "Alternating pivots confirmed by a percentage deviation and minimum bar spacing"
    config_class = ZigZagConfig

    def parse_config(self, params: Params) -> ZigZagConfig:
        if isinstance(params, ZigZagConfig):
            return params
        return ZigZagConfig.from_params(params)

    def required_warmup(self, config: ZigZagConfig) -> int:
        return 3 * config.depth

    def new_state(self, config: ZigZagConfig) -> ZigZagState:
        return ZigZagState()

    def initialize(self, history: Iterable[Bar], config: ZigZagConfig) -> ZigZagState:
        _, state = replay(self, history, config, self.new_state(config))
        return state

    def state_from_dict(self, data: Dict[str, Any]) -> ZigZagState:
        return ZigZagState.from_dict(data)

    def empty_output(self, config: ZigZagConfig) -> IndicatorOutput:
        return IndicatorOutput(values={"zigzag": ZERO}, extras={"pivots": [], "provisional": None})

    def consume(self, bar: Bar, config: ZigZagConfig, state: ZigZagState) -> Tuple[IndicatorOutput, ZigZagState]:
        check_order(bar, state.last_open_time)
        index = state.bar_count
        state.bar_count += 1
        state.last_open_time = bar.open_time

        if state.is_seeking:
            state.seed_bars.append(bar)
            if len(state.seed_bars) >= 2 * config.depth:
                self._seed(state, config)
        else:
            self._scan(bar, index, state, config)

        return self._output(state), state

    def _seed(self, state: ZigZagState, config: ZigZagConfig) -> None:
        start = state.bar_count - len(state.seed_bars)
        seed = find_seed_pivot(state.seed_bars, config.source, start)
        buffered = state.seed_bars
        state.seed_bars = []
        state.pivots.append(seed)
        state.scan_start = seed.index + config.depth
        logger.debug("ZigZag seed %s at index %d: %s", seed.kind.value, seed.index, seed.price)
        for offset, bar in enumerate(buffered):
            self._scan(bar, start + offset, state, config)

    def _scan(self, bar: Bar, index: int, state: ZigZagState, config: ZigZagConfig) -> Optional[ZigZagPivot]:
        """Advance the tracking step by one bar; return a newly confirmed pivot."""
        if index < state.scan_start:
            return None
        current = state.current_pivot
        if current.price <= ZERO:
            return None

        searching = current.kind.opposite
        price = _pivot_price(bar, searching, config.source)
        if searching is PivotKind.HIGH:
            if state.extreme_price is None or price > state.extreme_price:
                state.extreme_price, state.extreme_index, state.extreme_time = price, index, bar.open_time
            change = state.extreme_price - current.price
        else:
            if state.extreme_price is None or price < state.extreme_price:
                state.extreme_price, state.extreme_index, state.extreme_time = price, index, bar.open_time
            change = current.price - state.extreme_price

        if change < percent_of(current.price, config.deviation):
            return None

        pivot = ZigZagPivot(
            index=state.extreme_index,
            timestamp=state.extreme_time,
            price=state.extreme_price,
            kind=searching,
            percent_change=percent_change(current.price, state.extreme_price),
        )
        state.pivots.append(pivot)
        if len(state.pivots) > MAX_PIVOT_RECORDS:
            del state.pivots[:len(state.pivots) - MAX_PIVOT_RECORDS]
        state.scan_start = pivot.index + config.depth
        state.extreme_price = state.extreme_index = state.extreme_time = None
        logger.debug(
            "ZigZag pivot %s at index %d: %s (%s%%)",
            pivot.kind.value, pivot.index, pivot.price, pivot.percent_change,
        )
        return pivot

    def _output(self, state: ZigZagState) -> IndicatorOutput:
        lines = []
        for prev, nxt in zip(state.pivots, state.pivots[1:]):
            direction = "up" if prev.price < nxt.price else "down"
            lines.append(LineShape(prev.timestamp, prev.price, nxt.timestamp, nxt.price, "solid", direction))

        provisional = state.provisional()
        current = state.current_pivot
        if provisional is not None:
            lines.append(LineShape(
                current.timestamp, current.price,
                state.extreme_time, state.extreme_price,
                "dashed", "provisional",
            ))

        return IndicatorOutput(
            values={"zigzag": current.price if current else ZERO},
            lines=lines,
            extras={
                "pivots": [p.to_dict() for p in state.pivots],
                "provisional": provisional,
            },
        )
