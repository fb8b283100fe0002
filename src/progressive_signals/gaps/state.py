"""
Gap registry state.

Contains the serializable per-series state threaded through successive
FairValueGapIndicator.consume() calls.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..numeric import ZERO
from ..shapes import LineShape
from ..types import Bar
from .gap import Gap


def _dec(value: Optional[str]) -> Optional[Decimal]:
    return Decimal(value) if value is not None else None


def _str(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


@dataclass
class GapRegistryState:
    """
    Serializable state for one (symbol, interval) gap series.

    Can be serialized to JSON for persistence and rehydrated with from_dict().

    Attributes:
        gaps: Live gaps, most recent first, capped at MAX_GAP_RECORDS.
        buffer: Rolling 3-bar buffer [old, middle, current].
        cumulative_range: Sum of (high - low) / low for the auto threshold.
        threshold_bars: Bars that contributed to cumulative_range.
        max_bull: Dynamic bullish top (None until a bullish gap forms).
        min_bull: Dynamic bullish bottom.
        max_bear: Dynamic bearish top.
        min_bear: Dynamic bearish bottom.
        last_bull_time: close_time of the last bullish gap (dedup guard).
        last_bear_time: close_time of the last bearish gap (dedup guard).
        average_duration: Smoothed bar duration in seconds (box width only).
        bar_index: Bars consumed so far.
        last_open_time: open_time of the last consumed bar.
        bull_count: Bullish gaps created.
        bear_count: Bearish gaps created.
        bull_mitigated: Bullish gaps mitigated.
        bear_mitigated: Bearish gaps mitigated.
        mitigation_lines: Lines for gaps mitigated on the last bar.
    """

    gaps: List[Gap] = field(default_factory=list)
    buffer: List[Bar] = field(default_factory=list)
    cumulative_range: Decimal = ZERO
    threshold_bars: int = 0
    max_bull: Optional[Decimal] = None
    min_bull: Optional[Decimal] = None
    max_bear: Optional[Decimal] = None
    min_bear: Optional[Decimal] = None
    last_bull_time: Optional[int] = None
    last_bear_time: Optional[int] = None
    average_duration: int = 0
    bar_index: int = 0
    last_open_time: Optional[int] = None
    bull_count: int = 0
    bear_count: int = 0
    bull_mitigated: int = 0
    bear_mitigated: int = 0
    mitigation_lines: List[LineShape] = field(default_factory=list)

    def active_gaps(self) -> List[Gap]:
        """Unmitigated gaps, most recent first."""
        return [g for g in self.gaps if not g.mitigated]

    def to_dict(self) -> Dict[str, Any]:
        """Convert state to dictionary for JSON serialization."""
        return {
            "gaps": [g.to_dict() for g in self.gaps],
            "buffer": [bar.to_dict() for bar in self.buffer],
            "cumulative_range": str(self.cumulative_range),
            "threshold_bars": self.threshold_bars,
            "max_bull": _str(self.max_bull),
            "min_bull": _str(self.min_bull),
            "max_bear": _str(self.max_bear),
            "min_bear": _str(self.min_bear),
            "last_bull_time": self.last_bull_time,
            "last_bear_time": self.last_bear_time,
            "average_duration": self.average_duration,
            "bar_index": self.bar_index,
            "last_open_time": self.last_open_time,
            "bull_count": self.bull_count,
            "bear_count": self.bear_count,
            "bull_mitigated": self.bull_mitigated,
            "bear_mitigated": self.bear_mitigated,
            "mitigation_lines": [line.to_dict() for line in self.mitigation_lines],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GapRegistryState":
        """Create state from dictionary."""
        return cls(
            gaps=[Gap.from_dict(g) for g in data.get("gaps", [])],
            buffer=[Bar.from_dict(b) for b in data.get("buffer", [])],
            cumulative_range=Decimal(data.get("cumulative_range", "0")),
            threshold_bars=data.get("threshold_bars", 0),
            max_bull=_dec(data.get("max_bull")),
            min_bull=_dec(data.get("min_bull")),
            max_bear=_dec(data.get("max_bear")),
            min_bear=_dec(data.get("min_bear")),
            last_bull_time=data.get("last_bull_time"),
            last_bear_time=data.get("last_bear_time"),
            average_duration=data.get("average_duration", 0),
            bar_index=data.get("bar_index", 0),
            last_open_time=data.get("last_open_time"),
            bull_count=data.get("bull_count", 0),
            bear_count=data.get("bear_count", 0),
            bull_mitigated=data.get("bull_mitigated", 0),
            bear_mitigated=data.get("bear_mitigated", 0),
            mitigation_lines=[LineShape.from_dict(line) for line in data.get("mitigation_lines", [])],
        )
