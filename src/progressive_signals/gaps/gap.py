"""
Fair Value Gap record.

A gap is the untraded price region left by a three-bar imbalance:

    Bullish: current.low > old.high  -> region [old.high, current.low]
    Bearish: current.high < old.low  -> region [current.high, old.low]

Gaps are created by the detector, flipped to mitigated once price closes
through them, and removed from the registry at that point. A mitigated gap is
never resurrected.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict


@dataclass
class Gap:
    """
    A Fair Value Gap.

    Attributes:
        top: Upper boundary (always >= bottom).
        bottom: Lower boundary.
        is_bullish: True for a bullish gap, False for bearish.
        detected_at: close_time of the bar that completed the pattern.
        anchor_time: close_time of the oldest bar of the pattern (box start).
        bar_index: Bar counter value when the gap was created.
        mitigated: True once price closed through the gap.
    """
    top: Decimal
    bottom: Decimal
    is_bullish: bool
    detected_at: int
    anchor_time: int
    bar_index: int
    mitigated: bool = False

    @property
    def level(self) -> Decimal:
        """Boundary that mitigates the gap: bottom for bullish, top for bearish."""
        return self.bottom if self.is_bullish else self.top

    def is_mitigated_by(self, close: Decimal) -> bool:
        if self.is_bullish:
            return close < self.bottom
        return close > self.top

    def to_dict(self) -> Dict[str, Any]:
        return {
            "top": str(self.top),
            "bottom": str(self.bottom),
            "is_bullish": self.is_bullish,
            "detected_at": self.detected_at,
            "anchor_time": self.anchor_time,
            "bar_index": self.bar_index,
            "mitigated": self.mitigated,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Gap":
        return cls(
            top=Decimal(data["top"]),
            bottom=Decimal(data["bottom"]),
            is_bullish=data["is_bullish"],
            detected_at=data["detected_at"],
            anchor_time=data["anchor_time"],
            bar_index=data["bar_index"],
            mitigated=data.get("mitigated", False),
        )
