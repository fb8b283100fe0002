"""
Visual shapes emitted alongside indicator values.

Shapes carry geometry only (times in epoch seconds, Decimal prices, a label
and a line style). Colors and other presentation metadata are left to the
rendering layer.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict


@dataclass(frozen=True)
class BoxShape:
    """A rectangle spanning [time1, time2] x [bottom, top]."""
    time1: int
    time2: int
    top: Decimal
    bottom: Decimal
    label: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "box",
            "time1": self.time1,
            "time2": self.time2,
            "price1": str(self.top),
            "price2": str(self.bottom),
            "label": self.label,
        }


@dataclass(frozen=True)
class LineShape:
    """A segment from (time1, price1) to (time2, price2)."""
    time1: int
    price1: Decimal
    time2: int
    price2: Decimal
    line_style: str = "solid"  # 'solid' or 'dashed'
    label: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "line",
            "time1": self.time1,
            "price1": str(self.price1),
            "time2": self.time2,
            "price2": str(self.price2),
            "lineStyle": self.line_style,
            "label": self.label,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LineShape":
        return cls(
            time1=data["time1"],
            price1=Decimal(data["price1"]),
            time2=data["time2"],
            price2=Decimal(data["price2"]),
            line_style=data.get("lineStyle", "solid"),
            label=data.get("label", ""),
        )


@dataclass(frozen=True)
class MarkerShape:
    """A point annotation at (time, price)."""
    time: int
    price: Decimal
    position: str  # 'above' or 'below'
    label: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "marker",
            "time": self.time,
            "price": str(self.price),
            "position": self.position,
            "label": self.label,
        }
