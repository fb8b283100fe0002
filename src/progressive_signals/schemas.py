"""
Pydantic models for indicator responses.

Wire shapes for the batch and progressive call paths. Decimal values are
rendered as floats; the carried state is passed through in its to_dict()
form so it can be handed back on the next call.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from .contract import ProgressiveResult


# ============================================================================
# Shapes
# ============================================================================


class ShapeModel(BaseModel):
    """A box, line or marker. Unused coordinates are None."""
    model_config = ConfigDict(populate_by_name=True)

    type: str  # "box", "line" or "marker"
    time1: Optional[int] = None
    time2: Optional[int] = None
    price1: Optional[float] = None
    price2: Optional[float] = None
    time: Optional[int] = None
    price: Optional[float] = None
    position: Optional[str] = None
    line_style: Optional[str] = Field(default=None, alias="lineStyle")
    label: str = ""


# ============================================================================
# Indicator Responses
# ============================================================================


class CalculateResponse(BaseModel):
    """Batch calculation result: the last bar's named values."""
    indicator: str
    values: Dict[str, float]


class ProgressiveResponse(BaseModel):
    """Progressive calculation result with the state to pass back next time."""
    indicator: str
    values: Dict[str, float]
    state: Optional[Dict[str, Any]] = None
    boxes: List[ShapeModel] = []
    lines: List[ShapeModel] = []
    markers: List[ShapeModel] = []
    extras: Dict[str, Any] = {}


class ParameterInfo(BaseModel):
    """Declaration of one indicator option."""
    name: str
    type: str
    default: Any = None
    min: Optional[float] = None
    max: Optional[float] = None
    choices: List[str] = []
    description: str = ""


class IndicatorInfo(BaseModel):
    """Registry entry for one indicator."""
    id: str
    name: str
    description: str
    warmup: int
    parameters: List[ParameterInfo]


# ============================================================================
# Builders
# ============================================================================


def _floats(values: Mapping[str, Decimal]) -> Dict[str, float]:
    return {name: float(value) for name, value in values.items()}


def calculate_response(indicator_id: str, values: Mapping[str, Decimal]) -> CalculateResponse:
    return CalculateResponse(indicator=indicator_id, values=_floats(values))


def progressive_response(indicator_id: str, result: ProgressiveResult) -> ProgressiveResponse:
    """Build the wire model from a ProgressiveResult."""
    data = result.to_dict()
    return ProgressiveResponse(
        indicator=indicator_id,
        values=_floats(result.values),
        state=data["state"],
        boxes=[ShapeModel.model_validate(s) for s in data["boxes"]],
        lines=[ShapeModel.model_validate(s) for s in data["lines"]],
        markers=[ShapeModel.model_validate(s) for s in data["markers"]],
        extras=data["extras"],
    )


def indicator_info(entry: Mapping[str, Any]) -> IndicatorInfo:
    """Build the wire model from a list_available_indicators() entry."""
    return IndicatorInfo.model_validate(dict(entry))
