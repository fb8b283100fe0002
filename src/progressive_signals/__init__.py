# Progressive Signals
#
# Incremental technical indicators over live OHLC bar streams.

from .types import Bar, PivotKind, SwingPoint
from .errors import IndicatorError, InvalidConfigError, InvalidInputError, OutOfOrderInputError
from .config import (
    ParameterSpec,
    IndicatorConfig,
    SwingConfig,
    ZigZagConfig,
    GapConfig,
    DivergenceConfig,
)
from .shapes import BoxShape, LineShape, MarkerShape

# Shared contract and call shapes
from .contract import (
    ProgressiveIndicator,
    IndicatorOutput,
    ProgressiveResult,
    calculate,
    calculate_progressive,
)

# Indicators
from .swing_detector import SwingIndicator, detect_swings, price_series, delta_series
from .zigzag import ZigZagIndicator, ZigZagPivot, ZigZagState
from .gaps import FairValueGapIndicator, Gap, GapRegistryState
from .divergence import (
    DivergenceIndicator,
    Divergence,
    DivergenceType,
    find_divergences,
    find_nearest_swing,
)

# Registry, per-series engine, batch helpers
from .registry import INDICATOR_REGISTRY, get_indicator, list_available_indicators
from .engine import IndicatorEngine, SeriesKey
from .calibrate import calibrate, calibrate_from_dataframe, dataframe_to_bars

__all__ = [
    # Data types
    "Bar",
    "PivotKind",
    "SwingPoint",
    # Errors
    "IndicatorError",
    "InvalidConfigError",
    "OutOfOrderInputError",
    "InvalidInputError",
    # Configuration
    "ParameterSpec",
    "IndicatorConfig",
    "SwingConfig",
    "ZigZagConfig",
    "GapConfig",
    "DivergenceConfig",
    # Shapes
    "BoxShape",
    "LineShape",
    "MarkerShape",
    # Contract
    "ProgressiveIndicator",
    "IndicatorOutput",
    "ProgressiveResult",
    "calculate",
    "calculate_progressive",
    # Indicators
    "SwingIndicator",
    "detect_swings",
    "price_series",
    "delta_series",
    "ZigZagIndicator",
    "ZigZagPivot",
    "ZigZagState",
    "FairValueGapIndicator",
    "Gap",
    "GapRegistryState",
    "DivergenceIndicator",
    "Divergence",
    "DivergenceType",
    "find_divergences",
    "find_nearest_swing",
    # Registry and engine
    "INDICATOR_REGISTRY",
    "get_indicator",
    "list_available_indicators",
    "IndicatorEngine",
    "SeriesKey",
    # Calibration
    "calibrate",
    "calibrate_from_dataframe",
    "dataframe_to_bars",
]
