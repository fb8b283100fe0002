"""
Calibration functions.

Provides batch processing of historical bars and DataFrame conversion utilities.
"""

import logging
from typing import Any, Callable, List, Mapping, Optional, Tuple

import pandas as pd

from .contract import IndicatorOutput, check_batch_order
from .errors import InvalidInputError
from .numeric import to_decimal
from .registry import get_indicator
from .types import Bar

logger = logging.getLogger(__name__)

DEFAULT_BAR_SECONDS = 60


def calibrate(
    indicator_id: str,
    bars: List[Bar],
    params: Optional[Mapping[str, Any]] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> Tuple[Any, List[IndicatorOutput]]:
    """
    Run an indicator over historical bars.

    This is consume() in a loop - guarantees identical behavior to
    incremental playback.

    Args:
        indicator_id: Registered indicator id ("swings", "zigzag", "fvg", "delta_div").
        bars: Historical bars, oldest first.
        params: Indicator options (defaults when omitted).
        progress_callback: Optional callback(current, total) for progress reporting.

    Returns:
        Tuple of (final carried state, output for every bar).

    Raises:
        InvalidConfigError: Unknown indicator or invalid params.
        OutOfOrderInputError: Bars are not strictly ordered by open_time.

    Example:
        >>> state, outputs = calibrate("zigzag", bars, {"deviation": 3})
        >>> outputs[-1].values["zigzag"]
        Decimal('4512.25')
        >>> # Continue processing new bars
        >>> indicator = get_indicator("zigzag")
        >>> output, state = indicator.consume(new_bar, indicator.parse_config({"deviation": 3}), state)
    """
    indicator = get_indicator(indicator_id)
    config = indicator.parse_config(params)
    check_batch_order(bars, None)

    state = indicator.new_state(config)
    outputs: List[IndicatorOutput] = []
    total = len(bars)
    for i, bar in enumerate(bars):
        output, state = indicator.consume(bar, config, state)
        outputs.append(output)
        if progress_callback:
            progress_callback(i + 1, total)

    logger.info(f"Calibrated {indicator.indicator_id} over {total} bars")
    return state, outputs


def _to_epoch_seconds(value: Any) -> int:
    if isinstance(value, str):
        return int(pd.Timestamp(value).timestamp())
    if hasattr(value, "timestamp"):
        return int(value.timestamp())
    return int(value)


def _optional_decimal(row: pd.Series, col_map: Mapping[str, str], name: str):
    column = col_map.get(name)
    if column is None or pd.isna(row[column]):
        return None
    return to_decimal(row[column])


def _price(row: pd.Series, col_map: Mapping[str, str], name: str, position: int):
    column = col_map.get(name)
    if column is None:
        raise InvalidInputError(f"Missing required column: {name}")
    value = row[column]
    if pd.isna(value):
        raise InvalidInputError(f"Row {position}: missing {name} price")
    return to_decimal(value)


def dataframe_to_bars(df: pd.DataFrame, symbol: str = "", interval: str = "") -> List[Bar]:
    """
    Convert DataFrame with OHLC columns to Bar list.

    Handles various column naming conventions commonly used in market data.

    Args:
        df: DataFrame with OHLC columns. Expects columns like:
            - open/Open, high/High, low/Low, close/Close
            - Optional: timestamp/time/date/datetime/open_time (epoch seconds or dates)
            - Optional: close_time
            - Optional: buy_volume, sell_volume, delta
        symbol: Symbol stamped on every bar.
        interval: Interval label stamped on every bar.

    Returns:
        List of Bar objects suitable for consume() or calibrate().

    Raises:
        InvalidInputError: If an OHLC column is absent, or a price is missing
            or not finite. Missing volumes are allowed.

    Example:
        >>> df = pd.read_csv("market_data.csv")
        >>> bars = dataframe_to_bars(df, "BTCUSDT", "1m")
        >>> state, outputs = calibrate("fvg", bars)
    """
    # Normalize column names to lowercase for consistent access
    col_map = {str(c).lower(): c for c in df.columns}

    ts_col = None
    for candidate in ["open_time", "timestamp", "time", "date", "datetime"]:
        if candidate in col_map:
            ts_col = col_map[candidate]
            break

    if ts_col is not None:
        open_times = [_to_epoch_seconds(v) for v in df[ts_col]]
    else:
        # Generate sequential timestamps
        open_times = [1700000000 + i * DEFAULT_BAR_SECONDS for i in range(len(df))]

    step = DEFAULT_BAR_SECONDS
    if len(open_times) > 1:
        step = int(pd.Series(open_times).diff().median())

    bars = []
    for position, (_, row) in enumerate(df.iterrows()):
        open_time = open_times[position]
        if "close_time" in col_map:
            close_time = _to_epoch_seconds(row[col_map["close_time"]])
        else:
            close_time = open_time + step

        bars.append(
            Bar(
                symbol=symbol,
                interval=interval,
                open_time=open_time,
                close_time=close_time,
                open=_price(row, col_map, "open", position),
                high=_price(row, col_map, "high", position),
                low=_price(row, col_map, "low", position),
                close=_price(row, col_map, "close", position),
                buy_volume=_optional_decimal(row, col_map, "buy_volume"),
                sell_volume=_optional_decimal(row, col_map, "sell_volume"),
                delta=_optional_decimal(row, col_map, "delta"),
            )
        )

    return bars


def calibrate_from_dataframe(
    indicator_id: str,
    df: pd.DataFrame,
    params: Optional[Mapping[str, Any]] = None,
    symbol: str = "",
    interval: str = "",
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> Tuple[Any, List[IndicatorOutput]]:
    """
    Convenience wrapper for DataFrame input.

    Converts DataFrame to Bar list and runs calibration.

    Example:
        >>> df = pd.read_csv("BTCUSDT-1m.csv")
        >>> state, outputs = calibrate_from_dataframe("fvg", df, {"autoThreshold": True})
    """
    bars = dataframe_to_bars(df, symbol, interval)
    return calibrate(indicator_id, bars, params, progress_callback)
