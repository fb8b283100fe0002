"""
Tests for calibration: calibrate functions and DataFrame helpers.

Tests the batch processing and utility functions used to warm up indicator
state from historical data.
"""

from decimal import Decimal

import pandas as pd
import pytest

from progressive_signals.calibrate import (
    calibrate,
    calibrate_from_dataframe,
    dataframe_to_bars,
)
from progressive_signals.errors import InvalidConfigError, InvalidInputError, OutOfOrderInputError
from progressive_signals.registry import get_indicator

from conftest import make_bar


def ohlc_frame(n=30, **extra):
    data = {
        "open": [100.0 + (i % 7) for i in range(n)],
        "high": [103.0 + (i % 7) for i in range(n)],
        "low": [98.0 + (i % 5) for i in range(n)],
        "close": [101.0 + (i % 6) for i in range(n)],
    }
    data.update(extra)
    return pd.DataFrame(data)


class TestCalibrateFunction:
    """Test the calibrate() convenience function."""

    def test_calibrate_processes_all_bars(self):
        """calibrate() returns one output per bar and the final state."""
        bars = [make_bar(i, 100.0 + i % 10, 105.0 + i % 10, 95.0 + i % 10, 102.0 + i % 10) for i in range(100)]

        state, outputs = calibrate("fvg", bars)

        assert len(outputs) == 100
        assert state.bar_index == 100
        assert state.last_open_time == bars[-1].open_time

    def test_calibrate_same_as_manual_loop(self, trending_bars):
        """calibrate() produces same results as a manual consume() loop."""
        params = {"deviation": 3, "depth": 2}
        state1, outputs1 = calibrate("zigzag", trending_bars, params)

        indicator = get_indicator("zigzag")
        config = indicator.parse_config(params)
        state2 = indicator.new_state(config)
        outputs2 = []
        for bar in trending_bars:
            output, state2 = indicator.consume(bar, config, state2)
            outputs2.append(output)

        assert state1.to_dict() == state2.to_dict()
        assert [o.to_dict() for o in outputs1] == [o.to_dict() for o in outputs2]

    def test_rejects_unordered_history(self, trending_bars):
        with pytest.raises(OutOfOrderInputError):
            calibrate("swings", list(reversed(trending_bars)))

    def test_rejects_unknown_indicator(self, trending_bars):
        with pytest.raises(InvalidConfigError):
            calibrate("nope", trending_bars)


class TestProgressCallback:
    """Test progress reporting."""

    def test_progress_callback_invoked(self, trending_bars):
        calls = []
        calibrate("swings", trending_bars, progress_callback=lambda cur, total: calls.append((cur, total)))

        assert len(calls) == len(trending_bars)
        assert calls[0] == (1, len(trending_bars))
        assert calls[-1] == (len(trending_bars), len(trending_bars))

    def test_calibrate_without_callback(self, trending_bars):
        state, outputs = calibrate("swings", trending_bars)
        assert len(outputs) == len(trending_bars)


class TestDataframeToBars:
    """Test dataframe_to_bars() helper function."""

    def test_basic_conversion(self):
        """Basic DataFrame conversion works."""
        df = pd.DataFrame({
            "open": [100.0, 101.0, 102.0],
            "high": [105.0, 106.0, 107.0],
            "low": [95.0, 96.0, 97.0],
            "close": [102.0, 103.0, 104.5],
        })

        bars = dataframe_to_bars(df, "BTCUSDT", "1m")

        assert len(bars) == 3
        assert bars[0].open == Decimal("100")
        assert bars[0].high == Decimal("105")
        assert bars[0].low == Decimal("95")
        assert bars[2].close == Decimal("104.5")
        assert bars[1].symbol == "BTCUSDT"
        assert bars[1].interval == "1m"

    def test_capitalized_column_names(self):
        """Handles capitalized column names (Open, High, Low, Close)."""
        df = pd.DataFrame({
            "Open": [100.0],
            "High": [105.0],
            "Low": [95.0],
            "Close": [102.0],
        })

        bars = dataframe_to_bars(df)

        assert len(bars) == 1
        assert bars[0].open == Decimal("100")
        assert bars[0].high == Decimal("105")

    def test_with_timestamp_column(self):
        """Epoch timestamps are used as open_time; close_time follows the bar spacing."""
        df = ohlc_frame(3, timestamp=[1700000000, 1700000300, 1700000600])

        bars = dataframe_to_bars(df)

        assert [b.open_time for b in bars] == [1700000000, 1700000300, 1700000600]
        assert bars[0].close_time == 1700000300

    def test_with_date_strings(self):
        """Handles 'date' strings as the open time (naive dates are UTC)."""
        df = ohlc_frame(2, date=["2024-01-01 00:00:00", "2024-01-01 00:01:00"])

        bars = dataframe_to_bars(df)

        assert bars[0].open_time == 1704067200
        assert bars[1].open_time == 1704067260
        assert bars[0].date.year == 2024

    def test_explicit_close_time(self):
        df = ohlc_frame(2, open_time=[1700000000, 1700000060], close_time=[1700000059, 1700000119])
        bars = dataframe_to_bars(df)
        assert bars[1].close_time == 1700000119

    def test_generates_timestamp_if_missing(self):
        """Generates sequential timestamps if not provided."""
        bars = dataframe_to_bars(ohlc_frame(2))

        assert bars[0].open_time > 0
        assert bars[1].open_time == bars[0].open_time + 60  # 1 minute apart

    def test_volume_columns(self):
        """Buy/sell volumes and delta are optional; NaN means missing."""
        df = ohlc_frame(
            3,
            buy_volume=[10.0, 7.0, float("nan")],
            sell_volume=[4.0, 9.0, 3.0],
            delta=[float("nan"), float("nan"), float("nan")],
        )

        bars = dataframe_to_bars(df)

        assert bars[0].volume_delta == Decimal("6")
        assert bars[1].volume_delta == Decimal("-2")
        assert bars[2].buy_volume is None
        assert bars[2].volume_delta == Decimal("0")

    def test_delta_column_wins(self):
        df = ohlc_frame(1, buy_volume=[10.0], sell_volume=[4.0], delta=[1.5])
        assert dataframe_to_bars(df)[0].volume_delta == Decimal("1.5")

    def test_missing_price_rejected(self):
        df = ohlc_frame(4)
        df["close"] = [1.5, None, 3.5, 4.5]
        with pytest.raises(InvalidInputError, match="Row 1"):
            dataframe_to_bars(df)

    def test_infinite_price_rejected(self):
        df = ohlc_frame(3)
        df.loc[2, "high"] = float("inf")
        with pytest.raises(InvalidInputError):
            dataframe_to_bars(df)

    def test_missing_price_column_rejected(self):
        df = ohlc_frame(3).drop(columns=["close"])
        with pytest.raises(InvalidInputError, match="close"):
            dataframe_to_bars(df)


class TestCalibrateFromDataframe:
    """Test calibrate_from_dataframe() wrapper."""

    def test_produces_same_result_as_manual(self):
        df = ohlc_frame(40)

        state1, outputs1 = calibrate_from_dataframe("fvg", df, {"showLast": 3})
        state2, outputs2 = calibrate("fvg", dataframe_to_bars(df), {"showLast": 3})

        assert state1.to_dict() == state2.to_dict()
        assert outputs1[-1].to_dict() == outputs2[-1].to_dict()

    def test_with_progress_callback(self):
        calls = []
        calibrate_from_dataframe("swings", ohlc_frame(20), progress_callback=lambda c, t: calls.append(c))
        assert calls == list(range(1, 21))

    def test_stamps_symbol_and_interval(self):
        state, _ = calibrate_from_dataframe("delta_div", ohlc_frame(20), symbol="ES", interval="5m")
        assert all(bar.symbol == "ES" and bar.interval == "5m" for bar in state.window)
