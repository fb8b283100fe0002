"""
Tests for symmetric-window swing detection and the progressive swing indicator.
"""

from decimal import Decimal

import pytest

from progressive_signals.contract import calculate
from progressive_signals.errors import InvalidConfigError
from progressive_signals.swing_detector import (
    SeriesPoint,
    SwingIndicator,
    SwingState,
    delta_series,
    detect_bar_swings,
    detect_swings,
)
from progressive_signals.types import PivotKind

from conftest import bars_from_closes, make_bar, make_bars


def series(values):
    return [SeriesPoint(i, Decimal(str(v)), 1000 + i) for i, v in enumerate(values)]


class TestDetectSwings:
    """Test the pure swing scan."""

    def test_simple_high_and_low(self):
        swings = detect_swings(series([1, 3, 2, 0, 2]), 1)
        assert [(s.index, s.kind) for s in swings] == [(1, PivotKind.HIGH), (3, PivotKind.LOW)]
        assert swings[0].value == Decimal("3")
        assert swings[0].timestamp == 1001

    def test_short_series_is_empty(self):
        """len < 2 * lookback + 1 gives no swings."""
        assert detect_swings(series([1, 5, 1, 2]), 2) == []

    def test_edges_never_candidates(self):
        """Only indices with a full window on both sides qualify."""
        values = [9, 1, 2, 3, 4, 5, 0]
        lookback = 2
        for swing in detect_swings(series(values), lookback):
            assert lookback <= swing.index < len(values) - lookback

    def test_flat_top_marks_first_index_only(self):
        swings = detect_swings(series([1, 2, 5, 5, 2, 1]), 2)
        highs = [s.index for s in swings if s.is_high]
        assert highs == [2]

    def test_flat_bottom_marks_first_index_only(self):
        swings = detect_swings(series([5, 4, 1, 1, 4, 5]), 2)
        lows = [s.index for s in swings if s.is_low]
        assert lows == [2]

    def test_constant_series_has_no_swings(self):
        assert detect_swings(series([3] * 9), 2) == []

    def test_kinds_filter(self):
        swings = detect_swings(series([1, 3, 2, 0, 2]), 1, (PivotKind.LOW,))
        assert [s.kind for s in swings] == [PivotKind.LOW]

    def test_invalid_lookback(self):
        with pytest.raises(InvalidConfigError):
            detect_swings(series([1, 2, 3]), 0)

    def test_indices_strictly_increasing(self):
        values = [5, 7, 6, 8, 4, 6, 3, 9, 2, 5, 1, 6]
        indices = [s.index for s in detect_swings(series(values), 1)]
        assert indices == sorted(set(indices))


class TestBarSwings:
    """Test swing detection over bars."""

    def test_high_low_source(self):
        bars = make_bars([
            (10, 11, 9, 10),
            (10, 13, 9.5, 12),
            (12, 12.5, 8, 9),
            (9, 10, 7, 8),
            (8, 11, 8.5, 10),
        ])
        swings = detect_bar_swings(bars, 1)
        assert [(s.index, s.kind, s.value) for s in swings] == [
            (1, PivotKind.HIGH, Decimal("13")),
            (3, PivotKind.LOW, Decimal("7")),
        ]

    def test_outside_bar_counts_as_high(self):
        """A bar that is both a swing high and a swing low is reported once, as a High."""
        bars = make_bars([
            (10, 11, 9, 10),
            (10, 15, 5, 10),
            (10, 11, 9, 10),
        ])
        swings = detect_bar_swings(bars, 1)
        assert [(s.index, s.kind) for s in swings] == [(1, PivotKind.HIGH)]

    def test_start_index_offsets(self):
        bars = bars_from_closes([1, 3, 2])
        swings = detect_bar_swings(bars, 1, "close", start_index=100)
        assert swings[0].index == 101

    def test_delta_series_fallbacks(self):
        bar = make_bar(0, 1, 1, 1, 1, delta=-4)
        assert delta_series([bar])[0].value == Decimal("-4")
        assert delta_series([make_bar(1, 1, 1, 1, 1)])[0].value == Decimal("0")


class TestSwingIndicator:
    """Test the progressive swing indicator."""

    def test_progressive_matches_batch_scan(self, trending_bars):
        indicator = SwingIndicator()
        config = indicator.parse_config({"lookback": 3})
        state = indicator.initialize(trending_bars, config)

        expected = detect_bar_swings(trending_bars, 3)
        assert state.swings == expected

    def test_values_are_latest_swings(self, trending_bars):
        values = calculate(SwingIndicator(), trending_bars, {"lookback": 3})
        assert values["swingHigh"] == Decimal("114.5")
        assert values["swingLow"] > Decimal("0")

    def test_insufficient_data_zero_output(self):
        values = calculate(SwingIndicator(), bars_from_closes([1, 2, 3]), {"lookback": 5})
        assert values == {"swingHigh": Decimal("0"), "swingLow": Decimal("0")}

    def test_marker_on_confirmation(self):
        indicator = SwingIndicator()
        config = indicator.parse_config({"lookback": 1, "source": "close"})
        state = indicator.new_state(config)
        outputs = []
        for bar in bars_from_closes([1, 3, 2]):
            output, state = indicator.consume(bar, config, state)
            outputs.append(output)
        assert outputs[1].markers == []
        assert len(outputs[2].markers) == 1
        assert outputs[2].markers[0].position == "above"

    def test_state_roundtrip(self, trending_bars):
        indicator = SwingIndicator()
        config = indicator.parse_config({"lookback": 2})
        state = indicator.initialize(trending_bars[:20], config)
        restored = SwingState.from_dict(state.to_dict())

        _, a = indicator.consume(trending_bars[20], config, state)
        _, b = indicator.consume(trending_bars[20], config, restored)
        assert a.to_dict() == b.to_dict()
