"""
Tests for the ZigZag pivot tracker.
"""

from decimal import Decimal

import pytest

from progressive_signals.constants import MAX_PIVOT_RECORDS
from progressive_signals.contract import calculate
from progressive_signals.errors import OutOfOrderInputError
from progressive_signals.types import PivotKind
from progressive_signals.zigzag import (
    ZigZagIndicator,
    ZigZagPivot,
    ZigZagState,
    find_seed_pivot,
)

from conftest import bars_from_closes, make_bars


def reference_pivots(closes, deviation, depth):
    """Straightforward whole-history scan over closes, used as an oracle."""
    prices = [Decimal(str(c)) for c in closes]
    window = prices[:2 * depth]
    high_i = max(range(len(window)), key=lambda i: (window[i], -i))
    low_i = min(range(len(window)), key=lambda i: (window[i], i))
    if high_i < low_i:
        pivots = [(high_i, prices[high_i], PivotKind.HIGH)]
    else:
        pivots = [(low_i, prices[low_i], PivotKind.LOW)]

    start = pivots[-1][0] + depth
    while start < len(prices):
        index, price, kind = pivots[-1]
        threshold = price * Decimal(str(deviation)) / 100
        extreme = None
        found = None
        for i in range(start, len(prices)):
            if kind is PivotKind.LOW:
                if extreme is None or prices[i] > prices[extreme]:
                    extreme = i
                if prices[extreme] - price >= threshold:
                    found = (extreme, prices[extreme], PivotKind.HIGH)
                    break
            else:
                if extreme is None or prices[i] < prices[extreme]:
                    extreme = i
                if price - prices[extreme] >= threshold:
                    found = (extreme, prices[extreme], PivotKind.LOW)
                    break
        if found is None:
            break
        pivots.append(found)
        start = found[0] + depth
    return pivots


def run(closes, params):
    indicator = ZigZagIndicator()
    config = indicator.parse_config(params)
    state = indicator.initialize(bars_from_closes(closes), config)
    return indicator, config, state


RISE_THEN_FALL = [100, 101, 102, 103, 110, 108, 103, 101, 102, 103]


class TestSeedPivot:
    """Test selection of the first pivot."""

    def test_low_first(self):
        seed = find_seed_pivot(bars_from_closes([100, 99, 101, 103]), "close")
        assert (seed.index, seed.kind, seed.price) == (1, PivotKind.LOW, Decimal("99"))

    def test_high_first(self):
        seed = find_seed_pivot(bars_from_closes([100, 104, 101, 97]), "close")
        assert (seed.index, seed.kind) == (1, PivotKind.HIGH)

    def test_first_occurrence_of_extreme(self):
        seed = find_seed_pivot(bars_from_closes([100, 105, 99, 105]), "close")
        assert seed.index == 1

    def test_tie_is_low(self):
        """A single bar window has both extremes at index 0: seed a Low."""
        seed = find_seed_pivot(bars_from_closes([100]), "close")
        assert seed.kind is PivotKind.LOW

    def test_high_low_source_uses_wicks(self):
        bars = make_bars([(100, 101, 99, 100), (100, 106, 100, 101), (101, 102, 100, 101)])
        seed = find_seed_pivot(bars)
        assert seed.kind is PivotKind.LOW
        assert seed.price == Decimal("99")


class TestConfirmation:
    """Test the tracking state machine."""

    def test_rise_then_fall_confirms_one_pair(self):
        """deviation 5%, depth 2: seed Low, then one High/Low pair."""
        _, _, state = run(RISE_THEN_FALL, {"deviation": 5, "depth": 2, "source": "close"})

        assert [(p.index, p.kind, p.price) for p in state.pivots] == [
            (0, PivotKind.LOW, Decimal("100")),
            (4, PivotKind.HIGH, Decimal("110")),
            (6, PivotKind.LOW, Decimal("103")),
        ]
        assert state.pivots[1].percent_change == Decimal("10")

    def test_pivots_alternate_and_meet_deviation(self, trending_bars):
        indicator = ZigZagIndicator()
        config = indicator.parse_config({"deviation": 3, "depth": 2})
        state = indicator.initialize(trending_bars, config)

        assert len(state.pivots) >= 3
        for prev, nxt in zip(state.pivots, state.pivots[1:]):
            assert nxt.kind is prev.kind.opposite
            assert nxt.index >= prev.index + 2
            assert nxt.percent_change >= Decimal("3")

    def test_threshold_is_inclusive(self):
        """A move of exactly deviation% confirms."""
        _, _, state = run([100, 100, 105, 105], {"deviation": 5, "depth": 1, "source": "close"})
        assert [p.price for p in state.pivots] == [Decimal("100"), Decimal("105")]

    @pytest.mark.parametrize("closes,params", [
        (RISE_THEN_FALL, {"deviation": 5, "depth": 2}),
        ([100, 97, 95, 99, 104, 101, 96, 93, 97, 102, 108, 103, 99, 104, 98, 95],
         {"deviation": 3, "depth": 2}),
        ([50 + (i % 7) * 2 - (i % 3) for i in range(60)], {"deviation": 4, "depth": 3}),
    ])
    def test_matches_whole_history_scan(self, closes, params):
        """Streaming bar by bar gives the pivots of a full rescan."""
        _, _, state = run(closes, dict(params, source="close"))
        expected = reference_pivots(closes, params["deviation"], params["depth"])
        assert [(p.index, p.price, p.kind) for p in state.pivots] == expected

    def test_waits_for_seed_window(self):
        indicator = ZigZagIndicator()
        config = indicator.parse_config({"depth": 3, "source": "close"})
        state = indicator.new_state(config)
        for bar in bars_from_closes([100, 101, 102, 103, 104]):
            output, state = indicator.consume(bar, config, state)
            assert output.values["zigzag"] == Decimal("0")
        assert state.is_seeking
        assert len(state.seed_bars) == 5

    def test_degenerate_price_no_signal(self):
        """A non-positive pivot price never confirms and never raises."""
        _, _, state = run([0, 1, 2, 3, 4, 5, 6, 7], {"deviation": 5, "depth": 1, "source": "close"})
        assert len(state.pivots) == 1
        assert state.pivots[0].price == Decimal("0")

    def test_pivot_records_capped(self):
        closes = [100 if i % 2 == 0 else 120 for i in range(MAX_PIVOT_RECORDS * 2 + 50)]
        _, _, state = run(closes, {"deviation": 5, "depth": 1, "source": "close"})
        assert len(state.pivots) == MAX_PIVOT_RECORDS
        assert state.pivots[-1].index == len(closes) - 1


class TestOutput:
    """Test values, lines and the provisional tail."""

    def test_value_is_last_pivot(self):
        values = calculate(
            ZigZagIndicator(), bars_from_closes(RISE_THEN_FALL),
            {"deviation": 5, "depth": 2, "source": "close"},
        )
        assert values == {"zigzag": Decimal("103")}

    def test_insufficient_data_zero(self):
        values = calculate(ZigZagIndicator(), bars_from_closes([100, 110]), {"depth": 12})
        assert values == {"zigzag": Decimal("0")}

    def test_lines_and_provisional(self):
        indicator, config, state = run(RISE_THEN_FALL, {"deviation": 5, "depth": 2, "source": "close"})
        output, state = indicator.consume(bars_from_closes([104], start=10)[0], config, state)

        solid = [line for line in output.lines if line.line_style == "solid"]
        assert [line.label for line in solid] == ["up", "down"]
        assert output.extras["provisional"] == {
            "index": 10,
            "timestamp": 1700000000 + 10 * 60,
            "price": "104",
            "kind": "high",
        }
        assert output.lines[-1].label == "provisional"
        assert len(output.extras["pivots"]) == 3


class TestState:
    """Test ordering and serialization of the carried state."""

    def test_out_of_order_rejected_without_mutation(self):
        indicator, config, state = run(RISE_THEN_FALL, {"deviation": 5, "depth": 2})
        before = state.to_dict()
        stale = bars_from_closes([100], start=9)[0]
        with pytest.raises(OutOfOrderInputError):
            indicator.consume(stale, config, state)
        assert state.to_dict() == before

    def test_roundtrip_mid_seed(self):
        indicator, config, state = run([100, 101, 102], {"depth": 3, "source": "close"})
        restored = ZigZagState.from_dict(state.to_dict())
        assert restored.to_dict() == state.to_dict()
        assert len(restored.seed_bars) == 3

    def test_roundtrip_while_tracking(self, trending_bars):
        indicator = ZigZagIndicator()
        config = indicator.parse_config({"deviation": 3, "depth": 2})
        state = indicator.initialize(trending_bars[:25], config)
        restored = indicator.state_from_dict(state.to_dict())

        for bar in trending_bars[25:]:
            _, state = indicator.consume(bar, config, state)
            _, restored = indicator.consume(bar, config, restored)
        assert restored.pivots == state.pivots

    def test_pivot_dict_roundtrip(self):
        pivot = ZigZagPivot(3, 1700000180, Decimal("101.5"), PivotKind.HIGH, Decimal("4.2"))
        assert ZigZagPivot.from_dict(pivot.to_dict()) == pivot
