"""
Fair Value Gap Detector & Mitigation Tracker

Per bar, with a rolling buffer [old, middle, current]:

1. Threshold: thresholdPercent / 100, or in auto mode the running mean of
   (high - low) / low over the bars seen so far (bars with low <= 0 skipped).
2. Bullish gap: current.low > old.high and middle.close > old.high, with
   (current.low - old.high) / old.high above the threshold.
3. Bearish gap: current.high < old.low and middle.close < old.low, with
   (old.low - current.high) / current.high above the threshold.
4. Dynamic mode: the latest bound pair of each side shrinks toward the close
   on every bar where that side's pattern did not fire.
5. Mitigation: a bullish gap closes when close < bottom, a bearish gap when
   close > top. Mitigated gaps leave the registry for good.
6. Eviction: the registry is trimmed to the MAX_GAP_RECORDS most recent gaps.

A new gap is skipped when the bar's close_time equals the last gap time of
the same side, which keeps replays of the same bar from double counting.

Zero or negative prices never raise: the ratio is undefined, so the bar
simply produces no gap.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..config import GapConfig
from ..constants import (
    DURATION_SMOOTHING_KEEP, DURATION_SMOOTHING_TOTAL, GAP_PATTERN_BARS, MAX_GAP_RECORDS,
)
from ..contract import IndicatorOutput, Params, check_order, replay
from ..numeric import HUNDRED, ZERO, divide, quantize, safe_ratio
from ..shapes import BoxShape, LineShape
from ..types import Bar
from .gap import Gap
from .state import GapRegistryState

logger = logging.getLogger(__name__)


def mitigation_rate(mitigated: int, count: int, places: int = 2) -> Optional[Decimal]:
    """mitigated / count as a percentage, or None when nothing was counted."""
    if count <= 0:
        return None
    return quantize(Decimal(mitigated) * HUNDRED / Decimal(count), places)


class FairValueGapIndicator:
    """
    Three-bar Fair Value Gap detector with a live mitigation registry (id "fvg").

    The registry state is owned by the caller and threaded through consume().
    Static mode draws a box for every open gap; dynamic mode instead reports
    the shrinking bounds of the latest gap on each side as values.
    """

    indicator_id = "fvg"
    name = "Fair Value Gap"
    description = "Three-bar price imbalances tracked until price closes back through them"
    config_class = GapConfig

    def parse_config(self, params: Params) -> GapConfig:
        if isinstance(params, GapConfig):
            return params
        return GapConfig.from_params(params)

    def required_warmup(self, config: GapConfig) -> int:
        return GAP_PATTERN_BARS

    def new_state(self, config: GapConfig) -> GapRegistryState:
        return GapRegistryState()

    def initialize(self, history: Iterable[Bar], config: GapConfig) -> GapRegistryState:
        _, state = replay(self, history, config, self.new_state(config))
        return state

    def state_from_dict(self, data: Dict[str, Any]) -> GapRegistryState:
        return GapRegistryState.from_dict(data)

    def empty_output(self, config: GapConfig) -> IndicatorOutput:
        return IndicatorOutput(
            values={
                "bullCount": ZERO,
                "bearCount": ZERO,
                "bullMitigated": ZERO,
                "bearMitigated": ZERO,
            },
            extras={"dashboard": self._dashboard(GapRegistryState())},
        )

    def consume(self, bar: Bar, config: GapConfig, state: GapRegistryState) -> Tuple[IndicatorOutput, GapRegistryState]:
        check_order(bar, state.last_open_time)
        state.mitigation_lines = []

        if state.buffer:
            self._update_duration(state, bar.close_time - state.buffer[-1].close_time)

        state.buffer.append(bar)
        if len(state.buffer) > GAP_PATTERN_BARS:
            state.buffer.pop(0)
        state.bar_index += 1
        state.last_open_time = bar.open_time

        if len(state.buffer) < GAP_PATTERN_BARS:
            return self._output(state, bar, config), state

        self._detect(state, config)
        self._mitigate(state, bar, config)
        if len(state.gaps) > MAX_GAP_RECORDS:
            del state.gaps[MAX_GAP_RECORDS:]

        return self._output(state, bar, config), state

    def _update_duration(self, state: GapRegistryState, duration: int) -> None:
        if duration <= 0:
            return
        if state.average_duration == 0:
            state.average_duration = duration
        else:
            state.average_duration = (
                state.average_duration * DURATION_SMOOTHING_KEEP + duration
            ) // DURATION_SMOOTHING_TOTAL

    def _threshold(self, state: GapRegistryState, config: GapConfig, current: Bar) -> Decimal:
        if not config.auto_threshold:
            return config.threshold_percent / HUNDRED
        bar_range = safe_ratio(current.high - current.low, current.low)
        if bar_range is not None:
            state.cumulative_range += bar_range
            state.threshold_bars += 1
        if state.threshold_bars == 0:
            return ZERO
        return divide(state.cumulative_range, Decimal(state.threshold_bars))

    def _detect(self, state: GapRegistryState, config: GapConfig) -> None:
        old, middle, current = state.buffer
        threshold = self._threshold(state, config, current)

        bull_fvg = current.low > old.high and middle.close > old.high
        if bull_fvg:
            size = safe_ratio(current.low - old.high, old.high)
            if size is not None and size > threshold and current.close_time != state.last_bull_time:
                gap = Gap(current.low, old.high, True, current.close_time, old.close_time, state.bar_index)
                state.gaps.insert(0, gap)
                state.bull_count += 1
                state.last_bull_time = current.close_time
                if config.dynamic:
                    state.max_bull, state.min_bull = gap.top, gap.bottom
                logger.debug("Bullish FVG [%s, %s] at bar %d", gap.bottom, gap.top, gap.bar_index)

        bear_fvg = current.high < old.low and middle.close < old.low
        if bear_fvg:
            size = safe_ratio(old.low - current.high, current.high)
            if size is not None and size > threshold and current.close_time != state.last_bear_time:
                gap = Gap(old.low, current.high, False, current.close_time, old.close_time, state.bar_index)
                state.gaps.insert(0, gap)
                state.bear_count += 1
                state.last_bear_time = current.close_time
                if config.dynamic:
                    state.max_bear, state.min_bear = gap.top, gap.bottom
                logger.debug("Bearish FVG [%s, %s] at bar %d", gap.bottom, gap.top, gap.bar_index)

        if config.dynamic:
            close = current.close
            if state.max_bull is not None and state.min_bull is not None and not bull_fvg:
                state.max_bull = max(min(close, state.max_bull), state.min_bull)
            if state.max_bear is not None and state.min_bear is not None and not bear_fvg:
                state.min_bear = min(max(close, state.min_bear), state.max_bear)

    def _mitigate(self, state: GapRegistryState, bar: Bar, config: GapConfig) -> None:
        survivors = []
        for gap in state.gaps:
            if gap.mitigated or not gap.is_mitigated_by(bar.close):
                survivors.append(gap)
                continue
            gap.mitigated = True
            if gap.is_bullish:
                state.bull_mitigated += 1
            else:
                state.bear_mitigated += 1
            if config.mitigation_levels:
                state.mitigation_lines.append(LineShape(
                    gap.anchor_time, gap.level, bar.close_time, gap.level, "dashed",
                    "Bull FVG Mitigated" if gap.is_bullish else "Bear FVG Mitigated",
                ))
            logger.debug(
                "%s FVG [%s, %s] mitigated by close %s",
                "Bullish" if gap.is_bullish else "Bearish", gap.bottom, gap.top, bar.close,
            )
        state.gaps = survivors

    def _dashboard(self, state: GapRegistryState) -> Dict[str, Any]:
        dashboard = {
            "bullCount": state.bull_count,
            "bearCount": state.bear_count,
            "bullMitigated": state.bull_mitigated,
            "bearMitigated": state.bear_mitigated,
        }
        bull_rate = mitigation_rate(state.bull_mitigated, state.bull_count, 1)
        if bull_rate is not None:
            dashboard["bullMitigationRate"] = f"{bull_rate}%"
        bear_rate = mitigation_rate(state.bear_mitigated, state.bear_count, 1)
        if bear_rate is not None:
            dashboard["bearMitigationRate"] = f"{bear_rate}%"
        return dashboard

    def _output(self, state: GapRegistryState, bar: Bar, config: GapConfig) -> IndicatorOutput:
        values: Dict[str, Decimal] = {}
        if config.dynamic:
            for name, value in (
                ("maxBullFvg", state.max_bull),
                ("minBullFvg", state.min_bull),
                ("maxBearFvg", state.max_bear),
                ("minBearFvg", state.min_bear),
            ):
                if value is not None:
                    values[name] = value

        values["bullCount"] = Decimal(state.bull_count)
        values["bearCount"] = Decimal(state.bear_count)
        values["bullMitigated"] = Decimal(state.bull_mitigated)
        values["bearMitigated"] = Decimal(state.bear_mitigated)
        bull_rate = mitigation_rate(state.bull_mitigated, state.bull_count)
        if bull_rate is not None:
            values["bullMitigationRate"] = bull_rate
        bear_rate = mitigation_rate(state.bear_mitigated, state.bear_count)
        if bear_rate is not None:
            values["bearMitigationRate"] = bear_rate

        active = state.active_gaps()
        boxes: List[BoxShape] = []
        if not config.dynamic:
            for gap in active:
                end = bar.close_time
                if state.average_duration > 0:
                    end = min(gap.anchor_time + config.extend * state.average_duration, bar.close_time)
                boxes.append(BoxShape(
                    gap.anchor_time, end, gap.top, gap.bottom,
                    "Bull FVG" if gap.is_bullish else "Bear FVG",
                ))

        lines: List[LineShape] = []
        for gap in active[:config.show_last]:
            lines.append(LineShape(
                gap.anchor_time, gap.level, bar.close_time, gap.level, "solid",
                "Bull FVG Level" if gap.is_bullish else "Bear FVG Level",
            ))
        lines.extend(state.mitigation_lines)

        return IndicatorOutput(
            values=values,
            boxes=boxes,
            lines=lines,
            extras={
                "gaps": [g.to_dict() for g in active],
                "dashboard": self._dashboard(state),
            },
        )
