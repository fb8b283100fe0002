"""
Progressive Indicator Contract

Every indicator implements the same capability interface:

- parse_config(params): validate options, raise InvalidConfigError early
- required_warmup(config): bars needed before output is meaningful
- new_state(config): empty carried state
- initialize(history, config): replay consume() over history
- consume(bar, config, state): process exactly one bar, no lookahead
- state_from_dict(data): rehydrate a serialized state

The carried state is an explicit value owned by the caller. Indicators keep
no per-series memory of their own, so one indicator object can serve any
number of series as long as each series threads its own state through.
consume() updates the given state in place and returns it; callers that need
to keep an older snapshot should round-trip it through to_dict()/from_dict().

The module-level calculate() and calculate_progressive() helpers implement the
two call shapes used by the (external) HTTP layer on top of that contract.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import (
    Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple, Union,
    runtime_checkable,
)

from .config import IndicatorConfig
from .errors import OutOfOrderInputError
from .shapes import BoxShape, LineShape, MarkerShape
from .types import Bar

Params = Union[Mapping[str, Any], IndicatorConfig, None]


@dataclass
class IndicatorOutput:
    """
    Output of a single consume() call.

    Attributes:
        values: Named Decimal outputs (e.g. {"zigzag": Decimal("101.5")}).
        boxes: Box shapes describing the state as of this bar.
        lines: Line shapes (state lines plus lines for events on this bar).
        markers: Point annotations.
        extras: Structured auxiliary data (pivots, divergences, dashboard).
    """
    values: Dict[str, Decimal] = field(default_factory=dict)
    boxes: List[BoxShape] = field(default_factory=list)
    lines: List[LineShape] = field(default_factory=list)
    markers: List[MarkerShape] = field(default_factory=list)
    extras: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "values": {name: str(value) for name, value in self.values.items()},
            "boxes": [b.to_dict() for b in self.boxes],
            "lines": [line.to_dict() for line in self.lines],
            "markers": [m.to_dict() for m in self.markers],
            "extras": self.extras,
        }


@runtime_checkable
class ProgressiveIndicator(Protocol):
    """Capability interface shared by all progressive indicators."""

    indicator_id: str
    name: str
    description: str

    def parse_config(self, params: Params) -> IndicatorConfig: ...

    def required_warmup(self, config: IndicatorConfig) -> int: ...

    def new_state(self, config: IndicatorConfig) -> Any: ...

    def initialize(self, history: Iterable[Bar], config: IndicatorConfig) -> Any: ...

    def consume(self, bar: Bar, config: IndicatorConfig, state: Any) -> Tuple[IndicatorOutput, Any]: ...

    def empty_output(self, config: IndicatorConfig) -> IndicatorOutput: ...

    def state_from_dict(self, data: Dict[str, Any]) -> Any: ...


@dataclass
class ProgressiveResult:
    """
    Result of calculate_progressive().

    Holds the output of the last consumed bar plus the carried state to pass
    back on the next call. Event shapes (e.g. mitigation lines) describe the
    last consumed bar only.
    """
    values: Dict[str, Decimal]
    state: Any
    boxes: List[BoxShape] = field(default_factory=list)
    lines: List[LineShape] = field(default_factory=list)
    markers: List[MarkerShape] = field(default_factory=list)
    extras: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_output(cls, output: IndicatorOutput, state: Any) -> "ProgressiveResult":
        return cls(
            values=dict(output.values),
            state=state,
            boxes=list(output.boxes),
            lines=list(output.lines),
            markers=list(output.markers),
            extras=dict(output.extras),
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable form; the state is serialized via its to_dict()."""
        return {
            "values": {name: str(value) for name, value in self.values.items()},
            "state": self.state.to_dict() if self.state is not None else None,
            "boxes": [b.to_dict() for b in self.boxes],
            "lines": [line.to_dict() for line in self.lines],
            "markers": [m.to_dict() for m in self.markers],
            "extras": self.extras,
        }


def check_order(bar: Bar, last_open_time: Optional[int]) -> None:
    """
    Reject a bar that is not strictly newer than the last seen bar.

    Raises:
        OutOfOrderInputError: If bar.open_time <= last_open_time.
    """
    if last_open_time is not None and bar.open_time <= last_open_time:
        raise OutOfOrderInputError(bar.open_time, last_open_time)


def check_batch_order(bars: Sequence[Bar], last_open_time: Optional[int]) -> None:
    """Validate ordering of a whole batch before any bar is consumed."""
    previous = last_open_time
    for bar in bars:
        check_order(bar, previous)
        previous = bar.open_time


def replay(
    indicator: ProgressiveIndicator,
    bars: Iterable[Bar],
    config: IndicatorConfig,
    state: Any,
) -> Tuple[Optional[IndicatorOutput], Any]:
    """
    Feed bars one at a time through consume().

    This is consume() in a loop, which guarantees initialize() over a history
    behaves identically to streaming the same bars individually.

    Returns:
        Tuple of (output of the last bar or None if no bars, final state).
    """
    output = None
    for bar in bars:
        output, state = indicator.consume(bar, config, state)
    return output, state


def resolve_state(indicator: ProgressiveIndicator, config: IndicatorConfig, previous_state: Any) -> Any:
    """Accept a state object, its dict form, or None (fresh state)."""
    if previous_state is None:
        return indicator.new_state(config)
    if isinstance(previous_state, Mapping):
        return indicator.state_from_dict(dict(previous_state))
    return previous_state


def calculate(indicator: ProgressiveIndicator, bars: Sequence[Bar], params: Params = None) -> Dict[str, Decimal]:
    """
    Batch calculation over a complete bar sequence.

    Stateless: a fresh state is built, every bar is replayed and the values
    of the last bar are returned. With fewer bars than required_warmup() the
    indicator's documented zero output is returned.

    Raises:
        InvalidConfigError: If params are invalid.
        OutOfOrderInputError: If bars are not strictly increasing in open_time.
    """
    config = indicator.parse_config(params)
    if len(bars) < indicator.required_warmup(config):
        return dict(indicator.empty_output(config).values)
    check_batch_order(bars, None)
    output, _ = replay(indicator, bars, config, indicator.new_state(config))
    if output is None:
        return dict(indicator.empty_output(config).values)
    return dict(output.values)


def calculate_progressive(
    indicator: ProgressiveIndicator,
    bars: Sequence[Bar],
    params: Params = None,
    previous_state: Any = None,
) -> ProgressiveResult:
    """
    Continue a series from previous_state with new bars.

    The ordering of every bar (against the state and against each other) is
    validated before the first consume(), so a rejected call leaves the
    caller's state unchanged.

    Args:
        indicator: Indicator to run.
        bars: New bars, oldest first.
        params: Options mapping or parsed config.
        previous_state: State from a previous call, its to_dict() form, or None.

    Returns:
        ProgressiveResult with the last bar's output and the updated state.

    Raises:
        InvalidConfigError: If params are invalid.
        OutOfOrderInputError: If any bar is not newer than its predecessor.
    """
    config = indicator.parse_config(params)
    state = resolve_state(indicator, config, previous_state)
    check_batch_order(bars, state.last_open_time)
    output, state = replay(indicator, bars, config, state)
    if output is None:
        output = indicator.empty_output(config)
    return ProgressiveResult.from_output(output, state)
