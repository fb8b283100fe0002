"""
Indicator Configuration

Frozen, validated configuration for each progressive indicator.

Every config declares its options as ParameterSpec entries. from_params()
merges caller options over the declared defaults, coerces types and checks
ranges, raising InvalidConfigError before any indicator state is touched.

Example:
    >>> config = ZigZagConfig.from_params({"deviation": 3, "depth": 5})
    >>> config.deviation
    Decimal('3')
    >>> ZigZagConfig.from_params({"depth": 0})
    Traceback (most recent call last):
        ...
    progressive_signals.errors.InvalidConfigError: depth must be >= 1, got 0
"""

from dataclasses import dataclass, fields
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Type, TypeVar

from .errors import InvalidConfigError
from .numeric import to_decimal

SOURCES = ("high-low", "close")

C = TypeVar("C", bound="IndicatorConfig")


@dataclass(frozen=True)
class ParameterSpec:
    """
    Declaration of one indicator option.

    Attributes:
        name: Option name as it appears in the flat params mapping.
        field: Dataclass field the option is stored in.
        kind: One of "decimal", "integer", "boolean", "choice".
        default: Default value when the option is absent.
        min_value: Inclusive lower bound (numeric kinds only).
        max_value: Inclusive upper bound (numeric kinds only).
        choices: Allowed values (choice kind only).
        description: Human-readable description.
    """
    name: str
    field: str
    kind: str
    default: Any
    min_value: Optional[Any] = None
    max_value: Optional[Any] = None
    choices: Tuple[str, ...] = ()
    description: str = ""

    def coerce(self, value: Any) -> Any:
        """Convert a raw option value to its typed form and check its range."""
        if self.kind == "boolean":
            return _coerce_bool(self.name, value)
        if self.kind == "choice":
            text = str(value)
            if text not in self.choices:
                raise InvalidConfigError(
                    f"{self.name} must be one of {list(self.choices)}, got {value!r}"
                )
            return text
        if self.kind == "integer":
            typed = _coerce_int(self.name, value)
        else:
            typed = _coerce_decimal(self.name, value)
        if self.min_value is not None and typed < self.min_value:
            raise InvalidConfigError(f"{self.name} must be >= {self.min_value}, got {typed}")
        if self.max_value is not None and typed > self.max_value:
            raise InvalidConfigError(f"{self.name} must be <= {self.max_value}, got {typed}")
        return typed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.kind,
            "default": _jsonable(self.default),
            "min": _jsonable(self.min_value),
            "max": _jsonable(self.max_value),
            "choices": list(self.choices),
            "description": self.description,
        }


def _coerce_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "1", "yes", "on"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "0", "no", "off"):
        return False
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise InvalidConfigError(f"{name} must be a boolean, got {value!r}")


def _coerce_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidConfigError(f"{name} must be an integer, got {value!r}")
    try:
        as_decimal = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidConfigError(f"{name} must be an integer, got {value!r}")
    if not as_decimal.is_finite() or as_decimal != as_decimal.to_integral_value():
        raise InvalidConfigError(f"{name} must be an integer, got {value!r}")
    return int(as_decimal)


def _coerce_decimal(name: str, value: Any) -> Decimal:
    try:
        typed = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidConfigError(f"{name} must be a number, got {value!r}")
    if not typed.is_finite():
        raise InvalidConfigError(f"{name} must be finite, got {value!r}")
    return typed


def _key_text(value: Any) -> str:
    # 5, 5.0 and 5.00 must give the same series key
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    return str(value)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    return value


@dataclass(frozen=True)
class IndicatorConfig:
    """Base for indicator configs: parameter merge, validation, export."""

    PARAMETERS: ClassVar[Tuple[ParameterSpec, ...]] = ()

    @classmethod
    def default(cls: Type[C]) -> C:
        """Create a config with default values."""
        return cls.from_params(None)

    @classmethod
    def from_params(cls: Type[C], params: Optional[Mapping[str, Any]]) -> C:
        """
        Build a config from a flat options mapping.

        Unknown keys are ignored (callers commonly pass presentation options
        such as colors alongside the algorithmic ones). Missing keys take the
        declared default.

        Raises:
            InvalidConfigError: If any known option is malformed or out of range.
        """
        params = params or {}
        if not isinstance(params, Mapping):
            raise InvalidConfigError(f"params must be a mapping, got {type(params).__name__}")
        values = {}
        for spec in cls.PARAMETERS:
            raw = params.get(spec.name, spec.default)
            if raw is None:
                raw = spec.default
            values[spec.field] = spec.coerce(raw)
        config = cls(**values)
        config.validate()
        return config

    def validate(self) -> None:
        """Cross-field checks. Override when options constrain each other."""

    def to_params(self) -> Dict[str, Any]:
        """Flat options mapping, inverse of from_params()."""
        return {spec.name: getattr(self, spec.field) for spec in self.PARAMETERS}

    def params_key(self) -> str:
        """Stable key for this parameter set (used to key per-series state)."""
        items = sorted((k, _key_text(v)) for k, v in self.to_params().items())
        return ",".join(f"{k}={v}" for k, v in items)


@dataclass(frozen=True)
class SwingConfig(IndicatorConfig):
    """
    Configuration for the swing detector.

    Attributes:
        lookback: Bars required on each side of a swing point.
        source: "high-low" uses highs for swing highs and lows for swing lows;
            "close" uses closes for both.
    """
    lookback: int = 5
    source: str = "high-low"

    PARAMETERS: ClassVar[Tuple[ParameterSpec, ...]] = (
        ParameterSpec("lookback", "lookback", "integer", 5, 1, 50,
                      description="Bars on each side required to confirm a swing"),
        ParameterSpec("source", "source", "choice", "high-low", choices=SOURCES,
                      description="Price source: 'high-low' or 'close'"),
    )


@dataclass(frozen=True)
class ZigZagConfig(IndicatorConfig):
    """
    Configuration for the ZigZag pivot tracker.

    Attributes:
        deviation: Minimum percent move from the current pivot to confirm the
            next one. Compared with >=.
        depth: Minimum bars between pivots. Also sizes the seed window
            (first 2 * depth bars).
        source: "high-low" or "close".
    """
    deviation: Decimal = Decimal("5.0")
    depth: int = 12
    source: str = "high-low"

    PARAMETERS: ClassVar[Tuple[ParameterSpec, ...]] = (
        ParameterSpec("deviation", "deviation", "decimal", Decimal("5.0"),
                      Decimal("0.1"), Decimal("50"),
                      description="Minimum percentage change required to form a new ZigZag line"),
        ParameterSpec("depth", "depth", "integer", 12, 1, 100,
                      description="Minimum number of bars between pivot points"),
        ParameterSpec("source", "source", "choice", "high-low", choices=SOURCES,
                      description="Price source: 'high-low' or 'close'"),
    )


@dataclass(frozen=True)
class GapConfig(IndicatorConfig):
    """
    Configuration for the Fair Value Gap detector.

    Attributes:
        threshold_percent: Minimum gap size in percent (0 = every gap).
            Ignored when auto_threshold is on.
        auto_threshold: Use the running mean of (high - low) / low instead.
        dynamic: Track shrinking bounds of the latest gap on each side.
        show_last: Number of unmitigated levels to draw as lines (0 = none).
        mitigation_levels: Emit a dashed line when a gap is mitigated.
        extend: Box width in bars (visual only).
    """
    threshold_percent: Decimal = Decimal("0")
    auto_threshold: bool = False
    dynamic: bool = False
    show_last: int = 0
    mitigation_levels: bool = False
    extend: int = 20

    PARAMETERS: ClassVar[Tuple[ParameterSpec, ...]] = (
        ParameterSpec("thresholdPercent", "threshold_percent", "decimal", Decimal("0"),
                      Decimal("0"), Decimal("100"),
                      description="Minimum price movement % to qualify as FVG (0 = all gaps)"),
        ParameterSpec("autoThreshold", "auto_threshold", "boolean", False,
                      description="Derive threshold from average bar range"),
        ParameterSpec("dynamic", "dynamic", "boolean", False,
                      description="FVG levels shrink as price approaches them"),
        ParameterSpec("showLast", "show_last", "integer", 0, 0, 50,
                      description="Number of unmitigated FVG levels to display (0 = none)"),
        ParameterSpec("mitigationLevels", "mitigation_levels", "boolean", False,
                      description="Show dashed lines when FVGs are mitigated"),
        ParameterSpec("extend", "extend", "integer", 20, 5, 100,
                      description="Width of FVG boxes in bars"),
    )


@dataclass(frozen=True)
class DivergenceConfig(IndicatorConfig):
    """
    Configuration for the delta divergence matcher.

    Attributes:
        swing_lookback: Swing detector lookback applied to both series.
        div_lookback: Bars kept in the window. Pair matching reaches back
            div_lookback // 10 swings.
        hidden: Also report hidden (continuation) divergences.
    """
    swing_lookback: int = 5
    div_lookback: int = 50
    hidden: bool = False

    PARAMETERS: ClassVar[Tuple[ParameterSpec, ...]] = (
        ParameterSpec("swingLookback", "swing_lookback", "integer", 5, 1, 50,
                      description="Number of bars on each side for swing detection"),
        ParameterSpec("divLookback", "div_lookback", "integer", 50, 10, 1000,
                      description="Maximum bars to look back for divergence patterns"),
        ParameterSpec("hidden", "hidden", "boolean", False,
                      description="Also detect hidden (continuation) divergences"),
    )

    @property
    def window_size(self) -> int:
        return max(self.div_lookback, 2 * self.swing_lookback + 1)
