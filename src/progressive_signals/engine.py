"""
Series Engine

Owns the carried state of every registered (symbol, interval, indicator,
params) series and routes live bars to them.

Each series has its own lock, so a backfill and a live update touching the
same series are serialized while different series proceed independently.
The engine performs no I/O; snapshot() and restore() hand the serialized
states to whatever persistence the caller uses.

Example:
    >>> engine = IndicatorEngine()
    >>> key = engine.register("BTCUSDT", "1m", "fvg", {"thresholdPercent": 0.1}, history=bars)
    >>> outputs = engine.on_bar(new_bar)
    >>> outputs[key].values["bullCount"]
    Decimal('3')
"""

import logging
import threading
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .config import IndicatorConfig
from .contract import IndicatorOutput, ProgressiveIndicator, check_batch_order
from .errors import IndicatorError, OutOfOrderInputError
from .registry import get_indicator
from .types import Bar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeriesKey:
    """Identity of one stateful series."""
    symbol: str
    interval: str
    indicator_id: str
    params_key: str

    def __str__(self) -> str:
        return f"{self.symbol}:{self.interval}:{self.indicator_id}[{self.params_key}]"


@dataclass
class _Series:
    key: SeriesKey
    indicator: ProgressiveIndicator
    config: IndicatorConfig
    state: Any
    lock: threading.Lock = field(default_factory=threading.Lock)


def _params_to_json(config: IndicatorConfig) -> Dict[str, Any]:
    return {
        name: str(value) if isinstance(value, Decimal) else value
        for name, value in config.to_params().items()
    }


class IndicatorEngine:
    """
    Registry of live series and their carried states.

    Single writer per series: every state mutation happens under that
    series' lock.
    """

    def __init__(self):
        self._series: Dict[SeriesKey, _Series] = {}
        self._lock = threading.Lock()

    def register(
        self,
        symbol: str,
        interval: str,
        indicator_id: str,
        params: Optional[Mapping[str, Any]] = None,
        history: Iterable[Bar] = (),
    ) -> SeriesKey:
        """
        Register a series and initialize its state from history.

        Registering an existing key replaces its state.

        Raises:
            InvalidConfigError: Unknown indicator or invalid params.
            OutOfOrderInputError: History is not strictly ordered.
        """
        indicator = get_indicator(indicator_id)
        config = indicator.parse_config(params)
        key = SeriesKey(symbol, interval, indicator.indicator_id, config.params_key())

        history = list(history)
        check_batch_order(history, None)
        warmup = indicator.required_warmup(config)
        if len(history) < warmup:
            logger.warning(
                f"{key}: {len(history)} history bars, {warmup} needed before output is meaningful"
            )
        state = indicator.initialize(history, config)

        with self._lock:
            replaced = key in self._series
            self._series[key] = _Series(key, indicator, config, state)
        logger.info(f"{'Replaced' if replaced else 'Registered'} series {key} ({len(history)} history bars)")
        return key

    def unregister(self, key: SeriesKey) -> bool:
        """Drop a series. Returns False if it was not registered."""
        with self._lock:
            series = self._series.pop(key, None)
        if series is None:
            logger.warning(f"Series not found: {key}")
            return False
        logger.info(f"Unregistered series {key}")
        return True

    def keys(self, symbol: Optional[str] = None, interval: Optional[str] = None) -> List[SeriesKey]:
        """Registered keys, optionally filtered by symbol and interval."""
        with self._lock:
            return [
                k for k in self._series
                if (symbol is None or k.symbol == symbol) and (interval is None or k.interval == interval)
            ]

    def state(self, key: SeriesKey) -> Any:
        """Current carried state of a series (KeyError if unknown)."""
        with self._lock:
            series = self._series[key]
        with series.lock:
            return series.state

    def on_bar(self, bar: Bar) -> Dict[SeriesKey, IndicatorOutput]:
        """
        Feed one bar to every series of its (symbol, interval).

        A series that rejects the bar keeps its state and is left out of the
        result; the other series are unaffected. Unexpected arithmetic or
        type failures are logged with a traceback and isolated the same way.

        Returns:
            Mapping of series key to that series' output for this bar.
        """
        with self._lock:
            targets = [
                s for k, s in self._series.items()
                if k.symbol == bar.symbol and k.interval == bar.interval
            ]

        outputs: Dict[SeriesKey, IndicatorOutput] = {}
        for series in targets:
            with series.lock:
                try:
                    output, series.state = series.indicator.consume(bar, series.config, series.state)
                except OutOfOrderInputError as e:
                    logger.warning(f"{series.key}: rejected bar: {e}")
                    continue
                except IndicatorError as e:
                    logger.error(f"{series.key}: error consuming bar: {e}")
                    continue
                except (ArithmeticError, ValueError, TypeError):
                    logger.exception(f"{series.key}: unexpected failure consuming bar at {bar.open_time}")
                    continue
            outputs[series.key] = output
        return outputs

    def snapshot(self) -> Dict[str, Any]:
        """Serialize every series (params and state) to a JSON-compatible dict."""
        with self._lock:
            targets = list(self._series.values())

        entries = []
        for series in targets:
            with series.lock:
                entries.append({
                    "symbol": series.key.symbol,
                    "interval": series.key.interval,
                    "indicator": series.key.indicator_id,
                    "params": _params_to_json(series.config),
                    "state": series.state.to_dict(),
                })
        return {"series": entries}

    def restore(self, data: Mapping[str, Any]) -> List[SeriesKey]:
        """
        Recreate series from a snapshot() dict, replacing same-key series.

        Raises:
            InvalidConfigError: If an entry names an unknown indicator or bad params.
        """
        restored = []
        for entry in data.get("series", []):
            indicator = get_indicator(entry["indicator"])
            config = indicator.parse_config(entry.get("params"))
            key = SeriesKey(entry["symbol"], entry["interval"], indicator.indicator_id, config.params_key())
            state = indicator.state_from_dict(entry["state"])
            with self._lock:
                self._series[key] = _Series(key, indicator, config, state)
            restored.append(key)
        logger.info(f"Restored {len(restored)} series")
        return restored
