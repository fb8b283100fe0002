"""
Indicator Registry

Lookup of progressive indicators by id.
"""

import logging
from typing import Any, Dict, List

from .contract import ProgressiveIndicator
from .divergence import DivergenceIndicator
from .errors import InvalidConfigError
from .gaps import FairValueGapIndicator
from .swing_detector import SwingIndicator
from .zigzag import ZigZagIndicator

logger = logging.getLogger(__name__)


# Global indicator registry. Indicators hold no per-series memory, so one
# instance per id is shared by every series.
INDICATOR_REGISTRY: Dict[str, ProgressiveIndicator] = {
    indicator.indicator_id: indicator
    for indicator in (
        SwingIndicator(),
        ZigZagIndicator(),
        FairValueGapIndicator(),
        DivergenceIndicator(),
    )
}


def get_indicator(indicator_id: str) -> ProgressiveIndicator:
    """
    Look up an indicator by id (case-insensitive).

    Raises:
        InvalidConfigError: If no indicator has that id.
    """
    indicator = INDICATOR_REGISTRY.get(indicator_id.lower())
    if indicator is None:
        raise InvalidConfigError(
            f"Unknown indicator {indicator_id!r}; available: {sorted(INDICATOR_REGISTRY)}"
        )
    return indicator


def list_available_indicators() -> List[Dict[str, Any]]:
    """
    List all available indicators with metadata.

    Returns:
        List of dicts with id, name, description, warmup for the default
        config, and parameter declarations.
    """
    indicators = []
    for key, indicator in INDICATOR_REGISTRY.items():
        config = indicator.parse_config(None)
        indicators.append({
            "id": key,
            "name": indicator.name,
            "description": indicator.description,
            "warmup": indicator.required_warmup(config),
            "parameters": [spec.to_dict() for spec in config.PARAMETERS],
        })
    return indicators
