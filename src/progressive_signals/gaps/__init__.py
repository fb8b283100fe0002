"""Fair Value Gap detection layer.

Key Components:
- Gap: A three-bar price imbalance with its mitigation flag
- GapRegistryState: Serializable per-series registry of open gaps
- FairValueGapIndicator: Progressive detector and mitigation tracker

Example:
    >>> from progressive_signals.gaps import FairValueGapIndicator
    >>>
    >>> fvg = FairValueGapIndicator()
    >>> config = fvg.parse_config({"thresholdPercent": 0.5})
    >>> state = fvg.initialize(history, config)
    >>> output, state = fvg.consume(new_bar, config, state)
"""

from .gap import Gap
from .state import GapRegistryState
from .detector import FairValueGapIndicator, mitigation_rate

__all__ = [
    "Gap",
    "GapRegistryState",
    "FairValueGapIndicator",
    "mitigation_rate",
]
