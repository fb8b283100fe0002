"""Centralized constants for the progressive indicators."""

# Maximum live records kept per series. Oldest records are evicted first,
# checked once per consumed bar.
MAX_GAP_RECORDS = 500
MAX_PIVOT_RECORDS = 500
MAX_SWING_RECORDS = 500

# Weight of the newest close-time delta in the smoothed average bar duration:
# avg = (avg * 9 + delta) // 10
DURATION_SMOOTHING_KEEP = 9
DURATION_SMOOTHING_TOTAL = 10

# Divergence lookback is applied as divLookback // 10 swing pairs, not bars.
DIVERGENCE_LOOKBACK_DIVISOR = 10

# Bars needed for the three-bar gap pattern.
GAP_PATTERN_BARS = 3
