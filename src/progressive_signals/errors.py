"""
Error taxonomy for the indicator engine.

Only three conditions raise:

- InvalidConfigError: an option is malformed or out of range. Raised while
  parsing the config, before any state is touched.
- OutOfOrderInputError: a bar is not newer than the last bar the state has
  seen. Raised before the state is mutated.
- InvalidInputError: a bar has a NaN or infinite price or volume. Raised when
  the Bar is built, so such a bar never reaches an indicator.

Insufficient history and degenerate arithmetic (zero or negative prices) are
not errors: indicators return their documented zero/empty output instead.
"""


class IndicatorError(Exception):
    """Base class for indicator engine errors."""
    pass


class InvalidConfigError(IndicatorError, ValueError):
    """Raised when an indicator option is malformed or out of range."""
    pass


class OutOfOrderInputError(IndicatorError, ValueError):
    """Raised when a bar is older than (or equal to) the last seen bar."""

    def __init__(self, open_time: int, last_open_time: int):
        self.open_time = open_time
        self.last_open_time = last_open_time
        super().__init__(
            f"Bar open_time {open_time} must be greater than "
            f"last seen open_time {last_open_time}"
        )


class InvalidInputError(IndicatorError, ValueError):
    """Raised when a bar carries a non-finite price or volume."""
    pass
