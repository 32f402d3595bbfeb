"""Error types raised when a line configuration is rejected."""


class LineConfigError(Exception):
    """Base class for configuration errors raised before a run starts."""

    pass


class InvalidConfiguration(LineConfigError, ValueError):
    """Raised for out-of-range inputs.

    Examples: zero iterations, negative takt time, negative task time,
    a buffer capacity below 1, or a non-positive time step.
    """

    pass


class EmptyLine(LineConfigError, ValueError):
    """Raised when a line configuration has no stations."""

    pass
