"""Exception types raised by the series and backtest layers."""


class WheelError(ValueError):
    """Base class; subclasses ValueError so existing ``except ValueError`` callers keep working."""


class ValidationError(WheelError):
    """A row or argument is malformed (bad date, non-numeric or non-positive price, unknown range)."""


class DomainError(WheelError):
    """A computation would divide by zero or produce NaN/Infinity (e.g. non-positive close)."""


__all__ = ["WheelError", "ValidationError", "DomainError"]
