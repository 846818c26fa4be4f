"""
Error types shared across the scoring, anomaly and automation layers.
"""


class RiskPulseError(Exception):
    """Base class for recoverable engine errors."""

    pass


class InsufficientData(RiskPulseError):
    """Raised when no usable indicators are available for scoring."""

    pass


class InsufficientHistory(RiskPulseError):
    """Raised when a z-score has no baseline to compare against."""

    def __init__(self, indicator_id: str, required: int = 1, available: int = 0):
        self.indicator_id = indicator_id
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient history for {indicator_id}: "
            f"{available} observations, {required} required"
        )


class ProviderUnavailable(RiskPulseError):
    """Raised when a risk level cannot be fetched for a symbol."""

    def __init__(self, symbol: str, reason: str = "unavailable"):
        self.symbol = symbol
        self.reason = reason
        super().__init__(f"Risk level unavailable for {symbol}: {reason}")


class PriceUnavailable(RiskPulseError):
    """Raised when an investment cannot be recorded at a valid price."""

    def __init__(self, symbol: str, price=None):
        self.symbol = symbol
        self.price = price
        super().__init__(f"No valid market price for {symbol} (got {price!r})")


class InvalidTransition(RiskPulseError):
    """Raised when a reminder action does not apply to its current state."""

    pass
