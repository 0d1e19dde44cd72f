class SpinpaError(Exception):
    """Base error."""

class InvariantError(SpinpaError, RuntimeError):
    """Raised when an internal invariant of the predictor does not hold (a logic defect, never retried)."""

class ValidationError(SpinpaError):
    """Raised when a prediction disagrees with the simulated reference values."""
