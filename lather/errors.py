"""
Exceptions and warnings raised by the lather package.

- ConfigError: Out-of-range or inconsistent parameters. Fatal, raised before any simulation work.
- CoverageError / CoverageWarning: Spot coverage could not honour the fill factor policy. Warning by default, fatal in strict mode.
- NumericalDegenerate: Zero or non-finite visible flux in a single time sample.
"""
#%% Importing libraries
from datetime import datetime
from typing import Any


#%% Base error
class LatherError(Exception):
    """Base error class with context."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details = details or {}
        self.timestamp = datetime.now()

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary."""
        return {
            'message': str(self),
            'details': self.details,
            'timestamp': self.timestamp.isoformat(),
            'type': self.__class__.__name__,
        }


class ConfigError(LatherError, ValueError):
    """Invalid configuration parameters."""


class CoverageError(LatherError):
    """Spot coverage policy could not be honoured."""


class NumericalDegenerate(LatherError, ArithmeticError):
    """Total visible flux is zero or not finite."""


class CoverageWarning(UserWarning):
    """Non-fatal counterpart of CoverageError."""
